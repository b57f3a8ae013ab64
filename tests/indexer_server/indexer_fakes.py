"""In-memory syntax nodes and resolver for exercising the indexer core."""

from dataclasses import dataclass, field

from semdex.indexer_server.tools.descriptors import Descriptor, DescriptorKind, ResolvedType
from semdex.indexer_server.tools.visitors import NodeKind


@dataclass(eq=False)
class FakeNode:
    """A syntax node that carries its own resolution answer."""

    kind: NodeKind
    name: str | None = None
    span: tuple[int, int] = (0, 0)
    children: list["FakeNode"] = field(default_factory=list)
    descriptor: Descriptor | None = None
    resolved: ResolvedType | None = None


class FakeResolver:
    """Answers every query from the node itself."""

    def __init__(self):
        self.queries: list[FakeNode] = []

    def resolve_declaration(self, node):
        self.queries.append(node)
        return node.descriptor

    def resolve_reference(self, node):
        self.queries.append(node)
        return node.descriptor

    def resolve_type(self, node):
        self.queries.append(node)
        return node.resolved


def span_of(source: str, text: str, occurrence: int = 0) -> tuple[int, int]:
    """Byte span of the n-th occurrence of `text` in `source`."""
    encoded = source.encode("utf-8")
    needle = text.encode("utf-8")
    start = -1
    for _ in range(occurrence + 1):
        start = encoded.index(needle, start + 1)
    return start, start + len(needle)


def module(*path: str) -> Descriptor:
    """A package chain such as module("src", "shapes.ts")."""
    owner = None
    for name in path:
        owner = Descriptor(DescriptorKind.PACKAGE, name, owner=owner)
    return owner


def member(owner: Descriptor, kind: DescriptorKind, name: str, local: bool = False) -> Descriptor:
    return owner.add_member(Descriptor(kind, name, owner=owner, local=local))
