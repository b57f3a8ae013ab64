"""
Semantic descriptors and the resolver port consumed by the indexer.

A descriptor is the resolved entity behind a declaration or reference. The
indexer never decides what a node means; it asks a DescriptorResolver and
turns the answer into a symbol.
"""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Protocol


class DescriptorKind(Enum):
    """Kinds of semantic entities a resolver can hand out."""

    PACKAGE = "package"  # directory, module file or namespace
    CLASS = "class"
    INTERFACE = "interface"
    ENUM = "enum"
    TYPE_ALIAS = "type_alias"
    FUNCTION = "function"  # functions, methods, accessors, overload signatures
    CONSTRUCTOR = "constructor"
    PROPERTY = "property"  # fields, variables, enum members
    PARAMETER = "parameter"
    TYPE_PARAMETER = "type_parameter"


CLASS_LIKE_KINDS = frozenset(
    {DescriptorKind.CLASS, DescriptorKind.INTERFACE, DescriptorKind.ENUM, DescriptorKind.TYPE_ALIAS}
)
FUNCTION_LIKE_KINDS = frozenset({DescriptorKind.FUNCTION, DescriptorKind.CONSTRUCTOR})


@dataclass(eq=False)
class Descriptor:
    """A resolved semantic entity.

    Equality is identity: two descriptors are the same entity only if they
    are the same object. Caches key on the instance.
    """

    kind: DescriptorKind
    name: str
    owner: "Descriptor | None" = None
    local: bool = False  # declared inside a block or function body
    members: list["Descriptor"] = field(default_factory=list, repr=False)

    @property
    def is_local(self) -> bool:
        """Whether this entity only has meaning inside its file."""
        if self.local or self.kind is DescriptorKind.PARAMETER:
            return True
        owner = self.owner
        if owner is None:
            return False
        return owner.kind in FUNCTION_LIKE_KINDS or owner.is_local

    @property
    def is_class_like(self) -> bool:
        return self.kind in CLASS_LIKE_KINDS

    @property
    def is_function_like(self) -> bool:
        return self.kind in FUNCTION_LIKE_KINDS

    def add_member(self, member: "Descriptor") -> "Descriptor":
        self.members.append(member)
        return member

    def find_members(self, name: str) -> list["Descriptor"]:
        """Members with the given name, in declaration order."""
        return [member for member in self.members if member.name == name]

    def overload_index(self) -> int:
        """Position among same-named function-like siblings of the owner."""
        if self.owner is None:
            return 0
        index = 0
        for sibling in self.owner.members:
            if sibling is self:
                return index
            if sibling.name == self.name and sibling.is_function_like:
                index += 1
        return index

    def qualified_name(self) -> str:
        parts = []
        current: Descriptor | None = self
        while current is not None:
            parts.append(current.name)
            current = current.owner
        return ".".join(reversed(parts))


@dataclass(frozen=True)
class ResolvedType:
    """The type a type reference denotes, as reported by the resolver."""

    descriptor: Descriptor | None
    nullable: bool = False

    def is_nullable(self) -> bool:
        return self.nullable

    def make_not_nullable(self) -> "ResolvedType":
        return replace(self, nullable=False) if self.nullable else self

    def is_type_parameter(self) -> bool:
        return self.descriptor is not None and self.descriptor.kind is DescriptorKind.TYPE_PARAMETER

    def type_parameter_descriptor(self) -> Descriptor | None:
        return self.descriptor if self.is_type_parameter() else None

    def class_descriptor(self) -> Descriptor | None:
        if self.descriptor is not None and self.descriptor.is_class_like:
            return self.descriptor
        return None


class DescriptorResolver(Protocol):
    """Port to the semantic analysis host.

    Every method returns None when the host could not bind the node.
    """

    def resolve_declaration(self, node: Any) -> Descriptor | None: ...

    def resolve_reference(self, node: Any) -> Descriptor | None: ...

    def resolve_type(self, node: Any) -> ResolvedType | None: ...
