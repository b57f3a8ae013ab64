"""
Symbol resolution and text document building.

ResolutionVisitor turns significant nodes into symbols. It owns the single
dispatch table from node kind to descriptor source. TextDocumentBuildingVisitor
wraps it and records each resolved symbol as an occurrence; it never resolves
anything itself.
"""

import logging
from collections.abc import Callable, Sequence
from enum import Enum
from typing import Protocol

from ..errors import (
    AmbiguousTypeClassificationError,
    DocumentAlreadyBuiltError,
    ResolutionError,
    TextDocumentBuildError,
    UnresolvedPolicy,
    UnresolvedReferenceError,
)
from ..models.semanticdb_models import Diagnostic, Role, TextDocument
from .descriptors import Descriptor, DescriptorResolver
from .emitter import LineMap, TextDocumentEmitter
from .symbols import GlobalSymbolsCache, LocalSymbolsCache, Symbol

logger = logging.getLogger(__name__)


class NodeKind(Enum):
    """Node kinds the indexer cares about; everything else is OTHER."""

    CLASS = "class"
    FUNCTION = "function"
    PROPERTY = "property"
    PARAMETER = "parameter"
    TYPE_PARAMETER = "type_parameter"
    TYPE_ALIAS = "type_alias"
    CALL = "call"
    TYPE_REFERENCE = "type_reference"
    OTHER = "other"


ROLES: dict[NodeKind, Role] = {
    NodeKind.CLASS: Role.DEFINITION,
    NodeKind.FUNCTION: Role.DEFINITION,
    NodeKind.PROPERTY: Role.DEFINITION,
    NodeKind.PARAMETER: Role.DEFINITION,
    NodeKind.TYPE_PARAMETER: Role.DEFINITION,
    NodeKind.TYPE_ALIAS: Role.DEFINITION,
    NodeKind.CALL: Role.REFERENCE,
    NodeKind.TYPE_REFERENCE: Role.REFERENCE,
}


class SyntaxNode(Protocol):
    """What the indexer needs from a host syntax tree node."""

    @property
    def kind(self) -> NodeKind: ...

    @property
    def name(self) -> str | None: ...

    @property
    def span(self) -> tuple[int, int]:
        """Byte offsets of the occurrence anchor (name, callee, type name)."""
        ...

    @property
    def children(self) -> Sequence["SyntaxNode"]: ...


SymbolSink = Callable[[Symbol, SyntaxNode, Role], object]


class IndexObserver(Protocol):
    """Receives nodes the indexer had to skip."""

    def on_resolution_error(self, error: ResolutionError) -> None: ...


class LoggingObserver:
    """Default observer: writes skipped nodes to the module logger."""

    def __init__(self, level: int = logging.DEBUG):
        self.level = level

    def on_resolution_error(self, error: ResolutionError) -> None:
        logger.log(self.level, "Skipped node (%s): %s", error.code, error.message)


def _describe(node: SyntaxNode) -> str:
    return f"{node.kind.value} '{node.name}'" if node.name else f"{node.kind.value} node"


class ResolutionVisitor:
    """
    Resolves declaration and reference nodes to symbols.

    Each significant node fetches exactly one descriptor, performs exactly one
    cache lookup, and then visits its children so nested declarations and
    references are still reached.
    """

    def __init__(
        self,
        resolver: DescriptorResolver,
        global_symbols: GlobalSymbolsCache,
        local_symbols: LocalSymbolsCache | None = None,
        policy: UnresolvedPolicy = UnresolvedPolicy.SKIP_SUBTREE,
        observer: IndexObserver | None = None,
    ):
        self.resolver = resolver
        self.global_symbols = global_symbols
        self.local_symbols = local_symbols if local_symbols is not None else LocalSymbolsCache()
        self.policy = policy
        self.observer = observer if observer is not None else LoggingObserver()
        self.errors: list[ResolutionError] = []

        self._descriptor_sources: dict[NodeKind, Callable[[SyntaxNode], Descriptor]] = {
            NodeKind.CLASS: self._declared_descriptor,
            NodeKind.FUNCTION: self._declared_descriptor,
            NodeKind.PROPERTY: self._declared_descriptor,
            NodeKind.PARAMETER: self._declared_descriptor,
            NodeKind.TYPE_PARAMETER: self._declared_descriptor,
            NodeKind.TYPE_ALIAS: self._declared_descriptor,
            NodeKind.CALL: self._referenced_descriptor,
            NodeKind.TYPE_REFERENCE: self._type_descriptor,
        }

    def visit(self, node: SyntaxNode, on_symbol: SymbolSink | None = None) -> Symbol | None:
        """Resolve `node`, hand the symbol to `on_symbol`, then visit children."""
        if node.kind not in self._descriptor_sources:
            self._visit_children(node, on_symbol)
            return None

        try:
            symbol = self.symbol_for(node)
        except ResolutionError as error:
            self._handle(error)
            if self.policy is UnresolvedPolicy.SKIP_NODE:
                self._visit_children(node, on_symbol)
            return None

        if on_symbol is not None:
            on_symbol(symbol, node, ROLES[node.kind])
        self._visit_children(node, on_symbol)
        return symbol

    def symbol_for(self, node: SyntaxNode) -> Symbol:
        """Resolve one node without visiting its children or recording anything."""
        descriptor = self.descriptor_for(node)
        return self.global_symbols.lookup_or_create(descriptor, self.local_symbols)

    def descriptor_for(self, node: SyntaxNode) -> Descriptor:
        source = self._descriptor_sources.get(node.kind)
        if source is None:
            raise ValueError(f"{node.kind.name} nodes do not denote a symbol")
        return source(node)

    def _visit_children(self, node: SyntaxNode, on_symbol: SymbolSink | None) -> None:
        for child in node.children:
            self.visit(child, on_symbol)

    def _declared_descriptor(self, node: SyntaxNode) -> Descriptor:
        descriptor = self.resolver.resolve_declaration(node)
        if descriptor is None:
            raise UnresolvedReferenceError(f"Unresolved declaration of {_describe(node)}", node)
        return descriptor

    def _referenced_descriptor(self, node: SyntaxNode) -> Descriptor:
        descriptor = self.resolver.resolve_reference(node)
        if descriptor is None:
            raise UnresolvedReferenceError(f"Unresolved callee of {_describe(node)}", node)
        return descriptor

    def _type_descriptor(self, node: SyntaxNode) -> Descriptor:
        resolved = self.resolver.resolve_type(node)
        if resolved is None:
            raise UnresolvedReferenceError(f"Unresolved {_describe(node)}", node)
        if resolved.is_nullable():
            resolved = resolved.make_not_nullable()

        # Type parameters and class types come from different accessors.
        if resolved.is_type_parameter():
            descriptor = resolved.type_parameter_descriptor()
        else:
            descriptor = resolved.class_descriptor()
        if descriptor is None:
            denoted = resolved.descriptor
            what = f"{denoted.kind.value} '{denoted.name}'" if denoted is not None else "an error type"
            raise AmbiguousTypeClassificationError(
                f"{_describe(node)} resolves to {what}, which is neither a type parameter nor a class-like type",
                node,
            )
        return descriptor

    def _handle(self, error: ResolutionError) -> None:
        self.errors.append(error)
        self.observer.on_resolution_error(error)
        if self.policy is UnresolvedPolicy.FAIL:
            raise error


class TextDocumentBuildingVisitor:
    """
    Builds the TextDocument for one file.

    One instance per file; build() may only be called once. The local symbol
    cache and emitter belong to this instance, the global cache is shared.
    """

    def __init__(
        self,
        uri: str,
        root: SyntaxNode,
        resolver: DescriptorResolver,
        line_map: LineMap,
        global_symbols: GlobalSymbolsCache,
        local_symbols: LocalSymbolsCache | None = None,
        language: str = "typescript",
        policy: UnresolvedPolicy = UnresolvedPolicy.SKIP_SUBTREE,
        observer: IndexObserver | None = None,
        emit_symbol_information: bool = True,
    ):
        self.uri = uri
        self.root = root
        self.line_map = line_map
        self.observer = observer if observer is not None else LoggingObserver()
        self._emitter = TextDocumentEmitter(
            uri, line_map, language=language, emit_symbol_information=emit_symbol_information
        )
        self._visitor = ResolutionVisitor(
            resolver,
            global_symbols,
            local_symbols if local_symbols is not None else LocalSymbolsCache(),
            policy=policy,
            observer=self,
        )
        self._built = False

    @property
    def resolution(self) -> ResolutionVisitor:
        """The underlying resolver, for identifier-only lookups."""
        return self._visitor

    def build(self) -> TextDocument:
        if self._built:
            raise DocumentAlreadyBuiltError(f"build() already called for {self.uri}")
        self._built = True

        try:
            self._visitor.visit(self.root, self._emitter.emit)
        except ResolutionError as error:
            raise TextDocumentBuildError(self.uri, self._diagnostic(error), error) from error

        document = self._emitter.finish()
        logger.debug(
            "Built %s: %d occurrences, %d skipped",
            self.uri,
            len(document.occurrences),
            len(document.diagnostics),
        )
        return document

    def on_resolution_error(self, error: ResolutionError) -> None:
        self._emitter.report(self._diagnostic(error))
        self.observer.on_resolution_error(error)

    def _diagnostic(self, error: ResolutionError) -> Diagnostic:
        start, end = error.node.span
        return Diagnostic(range=self.line_map.range(start, end), code=error.code, message=error.message)
