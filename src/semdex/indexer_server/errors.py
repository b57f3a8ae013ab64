"""Error model for symbol resolution and text document building."""

from enum import Enum
from typing import Any


class UnresolvedPolicy(Enum):
    """What a document build does with a node that cannot be resolved."""

    SKIP_SUBTREE = "skip_subtree"  # drop the node and everything below it
    SKIP_NODE = "skip_node"  # drop the node, keep visiting its children
    FAIL = "fail"  # abort the document build

    @classmethod
    def parse(cls, value: "str | UnresolvedPolicy") -> "UnresolvedPolicy":
        """Accept either a policy or its string value."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).lower())
        except ValueError:
            valid = ", ".join(policy.value for policy in cls)
            raise ValueError(f"Unknown unresolved policy '{value}' (expected one of: {valid})") from None


class IndexingError(Exception):
    """Base class for all indexing failures."""


class ResolutionError(IndexingError):
    """A node could not be turned into a symbol.

    Handled according to the active UnresolvedPolicy; never replaced by a
    synthetic identifier.
    """

    code = "RESOLUTION_ERROR"

    def __init__(self, message: str, node: Any = None):
        super().__init__(message)
        self.message = message
        self.node = node


class UnresolvedReferenceError(ResolutionError):
    """The resolver returned no descriptor for a declaration or reference."""

    code = "UNRESOLVED_REFERENCE"


class AmbiguousTypeClassificationError(ResolutionError):
    """A resolved type is neither a type parameter nor a class-like type."""

    code = "AMBIGUOUS_TYPE"


class SymbolCollisionError(IndexingError):
    """Two distinct descriptors produced the same global symbol.

    This is a bug in symbol construction. It is never handled by the
    unresolved policy.
    """

    def __init__(self, symbol: str, existing: Any, incoming: Any):
        super().__init__(f"Global symbol collision on '{symbol}': {existing!r} vs {incoming!r}")
        self.symbol = symbol
        self.existing = existing
        self.incoming = incoming


class DocumentAlreadyBuiltError(IndexingError):
    """build() or emit() was called on a document that is already finished."""


class TextDocumentBuildError(IndexingError):
    """A document build was aborted under UnresolvedPolicy.FAIL."""

    def __init__(self, uri: str, diagnostic: Any, cause: ResolutionError | None = None):
        location = f"{uri}:{diagnostic.range.start_line + 1}:{diagnostic.range.start_character + 1}"
        super().__init__(f"{location}: {diagnostic.message}")
        self.uri = uri
        self.diagnostic = diagnostic
        self.cause = cause
