"""
SemanticDB text document models and indexer tool responses.

These dataclasses define the response structure for all indexer tools,
following FastMCP standards with typed responses.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

SEMANTICDB_SCHEMA = "SEMANTICDB4"


class Role(Enum):
    """Role of a symbol occurrence."""

    DEFINITION = "DEFINITION"
    REFERENCE = "REFERENCE"


class Severity(Enum):
    """Severity of a document diagnostic."""

    ERROR = "ERROR"
    WARNING = "WARNING"
    INFORMATION = "INFORMATION"


@dataclass(frozen=True)
class Range:
    """0-based source range; characters are counted in code points."""

    start_line: int
    start_character: int
    end_line: int
    end_character: int

    def contains(self, line: int, character: int) -> bool:
        """Whether a 0-based position falls inside this range (end exclusive)."""
        if (line, character) < (self.start_line, self.start_character):
            return False
        return (line, character) < (self.end_line, self.end_character)

    def to_dict(self) -> dict[str, int]:
        return {
            "start_line": self.start_line,
            "start_character": self.start_character,
            "end_line": self.end_line,
            "end_character": self.end_character,
        }


@dataclass(frozen=True)
class SymbolOccurrence:
    """One (symbol, range, role) triple recorded for a node."""

    symbol: str
    range: Range
    role: Role

    def to_dict(self) -> dict[str, Any]:
        return {"symbol": self.symbol, "range": self.range.to_dict(), "role": self.role.value}


@dataclass(frozen=True)
class SymbolInformation:
    """Display information for a symbol defined in a document."""

    symbol: str
    display_name: str
    kind: str  # node kind name: "CLASS", "FUNCTION", "PROPERTY", ...

    def to_dict(self) -> dict[str, str]:
        return {"symbol": self.symbol, "display_name": self.display_name, "kind": self.kind}


@dataclass(frozen=True)
class Diagnostic:
    """A node that was skipped while building a document."""

    range: Range
    code: str  # "UNRESOLVED_REFERENCE", "AMBIGUOUS_TYPE"
    message: str
    severity: Severity = Severity.WARNING

    def to_dict(self) -> dict[str, Any]:
        return {
            "range": self.range.to_dict(),
            "code": self.code,
            "message": self.message,
            "severity": self.severity.value,
        }


@dataclass(frozen=True)
class TextDocument:
    """The finished, immutable index artifact for one source file."""

    uri: str  # path relative to the source root
    language: str
    md5: str
    occurrences: tuple[SymbolOccurrence, ...] = ()
    symbols: tuple[SymbolInformation, ...] = ()
    diagnostics: tuple[Diagnostic, ...] = ()
    schema: str = SEMANTICDB_SCHEMA

    def definitions(self) -> list[SymbolOccurrence]:
        return [occ for occ in self.occurrences if occ.role is Role.DEFINITION]

    def references(self) -> list[SymbolOccurrence]:
        return [occ for occ in self.occurrences if occ.role is Role.REFERENCE]

    def occurrences_of(self, symbol: str) -> list[SymbolOccurrence]:
        return [occ for occ in self.occurrences if occ.symbol == symbol]

    def occurrence_at(self, line: int, character: int) -> SymbolOccurrence | None:
        """The innermost occurrence covering a 0-based position."""
        best = None
        for occ in self.occurrences:
            if occ.range.contains(line, character):
                if best is None or (occ.range.start_line, occ.range.start_character) >= (
                    best.range.start_line,
                    best.range.start_character,
                ):
                    best = occ
        return best

    def to_dict(self) -> dict[str, Any]:
        return {
            "schema": self.schema,
            "uri": self.uri,
            "language": self.language,
            "md5": self.md5,
            "occurrences": [occ.to_dict() for occ in self.occurrences],
            "symbols": [info.to_dict() for info in self.symbols],
            "diagnostics": [diag.to_dict() for diag in self.diagnostics],
        }


@dataclass
class AnalysisError:
    """Standard error information for indexing operations."""

    code: str  # Error code like "PARSE_ERROR", "NOT_FOUND", "UNRESOLVED"
    message: str  # Human-readable error message
    file: str | None = None  # File path where error occurred
    line: int | None = None  # Line number where error occurred (1-based)


@dataclass
class ParseResult:
    """Result of parsing a TypeScript file."""

    success: bool
    tree: Any | None = None  # tree_sitter.Tree object
    source: bytes = b""
    errors: list[AnalysisError] = field(default_factory=list)
    parse_time_ms: float = 0.0


@dataclass
class CacheEntry:
    """Entry in the AST cache."""

    tree: Any  # tree_sitter.Tree object
    source: bytes  # Raw file content the tree was parsed from
    file_hash: str  # Hash of file content for validation
    modification_time: float  # File modification timestamp
    parse_time_ms: float  # Time taken to parse
    access_count: int = 0  # For LRU eviction


@dataclass
class ParserStats:
    """Statistics about parser performance."""

    files_parsed: int = 0
    cache_hits: int = 0
    cache_misses: int = 0
    total_parse_time_ms: float = 0.0
    average_parse_time_ms: float = 0.0

    @property
    def cache_hit_rate(self) -> float:
        total = self.cache_hits + self.cache_misses
        return self.cache_hits / total if total else 0.0


@dataclass
class IndexStats:
    """Statistics about one indexing run."""

    files_indexed: int = 0
    definitions: int = 0
    references: int = 0
    skipped_nodes: int = 0
    global_symbols: int = 0
    index_time_ms: float = 0.0
    memory_usage_mb: float = 0.0  # process RSS after the run


@dataclass
class BuildTextDocumentsResponse:
    """Response for build_text_documents tool."""

    documents: list[TextDocument]
    total_occurrences: int
    errors: list[AnalysisError]
    stats: IndexStats
    success: bool = True


@dataclass
class OccurrenceLocation:
    """An occurrence together with the document it was found in."""

    uri: str
    symbol: str
    role: Role
    range: Range


@dataclass
class FindOccurrencesResponse:
    """Response for find_occurrences tool."""

    symbol: str
    occurrences: list[OccurrenceLocation]
    total_occurrences: int
    searched_files: int
    errors: list[AnalysisError]
    success: bool = True


@dataclass
class GotoDefinitionResponse:
    """Response for goto_definition tool."""

    symbol: str | None
    definitions: list[OccurrenceLocation]
    errors: list[AnalysisError]
    success: bool = True
