"""Indexer server models."""

from .semanticdb_models import (
    SEMANTICDB_SCHEMA,
    AnalysisError,
    BuildTextDocumentsResponse,
    CacheEntry,
    Diagnostic,
    FindOccurrencesResponse,
    GotoDefinitionResponse,
    IndexStats,
    OccurrenceLocation,
    ParseResult,
    ParserStats,
    Range,
    Role,
    Severity,
    SymbolInformation,
    SymbolOccurrence,
    TextDocument,
)

__all__ = [
    "SEMANTICDB_SCHEMA",
    "Role",
    "Severity",
    "Range",
    "SymbolOccurrence",
    "SymbolInformation",
    "Diagnostic",
    "TextDocument",
    "AnalysisError",
    "ParseResult",
    "CacheEntry",
    "ParserStats",
    "IndexStats",
    # Tool responses
    "BuildTextDocumentsResponse",
    "OccurrenceLocation",
    "FindOccurrencesResponse",
    "GotoDefinitionResponse",
]
