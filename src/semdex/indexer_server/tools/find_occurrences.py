"""
Find occurrences of a symbol and jump to definitions.

Both tools index the requested files and then read the resulting text
documents; they never look at syntax themselves.
"""

from .._paths import get_project_root
from ..models.semanticdb_models import (
    AnalysisError,
    FindOccurrencesResponse,
    GotoDefinitionResponse,
    OccurrenceLocation,
    Role,
    TextDocument,
)
from .build_text_documents import relative_uri, resolve_file_paths
from .project_indexer import get_project_indexer
from .symbols import is_local_symbol


def _locations(document: TextDocument, symbol: str, roles: set[Role]) -> list[OccurrenceLocation]:
    return [
        OccurrenceLocation(uri=document.uri, symbol=occ.symbol, role=occ.role, range=occ.range)
        for occ in document.occurrences_of(symbol)
        if occ.role in roles
    ]


def find_occurrences_impl(
    symbol: str,
    file_paths: str | list[str] | None = None,
    source_root: str | None = None,
    include_definitions: bool = True,
    include_references: bool = True,
) -> FindOccurrencesResponse:
    """
    Find every occurrence of an exact symbol.

    Args:
        symbol: SemanticDB symbol, e.g. "src/`shapes.ts`/Circle#area()."
        file_paths: Files to search (None for project-wide search)
        source_root: Root that document URIs are relative to
        include_definitions: Include DEFINITION occurrences
        include_references: Include REFERENCE occurrences

    Returns:
        FindOccurrencesResponse with occurrences in document order
    """
    project_root = get_project_root(source_root)
    search_files = resolve_file_paths(file_paths, project_root)

    # localN only means something inside the document that minted it
    if is_local_symbol(symbol) and len(search_files) != 1:
        error = AnalysisError(
            code="INVALID_PARAMETER",
            message=f"Local symbol '{symbol}' can only be searched within a single file",
        )
        return FindOccurrencesResponse(
            symbol=symbol, occurrences=[], total_occurrences=0, searched_files=0, errors=[error], success=False
        )

    roles = set()
    if include_definitions:
        roles.add(Role.DEFINITION)
    if include_references:
        roles.add(Role.REFERENCE)

    result = get_project_indexer().index(search_files, source_root=project_root)
    occurrences = []
    for document in result.documents:
        occurrences.extend(_locations(document, symbol, roles))

    return FindOccurrencesResponse(
        symbol=symbol,
        occurrences=occurrences,
        total_occurrences=len(occurrences),
        searched_files=len(result.documents),
        errors=result.errors,
    )


def goto_definition_impl(
    file_path: str,
    line: int,
    character: int,
    file_paths: str | list[str] | None = None,
    source_root: str | None = None,
) -> GotoDefinitionResponse:
    """
    Find the definitions of the symbol at a position.

    Args:
        file_path: File containing the position
        line: 0-based line
        character: 0-based character (code points)
        file_paths: Files to search for the definition (None for project-wide search)
        source_root: Root that document URIs are relative to

    Returns:
        GotoDefinitionResponse with the symbol and its DEFINITION occurrences
    """
    project_root = get_project_root(source_root)
    search_files = resolve_file_paths(file_paths, project_root)
    uri = relative_uri(file_path, project_root)
    if uri not in {relative_uri(path, project_root) for path in search_files}:
        search_files.append(file_path)

    result = get_project_indexer().index(search_files, source_root=project_root)
    document = result.document(uri)
    if document is None:
        error = AnalysisError(code="NOT_FOUND", message=f"No text document for {file_path}", file=file_path)
        return GotoDefinitionResponse(symbol=None, definitions=[], errors=result.errors + [error], success=False)

    occurrence = document.occurrence_at(line, character)
    if occurrence is None:
        error = AnalysisError(
            code="NOT_FOUND", message=f"No symbol at {line}:{character}", file=file_path, line=line + 1
        )
        return GotoDefinitionResponse(symbol=None, definitions=[], errors=result.errors + [error], success=False)

    symbol = occurrence.symbol
    documents = [document] if is_local_symbol(symbol) else result.documents
    definitions = []
    for candidate in documents:
        definitions.extend(_locations(candidate, symbol, {Role.DEFINITION}))

    return GotoDefinitionResponse(symbol=symbol, definitions=definitions, errors=result.errors)
