"""
Build SemanticDB text documents for TypeScript files.
"""

import logging
from pathlib import Path

from .._paths import discover_source_files, get_project_root
from ..config import get_config
from ..errors import UnresolvedPolicy
from ..models.semanticdb_models import AnalysisError, BuildTextDocumentsResponse, IndexStats
from .project_indexer import get_project_indexer

logger = logging.getLogger(__name__)


def resolve_file_paths(file_paths: str | list[str] | None, project_root: str) -> list[str]:
    """Normalize the file_paths tool parameter; None means every source file under the root."""
    if isinstance(file_paths, str):
        return [file_paths]
    if file_paths is None:
        config = get_config()
        return discover_source_files(project_root, config.file_patterns, config.exclude_dirs)
    return list(file_paths)


def relative_uri(file_path: str, project_root: str) -> str:
    """The document URI of a file: its path relative to the project root."""
    root = Path(project_root).resolve()
    path = Path(file_path)
    abs_path = path.resolve() if path.is_absolute() else (root / path).resolve()
    try:
        return abs_path.relative_to(root).as_posix()
    except ValueError:
        return path.as_posix()


def build_text_documents_impl(
    file_paths: str | list[str] | None = None,
    source_root: str | None = None,
    unresolved_policy: str | None = None,
) -> BuildTextDocumentsResponse:
    """
    Build one text document per file, with project-wide symbols.

    Args:
        file_paths: Files to index (None for every source file under source_root)
        source_root: Root that document URIs are relative to (defaults to MCP_FILE_ROOT)
        unresolved_policy: "skip_subtree", "skip_node" or "fail" (defaults to configuration)

    Returns:
        BuildTextDocumentsResponse with documents in input order
    """
    project_root = get_project_root(source_root)

    try:
        policy = UnresolvedPolicy.parse(unresolved_policy) if unresolved_policy else None
    except ValueError as e:
        error = AnalysisError(code="INVALID_PARAMETER", message=str(e))
        return BuildTextDocumentsResponse(
            documents=[], total_occurrences=0, errors=[error], stats=IndexStats(), success=False
        )

    search_files = resolve_file_paths(file_paths, project_root)
    result = get_project_indexer().index(search_files, source_root=project_root, policy=policy)

    return BuildTextDocumentsResponse(
        documents=result.documents,
        total_occurrences=sum(len(document.occurrences) for document in result.documents),
        errors=result.errors,
        stats=result.stats,
        success=bool(result.documents) or not search_files,
    )
