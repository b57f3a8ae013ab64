"""Path validation and source discovery for indexing operations."""

import os
from pathlib import Path
from typing import Any


def get_project_root(source_root: str | None = None) -> str:
    """Get project root from the argument, the environment or default.

    Returns:
        source_root when given, else the MCP_FILE_ROOT environment variable,
        or current directory as fallback
    """
    if source_root:
        return source_root
    return os.getenv("MCP_FILE_ROOT", ".")


def validate_file_path(file_path: str, project_root: str) -> dict[str, Any]:
    """Validate file path to prevent directory traversal attacks.

    Args:
        file_path: File path to validate, absolute or relative to project_root
        project_root: Root directory of the project

    Returns:
        Dictionary with validation result and error message if invalid
    """
    try:
        project_path = Path(project_root).resolve()
        path = Path(file_path)
        abs_path = path.resolve() if path.is_absolute() else (project_path / path).resolve()
    except (OSError, RuntimeError) as e:
        return {"valid": False, "error": f"Invalid file path: {e}"}

    # Security check: ensure the resolved path is within project_root
    try:
        abs_path.relative_to(project_path)
    except ValueError:
        return {"valid": False, "error": f"File path outside project root: {file_path}"}

    return {"valid": True, "abs_path": abs_path}


def discover_source_files(project_root: str, patterns: list[str], exclude_dirs: list[str]) -> list[str]:
    """Find every file under project_root matching patterns, skipping excluded directories.

    Paths are returned sorted so repeated runs index files in the same order.
    """
    project_path = Path(project_root).resolve()
    excluded = set(exclude_dirs)

    found = set()
    for pattern in patterns:
        for file_path in project_path.glob(pattern):
            if not file_path.is_file():
                continue
            if any(part in excluded for part in file_path.relative_to(project_path).parts):
                continue
            found.add(str(file_path))
    return sorted(found)
