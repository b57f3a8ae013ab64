"""
Module specifier resolution for TypeScript imports.

Maps `import ... from "<specifier>"` onto a project file. Relative specifiers
resolve against the importing file, bare specifiers against the project root.
Package imports (node_modules) are never resolved.
"""

import posixpath
from collections.abc import Iterable
from pathlib import Path

MODULE_EXTENSIONS = [".ts", ".tsx", ".d.ts", ".js", ".jsx"]

# ESM-style TypeScript imports name the emitted file: "./user.js" means user.ts
_EMITTED_EXTENSIONS = {".js": [".ts", ".tsx"], ".jsx": [".tsx"], ".mjs": [".mts"], ".cjs": [".cts"]}


class ModuleResolver:
    """Utility class for resolving module paths."""

    def __init__(self, project_root: str, known_files: Iterable[str] | None = None):
        """
        Args:
            project_root: Root that bare specifiers resolve against
            known_files: When given, only these paths exist (in-memory projects);
                otherwise the filesystem is consulted
        """
        self.project_root = Path(project_root)
        self.known_files = {self._normalize(path) for path in known_files} if known_files is not None else None

    def resolve_path(self, import_path: str, from_file: str) -> str | None:
        """
        Resolve a module import path to an actual file.

        Args:
            import_path: The import path (e.g., '../types', './user')
            from_file: The file containing the import

        Returns:
            Resolved file path, or None if not found
        """
        if import_path.startswith("."):
            base = posixpath.join(posixpath.dirname(self._normalize(from_file)), import_path)
        elif not import_path.startswith("/") and ":" not in import_path and not import_path.startswith("@"):
            base = posixpath.join(self._normalize(str(self.project_root)), import_path)
        else:
            return None

        for candidate in self._candidates(posixpath.normpath(base)):
            if self._exists(candidate):
                return candidate
        return None

    def _candidates(self, base: str) -> list[str]:
        candidates = [base]

        stem, ext = posixpath.splitext(base)
        for replacement in _EMITTED_EXTENSIONS.get(ext, []):
            candidates.append(stem + replacement)

        # Try different extensions, then the directory's index file
        candidates.extend(base + ext for ext in MODULE_EXTENSIONS)
        candidates.extend(posixpath.join(base, f"index{ext}") for ext in MODULE_EXTENSIONS)
        return candidates

    def _exists(self, path: str) -> bool:
        if self.known_files is not None:
            return path in self.known_files
        return Path(path).is_file()

    @staticmethod
    def _normalize(path: str) -> str:
        return posixpath.normpath(str(path).replace("\\", "/"))
