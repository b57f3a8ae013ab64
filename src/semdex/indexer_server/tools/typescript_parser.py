"""
Core TypeScript parser with tree-sitter integration and caching.

This module provides the parsing front end for the TypeScript host. It keeps
an LRU cache of parsed trees keyed by file path and invalidated on mtime
change.
"""

import hashlib
import logging
import os
import time
from collections import OrderedDict
from dataclasses import replace
from typing import Any

import tree_sitter_typescript as ts_typescript
from tree_sitter import Language, Parser

from ..models.semanticdb_models import (
    AnalysisError,
    CacheEntry,
    ParseResult,
    ParserStats,
)

logger = logging.getLogger(__name__)

TSX_EXTENSIONS = (".tsx", ".jsx", ".js")
DEFAULT_EXCLUDED_DIRS = (".git", "node_modules", "dist", "build", ".next", ".nuxt")


class TypeScriptParser:
    """
    Core TypeScript parser with tree-sitter integration and caching.

    Features:
    - Separate parsers for TypeScript (.ts) and TSX (.tsx) files
    - LRU cache with configurable size limits
    - Performance monitoring and statistics
    - Graceful error handling for malformed files
    """

    def __init__(
        self, cache_size_mb: int = 100, max_file_size_mb: int = 5, excluded_dirs: list[str] | None = None
    ):
        """
        Initialize TypeScript parser with configuration.

        Args:
            cache_size_mb: Maximum cache size in megabytes
            max_file_size_mb: Maximum individual file size to parse
            excluded_dirs: Directory names whose files are never parsed
        """
        self.cache_size_mb = cache_size_mb
        self.max_file_size_mb = max_file_size_mb
        self.max_file_size_bytes = max_file_size_mb * 1024 * 1024

        self._ts_parser = Parser()
        self._tsx_parser = Parser()
        self._ts_parser.language = Language(ts_typescript.language_typescript())
        self._tsx_parser.language = Language(ts_typescript.language_tsx())

        # LRU cache for parsed ASTs
        self._ast_cache: OrderedDict[str, CacheEntry] = OrderedDict()
        self._cache_size_bytes = 0

        self._stats = ParserStats()

        # Excluded directories
        self._excluded_dirs = set(excluded_dirs) if excluded_dirs is not None else set(DEFAULT_EXCLUDED_DIRS)

    def parse_file(self, file_path: str) -> ParseResult:
        """
        Parse a TypeScript or TSX file.

        Args:
            file_path: Path to the TypeScript/TSX file

        Returns:
            ParseResult with success status, AST tree, source bytes and any errors
        """
        start_time = time.perf_counter()

        cached = self._get_cached_entry(file_path)
        if cached is not None:
            self._stats.cache_hits += 1
            self._stats.files_parsed += 1
            cached.access_count += 1
            self._ast_cache.move_to_end(file_path)
            return ParseResult(success=True, tree=cached.tree, source=cached.source, parse_time_ms=0.0)

        if not os.path.exists(file_path):
            error = AnalysisError(code="NOT_FOUND", message=f"File not found: {file_path}", file=file_path)
            return ParseResult(success=False, errors=[error])

        if self._is_excluded_path(file_path):
            error = AnalysisError(
                code="EXCLUDED_PATH", message=f"File in excluded directory: {file_path}", file=file_path
            )
            return ParseResult(success=False, errors=[error])

        try:
            file_size = os.path.getsize(file_path)
            if file_size > self.max_file_size_bytes:
                error = AnalysisError(
                    code="FILE_TOO_LARGE",
                    message=f"File exceeds size limit ({self.max_file_size_mb}MB): {file_path}",
                    file=file_path,
                )
                return ParseResult(success=False, errors=[error])

            with open(file_path, "rb") as f:
                content_bytes = f.read()
        except OSError as e:
            error = AnalysisError(code="PERMISSION_DENIED", message=f"Cannot read file: {e}", file=file_path)
            return ParseResult(success=False, errors=[error])

        self._stats.cache_misses += 1
        result = self._parse_content(content_bytes, file_path)

        parse_time_ms = (time.perf_counter() - start_time) * 1000
        result.parse_time_ms = parse_time_ms
        self._record_parse(parse_time_ms)

        if result.success and result.tree is not None:
            self._cache_result(file_path, result.tree, content_bytes, parse_time_ms)

        return result

    def parse_source(self, source: str | bytes, file_path: str = "<memory>.ts") -> ParseResult:
        """Parse in-memory source; the extension of `file_path` picks the grammar."""
        start_time = time.perf_counter()
        content_bytes = source.encode("utf-8") if isinstance(source, str) else source
        result = self._parse_content(content_bytes, file_path)
        result.parse_time_ms = (time.perf_counter() - start_time) * 1000
        self._record_parse(result.parse_time_ms)
        return result

    def _parse_content(self, content_bytes: bytes, file_path: str) -> ParseResult:
        """Parse content with the grammar matching the file extension."""
        parser = self._tsx_parser if file_path.endswith(TSX_EXTENSIONS) else self._ts_parser

        try:
            tree = parser.parse(content_bytes)
        except (ValueError, TypeError) as e:
            error = AnalysisError(code="PARSE_ERROR", message=f"Failed to parse file: {e}", file=file_path)
            return ParseResult(success=False, errors=[error])

        # Syntax errors are reported but the tree is still usable
        errors = []
        if tree.root_node.has_error:
            for node in self._find_error_nodes(tree.root_node):
                errors.append(
                    AnalysisError(
                        code="PARSE_ERROR",
                        message=f"Syntax error at line {node.start_point[0] + 1}",
                        file=file_path,
                        line=node.start_point[0] + 1,
                    )
                )
            logger.warning("Syntax errors in %s (%d)", file_path, len(errors))

        return ParseResult(success=True, tree=tree, source=content_bytes, errors=errors)

    def _find_error_nodes(self, node: Any) -> list[Any]:
        """Recursively find all error nodes in the AST."""
        errors = []
        if node.type == "ERROR" or node.is_missing:
            errors.append(node)

        for child in node.children:
            errors.extend(self._find_error_nodes(child))

        return errors

    def _is_excluded_path(self, file_path: str) -> bool:
        """Check if file path is in an excluded directory."""
        normalized = file_path.replace(os.sep, "/")
        for excluded in self._excluded_dirs:
            if f"/{excluded}/" in normalized or normalized.startswith(f"{excluded}/"):
                return True
        return False

    def _record_parse(self, parse_time_ms: float) -> None:
        self._stats.files_parsed += 1
        self._stats.total_parse_time_ms += parse_time_ms
        self._stats.average_parse_time_ms = self._stats.total_parse_time_ms / self._stats.files_parsed

    def get_cached_tree(self, file_path: str) -> Any | None:
        """
        Get cached AST for a file if available and valid.

        This method does NOT increment cache statistics - it's a utility method.
        Only parse_file() should increment cache hit/miss statistics.
        """
        entry = self._get_cached_entry(file_path)
        return entry.tree if entry is not None else None

    def _get_cached_entry(self, file_path: str) -> CacheEntry | None:
        if file_path not in self._ast_cache:
            return None

        cache_entry = self._ast_cache[file_path]

        # Check if file has been modified since caching
        try:
            current_mtime = os.path.getmtime(file_path)
        except OSError:
            self.invalidate_cache(file_path)
            return None
        if current_mtime > cache_entry.modification_time:
            self.invalidate_cache(file_path)
            return None

        return cache_entry

    def invalidate_cache(self, file_path: str) -> None:
        """Remove a file from the cache."""
        cache_entry = self._ast_cache.pop(file_path, None)
        if cache_entry is not None:
            self._cache_size_bytes -= self._estimate_cache_entry_size(cache_entry)

    def _cache_result(self, file_path: str, tree: Any, content_bytes: bytes, parse_time_ms: float) -> None:
        """Cache a parse result with LRU eviction."""
        cache_entry = CacheEntry(
            tree=tree,
            source=content_bytes,
            file_hash=hashlib.sha256(content_bytes).hexdigest()[:16],
            modification_time=os.path.getmtime(file_path),
            parse_time_ms=parse_time_ms,
        )
        estimated_size = self._estimate_cache_entry_size(cache_entry)

        # Evict entries if cache would exceed size limit
        max_cache_bytes = self.cache_size_mb * 1024 * 1024
        while self._cache_size_bytes + estimated_size > max_cache_bytes and self._ast_cache:
            _, oldest_entry = self._ast_cache.popitem(last=False)
            self._cache_size_bytes -= self._estimate_cache_entry_size(oldest_entry)

        self.invalidate_cache(file_path)
        self._ast_cache[file_path] = cache_entry
        self._cache_size_bytes += estimated_size

    def _estimate_cache_entry_size(self, cache_entry: CacheEntry) -> int:
        """Estimate the memory size of a cache entry."""
        return len(cache_entry.source) * 15 + 4096  # AST multiplier + metadata

    def get_parser_stats(self) -> ParserStats:
        """Get a copy of the current parser statistics."""
        return replace(self._stats)

    def get_memory_usage_mb(self) -> float:
        """Get current cache memory usage estimate in MB."""
        return self._cache_size_bytes / (1024 * 1024)

    def clear_all_caches(self) -> None:
        """Clear all cached parse results."""
        self._ast_cache.clear()
        self._cache_size_bytes = 0
        self._stats = ParserStats()
