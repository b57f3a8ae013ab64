"""
Multi-file indexing driver.

ProjectIndexer parses a set of TypeScript files, binds them as one project
and builds a TextDocument per file on a worker pool. All builds of one run
share a single GlobalSymbolsCache, so a symbol defined in one file and
referenced in another gets the same identifier in both documents.
"""

import logging
import os
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path

import psutil
from cachetools import TTLCache

from .._paths import validate_file_path
from ..config import IndexerServerConfig, get_config
from ..errors import TextDocumentBuildError, UnresolvedPolicy
from ..models.semanticdb_models import AnalysisError, IndexStats, ParseResult, TextDocument
from .emitter import LineMap
from .symbols import GlobalSymbolsCache
from .typescript_binder import SourceFile, TypeScriptBinder
from .typescript_parser import TypeScriptParser
from .visitors import IndexObserver, TextDocumentBuildingVisitor

logger = logging.getLogger(__name__)

RESULT_CACHE_SIZE = 16


@dataclass
class IndexResult:
    """Documents and errors of one indexing run, in input order."""

    documents: list[TextDocument]
    errors: list[AnalysisError]
    stats: IndexStats
    global_symbols: GlobalSymbolsCache = field(default_factory=GlobalSymbolsCache)

    def document(self, uri: str) -> TextDocument | None:
        for document in self.documents:
            if document.uri == uri:
                return document
        return None


class ProjectIndexer:
    """Parses, binds and indexes a TypeScript project."""

    def __init__(
        self,
        config: IndexerServerConfig | None = None,
        parser: TypeScriptParser | None = None,
        observer: IndexObserver | None = None,
    ):
        self.config = config if config is not None else get_config()
        self.parser = parser or TypeScriptParser(
            cache_size_mb=self.config.cache_size_mb,
            max_file_size_mb=self.config.max_file_size_mb,
            excluded_dirs=self.config.exclude_dirs,
        )
        self.observer = observer

        # Results are reused while none of the indexed files changed
        self._results: TTLCache | None = None
        if self.config.index_cache_ttl > 0:
            self._results = TTLCache(maxsize=RESULT_CACHE_SIZE, ttl=self.config.index_cache_ttl)
        self._lock = threading.RLock()

    def index(
        self,
        file_paths: list[str],
        source_root: str | None = None,
        policy: UnresolvedPolicy | str | None = None,
    ) -> IndexResult:
        """
        Index files on disk.

        Args:
            file_paths: Files to index, absolute or relative to source_root
            source_root: Root that document URIs are relative to
            policy: Unresolved policy; defaults to the configured one

        Returns:
            IndexResult with one document per successfully parsed file
        """
        root = str(Path(source_root or self.config.source_root).resolve())
        policy = UnresolvedPolicy.parse(policy if policy is not None else self.config.unresolved_policy)

        errors = []
        paths = []
        for file_path in file_paths:
            validation = validate_file_path(file_path, root)
            if not validation["valid"]:
                errors.append(AnalysisError(code="INVALID_PATH", message=validation["error"], file=file_path))
                continue
            paths.append(str(validation["abs_path"]))

        key = self._cache_key(root, paths, policy)
        with self._lock:
            if self._results is not None and key in self._results:
                logger.debug("Reusing index of %d files under %s", len(paths), root)
                cached = self._results[key]
                return IndexResult(cached.documents, errors + cached.errors, cached.stats, cached.global_symbols)

            parsed = [(path, self.parser.parse_file(path)) for path in paths]
            result = self._index_parsed(parsed, root, policy)
            if self._results is not None:
                self._results[key] = result

        return IndexResult(result.documents, errors + result.errors, result.stats, result.global_symbols)

    def index_sources(
        self,
        sources: dict[str, str | bytes],
        source_root: str = ".",
        policy: UnresolvedPolicy | str | None = None,
    ) -> IndexResult:
        """Index in-memory sources keyed by path. Nothing is cached."""
        policy = UnresolvedPolicy.parse(policy if policy is not None else self.config.unresolved_policy)
        parsed = [(path, self.parser.parse_source(text, path)) for path, text in sources.items()]
        return self._index_parsed(parsed, source_root, policy)

    def clear_cache(self) -> None:
        with self._lock:
            if self._results is not None:
                self._results.clear()

    def _cache_key(self, root: str, paths: list[str], policy: UnresolvedPolicy) -> tuple:
        stamps = []
        for path in paths:
            try:
                stamps.append((path, os.path.getmtime(path)))
            except OSError:
                stamps.append((path, None))
        return root, tuple(stamps), policy

    def _index_parsed(
        self, parsed: list[tuple[str, ParseResult]], root: str, policy: UnresolvedPolicy
    ) -> IndexResult:
        start_time = time.perf_counter()
        errors: list[AnalysisError] = []

        # Declare every file before linking so imports see the whole project
        binder = TypeScriptBinder(root)
        files: list[SourceFile] = []
        for path, parse_result in parsed:
            errors.extend(parse_result.errors)
            if not parse_result.success:
                continue
            try:
                files.append(binder.add_file(path, parse_result.tree, parse_result.source))
            except RecursionError:
                errors.append(
                    AnalysisError(code="RECURSION_LIMIT", message=f"Syntax tree too deep to bind: {path}", file=path)
                )
        binder.link()

        global_symbols = GlobalSymbolsCache()
        with ThreadPoolExecutor(max_workers=self.config.worker_threads) as executor:
            outcomes = list(executor.map(lambda file: self._build(binder, file, global_symbols, policy), files))

        documents = []
        for document, error in outcomes:
            if document is not None:
                documents.append(document)
            if error is not None:
                errors.append(error)

        stats = IndexStats(
            files_indexed=len(documents),
            definitions=sum(len(document.definitions()) for document in documents),
            references=sum(len(document.references()) for document in documents),
            skipped_nodes=sum(len(document.diagnostics) for document in documents),
            global_symbols=len(global_symbols),
            index_time_ms=(time.perf_counter() - start_time) * 1000,
            memory_usage_mb=psutil.Process(os.getpid()).memory_info().rss / (1024 * 1024),
        )
        logger.info(
            "Indexed %d/%d files: %d definitions, %d references, %d skipped nodes in %.1fms",
            stats.files_indexed,
            len(parsed),
            stats.definitions,
            stats.references,
            stats.skipped_nodes,
            stats.index_time_ms,
        )
        return IndexResult(documents=documents, errors=errors, stats=stats, global_symbols=global_symbols)

    def _build(
        self,
        binder: TypeScriptBinder,
        file: SourceFile,
        global_symbols: GlobalSymbolsCache,
        policy: UnresolvedPolicy,
    ) -> tuple[TextDocument | None, AnalysisError | None]:
        visitor = TextDocumentBuildingVisitor(
            file.uri,
            binder.root_node(file),
            binder,
            LineMap(file.source),
            global_symbols,
            language=self.config.language,
            policy=policy,
            observer=self.observer,
            emit_symbol_information=self.config.emit_symbol_information,
        )
        try:
            return visitor.build(), None
        except TextDocumentBuildError as e:
            logger.warning("Indexing aborted for %s: %s", file.uri, e)
            line = e.diagnostic.range.start_line + 1
            return None, AnalysisError(code="UNRESOLVED", message=str(e), file=file.uri, line=line)
        except RecursionError:
            return None, AnalysisError(
                code="RECURSION_LIMIT", message=f"Syntax tree too deep to index: {file.uri}", file=file.uri
            )


# Shared indexer for the MCP tools, so the parse and result caches survive between calls
_indexer: ProjectIndexer | None = None


def get_project_indexer() -> ProjectIndexer:
    """Get the shared indexer, built from the global configuration."""
    global _indexer
    if _indexer is None:
        _indexer = ProjectIndexer(get_config())
    return _indexer


def reset_project_indexer() -> None:
    global _indexer
    _indexer = None
