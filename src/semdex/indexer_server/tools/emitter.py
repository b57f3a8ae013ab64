"""
Occurrence emitter and line map.

The emitter accumulates occurrences for one document in the order they are
emitted and freezes them into a TextDocument exactly once.
"""

import hashlib
from bisect import bisect_right
from typing import Any

from ..errors import DocumentAlreadyBuiltError
from ..models.semanticdb_models import (
    Diagnostic,
    Range,
    Role,
    SymbolInformation,
    SymbolOccurrence,
    TextDocument,
)
from .symbols import Symbol


class LineMap:
    """Maps byte offsets in a source file to 0-based (line, character) pairs."""

    def __init__(self, source: bytes | str):
        if isinstance(source, str):
            source = source.encode("utf-8")
        self.source = source
        self._line_starts = [0]
        for index, byte in enumerate(source):
            if byte == 0x0A:  # \n
                self._line_starts.append(index + 1)

    @property
    def size(self) -> int:
        return len(self.source)

    @property
    def line_count(self) -> int:
        return len(self._line_starts)

    def position(self, offset: int) -> tuple[int, int]:
        if offset < 0 or offset > len(self.source):
            raise ValueError(f"Offset {offset} outside source of {len(self.source)} bytes")
        line = bisect_right(self._line_starts, offset) - 1
        line_start = self._line_starts[line]
        character = len(self.source[line_start:offset].decode("utf-8", errors="replace"))
        return line, character

    def range(self, start: int, end: int) -> Range:
        start_line, start_character = self.position(start)
        end_line, end_character = self.position(end)
        return Range(start_line, start_character, end_line, end_character)

    def offset(self, line: int, character: int) -> int:
        """Byte offset of a 0-based (line, character) position."""
        if line < 0 or line >= len(self._line_starts):
            raise ValueError(f"Line {line} outside source of {len(self._line_starts)} lines")
        start = self._line_starts[line]
        end = self._line_starts[line + 1] if line + 1 < len(self._line_starts) else len(self.source)
        text = self.source[start:end].decode("utf-8", errors="replace")
        return start + len(text[:character].encode("utf-8"))


class TextDocumentEmitter:
    """Collects occurrences for one document."""

    def __init__(
        self,
        uri: str,
        line_map: LineMap,
        language: str = "typescript",
        emit_symbol_information: bool = True,
    ):
        self.uri = uri
        self.language = language
        self.line_map = line_map
        self.emit_symbol_information = emit_symbol_information
        self._occurrences: list[SymbolOccurrence] = []
        self._symbols: dict[str, SymbolInformation] = {}
        self._diagnostics: list[Diagnostic] = []
        self._document: TextDocument | None = None

    def emit(self, symbol: Symbol, node: Any, role: Role) -> SymbolOccurrence:
        """Record one occurrence at the node's anchor range."""
        self._check_open()
        start, end = node.span
        occurrence = SymbolOccurrence(symbol=str(symbol), range=self.line_map.range(start, end), role=role)
        self._occurrences.append(occurrence)
        if self.emit_symbol_information and role is Role.DEFINITION and occurrence.symbol not in self._symbols:
            self._symbols[occurrence.symbol] = SymbolInformation(
                symbol=occurrence.symbol,
                display_name=node.name or "",
                kind=node.kind.name,
            )
        return occurrence

    def report(self, diagnostic: Diagnostic) -> None:
        self._check_open()
        self._diagnostics.append(diagnostic)

    def finish(self) -> TextDocument:
        """Freeze everything emitted so far into the final document.

        Occurrences are ordered by start position; equal starts keep emission
        order. Pre-order emits a call before its receiver (`new Foo().bar()`).
        """
        self._check_open()
        occurrences = sorted(
            self._occurrences, key=lambda occ: (occ.range.start_line, occ.range.start_character)
        )
        self._document = TextDocument(
            uri=self.uri,
            language=self.language,
            md5=hashlib.md5(self.line_map.source).hexdigest(),
            occurrences=tuple(occurrences),
            symbols=tuple(self._symbols.values()),
            diagnostics=tuple(self._diagnostics),
        )
        return self._document

    @property
    def finished(self) -> bool:
        return self._document is not None

    def _check_open(self) -> None:
        if self._document is not None:
            raise DocumentAlreadyBuiltError(f"Text document for {self.uri} is already finished")
