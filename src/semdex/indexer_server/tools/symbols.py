"""
Symbol identity caches.

Global symbols follow SemanticDB descriptor syntax and are stable across files
and runs for the same sources:

    src/`shapes.ts`/Circle#            class
    src/`shapes.ts`/Circle#area().     method
    src/`shapes.ts`/Circle#scale(+1).  second overload of scale
    src/`shapes.ts`/Circle#radius.     field
    src/`shapes.ts`/Box#[T]            type parameter

Local symbols are `local0`, `local1`, ... and only mean something inside the
document whose LocalSymbolsCache minted them.
"""

import itertools
import re
import uuid
from dataclasses import dataclass
from threading import RLock

from ..errors import SymbolCollisionError
from .descriptors import Descriptor, DescriptorKind

_PLAIN_NAME = re.compile(r"^[A-Za-z_$][A-Za-z0-9_$]*$")
_LOCAL_SYMBOL = re.compile(r"^local\d+$")


@dataclass(frozen=True)
class Symbol:
    """A symbol identifier.

    `scope` is None for global symbols and the minting cache's scope token for
    local ones, so equal local strings from different documents never compare
    equal.
    """

    value: str
    scope: str | None = None

    def is_global(self) -> bool:
        return self.scope is None

    def is_local(self) -> bool:
        return self.scope is not None

    def __str__(self) -> str:
        return self.value


def is_local_symbol(value: str) -> bool:
    """Whether a symbol string is a document-local `localN` symbol."""
    return _LOCAL_SYMBOL.match(value) is not None


def escape_name(name: str) -> str:
    """Backtick-quote names that are not plain identifiers, doubling embedded backticks."""
    if _PLAIN_NAME.match(name):
        return name
    return "`" + name.replace("`", "``") + "`"


def method_disambiguator(descriptor: Descriptor) -> str:
    index = descriptor.overload_index()
    return "()" if index == 0 else f"(+{index})"


def descriptor_suffix(descriptor: Descriptor) -> str:
    """The SemanticDB descriptor for one step of an owner chain."""
    name = escape_name(descriptor.name)
    kind = descriptor.kind
    if kind is DescriptorKind.PACKAGE:
        return f"{name}/"
    if descriptor.is_class_like:
        return f"{name}#"
    if descriptor.is_function_like:
        return f"{name}{method_disambiguator(descriptor)}."
    if kind is DescriptorKind.TYPE_PARAMETER:
        return f"[{name}]"
    if kind is DescriptorKind.PARAMETER:
        return f"({name})"
    return f"{name}."


class LocalSymbolsCache:
    """File-scoped symbols for entities with no meaning outside one document.

    One instance per document build. Not thread-safe; it is owned by a single
    traversal.
    """

    def __init__(self, scope: str | None = None):
        self.scope = scope or uuid.uuid4().hex
        self._symbols: dict[Descriptor, Symbol] = {}
        self._counter = itertools.count()

    def lookup_or_create(self, descriptor: Descriptor) -> Symbol:
        symbol = self._symbols.get(descriptor)
        if symbol is None:
            symbol = Symbol(f"local{next(self._counter)}", self.scope)
            self._symbols[descriptor] = symbol
        return symbol

    def __contains__(self, descriptor: Descriptor) -> bool:
        return descriptor in self._symbols

    def __len__(self) -> int:
        return len(self._symbols)


class GlobalSymbolsCache:
    """Project-wide symbols, shared by every document of an indexing run.

    lookup_or_create is an atomic check-then-insert, so concurrent document
    builds never mint two symbols for one descriptor.
    """

    def __init__(self):
        self._symbols: dict[Descriptor, Symbol] = {}
        self._owners: dict[str, Descriptor] = {}
        self._lock = RLock()

    def lookup_or_create(self, descriptor: Descriptor, local_symbols: LocalSymbolsCache) -> Symbol:
        """Return the symbol for a descriptor, routing local entities to `local_symbols`."""
        if descriptor.is_local:
            return local_symbols.lookup_or_create(descriptor)
        with self._lock:
            return self._global_symbol(descriptor)

    def _global_symbol(self, descriptor: Descriptor) -> Symbol:
        symbol = self._symbols.get(descriptor)
        if symbol is not None:
            return symbol

        prefix = self._global_symbol(descriptor.owner).value if descriptor.owner is not None else ""
        value = prefix + descriptor_suffix(descriptor)

        existing = self._owners.get(value)
        if existing is not None and existing is not descriptor:
            raise SymbolCollisionError(value, existing, descriptor)

        symbol = Symbol(value)
        self._symbols[descriptor] = symbol
        self._owners[value] = descriptor
        return symbol

    def symbols(self) -> list[str]:
        with self._lock:
            return sorted(self._owners)

    def __contains__(self, descriptor: Descriptor) -> bool:
        with self._lock:
            return descriptor in self._symbols

    def __len__(self) -> int:
        with self._lock:
            return len(self._symbols)
