"""
Caller-owned memo caches for tokenization and line hashing.

The engine keeps no module-level state: callers that edit the same text
repeatedly create one of these and pass it down explicitly.
"""

from __future__ import annotations

from collections import OrderedDict
from typing import Generic, Hashable, TypeVar

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")


class BoundedCache(Generic[K, V]):
    """Small LRU mapping with a fixed entry limit."""

    def __init__(self, max_entries: int = 256) -> None:
        if max_entries <= 0:
            raise ValueError("max_entries must be positive")
        self._max_entries = max_entries
        self._entries: OrderedDict[K, V] = OrderedDict()
        self.hits = 0
        self.misses = 0

    def get(self, key: K) -> V | None:
        try:
            value = self._entries[key]
        except KeyError:
            self.misses += 1
            return None
        self._entries.move_to_end(key)
        self.hits += 1
        return value

    def put(self, key: K, value: V) -> None:
        self._entries[key] = value
        self._entries.move_to_end(key)
        while len(self._entries) > self._max_entries:
            self._entries.popitem(last=False)

    def clear(self) -> None:
        self._entries.clear()
        self.hits = 0
        self.misses = 0

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries


class SymbolCache(BoundedCache[tuple[str, bool], tuple[str, ...]]):
    """Memoizes ``tokenize(text, ignore_whitespace)`` results."""


class LineHashCache(BoundedCache[tuple[str, bool], int]):
    """Memoizes per-line FNV-1a hashes used by the snippet locator."""

    def __init__(self, max_entries: int = 4096) -> None:
        super().__init__(max_entries)
