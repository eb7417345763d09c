"""Immutable snapshot and cache index value types.

Both are built completely before they are handed to a store, and a store only
ever swaps references to them, so a reader holding one sees a consistent view.
"""

from collections.abc import Callable, Iterable, Iterator, Mapping
from types import MappingProxyType
from typing import Any

from datasync.models.entry import DatasetEntry

DEFAULT_CACHE_KEY = "all"

CacheKeyFunction = Callable[[DatasetEntry], Iterable[str]]


def default_cache_keys(entry: DatasetEntry) -> Iterable[str]:
    return (DEFAULT_CACHE_KEY,)


class Snapshot(Mapping[str, DatasetEntry]):
    """Complete identifier -> entry mapping for one dataset type at one generation."""

    __slots__ = ("_entries", "_generation")

    def __init__(self, entries: Mapping[str, DatasetEntry] | None = None, generation: int = 0) -> None:
        self._entries = MappingProxyType(dict(entries or {}))
        self._generation = generation

    @classmethod
    def empty(cls, generation: int = 0) -> "Snapshot":
        return cls({}, generation)

    @property
    def generation(self) -> int:
        return self._generation

    def records(self) -> dict[str, Any]:
        return {identifier: entry.record for identifier, entry in self._entries.items()}

    def __getitem__(self, identifier: str) -> DatasetEntry:
        return self._entries[identifier]

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self) -> str:
        return f"Snapshot(generation={self._generation}, size={len(self._entries)})"


class CacheIndex(Mapping[str, tuple[DatasetEntry, ...]]):
    """Derived cache key -> entries lookup, always built from a whole snapshot."""

    __slots__ = ("_groups",)

    def __init__(self, groups: Mapping[str, tuple[DatasetEntry, ...]] | None = None) -> None:
        self._groups = MappingProxyType(dict(groups or {}))

    @classmethod
    def empty(cls) -> "CacheIndex":
        return cls()

    @classmethod
    def build(cls, snapshot: Snapshot, cache_keys: CacheKeyFunction = default_cache_keys) -> "CacheIndex":
        groups: dict[str, list[DatasetEntry]] = {}
        for entry in snapshot.values():
            for key in dict.fromkeys(cache_keys(entry)):
                groups.setdefault(key, []).append(entry)
        return cls({key: tuple(entries) for key, entries in groups.items()})

    def lookup(self, key: str) -> tuple[DatasetEntry, ...]:
        return self._groups.get(key, ())

    def __getitem__(self, key: str) -> tuple[DatasetEntry, ...]:
        return self._groups[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._groups)

    def __len__(self) -> int:
        return len(self._groups)

    def __repr__(self) -> str:
        return f"CacheIndex(keys={sorted(self._groups)})"
