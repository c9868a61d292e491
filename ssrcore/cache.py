"""A bounded, time-stamped key/value cache with least-recently-used eviction."""

import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Callable, Hashable, Optional

FreeCallback = Callable[[Hashable, Any], None]


@dataclass
class _Entry:
    data: Any
    ts: float


class Cache:
    """Entries ordered from least to most recently used.

    Inserting an entry that brings the count to ``capacity`` evicts the
    least recently used one. Lookups refresh an entry's place and timestamp.
    Whenever an entry holding data is dropped, ``free_cb(key, data)`` runs.
    """

    def __init__(
        self,
        capacity: int,
        free_cb: Optional[FreeCallback] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self.max_entries = capacity
        self._free_cb = free_cb
        self._clock = clock
        self._entries: "OrderedDict[Hashable, _Entry]" = OrderedDict()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: Hashable) -> bool:
        return key in self._entries

    def _drop(self, key: Hashable, entry: _Entry, release: bool = True) -> None:
        if release and entry.data is not None and self._free_cb is not None:
            self._free_cb(key, entry.data)

    def _touch(self, key: Hashable) -> Optional[_Entry]:
        entry = self._entries.get(key)
        if entry is not None:
            entry.ts = self._clock()
            self._entries.move_to_end(key)
        return entry

    def insert(self, key: Hashable, data: Any) -> None:
        """Store ``data`` under ``key`` as the most recently used entry."""
        old = self._entries.pop(key, None)
        if old is not None:
            self._drop(key, old)
        self._entries[key] = _Entry(data, self._clock())
        if len(self._entries) >= self.max_entries:
            oldest_key, oldest = self._entries.popitem(last=False)
            self._drop(oldest_key, oldest)

    def remove(self, key: Hashable) -> None:
        """Drop ``key`` if present."""
        entry = self._entries.pop(key, None)
        if entry is not None:
            self._drop(key, entry)

    def lookup(self, key: Hashable) -> Any:
        """Return the data stored under ``key`` (None if absent) and refresh it."""
        entry = self._touch(key)
        return None if entry is None else entry.data

    def key_exists(self, key: Hashable) -> bool:
        """Tell whether ``key`` is present, refreshing it if so."""
        return self._touch(key) is not None

    def clear(self, age: float) -> None:
        """Drop every entry last used more than ``age`` seconds ago."""
        now = self._clock()
        stale = [key for key, entry in self._entries.items() if now - entry.ts > age]
        for key in stale:
            self._drop(key, self._entries.pop(key))

    def delete(self, keep_data: bool) -> None:
        """Empty the cache; with ``keep_data`` the free callback is not run."""
        entries, self._entries = self._entries, OrderedDict()
        for key, entry in entries.items():
            self._drop(key, entry, release=not keep_data)