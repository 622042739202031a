"""
Tap list cache - received impulse responses kept for replay.

A player receives a TapList once per path setup and may start that path
many times afterwards. The cache is keyed by path id and evicts the least
recently used entry when full.
"""

from __future__ import annotations

import threading
import time
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Hashable

from grainfield.propagation.model import TapList


@dataclass
class CacheStats:
    """Cache statistics."""
    hits: int = 0
    misses: int = 0
    evictions: int = 0
    size: int = 0
    max_size: int = 0

    @property
    def hit_rate(self) -> float:
        total = self.hits + self.misses
        return self.hits / total if total > 0 else 0.0

    def reset(self):
        self.hits = 0
        self.misses = 0
        self.evictions = 0


@dataclass
class CacheEntry:
    """A cached tap list with access metadata."""
    tap_list: TapList
    received_at: float = field(default_factory=time.time)
    play_count: int = 0


class TapListCache:
    """Thread-safe LRU cache of TapLists keyed by path id.

    Example:
        cache = TapListCache(max_size=64)
        cache.put(tap_list)
        tap_list = cache.get(path_id)   # None until the IR has arrived
    """

    def __init__(self, max_size: int = 128):
        if max_size < 1:
            raise ValueError(f"max_size must be >= 1, got {max_size}")
        self.max_size = max_size
        self._entries: OrderedDict[Hashable, CacheEntry] = OrderedDict()
        self._lock = threading.Lock()
        self._stats = CacheStats(max_size=max_size)

    def get(self, path_id: Hashable) -> TapList | None:
        with self._lock:
            entry = self._entries.get(path_id)
            if entry is None:
                self._stats.misses += 1
                return None

            self._entries.move_to_end(path_id)
            entry.play_count += 1
            self._stats.hits += 1
            return entry.tap_list

    def put(self, tap_list: TapList) -> None:
        """Store a tap list, replacing any older one for the same path."""
        path_id = tap_list.path_id
        with self._lock:
            if path_id in self._entries:
                del self._entries[path_id]

            while len(self._entries) >= self.max_size:
                self._entries.popitem(last=False)
                self._stats.evictions += 1

            self._entries[path_id] = CacheEntry(tap_list=tap_list)
            self._stats.size = len(self._entries)

    def remove(self, path_id: Hashable) -> bool:
        with self._lock:
            if path_id in self._entries:
                del self._entries[path_id]
                self._stats.size = len(self._entries)
                return True
            return False

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self._stats.size = 0

    @property
    def stats(self) -> CacheStats:
        return self._stats

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, path_id: Hashable) -> bool:
        with self._lock:
            return path_id in self._entries
