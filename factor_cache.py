"""
Bounded memo table for prime factorizations.

The cache is an append-only list of (number, factors) entries with a fixed capacity.
Lookups are a linear scan: the table is meant for a few hundred frequently reused
tensor dimensions, not for general-purpose memoization. There is no eviction; once
full, further inserts are refused with CacheFullError.

Each FactorCache owns its own lock, so one instance can be shared between threads.
"""
import threading
from dataclasses import dataclass
from typing import Iterable, NamedTuple

from loguru import logger

# Reference capacity and per-entry factor bound
MAX_CACHE_SIZE = 1000
MAX_FACTORS = 64


class CacheInsertError(Exception):
    """An entry could not be memoized. Never a correctness failure."""

    def __init__(self, number: int, message: str):
        super().__init__(message)
        self.number = number


class CacheFullError(CacheInsertError):
    """The cache is at capacity."""


class FactorCountExceededError(CacheInsertError):
    """The factor sequence is longer than the per-entry bound."""


@dataclass(frozen=True)
class CacheEntry:
    number: int
    factors: tuple[int, ...]

    @property
    def count(self) -> int:
        return len(self.factors)


class CacheStats(NamedTuple):
    size: int
    capacity: int
    hits: int
    misses: int

    @property
    def hit_ratio(self) -> float:
        total = self.hits + self.misses
        return self.hits / total if total else 0.0


class FactorCache:
    """
    Fixed-capacity factorization table.

    Args:
        capacity: Maximum number of entries
        max_factors: Longest factor sequence an entry may hold
        unique_keys: If True, inserting a number that is already present is a no-op.
                     Default False keeps every insert as a new entry.
    """

    def __init__(self, capacity: int = MAX_CACHE_SIZE, max_factors: int = MAX_FACTORS,
                 unique_keys: bool = False):
        if capacity < 0:
            raise ValueError(f"capacity must be non-negative, got {capacity}")
        if max_factors < 0:
            raise ValueError(f"max_factors must be non-negative, got {max_factors}")
        self.capacity = capacity
        self.max_factors = max_factors
        self.unique_keys = unique_keys
        self._entries: list[CacheEntry] = []
        self._lock = threading.RLock()
        self._hits = 0
        self._misses = 0

    def lookup(self, n: int) -> tuple[int, ...] | None:
        """Return the factors of the first entry for n, or None."""
        with self._lock:
            for entry in self._entries:
                if entry.number == n:
                    self._hits += 1
                    return entry.factors
            self._misses += 1
            return None

    def insert(self, n: int, factors: Iterable[int]) -> None:
        """
        Append an entry for n.

        Raises:
            CacheFullError: the table holds ``capacity`` entries already
            FactorCountExceededError: ``factors`` is longer than ``max_factors``
        """
        factors = tuple(factors)
        with self._lock:
            if self.unique_keys and any(e.number == n for e in self._entries):
                return
            if len(self._entries) >= self.capacity:
                raise CacheFullError(n, f"cache full ({self.capacity} entries), {n} not cached")
            if len(factors) > self.max_factors:
                raise FactorCountExceededError(
                    n, f"{n} has {len(factors)} factors, bound is {self.max_factors}")
            self._entries.append(CacheEntry(n, factors))

    def clear(self) -> None:
        """Drop all entries and reset hit/miss counters."""
        with self._lock:
            dropped = len(self._entries)
            self._entries = []
            self._hits = 0
            self._misses = 0
        logger.debug(f"factor cache cleared, {dropped} entries dropped")

    def stats(self) -> tuple[int, int]:
        """(current size, capacity)"""
        with self._lock:
            return len(self._entries), self.capacity

    def detailed_stats(self) -> CacheStats:
        with self._lock:
            return CacheStats(len(self._entries), self.capacity, self._hits, self._misses)

    def entries(self) -> list[CacheEntry]:
        with self._lock:
            return list(self._entries)

    def is_full(self) -> bool:
        with self._lock:
            return len(self._entries) >= self.capacity

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, n: object) -> bool:
        with self._lock:
            return any(e.number == n for e in self._entries)

    def __repr__(self) -> str:
        size, capacity = self.stats()
        return f"FactorCache(size={size}, capacity={capacity})"
