"""
Prime factorization of unsigned 32-bit integers for tensor dimension analysis.

Tile sizes, padding and vector-friendly splits all start from the prime factors of
an array dimension. Dimensions repeat a lot (powers of two, 224, 768, ...), so the
primary factorizer memoizes its results in a small bounded table.

ALGORITHMS:
1. Trial division (factorize): cached; strips the 20 primes up to 71 with an early
   exit once p * p exceeds the cofactor, then continues over odd candidates up to the
   shrinking integer square root
2. Wheel factorization (wheel_factorize): mod-30 wheel after removing 2, 3, 5;
   never reads or writes the cache
3. smart_factorize dispatches between the two by size

CACHE:
- One process-wide FactorCache (default_cache()), replaceable per call via cache=
- Inserts that the cache refuses (full, too many factors) are logged, the factors
  are still returned

All inputs must be integers in [0, 2**32 - 1]; anything else raises TypeError or
ValueError before any work is done.
"""
import math
import operator
from dataclasses import dataclass, field
from typing import Iterable, Sequence

import numpy as np
from loguru import logger

from factor_cache import CacheInsertError, FactorCache
from jit_kernels import (
    isqrt,
    _small_prime_pass,
    _odd_trial_division,
    _wheel_walk,
    WHEEL_GAPS,
)

U32_MAX = 2**32 - 1

# First 20 primes, stripped before general trial division
SMALL_PRIMES: tuple[int, ...] = (
    2, 3, 5, 7, 11, 13, 17, 19, 23, 29, 31, 37, 41, 43, 47, 53, 59, 61, 67, 71,
)
_SMALL_PRIMES_ARRAY = np.array(SMALL_PRIMES, dtype=np.int64)

# Inputs at or above this go to the wheel in smart_factorize
WHEEL_THRESHOLD = 1_000_000

# Frequently queried tensor dimensions, factored by precompute_common_dimensions()
COMMON_DIMENSIONS: tuple[int, ...] = (
    # powers of two
    1, 2, 3, 4, 8, 16, 32, 64, 128, 256, 512, 1024, 2048, 4096,
    # image sizes
    224, 299, 331, 448, 640, 768, 896, 1280, 1920,
    # conv feature map sizes
    7, 14, 28, 56, 112,
    # channel widths
    48, 96, 192, 384, 1536,
)

_default_cache = FactorCache()


def default_cache() -> FactorCache:
    """The process-wide cache used when no cache= is given."""
    return _default_cache


def _as_u32(n) -> int:
    """Coerce n to a Python int in the unsigned 32-bit range."""
    if isinstance(n, (bool, np.bool_)):
        raise TypeError(f"expected an integer, got {type(n).__name__}")
    try:
        value = operator.index(n)
    except TypeError:
        raise TypeError(f"expected an integer, got {type(n).__name__}") from None
    if not 0 <= value <= U32_MAX:
        raise ValueError(f"{value} is outside the unsigned 32-bit range")
    return value


def _trial_division(n: int) -> list[int]:
    """Uncached trial division of n > 1."""
    factors, n, finished = _small_prime_pass(n, _SMALL_PRIMES_ARRAY)
    if finished:
        return factors

    # every prime <= 71 is gone, so start at the next odd number
    more, n = _odd_trial_division(n, SMALL_PRIMES[-1] + 2)
    factors.extend(more)
    if n > 1:
        factors.append(n)
    return factors


def factorize(n: int, cache: FactorCache | None = None) -> list[int]:
    """
    Factorize n into primes by trial division, memoizing the result.

    Args:
        n: Integer in [0, 2**32 - 1]
        cache: Cache to consult and fill (default: the process-wide cache)

    Returns:
        Non-decreasing list of prime factors; empty for 0 and 1
    """
    n = _as_u32(n)
    if n <= 1:
        return []
    if cache is None:
        cache = _default_cache

    cached = cache.lookup(n)
    if cached is not None:
        return list(cached)

    factors = [int(f) for f in _trial_division(n)]
    try:
        cache.insert(n, factors)
    except CacheInsertError as e:
        logger.trace(f"factorization of {e.number} not cached: {e}")
    return factors


def wheel_factorize(n: int) -> list[int]:
    """
    Factorize n with a mod-30 wheel. Independent of any cache.

    Same factors as factorize(n), intended for large inputs where the
    small-prime table buys little.
    """
    n = _as_u32(n)
    if n <= 1:
        return []
    factors, n = _wheel_walk(n, WHEEL_GAPS)
    factors = [int(f) for f in factors]
    if n > 1:
        factors.append(int(n))
    return factors


def smart_factorize(n: int, cache: FactorCache | None = None) -> list[int]:
    """Cached trial division below WHEEL_THRESHOLD, wheel factorization above."""
    n = _as_u32(n)
    if n < WHEEL_THRESHOLD:
        return factorize(n, cache=cache)
    return wheel_factorize(n)


def batch_factorize(inputs: Iterable[int], cache: FactorCache | None = None) -> list[list[int]]:
    """
    Factorize every input independently, preserving order.

    Accepts any iterable of integers, NumPy integer arrays included. Inputs are
    validated up front so a bad element fails the call before the cache is touched.
    """
    if isinstance(inputs, np.ndarray):
        if inputs.dtype.kind not in "iu":
            raise TypeError(f"expected an integer array, got dtype {inputs.dtype}")
        inputs = inputs.ravel().tolist()
    numbers = [_as_u32(x) for x in inputs]
    return [factorize(x, cache=cache) for x in numbers]


def precompute_common_dimensions(cache: FactorCache | None = None) -> int:
    """
    Warm the cache with COMMON_DIMENSIONS.

    Stops early once the cache is full.

    Returns:
        Cache size afterwards
    """
    if cache is None:
        cache = _default_cache
    for dim in COMMON_DIMENSIONS:
        if cache.is_full():
            break
        factorize(dim, cache=cache)
    size = len(cache)
    logger.debug(f"precomputed common dimensions, cache holds {size} entries")
    return size


def get_cache_stats(cache: FactorCache | None = None) -> tuple[int, int]:
    """(current size, capacity) of the cache."""
    if cache is None:
        cache = _default_cache
    return cache.stats()


def clear_cache(cache: FactorCache | None = None) -> None:
    """Empty the cache."""
    if cache is None:
        cache = _default_cache
    cache.clear()


@dataclass
class DimensionLexeme:
    """Prime-factor description of a tensor shape."""
    shape: tuple[int, ...]
    prime_factors: list[list[int]] = field(default_factory=list)
    dimensional_signature: list[str] = field(default_factory=list)

    @property
    def gestalt_signature(self) -> str:
        return "x".join(self.dimensional_signature)

    def distance(self, other: "DimensionLexeme | None") -> float:
        """lexeme_distance(self, other)"""
        return lexeme_distance(self, other)


def tensor_to_lexeme(tensor_or_shape, cache: FactorCache | None = None) -> DimensionLexeme:
    """
    Factor every dimension of a shape.

    Args:
        tensor_or_shape: Sequence of dimensions, or an object with a .shape
                         attribute (e.g. a NumPy array)

    Example:
        >>> tensor_to_lexeme((12, 5)).gestalt_signature
        '2*2*3x5'
    """
    shape: Sequence[int] = getattr(tensor_or_shape, "shape", tensor_or_shape)
    shape = tuple(_as_u32(d) for d in shape)
    factors = batch_factorize(shape, cache=cache)
    return DimensionLexeme(
        shape=shape,
        prime_factors=factors,
        dimensional_signature=["*".join(str(f) for f in fs) for fs in factors],
    )


def lexeme_distance(a: DimensionLexeme | None, b: DimensionLexeme | None) -> float:
    """
    Distance between two lexemes' gestalt signatures.

    0.0 for equal signatures, otherwise the edit distance between them divided by
    the longer signature's length. Infinite if either lexeme is missing.

    Example:
        >>> lexeme_distance(tensor_to_lexeme((4,)), tensor_to_lexeme((8,)))
        0.4
    """
    if a is None or b is None:
        return math.inf
    s, t = a.gestalt_signature, b.gestalt_signature
    if s == t:
        return 0.0

    # single-row Levenshtein table
    row = np.arange(len(t) + 1, dtype=np.int64)
    for i, ch in enumerate(s, start=1):
        prev_diag, row[0] = row[0], i
        for j in range(1, len(t) + 1):
            cost = 0 if ch == t[j - 1] else 1
            prev_diag, row[j] = row[j], min(row[j] + 1, row[j - 1] + 1, prev_diag + cost)
    return int(row[-1]) / max(len(s), len(t))


__all__ = [
    'SMALL_PRIMES',
    'COMMON_DIMENSIONS',
    'WHEEL_THRESHOLD',
    'U32_MAX',
    'isqrt',
    'factorize',
    'wheel_factorize',
    'smart_factorize',
    'batch_factorize',
    'precompute_common_dimensions',
    'get_cache_stats',
    'clear_cache',
    'default_cache',
    'DimensionLexeme',
    'tensor_to_lexeme',
    'lexeme_distance',
]
