"""
JIT-compiled kernels for 32-bit factorization.

This module contains the inner loops of the trial-division and wheel factorizers,
compiled with Numba. All kernels work on int64 so that intermediate values for
inputs near 2**32 never wrap (``p * p`` for ``p`` close to 2**16, ``n + 1`` in the
square root iteration).

KERNELS:
1. isqrt: Newton's method integer square root
2. Small prime pass: strip the fixed table of small primes with early exit
3. Odd trial division: continue past the table with odd candidates only
4. Wheel walk: mod-30 wheel over candidates coprime to 2, 3, 5

Kernels never touch the cache; the caller in dimfactor.py owns that.
"""

import numpy as np
from numba import njit
from typing import List, Tuple


# ============================================================================
# PART 1: INTEGER SQUARE ROOT
# ============================================================================

@njit
def isqrt(n: int) -> int:
    """
    floor(sqrt(n)) by Newton's method.

    Starts from x = n and iterates y = (x + n // x) // 2 until y stops decreasing.
    Returns n unchanged for n < 2.
    """
    if n < 2:
        return n
    x = n
    y = (x + n // x) // 2
    while y < x:
        x = y
        y = (x + n // x) // 2
    return x


# ============================================================================
# PART 2: SMALL PRIME PASS
# ============================================================================

@njit
def _small_prime_pass(n: int, primes: np.ndarray) -> Tuple[List[int], int, bool]:
    """
    Divide out every prime of ``primes`` (ascending) from n.

    Returns (factors found, remaining cofactor, finished). ``finished`` is True when
    nothing is left to search: either n reached 1, or p * p > n for the current prime,
    in which case the cofactor is prime and has already been appended.

    Args:
        n: Number to factor (n > 1)
        primes: NumPy array of ascending primes (must be int64)
    """
    factors = []
    for i in range(primes.shape[0]):
        p = primes[i]
        while n % p == 0:
            factors.append(p)
            n //= p
        if n == 1:
            return factors, n, True
        if p * p > n:
            factors.append(n)
            return factors, 1, True
    return factors, n, False


# ============================================================================
# PART 3: ODD-CANDIDATE TRIAL DIVISION
# ============================================================================

@njit
def _odd_trial_division(n: int, start: int) -> Tuple[List[int], int]:
    """
    Trial division by odd candidates start, start + 2, ... up to isqrt(n).

    The bound is recomputed after every successful division, so it shrinks as
    factors are removed. ``start`` must be odd and every prime below it must
    already be divided out.

    Returns:
        (list of factors found, remaining cofactor)
    """
    factors = []
    candidate = start
    bound = isqrt(n)
    while candidate <= bound:
        while n % candidate == 0:
            factors.append(candidate)
            n //= candidate
            bound = isqrt(n)
        candidate += 2
    return factors, n


# ============================================================================
# PART 4: MOD-30 WHEEL
# ============================================================================

# Gaps between consecutive residues coprime to 30, starting at 7:
# 7, 11, 13, 17, 19, 23, 29, 31, 37, ...
WHEEL_GAPS: np.ndarray = np.array([4, 2, 4, 2, 4, 6, 2, 6], dtype=np.int64)


@njit
def _wheel_walk(n: int, gaps: np.ndarray) -> Tuple[List[int], int]:
    """
    Trial division over the mod-30 wheel.

    Factors 2, 3 and 5 are divided out first, then candidates advance through
    ``gaps`` cyclically from 7. Each candidate is divided out fully before advancing.

    Returns:
        (list of factors found, remaining cofactor)
    """
    factors = []
    while n % 2 == 0:
        factors.append(2)
        n //= 2
    while n % 3 == 0:
        factors.append(3)
        n //= 3
    while n % 5 == 0:
        factors.append(5)
        n //= 5
    if n <= 1:
        return factors, n

    candidate = 7
    pos = 0
    bound = isqrt(n)
    while candidate <= bound:
        while n % candidate == 0:
            factors.append(candidate)
            n //= candidate
            bound = isqrt(n)
        candidate += gaps[pos]
        pos = (pos + 1) % gaps.shape[0]
    return factors, n


__all__: List[str] = [
    'isqrt',
    '_small_prime_pass',
    '_odd_trial_division',
    '_wheel_walk',
    'WHEEL_GAPS',
]
