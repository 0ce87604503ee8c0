"""
Benchmark suite for the tensor dimension factorizer.

Benchmarks:
1. Reference table: factors of a fixed set of numbers, printed as a table
2. Trial Division vs Wheel: same inputs, both algorithms
3. Cache Performance: repeated calls with and without the cache
4. Batch: whole tensor shapes at once
5. Precompute: cache warm-up cost and resulting size
"""

import time
import sys
import random
import statistics
from typing import List, Callable

import numpy as np

from dimfactor import (
    factorize, wheel_factorize, batch_factorize, precompute_common_dimensions,
    get_cache_stats, clear_cache, tensor_to_lexeme
)
from factor_cache import FactorCache


# ============================================================================
# BENCHMARK UTILITIES
# ============================================================================

class BenchmarkResult:
    """
    Timings of one benchmark row.

    ``operations`` is the number of factorizations per timed call, so batch rows
    report a per-number rate instead of a per-call one.
    """

    def __init__(self, name: str, times: List[float], operations: int = 1):
        self.name = name
        self.times = sorted(times)
        self.operations = operations
        self.median = statistics.median(times)
        self.best = self.times[0]
        self.spread = self.times[-1] - self.best

    @property
    def per_op_us(self) -> float:
        return self.median / self.operations * 1e6

    @property
    def ops_per_sec(self) -> float:
        return self.operations / self.median if self.median else float("inf")

    def __str__(self):
        return (f"{self.name:40} | "
                f"median {self.median*1000:8.3f}ms | "
                f"best {self.best*1000:8.3f}ms | "
                f"spread {self.spread*1000:7.3f}ms | "
                f"{self.per_op_us:9.2f}us/factorization | "
                f"{self.ops_per_sec:12,.0f} factorizations/s")


def benchmark(func: Callable, *args, iterations: int = 5, operations: int = 1,
              **kwargs) -> BenchmarkResult:
    """
    Time ``iterations`` calls of func(*args, **kwargs).

    The first call is a warm-up and is not timed (it also triggers JIT compilation).
    """
    times = []

    func(*args, **kwargs)

    for _ in range(iterations):
        start = time.perf_counter()
        func(*args, **kwargs)
        times.append(time.perf_counter() - start)

    return BenchmarkResult(func.__name__, times, operations=operations)


def _header(title: str):
    print("\n" + "="*100)
    print(title)
    print("="*100)


# ============================================================================
# 1. REFERENCE TABLE
# ============================================================================

REFERENCE_NUMBERS = [12, 60, 120, 360, 1000, 2520, 9240, 100007, 1000003]


def benchmark_reference_table():
    """Factor the reference numbers and print n, factors, count."""
    _header("REFERENCE TABLE")

    clear_cache()
    print(f"Precomputed {precompute_common_dimensions()} common dimensions")

    print(f"{'Number':>10}  {'Factors':<30} {'Count':>5}")
    print(f"{'-'*10:>10}  {'-'*30:<30} {'-'*5:>5}")
    for n in REFERENCE_NUMBERS:
        factors = factorize(n)
        print(f"{n:>10}  {'*'.join(map(str, factors)):<30} {len(factors):>5}")

    size, capacity = get_cache_stats()
    print(f"\nCache: {size}/{capacity} entries")


# ============================================================================
# 2. TRIAL DIVISION VS WHEEL
# ============================================================================

def benchmark_algorithms():
    """Compare trial division (uncached) and the wheel on the same inputs."""
    _header("TRIAL DIVISION VS WHEEL")

    test_cases = [
        (9240, "Smooth number (9240)"),
        (1000003, "Prime (1000003)"),
        (65521 * 65537, "Semiprime near 2^32"),
        (4294967291, "Largest 32-bit prime"),
    ]

    no_cache = FactorCache(capacity=0)
    for n, description in test_cases:
        result = benchmark(factorize, n, cache=no_cache, iterations=10)
        result.name = f"{description:28} trial"
        print(result)

        result = benchmark(wheel_factorize, n, iterations=10)
        result.name = f"{description:28} wheel"
        print(result)


# ============================================================================
# 3. CACHE IMPACT
# ============================================================================

def benchmark_caching_impact():
    """Repeated factorization with and without the cache."""
    _header("CACHE IMPACT")

    numbers = [224, 768, 1536, 100007, 1000003]

    result_fresh = benchmark(
        lambda: [factorize(n, cache=FactorCache(capacity=0)) for n in numbers],
        iterations=20, operations=len(numbers))
    result_fresh.name = "Without cache"
    print(result_fresh)

    cache = FactorCache()
    result_cached = benchmark(lambda: [factorize(n, cache=cache) for n in numbers],
                              iterations=20, operations=len(numbers))
    result_cached.name = "With cache"
    print(result_cached)

    speedup = result_fresh.median / result_cached.median
    stats = cache.detailed_stats()
    print(f"  → Cache speedup: {speedup:.1f}x (hit ratio {stats.hit_ratio:.2%})\n")


# ============================================================================
# 4. BATCH
# ============================================================================

def benchmark_batch():
    """Batch factorization of tensor shapes."""
    _header("BATCH FACTORIZATION")

    rng = random.Random(42)
    shapes = [
        ("ImageNet batch (64, 3, 224, 224)", [64, 3, 224, 224]),
        ("Transformer (32, 512, 768)", [32, 512, 768]),
        ("Random 1000 dims < 2^20", [rng.randint(2, 2**20) for _ in range(1000)]),
    ]

    for description, shape in shapes:
        cache = FactorCache()
        result = benchmark(batch_factorize, shape, cache=cache, iterations=5,
                           operations=len(shape))
        result.name = description
        print(result)

    lexeme = tensor_to_lexeme(np.empty((8, 3, 299, 299), dtype=np.uint8))
    print(f"\nLexeme of (8, 3, 299, 299): {lexeme.gestalt_signature}")


# ============================================================================
# 5. PRECOMPUTE
# ============================================================================

def benchmark_precompute():
    """Cost of warming an empty cache."""
    _header("PRECOMPUTE")

    times = []
    for _ in range(10):
        cache = FactorCache()
        start = time.perf_counter()
        size = precompute_common_dimensions(cache=cache)
        times.append(time.perf_counter() - start)

    print(BenchmarkResult(f"Warm-up ({size} entries)", times, operations=size))


# ============================================================================
# MAIN BENCHMARK SUITE
# ============================================================================

def run_all_benchmarks():
    """Run all benchmarks."""
    print("\n")
    print("╔" + "="*98 + "╗")
    print("║" + " "*20 + "TENSOR DIMENSION FACTORIZATION BENCHMARK SUITE" + " "*32 + "║")
    print("╚" + "="*98 + "╝")

    try:
        benchmark_reference_table()
        benchmark_algorithms()
        benchmark_caching_impact()
        benchmark_batch()
        benchmark_precompute()

        print("\n" + "="*100)
        print("BENCHMARK COMPLETE")
        print("="*100 + "\n")

    except KeyboardInterrupt:
        print("\nBenchmark interrupted by user")
        sys.exit(1)


if __name__ == "__main__":
    run_all_benchmarks()
