import threading
import unittest

from factor_cache import (
    FactorCache, CacheEntry, CacheStats, CacheInsertError, CacheFullError,
    FactorCountExceededError, MAX_CACHE_SIZE, MAX_FACTORS
)


class TestLookupInsert(unittest.TestCase):
    """Basic table behaviour"""

    def setUp(self):
        self.cache = FactorCache()

    def test_empty_lookup(self):
        self.assertIsNone(self.cache.lookup(12))

    def test_insert_then_lookup(self):
        self.cache.insert(12, [2, 2, 3])
        self.assertEqual(self.cache.lookup(12), (2, 2, 3))
        self.assertIn(12, self.cache)
        self.assertNotIn(13, self.cache)

    def test_default_limits(self):
        self.assertEqual(self.cache.stats(), (0, MAX_CACHE_SIZE))
        self.assertEqual(MAX_CACHE_SIZE, 1000)
        self.assertEqual(self.cache.max_factors, MAX_FACTORS)

    def test_duplicates_appended(self):
        """Always-append: the same number can be stored twice"""
        self.cache.insert(60, [2, 2, 3, 5])
        self.cache.insert(60, [2, 2, 3, 5])
        self.assertEqual(len(self.cache), 2)
        self.assertEqual(self.cache.lookup(60), (2, 2, 3, 5))

    def test_first_match_wins(self):
        self.cache.insert(7, [7])
        self.cache.insert(7, [1, 7])
        self.assertEqual(self.cache.lookup(7), (7,))

    def test_unique_keys(self):
        cache = FactorCache(unique_keys=True)
        cache.insert(60, [2, 2, 3, 5])
        cache.insert(60, [2, 2, 3, 5])
        self.assertEqual(len(cache), 1)

    def test_unique_keys_existing_number_in_full_cache(self):
        """Re-inserting a present number is a no-op even at capacity"""
        cache = FactorCache(capacity=1, unique_keys=True)
        cache.insert(12, [2, 2, 3])
        cache.insert(12, [2, 2, 3])
        self.assertEqual(cache.stats(), (1, 1))
        self.assertEqual(cache.lookup(12), (2, 2, 3))
        with self.assertRaises(CacheFullError):
            cache.insert(60, [2, 2, 3, 5])

    def test_stored_factors_are_immutable(self):
        factors = [2, 2, 3]
        self.cache.insert(12, factors)
        factors.append(99)
        self.assertEqual(self.cache.lookup(12), (2, 2, 3))

    def test_entries_snapshot(self):
        self.cache.insert(12, [2, 2, 3])
        entries = self.cache.entries()
        self.assertEqual(entries, [CacheEntry(12, (2, 2, 3))])
        self.assertEqual(entries[0].count, 3)
        self.cache.clear()
        self.assertEqual(len(entries), 1)


class TestCapacity(unittest.TestCase):
    """Bounds and the diagnostics raised when they are hit"""

    def test_full_cache_raises(self):
        cache = FactorCache(capacity=2)
        cache.insert(4, [2, 2])
        cache.insert(6, [2, 3])
        self.assertTrue(cache.is_full())
        with self.assertRaises(CacheFullError) as ctx:
            cache.insert(8, [2, 2, 2])
        self.assertEqual(ctx.exception.number, 8)
        self.assertEqual(cache.stats(), (2, 2))

    def test_never_exceeds_capacity(self):
        cache = FactorCache(capacity=50)
        for n in range(2, 500):
            try:
                cache.insert(n, [n])
            except CacheFullError:
                pass
        self.assertEqual(len(cache), 50)

    def test_factor_count_bound(self):
        cache = FactorCache(max_factors=3)
        cache.insert(8, [2, 2, 2])
        with self.assertRaises(FactorCountExceededError):
            cache.insert(16, [2, 2, 2, 2])
        self.assertNotIn(16, cache)

    def test_errors_share_base(self):
        self.assertTrue(issubclass(CacheFullError, CacheInsertError))
        self.assertTrue(issubclass(FactorCountExceededError, CacheInsertError))

    def test_zero_capacity(self):
        cache = FactorCache(capacity=0)
        with self.assertRaises(CacheFullError):
            cache.insert(2, [2])

    def test_invalid_limits(self):
        with self.assertRaises(ValueError):
            FactorCache(capacity=-1)
        with self.assertRaises(ValueError):
            FactorCache(max_factors=-1)


class TestClearAndStats(unittest.TestCase):

    def test_clear(self):
        cache = FactorCache(capacity=10)
        for n in (4, 6, 8):
            cache.insert(n, [n])
        cache.clear()
        self.assertEqual(cache.stats(), (0, 10))
        self.assertIsNone(cache.lookup(4))

    def test_hit_miss_counters(self):
        cache = FactorCache()
        cache.insert(12, [2, 2, 3])
        cache.lookup(12)
        cache.lookup(12)
        cache.lookup(13)
        stats = cache.detailed_stats()
        self.assertEqual(stats, CacheStats(1, MAX_CACHE_SIZE, 2, 1))
        self.assertAlmostEqual(stats.hit_ratio, 2 / 3)

    def test_hit_ratio_without_lookups(self):
        self.assertEqual(FactorCache().detailed_stats().hit_ratio, 0.0)

    def test_clear_resets_counters(self):
        cache = FactorCache()
        cache.lookup(5)
        cache.clear()
        stats = cache.detailed_stats()
        self.assertEqual((stats.hits, stats.misses), (0, 0))

    def test_repr(self):
        self.assertEqual(repr(FactorCache(capacity=3)), "FactorCache(size=0, capacity=3)")


class TestConcurrentInsert(unittest.TestCase):
    """The instance lock keeps the size check and append together"""

    def test_threads_respect_capacity(self):
        cache = FactorCache(capacity=100)

        def worker(offset):
            for n in range(offset, offset + 200):
                try:
                    cache.insert(n, [n])
                except CacheFullError:
                    pass

        threads = [threading.Thread(target=worker, args=(i * 1000,)) for i in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        self.assertEqual(len(cache), 100)


if __name__ == '__main__':
    unittest.main()
