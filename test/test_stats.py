# Copyright (c) Meta Platforms, Inc. and affiliates.
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.

import unittest

from pyhprof.stats import build_histogram, Histogram, HistogramEntry, StatsAggregator
from pyhprof.symbols import SymbolResolver


class TestStatsAggregator(unittest.TestCase):
    def test_record_accumulates(self):
        stats = StatsAggregator()
        stats.record("a", 1, 10)
        stats.record("a", 2, 5)
        stats.record("b", 1, 1)
        self.assertEqual(stats.get("a"), (3, 15))
        self.assertEqual(stats.get("b"), (1, 1))
        self.assertEqual(stats.get("missing"), (0, 0))
        self.assertNotIn("missing", stats)
        self.assertEqual(len(stats), 2)
        self.assertEqual(stats.total_count(), 4)
        self.assertEqual(stats.total_size(), 16)
        self.assertEqual(sorted(stats.items()), [("a", 3, 15), ("b", 1, 1)])


class TestSymbolResolver(unittest.TestCase):
    def test_class_names(self):
        symbols = SymbolResolver()
        symbols.add_string(1, "java/util/HashMap")
        self.assertTrue(symbols.add_class(0x100, 1))
        self.assertFalse(symbols.add_class(0x200, 2))
        self.assertEqual(symbols.class_name(0x100), "java.util.HashMap")
        self.assertIsNone(symbols.class_name(0x200))
        self.assertEqual(symbols.display_name(0x200), "unknown_0x200")
        self.assertEqual(symbols.string_count(), 1)
        self.assertEqual(symbols.class_count(), 1)


class TestHistogram(unittest.TestCase):
    def test_merge_and_order(self):
        symbols = SymbolResolver()
        symbols.add_string(1, "com/example/A")
        symbols.add_class(0x10, 1)
        symbols.add_class(0x11, 1)

        instance_stats = StatsAggregator()
        instance_stats.record(0x10, 2, 100)
        instance_stats.record(0x11, 1, 50)
        instance_stats.record(0x99, 1, 30)
        array_stats = StatsAggregator()
        array_stats.record("int[]", 4, 30)
        array_stats.record("byte[]", 1, 30)
        array_stats.record("com.example.A", 1, 16)

        histogram = build_histogram(instance_stats, array_stats, symbols)
        self.assertEqual(
            histogram.entries,
            [
                HistogramEntry("com.example.A", 4, 166),
                HistogramEntry("byte[]", 1, 30),
                HistogramEntry("int[]", 4, 30),
                HistogramEntry("unknown_0x99", 1, 30),
            ],
        )
        self.assertEqual(histogram.total_count, 10)
        self.assertEqual(histogram.total_size, 256)

    def test_top(self):
        histogram = Histogram(
            [
                HistogramEntry("java.util.HashMap", 1, 40),
                HistogramEntry("byte[]", 1, 30),
                HistogramEntry("java.util.ArrayList", 1, 20),
                HistogramEntry("java.util.HashSet", 1, 10),
            ]
        )
        self.assertEqual([e.name for e in histogram.top(2)], ["java.util.HashMap", "byte[]"])
        self.assertEqual(
            [e.name for e in histogram.top(2, lambda name: name.startswith("java."))],
            ["java.util.HashMap", "java.util.ArrayList"],
        )
        self.assertEqual(histogram.top(0), [])
        self.assertEqual(len(histogram.top(10)), 4)
        self.assertIsNone(histogram.lookup("int[]"))

    def test_empty(self):
        histogram = build_histogram(StatsAggregator(), StatsAggregator(), SymbolResolver())
        self.assertEqual(len(histogram), 0)
        self.assertEqual(histogram.total_size, 0)


if __name__ == "__main__":
    unittest.main()
