#!/usr/bin/env python3
# Copyright (c) Meta Platforms, Inc. and affiliates.
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.

# pyre-strict

import typing
from collections import namedtuple

from pyhprof.symbols import SymbolResolver


K = typing.TypeVar("K")

HistogramEntry = namedtuple("HistogramEntry", ["name", "count", "size"])


class StatsAggregator(typing.Generic[K]):
    """Running (count, bytes) totals per key. Entries are never removed."""

    def __init__(self) -> None:
        self._stats: typing.Dict[K, typing.List[int]] = {}

    def record(self, key: K, count_delta: int, byte_delta: int) -> None:
        stat = self._stats.get(key)
        if stat is None:
            self._stats[key] = [count_delta, byte_delta]
        else:
            stat[0] += count_delta
            stat[1] += byte_delta

    def get(self, key: K) -> typing.Tuple[int, int]:
        stat = self._stats.get(key)
        if stat is None:
            return (0, 0)
        return (stat[0], stat[1])

    def items(self) -> typing.Iterator[typing.Tuple[K, int, int]]:
        for key, (count, size) in self._stats.items():
            yield key, count, size

    def total_count(self) -> int:
        return sum(stat[0] for stat in self._stats.values())

    def total_size(self) -> int:
        return sum(stat[1] for stat in self._stats.values())

    def __contains__(self, key: object) -> bool:
        return key in self._stats

    def __len__(self) -> int:
        return len(self._stats)


class Histogram(object):
    def __init__(self, entries: typing.List[HistogramEntry]) -> None:
        self.entries = entries
        self.total_count: int = sum(e.count for e in entries)
        self.total_size: int = sum(e.size for e in entries)

    def top(
        self,
        limit: int,
        predicate: typing.Optional[typing.Callable[[str], bool]] = None,
    ) -> typing.List[HistogramEntry]:
        ret = []
        for entry in self.entries:
            if len(ret) >= limit:
                break
            if predicate is None or predicate(entry.name):
                ret.append(entry)
        return ret

    def lookup(self, name: str) -> typing.Optional[HistogramEntry]:
        for entry in self.entries:
            if entry.name == name:
                return entry
        return None

    def __len__(self) -> int:
        return len(self.entries)


def build_histogram(
    instance_stats: StatsAggregator[int],
    array_stats: StatsAggregator[str],
    symbols: SymbolResolver,
) -> Histogram:
    """
    Merges the per-class-id instance totals and the per-name array totals
    into one table keyed by display name, largest total size first. Equal
    sizes keep name order.
    """
    combined: StatsAggregator[str] = StatsAggregator()
    for class_object_id, count, size in instance_stats.items():
        combined.record(symbols.display_name(class_object_id), count, size)
    for name, count, size in array_stats.items():
        combined.record(name, count, size)

    entries = sorted(
        (HistogramEntry(name, count, size) for name, count, size in combined.items()),
        key=lambda e: e.name,
    )
    entries.sort(key=lambda e: e.size, reverse=True)
    return Histogram(entries)
