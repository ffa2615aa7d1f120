#!/usr/bin/env python3
# Copyright (c) Meta Platforms, Inc. and affiliates.
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.

# pyre-strict

import typing

from pyhprof.config import HistogramConfig
from pyhprof.stats import Histogram, HistogramEntry


WIDTH = 100
MB: float = 1024.0 * 1024.0

NamePredicate = typing.Callable[[str], bool]


class Section(object):
    def __init__(self, title: str, predicate: NamePredicate, limit: int) -> None:
        self.title = title
        self.predicate = predicate
        self.limit = limit

    def __str__(self) -> str:
        return "<Section %s limit=%d>" % (self.title, self.limit)


def contains_any(*fragments: str) -> NamePredicate:
    return lambda name: any(fragment in name for fragment in fragments)


def starts_with_any(*prefixes: str) -> NamePredicate:
    return lambda name: name.startswith(prefixes)


def default_sections(config: HistogramConfig) -> typing.List[Section]:
    return [
        Section(
            "APPLICATION-SPECIFIC CLASSES (*%s*)" % config.app_package,
            contains_any(config.app_package),
            config.app_limit,
        ),
        Section(
            "HIBERNATE/ORM CLASSES",
            contains_any("hibernate", "Hibernate"),
            config.orm_limit,
        ),
        Section(
            "COLLECTION / INFRASTRUCTURE CLASSES",
            starts_with_any("java.util.", "[Ljava.util."),
            config.collections_limit,
        ),
    ]


def percent(size: int, total_size: int) -> float:
    if total_size <= 0:
        return 0.0
    return size * 100.0 / total_size


def write_table_header(out: typing.TextIO, title: str) -> None:
    out.write("\n")
    out.write("=" * WIDTH + "\n")
    out.write(title + "\n")
    out.write("=" * WIDTH + "\n")
    out.write(
        "%-4s %15s %18s %10s %6s  %s\n"
        % ("#", "Count", "Size (bytes)", "Size (MB)", "%", "Class Name")
    )
    out.write("-" * WIDTH + "\n")


def format_row(rank: int, entry: HistogramEntry, total_size: int) -> str:
    return "{:<4d} {:>15,d} {:>18,d} {:>9.1f} {:>5.1f}%  {}".format(
        rank,
        entry.count,
        entry.size,
        entry.size / MB,
        percent(entry.size, total_size),
        entry.name,
    )


def write_rows(
    out: typing.TextIO,
    entries: typing.Iterable[HistogramEntry],
    total_size: int,
) -> None:
    for rank, entry in enumerate(entries, 1):
        out.write(format_row(rank, entry, total_size) + "\n")


def write_histogram(
    out: typing.TextIO,
    histogram: Histogram,
    config: typing.Optional[HistogramConfig] = None,
) -> None:
    """The global ranking followed by each filtered section."""
    if config is None:
        config = HistogramConfig()

    write_table_header(
        out, "HEAP HISTOGRAM - TOP %d CLASSES BY SHALLOW SIZE" % config.top_n
    )
    write_rows(out, histogram.top(config.top_n), histogram.total_size)
    out.write("-" * WIDTH + "\n")
    out.write(
        "     {:>15,d} {:>18,d} {:>9.1f}        TOTAL\n".format(
            histogram.total_count,
            histogram.total_size,
            histogram.total_size / MB,
        )
    )
    out.write("=" * WIDTH + "\n")

    for section in default_sections(config):
        write_section(out, histogram, section)


def write_section(out: typing.TextIO, histogram: Histogram, section: Section) -> None:
    write_table_header(out, section.title)
    write_rows(
        out,
        histogram.top(section.limit, section.predicate),
        histogram.total_size,
    )
    out.write("=" * WIDTH + "\n")
