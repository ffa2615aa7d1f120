#!/usr/bin/env python3
# Copyright (c) Meta Platforms, Inc. and affiliates.
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.

# pyre-strict

# Single pass HPROF parser that keeps class histograms instead of objects.
# Example usage:
# In [1]: from pyhprof import parser
# In [2]: hp = parser.parse_filename('/tmp/app.hprof')
# In [3]: hp.histogram().top(5)

import logging
import typing
from collections import defaultdict

from pyhprof import logger
from pyhprof.config import DEFAULT_OBJECT_OVERHEAD
from pyhprof.errors import StreamDesync
from pyhprof.formats import HeapTag, HprofTag
from pyhprof.header import HprofHeader, read_header
from pyhprof.heap import decode_heap_segment
from pyhprof.stats import build_histogram, Histogram, StatsAggregator
from pyhprof.stream import ByteStream
from pyhprof.symbols import SymbolResolver


READ_BUFFER_SIZE: int = 8 * 1024 * 1024

# (bytes read, total bytes if known, records read)
ProgressCallback = typing.Callable[[int, typing.Optional[int], int], None]


class HprofParser(object):
    """
    Owns all state of one pass over a dump: the stream, the symbol tables and
    the aggregates. Every decoding step receives the parser itself.
    """

    PROGRESS_INTERVAL: int = 50000

    def __init__(
        self,
        instream: typing.BinaryIO,
        object_overhead: int = DEFAULT_OBJECT_OVERHEAD,
        progress: typing.Optional[ProgressCallback] = None,
    ) -> None:
        self.byte_stream = ByteStream(instream)
        self.object_overhead = object_overhead
        self.progress = progress

        self.header: typing.Optional[HprofHeader] = None
        self.symbols = SymbolResolver()
        # Instances are keyed by class object id and named at the end, arrays
        # are keyed by name when they are read.
        self.instance_stats: StatsAggregator[int] = StatsAggregator()
        self.array_stats: StatsAggregator[str] = StatsAggregator()

        self.total_records = 0
        self.heap_segments = 0
        self.sub_record_counts: typing.Dict[HeapTag, int] = defaultdict(int)

    def __str__(self) -> str:
        return "<HprofParser %s records=%d heap-segments=%d>" % (
            self.header,
            self.total_records,
            self.heap_segments,
        )

    def __repr__(self) -> str:
        return str(self)

    def parse(self) -> Histogram:
        self.read_header()
        while self.read_record():
            pass
        logging.debug(
            "Read %d records, %d heap segments, %d bytes",
            self.total_records,
            self.heap_segments,
            self.byte_stream.offset,
        )
        return self.histogram()

    def read_header(self) -> HprofHeader:
        assert self.header is None, "header already read"
        self.header = read_header(self.byte_stream)
        logging.debug("Parsed header %s", self.header)
        return self.header

    def read_record(self) -> bool:
        """Reads one top-level record. Returns False at end of input."""
        byte_stream = self.byte_stream
        record_offset = byte_stream.offset
        tag = byte_stream.next_tag()
        if tag is None:
            return False
        time_offset_us, length = byte_stream.next_record_header()
        self.total_records += 1
        logger.log(
            2,
            "Record 0x%02x at %d: %dus %d bytes"
            % (tag, record_offset, time_offset_us, length),
        )

        if tag == HprofTag.STRING:
            self.parse_string_record(length, record_offset)
        elif tag == HprofTag.LOAD_CLASS:
            self.parse_load_class_record(length, record_offset)
        elif tag in (HprofTag.HEAP_DUMP, HprofTag.HEAP_DUMP_SEGMENT):
            self.heap_segments += 1
            count = decode_heap_segment(byte_stream, length, tag, self)
            logger.log(1, "Heap segment %d: %d sub-records" % (self.heap_segments, count))
        else:
            byte_stream.skip(length)

        if self.progress is not None and self.total_records % self.PROGRESS_INTERVAL == 0:
            self.progress(byte_stream.offset, byte_stream.size, self.total_records)
        return True

    def parse_string_record(self, length: int, record_offset: int) -> None:
        byte_stream = self.byte_stream
        if length < byte_stream.id_size:
            raise StreamDesync(
                "String record of %d bytes cannot hold an identifier" % length,
                record_offset,
                HprofTag.STRING,
            )
        string_id = byte_stream.next_id()
        data = byte_stream.next_bytes(length - byte_stream.id_size)
        self.symbols.add_string(string_id, data.decode("utf-8", errors="replace"))

    def parse_load_class_record(self, length: int, record_offset: int) -> None:
        byte_stream = self.byte_stream
        expected = 8 + 2 * byte_stream.id_size
        if length < expected:
            raise StreamDesync(
                "Load class record of %d bytes, expected %d" % (length, expected),
                record_offset,
                HprofTag.LOAD_CLASS,
            )
        byte_stream.next_four_bytes()  # class serial
        class_object_id = byte_stream.next_id()
        byte_stream.next_four_bytes()  # stack serial
        class_string_id = byte_stream.next_id()
        byte_stream.skip(length - expected)

        if not self.symbols.add_class(class_object_id, class_string_id):
            logging.debug(
                "No string 0x%x for class 0x%x", class_string_id, class_object_id
            )

    def histogram(self) -> Histogram:
        return build_histogram(self.instance_stats, self.array_stats, self.symbols)


def parse_file(
    instream: typing.BinaryIO,
    object_overhead: int = DEFAULT_OBJECT_OVERHEAD,
    progress: typing.Optional[ProgressCallback] = None,
) -> HprofParser:
    hprof_parser = HprofParser(instream, object_overhead, progress)
    hprof_parser.parse()
    return hprof_parser


def parse_filename(
    filename: str,
    object_overhead: int = DEFAULT_OBJECT_OVERHEAD,
    progress: typing.Optional[ProgressCallback] = None,
) -> HprofParser:
    with open(filename, "rb", buffering=READ_BUFFER_SIZE) as instream:
        return parse_file(instream, object_overhead, progress)
