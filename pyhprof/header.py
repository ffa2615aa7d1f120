#!/usr/bin/env python3
# Copyright (c) Meta Platforms, Inc. and affiliates.
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.

# pyre-strict

import logging

from pyhprof.errors import MalformedHeader, TruncatedRecord
from pyhprof.formats import VALID_ID_SIZES
from pyhprof.stream import ByteStream


class HprofHeader(object):
    def __init__(self, tag: str, sizeof_id: int, timestamp: int) -> None:
        self.tag = tag
        self.sizeof_id = sizeof_id
        self.timestamp = timestamp

    def __str__(self) -> str:
        return '<HprofHeader TAG="%s" id-size=%d timestamp=%d>' % (
            self.tag,
            self.sizeof_id,
            self.timestamp,
        )

    def __repr__(self) -> str:
        return str(self)


def read_header(byte_stream: ByteStream) -> HprofHeader:
    """
    Reads the preamble and installs the identifier size on `byte_stream`.
    Every read after this point uses that size.
    """
    # The tag is a null-terminated string.
    tag = bytearray()
    while True:
        byte = byte_stream.next_tag()
        if byte is None or byte == 0:
            break
        tag.append(byte)
    # UTF8 should be close enough to modified UTF8.
    tag_str = tag.decode("utf-8", errors="replace")

    try:
        sizeof_id = byte_stream.next_four_bytes()
        timestamp = byte_stream.next_eight_bytes()
    except TruncatedRecord as e:
        raise MalformedHeader("Truncated header: %s" % e.msg, e.offset)

    if sizeof_id not in VALID_ID_SIZES:
        raise MalformedHeader(
            "Invalid identifier size %d, expected 4 or 8" % sizeof_id,
            byte_stream.offset - 12,
        )
    byte_stream.set_id_size(sizeof_id)

    if not tag_str.startswith("JAVA PROFILE"):
        logging.warning("Unexpected format tag %r, parsing anyway", tag_str)

    return HprofHeader(tag_str, sizeof_id, timestamp)
