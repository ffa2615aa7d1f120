#!/usr/bin/env python3
# Copyright (c) Meta Platforms, Inc. and affiliates.
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.

# pyre-strict

import struct
import typing

from pyhprof.errors import TruncatedRecord
from pyhprof.formats import VALID_ID_SIZES


SEEK_CUR = 1
SEEK_END = 2

U2 = struct.Struct(b">H")
U4 = struct.Struct(b">I")
U8 = struct.Struct(b">Q")
RECORD_HEADER = struct.Struct(b">II")

_ID_STRUCTS: typing.Dict[int, struct.Struct] = {4: U4, 8: U8}


class ByteStream(object):
    """
    Forward-only big-endian reader over a binary file object.

    Only the bytes of the field being decoded are ever held in memory, large
    spans go through skip(). `offset` counts every byte consumed since the
    stream was created and is what error messages report.
    """

    SKIP_CHUNK_SIZE: int = 64 * 1024

    def __init__(self, instream: typing.BinaryIO) -> None:
        self.instream = instream
        self.offset = 0
        self.id_size = 4
        self._id_struct: struct.Struct = U4
        self._skip_buffer: typing.Optional[bytearray] = None
        self.size: typing.Optional[int] = self._measure_size()

    def _measure_size(self) -> typing.Optional[int]:
        try:
            if not self.instream.seekable():
                return None
            pos = self.instream.tell()
            end = self.instream.seek(0, SEEK_END)
            self.instream.seek(pos)
        except (AttributeError, OSError):
            return None
        return end - pos

    def set_id_size(self, id_size: int) -> None:
        if id_size not in VALID_ID_SIZES:
            raise ValueError("Unsupported identifier size: %d" % id_size)
        self.id_size = id_size
        self._id_struct = _ID_STRUCTS[id_size]

    def remaining(self) -> typing.Optional[int]:
        if self.size is None:
            return None
        return self.size - self.offset

    def _read(self, count: int) -> bytes:
        data = self.instream.read(count)
        if len(data) != count:
            raise TruncatedRecord(
                "Unexpected end of input: wanted %d bytes, got %d"
                % (count, len(data)),
                self.offset + len(data),
            )
        self.offset += count
        return data

    def next_tag(self) -> typing.Optional[int]:
        """Returns None at a clean end of input."""
        data = self.instream.read(1)
        if not data:
            return None
        self.offset += 1
        return data[0]

    def next_byte(self) -> int:
        return self._read(1)[0]

    def next_two_bytes(self) -> int:
        return U2.unpack(self._read(2))[0]

    def next_four_bytes(self) -> int:
        return U4.unpack(self._read(4))[0]

    def next_eight_bytes(self) -> int:
        return U8.unpack(self._read(8))[0]

    def next_id(self) -> int:
        return self._id_struct.unpack(self._read(self.id_size))[0]

    def next_bytes(self, count: int) -> bytes:
        return self._read(count)

    def next_record_header(self) -> typing.Tuple[int, int]:
        # Both fields are unsigned, lengths of 2GB and above stay positive.
        time_offset_us, length = RECORD_HEADER.unpack(self._read(RECORD_HEADER.size))
        return time_offset_us, length

    def skip(self, count: int) -> None:
        if count <= 0:
            return
        remaining = self.remaining()
        if remaining is not None:
            if count > remaining:
                raise TruncatedRecord(
                    "Cannot skip %d bytes, only %d left" % (count, remaining),
                    self.size,
                )
            self.instream.seek(count, SEEK_CUR)
            self.offset += count
            return

        if self._skip_buffer is None:
            self._skip_buffer = bytearray(self.SKIP_CHUNK_SIZE)
        view = memoryview(self._skip_buffer)
        left = count
        while left > 0:
            chunk = min(left, len(view))
            got = self.instream.readinto(view[:chunk])
            if not got:
                raise TruncatedRecord(
                    "Unexpected end of input while skipping %d bytes" % count,
                    self.offset,
                )
            left -= got
            self.offset += got
