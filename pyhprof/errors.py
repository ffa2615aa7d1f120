#!/usr/bin/env python3
# Copyright (c) Meta Platforms, Inc. and affiliates.
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.

# pyre-strict

import typing


class HprofError(Exception):
    """
    Base class for conditions that make the rest of a dump unreadable. Once
    one of these is raised the cursor can no longer be trusted to point at a
    record boundary, so callers should stop parsing.
    """

    def __init__(
        self,
        msg: str,
        offset: typing.Optional[int] = None,
        tag: typing.Optional[int] = None,
    ) -> None:
        super().__init__(msg, offset, tag)
        self.msg = msg
        self.offset = offset
        self.tag = tag

    def __str__(self) -> str:
        parts = [self.msg]
        if self.offset is not None:
            parts.append("at offset %d (0x%x)" % (self.offset, self.offset))
        if self.tag is not None:
            parts.append("tag 0x%02x" % self.tag)
        return " ".join(parts)


class MalformedHeader(HprofError):
    pass


class TruncatedRecord(HprofError):
    pass


class StreamDesync(HprofError):
    pass


class UnknownSubRecordTag(HprofError):
    pass
