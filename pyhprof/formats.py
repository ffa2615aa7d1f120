#!/usr/bin/env python3
# Copyright (c) Meta Platforms, Inc. and affiliates.
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.

# pyre-strict

# Tags and basic types of the "JAVA PROFILE 1.0.x" binary heap dump format.

import enum
import typing


class HprofTag(enum.IntEnum):
    STRING = 0x01
    LOAD_CLASS = 0x02
    UNLOAD_CLASS = 0x03
    STACK_FRAME = 0x04
    STACK_TRACE = 0x05
    ALLOC_SITES = 0x06
    HEAP_SUMMARY = 0x07
    START_THREAD = 0x0A
    END_THREAD = 0x0B
    HEAP_DUMP = 0x0C
    HEAP_DUMP_SEGMENT = 0x1C
    HEAP_DUMP_END = 0x2C
    CPU_SAMPLES = 0x0D
    CONTROL_SETTINGS = 0x0E


class HeapTag(enum.IntEnum):
    ROOT_UNKNOWN = 0xFF
    ROOT_JNI_GLOBAL = 0x01
    ROOT_JNI_LOCAL = 0x02
    ROOT_JAVA_FRAME = 0x03
    ROOT_NATIVE_STACK = 0x04
    ROOT_STICKY_CLASS = 0x05
    ROOT_THREAD_BLOCK = 0x06
    ROOT_MONITOR_USED = 0x07
    ROOT_THREAD_OBJECT = 0x08
    CLASS_DUMP = 0x20
    INSTANCE_DUMP = 0x21
    OBJECT_ARRAY_DUMP = 0x22
    PRIMITIVE_ARRAY_DUMP = 0x23


class HprofBasic(enum.IntEnum):
    OBJECT = 2
    BOOLEAN = 4
    CHAR = 5
    FLOAT = 6
    DOUBLE = 7
    BYTE = 8
    SHORT = 9
    INT = 10
    LONG = 11


# Sizes of the non-reference basic types. Object references are as wide as
# an identifier, see basic_type_size().
BASIC_TYPE_SIZES: typing.Dict[int, int] = {
    HprofBasic.BOOLEAN: 1,
    HprofBasic.CHAR: 2,
    HprofBasic.FLOAT: 4,
    HprofBasic.DOUBLE: 8,
    HprofBasic.BYTE: 1,
    HprofBasic.SHORT: 2,
    HprofBasic.INT: 4,
    HprofBasic.LONG: 8,
}

PRIMITIVE_ARRAY_NAMES: typing.Dict[int, str] = {
    HprofBasic.BOOLEAN: "boolean[]",
    HprofBasic.CHAR: "char[]",
    HprofBasic.FLOAT: "float[]",
    HprofBasic.DOUBLE: "double[]",
    HprofBasic.BYTE: "byte[]",
    HprofBasic.SHORT: "short[]",
    HprofBasic.INT: "int[]",
    HprofBasic.LONG: "long[]",
}

UNKNOWN_PRIMITIVE_ARRAY_NAME = "prim[]"
UNKNOWN_OBJECT_ARRAY_NAME = "unknown[]"

VALID_ID_SIZES: typing.Tuple[int, ...] = (4, 8)


def basic_type_size(type_tag: int, id_size: int) -> int:
    """
    Byte size of a value of the given basic type. Unrecognized types are
    zero sized, which is how the reference dumpers treat them.
    """
    if type_tag == HprofBasic.OBJECT:
        return id_size
    return BASIC_TYPE_SIZES.get(type_tag, 0)


def primitive_array_name(type_tag: int) -> str:
    return PRIMITIVE_ARRAY_NAMES.get(type_tag, UNKNOWN_PRIMITIVE_ARRAY_NAME)
