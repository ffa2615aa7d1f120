#!/usr/bin/env python3
# Copyright (c) Meta Platforms, Inc. and affiliates.
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.

# pyre-strict

# Decoders for the sub-records of HEAP_DUMP and HEAP_DUMP_SEGMENT records.
#
# Sub-records carry no length of their own. Each decoder knows the layout of
# its sub-tag and returns how many body bytes it consumed, which is the only
# way to find where the next sub-record starts.

import logging
import typing

from pyhprof.errors import StreamDesync, UnknownSubRecordTag
from pyhprof.formats import (
    basic_type_size,
    BASIC_TYPE_SIZES,
    HeapTag,
    HprofBasic,
    primitive_array_name,
    UNKNOWN_OBJECT_ARRAY_NAME,
)
from pyhprof.stream import ByteStream


if typing.TYPE_CHECKING:
    from pyhprof.parser import HprofParser


def _field_value_size(type_tag: int, id_size: int) -> int:
    if type_tag != HprofBasic.OBJECT and type_tag not in BASIC_TYPE_SIZES:
        logging.debug("Unrecognized basic type %d, assuming no value", type_tag)
    return basic_type_size(type_tag, id_size)


class SubRecordDecoder(object):
    def __init__(self, heap_tag: HeapTag) -> None:
        self.heap_tag = heap_tag

    def decode(self, byte_stream: ByteStream, context: "HprofParser") -> int:
        """Consumes the body following the sub-tag and returns its size."""
        raise NotImplementedError()

    def __str__(self) -> str:
        return "<%s %s>" % (self.__class__.__name__, self.heap_tag.name)

    def __repr__(self) -> str:
        return str(self)


class RootDecoder(SubRecordDecoder):
    """GC roots are fixed size and only skipped."""

    def __init__(self, heap_tag: HeapTag, id_count: int, extra_bytes: int) -> None:
        super(RootDecoder, self).__init__(heap_tag)
        self.id_count = id_count
        self.extra_bytes = extra_bytes

    def body_size(self, id_size: int) -> int:
        return self.id_count * id_size + self.extra_bytes

    def decode(self, byte_stream: ByteStream, context: "HprofParser") -> int:
        size = self.body_size(byte_stream.id_size)
        byte_stream.skip(size)
        return size


class ClassDumpDecoder(SubRecordDecoder):
    def __init__(self) -> None:
        super(ClassDumpDecoder, self).__init__(HeapTag.CLASS_DUMP)

    def decode(self, byte_stream: ByteStream, context: "HprofParser") -> int:
        id_size = byte_stream.id_size

        byte_stream.next_id()  # class object id
        byte_stream.next_four_bytes()  # stack serial
        byte_stream.next_id()  # super class
        # class loader, signers, protection domain, 2x reserved
        byte_stream.skip(5 * id_size)
        byte_stream.next_four_bytes()  # instance size
        consumed = 7 * id_size + 8

        const_pool_count = byte_stream.next_two_bytes()
        consumed += 2
        for _ in range(const_pool_count):
            byte_stream.skip(2)  # constant pool index
            value_size = _field_value_size(byte_stream.next_byte(), id_size)
            byte_stream.skip(value_size)
            consumed += 3 + value_size

        static_field_count = byte_stream.next_two_bytes()
        consumed += 2
        for _ in range(static_field_count):
            byte_stream.skip(id_size)  # name string id
            value_size = _field_value_size(byte_stream.next_byte(), id_size)
            byte_stream.skip(value_size)
            consumed += id_size + 1 + value_size

        # Instance fields are (name string id, type) pairs without values.
        instance_field_count = byte_stream.next_two_bytes()
        consumed += 2
        byte_stream.skip(instance_field_count * (id_size + 1))
        consumed += instance_field_count * (id_size + 1)

        return consumed


class InstanceDumpDecoder(SubRecordDecoder):
    def __init__(self) -> None:
        super(InstanceDumpDecoder, self).__init__(HeapTag.INSTANCE_DUMP)

    def decode(self, byte_stream: ByteStream, context: "HprofParser") -> int:
        id_size = byte_stream.id_size

        byte_stream.next_id()  # object id
        byte_stream.next_four_bytes()  # stack serial
        class_object_id = byte_stream.next_id()
        instance_field_values_size = byte_stream.next_four_bytes()
        byte_stream.skip(instance_field_values_size)

        context.instance_stats.record(
            class_object_id, 1, instance_field_values_size + context.object_overhead
        )
        return 2 * id_size + 8 + instance_field_values_size


class ObjectArrayDumpDecoder(SubRecordDecoder):
    def __init__(self) -> None:
        super(ObjectArrayDumpDecoder, self).__init__(HeapTag.OBJECT_ARRAY_DUMP)

    def decode(self, byte_stream: ByteStream, context: "HprofParser") -> int:
        id_size = byte_stream.id_size

        byte_stream.next_id()  # object id
        byte_stream.next_four_bytes()  # stack serial
        num_elements = byte_stream.next_four_bytes()
        array_class_object_id = byte_stream.next_id()
        data_size = num_elements * id_size
        byte_stream.skip(data_size)

        # Resolved now, a class loaded after this point does not rename it.
        name = context.symbols.class_name(array_class_object_id)
        if name is None:
            name = UNKNOWN_OBJECT_ARRAY_NAME
        context.array_stats.record(name, 1, data_size + context.object_overhead)
        return 2 * id_size + 8 + data_size


class PrimitiveArrayDumpDecoder(SubRecordDecoder):
    def __init__(self) -> None:
        super(PrimitiveArrayDumpDecoder, self).__init__(HeapTag.PRIMITIVE_ARRAY_DUMP)

    def decode(self, byte_stream: ByteStream, context: "HprofParser") -> int:
        id_size = byte_stream.id_size

        byte_stream.next_id()  # object id
        byte_stream.next_four_bytes()  # stack serial
        num_elements = byte_stream.next_four_bytes()
        prim_type = byte_stream.next_byte()
        data_size = num_elements * _field_value_size(prim_type, id_size)
        byte_stream.skip(data_size)

        context.array_stats.record(
            primitive_array_name(prim_type), 1, data_size + context.object_overhead
        )
        return id_size + 9 + data_size


def _make_decoders() -> typing.Dict[int, SubRecordDecoder]:
    decoders: typing.List[SubRecordDecoder] = [
        RootDecoder(HeapTag.ROOT_UNKNOWN, 1, 0),
        # object id, JNI global ref id
        RootDecoder(HeapTag.ROOT_JNI_GLOBAL, 2, 0),
        # object id, thread serial, frame number
        RootDecoder(HeapTag.ROOT_JNI_LOCAL, 1, 8),
        RootDecoder(HeapTag.ROOT_JAVA_FRAME, 1, 8),
        # object id, thread serial
        RootDecoder(HeapTag.ROOT_NATIVE_STACK, 1, 4),
        RootDecoder(HeapTag.ROOT_STICKY_CLASS, 1, 0),
        RootDecoder(HeapTag.ROOT_THREAD_BLOCK, 1, 4),
        RootDecoder(HeapTag.ROOT_MONITOR_USED, 1, 0),
        # thread object id, thread serial, stack serial
        RootDecoder(HeapTag.ROOT_THREAD_OBJECT, 1, 8),
        ClassDumpDecoder(),
        InstanceDumpDecoder(),
        ObjectArrayDumpDecoder(),
        PrimitiveArrayDumpDecoder(),
    ]
    ret = {}
    for decoder in decoders:
        assert decoder.heap_tag not in ret, decoder
        ret[decoder.heap_tag] = decoder
    return ret


HEAP_DECODERS: typing.Dict[int, SubRecordDecoder] = _make_decoders()


def decode_heap_segment(
    byte_stream: ByteStream, length: int, record_tag: int, context: "HprofParser"
) -> int:
    """
    Decodes sub-records until exactly `length` bytes are consumed. Returns
    the number of sub-records.
    """
    start = byte_stream.offset
    consumed = 0
    count = 0
    while consumed < length:
        tag_offset = byte_stream.offset
        heap_tag = byte_stream.next_byte()
        decoder = HEAP_DECODERS.get(heap_tag)
        if decoder is None:
            raise UnknownSubRecordTag(
                "Unknown heap dump sub-record", tag_offset, heap_tag
            )
        consumed += 1 + decoder.decode(byte_stream, context)
        context.sub_record_counts[decoder.heap_tag] += 1
        count += 1

    if consumed != length:
        raise StreamDesync(
            "Heap dump sub-records span %d bytes but the record declares %d"
            % (consumed, length),
            start,
            record_tag,
        )
    if byte_stream.offset - start != consumed:
        raise StreamDesync(
            "Heap dump sub-records read %d bytes but account for %d"
            % (byte_stream.offset - start, consumed),
            start,
            record_tag,
        )
    return count
