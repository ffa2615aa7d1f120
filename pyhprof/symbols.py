#!/usr/bin/env python3
# Copyright (c) Meta Platforms, Inc. and affiliates.
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.

# pyre-strict

import typing


def unknown_class_name(class_object_id: int) -> str:
    return "unknown_0x%x" % class_object_id


class SymbolResolver(object):
    """
    String and class name tables built from STRING and LOAD_CLASS records.

    Both tables only grow. A lookup miss is never an error, the dump format
    promises strings before their users but broken dumps exist.
    """

    def __init__(self) -> None:
        self.string_id_dict: typing.Dict[int, str] = {}
        self.class_name_dict: typing.Dict[int, str] = {}

    def add_string(self, string_id: int, string: str) -> None:
        self.string_id_dict[string_id] = string

    def lookup_string(self, string_id: int) -> typing.Optional[str]:
        return self.string_id_dict.get(string_id)

    def add_class(self, class_object_id: int, class_string_id: int) -> bool:
        name = self.lookup_string(class_string_id)
        if name is None:
            return False
        self.class_name_dict[class_object_id] = name.replace("/", ".")
        return True

    def class_name(self, class_object_id: int) -> typing.Optional[str]:
        return self.class_name_dict.get(class_object_id)

    def display_name(self, class_object_id: int) -> str:
        name = self.class_name_dict.get(class_object_id)
        if name is None:
            return unknown_class_name(class_object_id)
        return name

    def string_count(self) -> int:
        return len(self.string_id_dict)

    def class_count(self) -> int:
        return len(self.class_name_dict)
