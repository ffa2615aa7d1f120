#!/usr/bin/env python3
# Copyright (c) Meta Platforms, Inc. and affiliates.
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.

# pyre-strict

import json
import logging
import typing


# Approximate per-object header cost added to every instance and array. The
# dump does not record it, so this is a heuristic and not exact for every VM.
DEFAULT_OBJECT_OVERHEAD = 16


class ConfigError(ValueError):
    pass


class HistogramConfig(object):
    INT_KEYS: typing.Tuple[str, ...] = (
        "top_n",
        "object_overhead",
        "app_limit",
        "orm_limit",
        "collections_limit",
    )
    STR_KEYS: typing.Tuple[str, ...] = ("app_package",)

    def __init__(
        self,
        top_n: int = 60,
        object_overhead: int = DEFAULT_OBJECT_OVERHEAD,
        app_package: str = "entero",
        app_limit: int = 30,
        orm_limit: int = 20,
        collections_limit: int = 20,
    ) -> None:
        self.top_n = top_n
        self.object_overhead = object_overhead
        self.app_package = app_package
        self.app_limit = app_limit
        self.orm_limit = orm_limit
        self.collections_limit = collections_limit

    def update(self, values: typing.Mapping[str, typing.Any]) -> None:
        for key, value in values.items():
            if value is None:
                continue
            if key in HistogramConfig.INT_KEYS:
                if isinstance(value, bool) or not isinstance(value, int):
                    raise ConfigError("%s must be an integer, got %r" % (key, value))
                if value < 0:
                    raise ConfigError("%s must not be negative, got %d" % (key, value))
            elif key in HistogramConfig.STR_KEYS:
                if not isinstance(value, str) or not value:
                    raise ConfigError("%s must be a non-empty string" % key)
            else:
                raise ConfigError("Unknown config key: %s" % key)
            setattr(self, key, value)

    def __str__(self) -> str:
        return "<HistogramConfig %s>" % ", ".join(
            "%s=%r" % (key, getattr(self, key))
            for key in HistogramConfig.INT_KEYS + HistogramConfig.STR_KEYS
        )


def remove_comments_from_line(line: str) -> str:
    (found_backslash, in_quote) = (False, False)
    for idx, c in enumerate(line):
        if c == "\\" and not found_backslash:
            found_backslash = True
        elif c == '"' and not found_backslash:
            found_backslash = False
            in_quote = not in_quote
        elif c == "#" and not in_quote:
            return line[:idx]
        else:
            found_backslash = False
    return line


def remove_comments(lines: typing.Iterable[str]) -> str:
    return "".join([remove_comments_from_line(line) + "\n" for line in lines])


def load_config_file(path: str) -> typing.Dict[str, typing.Any]:
    """Reads a JSON object, allowing `#` comments like the other configs."""
    try:
        with open(path) as config_file:
            lines = config_file.readlines()
    except OSError as e:
        raise ConfigError("Cannot read config file %s: %s" % (path, e))
    try:
        config_dict = json.loads(remove_comments(lines))
    except ValueError:
        raise ConfigError("Invalid JSON in config file: %s" % path)
    if not isinstance(config_dict, dict):
        raise ConfigError("Config file %s must contain a JSON object" % path)
    logging.debug("Loaded config %s: %s", path, config_dict)
    return config_dict


def make_config(
    config_path: typing.Optional[str] = None,
    overrides: typing.Optional[typing.Mapping[str, typing.Any]] = None,
) -> HistogramConfig:
    """Defaults, then the config file, then explicit overrides."""
    config = HistogramConfig()
    if config_path is not None:
        config.update(load_config_file(config_path))
    if overrides:
        config.update(overrides)
    return config
