#!/usr/bin/env python3
# Copyright (c) Meta Platforms, Inc. and affiliates.
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.

# pyre-strict

import argparse
import logging
import os
import sys
import typing

from pyhprof.config import ConfigError, HistogramConfig, make_config
from pyhprof.errors import HprofError
from pyhprof.parser import HprofParser, READ_BUFFER_SIZE
from pyhprof.report import write_histogram


GB: float = 1024.0 * 1024.0 * 1024.0


def arg_parser() -> argparse.ArgumentParser:
    description = """
Given an HPROF heap dump, prints a class histogram: instance count and
shallow size per class and array type, largest first.
"""
    parser = argparse.ArgumentParser(
        formatter_class=argparse.RawDescriptionHelpFormatter, description=description
    )
    parser.add_argument("hprof", help="Heap dump to read")

    parser.add_argument(
        "--config",
        type=str,
        help="JSON file with report settings (keys as the options below)",
    )
    parser.add_argument(
        "--top", dest="top_n", type=int, help="Rows in the global table"
    )
    parser.add_argument(
        "--overhead",
        dest="object_overhead",
        type=int,
        help="Bytes added per object and array for the object header",
    )
    parser.add_argument(
        "--app-package",
        type=str,
        help="Name fragment selecting application classes",
    )
    parser.add_argument("--app-limit", type=int, help="Rows in the application table")
    parser.add_argument("--orm-limit", type=int, help="Rows in the ORM table")
    parser.add_argument(
        "--collections-limit", type=int, help="Rows in the collections table"
    )

    parser.add_argument(
        "-q",
        "--quiet",
        action="store_true",
        help="Do not print progress.",
    )
    parser.add_argument(
        "--log-level",
        default="warning",
        choices=["critical", "error", "warn", "warning", "info", "debug"],
        help="Specify the python logging level",
    )
    return parser


def _init_logging(level_str: str) -> None:
    levels = {
        "critical": logging.CRITICAL,
        "error": logging.ERROR,
        "warn": logging.WARNING,
        "warning": logging.WARNING,
        "info": logging.INFO,
        "debug": logging.DEBUG,
    }
    level = levels[level_str]
    logging.basicConfig(
        level=level,
        format="[%(levelname)-8s] %(message)s",
    )


def config_from_args(args: argparse.Namespace) -> HistogramConfig:
    overrides = {
        key: getattr(args, key)
        for key in HistogramConfig.INT_KEYS + HistogramConfig.STR_KEYS
    }
    return make_config(args.config, overrides)


def print_progress(
    bytes_read: int, total_bytes: typing.Optional[int], records: int
) -> None:
    if total_bytes:
        sys.stderr.write(
            "\r  Progress: %.1f%% (%s records)   "
            % (bytes_read * 100.0 / total_bytes, format(records, ","))
        )
    else:
        sys.stderr.write("\r  Progress: %s records   " % format(records, ","))
    sys.stderr.flush()


def run_histogram(
    args: argparse.Namespace, out: typing.Optional[typing.TextIO] = None
) -> None:
    if out is None:
        out = sys.stdout
    config = config_from_args(args)
    logging.debug("Using %s", config)

    file_size = os.path.getsize(args.hprof)
    out.write("Parsing: %s\n" % args.hprof)
    out.write(
        "File size: {:,d} bytes ({:.1f} GB)\n".format(file_size, file_size / GB)
    )

    progress = None if args.quiet else print_progress
    with open(args.hprof, "rb", buffering=READ_BUFFER_SIZE) as instream:
        hprof_parser = HprofParser(instream, config.object_overhead, progress)
        header = hprof_parser.read_header()
        out.write("Format: %s\n" % header.tag)
        out.write("ID size: %d bytes\n" % header.sizeof_id)
        out.flush()

        while hprof_parser.read_record():
            pass
    if progress is not None:
        sys.stderr.write("\n")

    out.write("\nTotal records: {:,d}\n".format(hprof_parser.total_records))
    out.write("Heap segments: %d\n" % hprof_parser.heap_segments)
    out.write("Classes loaded: {:,d}\n".format(hprof_parser.symbols.class_count()))

    write_histogram(out, hprof_parser.histogram(), config)


def main(argv: typing.Optional[typing.List[str]] = None) -> None:
    parser = arg_parser()
    args = parser.parse_args(argv)
    _init_logging(args.log_level)

    try:
        run_histogram(args)
    except ConfigError as e:
        parser.error(str(e))
    except OSError as e:
        logging.error("Cannot read %s: %s", args.hprof, e)
        sys.exit(1)
    except HprofError as e:
        logging.error("Failed to parse %s: %s", args.hprof, e)
        sys.exit(1)


if __name__ == "__main__":
    main()
