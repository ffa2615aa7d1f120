# Copyright (c) Meta Platforms, Inc. and affiliates.
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.

import io
import os
import unittest
from unittest import mock

from pyhprof import logger


class TestTraceLogger(unittest.TestCase):
    def setUp(self):
        logger.reset_trace()
        self.addCleanup(logger.reset_trace)
        old_fp = logger.trace_fp
        self.addCleanup(setattr, logger, "trace_fp", old_fp)
        self.out = io.StringIO()
        logger.trace_fp = self.out

    def test_parse_trace_string(self):
        self.assertEqual(logger.parse_trace_string(None), {})
        self.assertEqual(logger.parse_trace_string(""), {})
        self.assertEqual(
            logger.parse_trace_string("HPROF:2,OTHER:5"), {"HPROF": 2, "OTHER": 5}
        )
        self.assertEqual(logger.parse_trace_string("3"), {logger.ALL: 3})

    def test_module_level(self):
        with mock.patch.dict(os.environ, {"TRACE": "HPROF:2"}):
            self.assertEqual(logger.get_log_level(), 2)
            logger.log(2, "record", 7)
            logger.log(3, "hidden")
        self.assertEqual(self.out.getvalue(), "record 7\n")

    def test_all_level(self):
        with mock.patch.dict(os.environ, {"TRACE": "OTHER:9,1"}):
            self.assertEqual(logger.get_log_level(), 1)

    def test_disabled_without_trace(self):
        with mock.patch.dict(os.environ, clear=True):
            self.assertEqual(logger.get_log_level(), 0)
            logger.log(1, "nothing")
        self.assertEqual(self.out.getvalue(), "")

    def test_level_is_cached_until_reset(self):
        with mock.patch.dict(os.environ, {"TRACE": "HPROF:1"}):
            self.assertEqual(logger.get_log_level(), 1)
        with mock.patch.dict(os.environ, {"TRACE": "HPROF:4"}):
            self.assertEqual(logger.get_log_level(), 1)
            logger.reset_trace()
            self.assertEqual(logger.get_log_level(), 4)


if __name__ == "__main__":
    unittest.main()
