#!/usr/bin/env python3
# Copyright 2025 icecake0141
# SPDX-License-Identifier: Apache-2.0
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# This file was created or modified with the assistance of an AI (Large Language Model).
# Review required for correctness, security, and licensing.

"""
Unit tests for table building and console drawing.
"""

import io
import os
import sys
import unittest
from datetime import datetime
from unittest.mock import patch

# Add parent directory to path to import tickping
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "../..")))

from tickping.models import TargetStats  # noqa: E402  # pylint: disable=wrong-import-position
from tickping.render import (  # noqa: E402  # pylint: disable=wrong-import-position
    ConsoleRenderer,
    build_status_line,
    build_table_lines,
    colorize_table_lines,
    format_remaining,
    format_timestamp,
    strip_ansi,
    truncate_visible,
    visible_len,
)


def sample_snapshot():
    return {
        "10.0.0.1": TargetStats(attempts=3, successes=3, min_latency=5.0, max_latency=5.0, sum_latency=15.0, latency_samples=3),
        "db01": TargetStats(attempts=3, successes=0),
        "10.0.0.3": TargetStats(attempts=3, successes=2, min_latency=1.0, max_latency=3.0, sum_latency=4.0, latency_samples=2),
    }


class TestBuildTableLines(unittest.TestCase):
    """Test table layout"""

    def test_header_and_one_row_per_target(self):
        lines = build_table_lines(sample_snapshot())
        self.assertEqual(len(lines), 4)
        self.assertTrue(lines[0].startswith("Target"))
        self.assertIn("Success/Total", lines[0])
        self.assertEqual([line.split()[0] for line in lines[1:]], ["10.0.0.1", "db01", "10.0.0.3"])

    def test_row_values(self):
        lines = build_table_lines(sample_snapshot())
        self.assertEqual(lines[1].split(), ["10.0.0.1", "3/3", "5.00", "5.00", "5.00"])
        self.assertEqual(lines[3].split(), ["10.0.0.3", "2/3", "1.00", "2.00", "3.00"])

    def test_no_samples_show_dash(self):
        lines = build_table_lines(sample_snapshot())
        self.assertEqual(lines[2].split(), ["db01", "0/3", "-", "-", "-"])

    def test_columns_align(self):
        lines = build_table_lines(sample_snapshot())
        self.assertEqual(len({len(line) for line in lines}), 1)


class TestColorize(unittest.TestCase):
    """Test row colouring"""

    def test_no_color_returns_plain_lines(self):
        lines = build_table_lines(sample_snapshot())
        self.assertEqual(colorize_table_lines(lines, sample_snapshot(), ["db01"], False), lines)

    def test_failed_row_is_red_and_degraded_row_is_yellow(self):
        snapshot = sample_snapshot()
        lines = build_table_lines(snapshot)
        colored = colorize_table_lines(lines, snapshot, ["db01"], True)
        self.assertEqual(colored[0], lines[0])
        self.assertEqual(colored[1], lines[1])
        self.assertTrue(colored[2].startswith("\x1b[31m"))
        self.assertTrue(colored[3].startswith("\x1b[33m"))
        self.assertEqual([strip_ansi(line) for line in colored], lines)


class TestAnsiHelpers(unittest.TestCase):
    """Test ANSI-aware text helpers"""

    def test_visible_len(self):
        self.assertEqual(visible_len("\x1b[31mabc\x1b[0m"), 3)

    def test_truncate_keeps_reset(self):
        truncated, count = truncate_visible("\x1b[31mabcdef\x1b[0m", 3)
        self.assertEqual(count, 3)
        self.assertEqual(strip_ansi(truncated), "abc")
        self.assertTrue(truncated.endswith("\x1b[0m"))


class TestStatusLine(unittest.TestCase):
    """Test the status line below the table"""

    def test_live(self):
        line = build_status_line("2026-10-18 12:00:02", 4, 65.0, 2)
        self.assertEqual(line, "2026-10-18 12:00:02 [LIVE] | Cycle: 4 | Unreachable: 2 | Remaining: 1:05 | q: quit")

    def test_final_unlimited(self):
        line = build_status_line("2026-10-18 12:00:02", 9, None, 0, final=True)
        self.assertIn("[FINAL]", line)
        self.assertIn("Remaining: unlimited", line)
        self.assertNotIn("q: quit", line)

    def test_format_remaining(self):
        self.assertEqual(format_remaining(None), "unlimited")
        self.assertEqual(format_remaining(0), "0:00")
        self.assertEqual(format_remaining(599.6), "10:00")
        self.assertEqual(format_remaining(-3), "0:00")


class TestConsoleRenderer(unittest.TestCase):
    """Test in-place redraw"""

    def setUp(self):
        self.stream = io.StringIO()
        self.renderer = ConsoleRenderer(stream=self.stream, truncate=False)

    def test_first_draw_clears_screen(self):
        self.renderer.draw(["a", "b"])
        output = self.stream.getvalue()
        self.assertTrue(output.startswith("\x1b[2J\x1b[H"))
        self.assertIn("\x1b[1;1H\x1b[2Ka", output)
        self.assertIn("\x1b[2;1H\x1b[2Kb", output)

    def test_second_draw_only_rewrites_changed_lines(self):
        self.renderer.draw(["a", "b", "c"])
        self.stream.seek(0)
        self.stream.truncate()
        self.renderer.draw(["a", "B", "c"])
        self.assertEqual(self.stream.getvalue(), "\x1b[2;1H\x1b[2KB")

    def test_identical_frame_writes_nothing(self):
        self.renderer.draw(["a"])
        self.stream.seek(0)
        self.stream.truncate()
        self.renderer.draw(["a"])
        self.assertEqual(self.stream.getvalue(), "")

    def test_shorter_frame_clears_leftover_lines(self):
        self.renderer.draw(["a", "b"])
        self.stream.seek(0)
        self.stream.truncate()
        self.renderer.draw(["a"])
        self.assertEqual(self.stream.getvalue(), "\x1b[2;1H\x1b[2K")

    def test_finish_moves_cursor_below_frame(self):
        self.renderer.draw(["a", "b"])
        self.renderer.finish()
        self.assertTrue(self.stream.getvalue().endswith("\x1b[3;1H\n"))

    def test_finish_without_draw_is_noop(self):
        self.renderer.finish()
        self.assertEqual(self.stream.getvalue(), "")

    @patch("tickping.render.get_terminal_size", return_value=os.terminal_size((5, 24)))
    def test_truncates_to_terminal_width(self, _mock_size):
        renderer = ConsoleRenderer(stream=self.stream)
        renderer.draw(["0123456789"])
        self.assertIn("\x1b[2K01234", self.stream.getvalue())
        self.assertNotIn("012345", self.stream.getvalue())


class TestFormatTimestamp(unittest.TestCase):
    def test_format(self):
        self.assertEqual(format_timestamp(datetime(2026, 10, 18, 9, 5, 3)), "2026-10-18 09:05:03")


if __name__ == "__main__":
    unittest.main()
