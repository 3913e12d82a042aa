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
Unit tests for tickping.cadence module.

This module tests tick alignment, fixed spacing and the timeout/period
configuration invariant.
"""

import os
import sys
import unittest
from datetime import datetime, timezone

# Add parent directory to path to import tickping
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "../..")))

from tickping.cadence import Cadence, Ticker  # noqa: E402  # pylint: disable=wrong-import-position
from tickping.errors import ConfigError  # noqa: E402  # pylint: disable=wrong-import-position


class TestCadenceInstantiation(unittest.TestCase):
    """Test cases for Cadence construction"""

    def test_default_instantiation(self):
        """Default cadence is a 2 second period with a 1.9 second probe ceiling"""
        cadence = Cadence()
        self.assertEqual(cadence.period, 2.0)
        self.assertEqual(cadence.probe_timeout, 1.9)

    def test_timeout_equal_to_period_rejected(self):
        """A probe timeout equal to the period would let cycles overlap"""
        with self.assertRaises(ConfigError):
            Cadence(period=2.0, probe_timeout=2.0)

    def test_timeout_above_period_rejected(self):
        """A probe timeout above the period is rejected"""
        with self.assertRaises(ConfigError) as context:
            Cadence(period=1.0, probe_timeout=1.5)
        self.assertIn("below the period", str(context.exception))

    def test_non_positive_values_rejected(self):
        """Zero or negative period and timeout are rejected"""
        with self.assertRaises(ConfigError):
            Cadence(period=0.0, probe_timeout=0.1)
        with self.assertRaises(ConfigError):
            Cadence(period=2.0, probe_timeout=0.0)

    def test_config_error_is_value_error(self):
        """ConfigError can be caught as ValueError"""
        with self.assertRaises(ValueError):
            Cadence(period=-1.0)


class TestFirstTick(unittest.TestCase):
    """Test cases for the aligned first tick"""

    def test_odd_second_with_fraction_rounds_up_to_next_even(self):
        """12:00:03.5 aligns to 12:00:04.000"""
        start = datetime(2026, 10, 18, 12, 0, 3, 500000, tzinfo=timezone.utc).timestamp()
        tick = Cadence().first_tick(start)
        aligned = datetime.fromtimestamp(tick, timezone.utc)
        self.assertEqual(aligned.second, 4)
        self.assertEqual(aligned.microsecond, 0)
        self.assertEqual(aligned.minute, 0)

    def test_even_second_with_fraction_moves_to_following_even(self):
        """12:00:04.25 aligns to 12:00:06"""
        start = datetime(2026, 10, 18, 12, 0, 4, 250000, tzinfo=timezone.utc).timestamp()
        aligned = datetime.fromtimestamp(Cadence().first_tick(start), timezone.utc)
        self.assertEqual(aligned.second, 6)
        self.assertEqual(aligned.microsecond, 0)

    def test_exact_even_second_moves_forward(self):
        """A start exactly on an even second still waits for the next one"""
        self.assertEqual(Cadence().first_tick(1000.0), 1002.0)

    def test_independent_of_sub_second_fraction(self):
        """Every start within the same odd second yields the same tick"""
        cadence = Cadence()
        for start in (1001.0, 1001.001, 1001.5, 1001.999):
            self.assertEqual(cadence.first_tick(start), 1002.0)

    def test_minute_rollover(self):
        """12:00:59.9 aligns to 12:01:00"""
        start = datetime(2026, 10, 18, 12, 0, 59, 900000, tzinfo=timezone.utc).timestamp()
        aligned = datetime.fromtimestamp(Cadence().first_tick(start), timezone.utc)
        self.assertEqual((aligned.minute, aligned.second), (1, 0))

    def test_first_tick_is_in_the_future(self):
        """The first tick is always strictly after the start time"""
        cadence = Cadence(period=0.2, probe_timeout=0.1)
        for start in (10.0, 10.05, 10.19, 10.2):
            self.assertGreater(cadence.first_tick(start), start)


class TestTicker(unittest.TestCase):
    """Test cases for the per-consumer tick cursor"""

    def test_anchor_is_first_tick(self):
        """With a shared anchor the first tick is the anchor itself"""
        ticker = Ticker(Cadence(), anchor=1002.0)
        self.assertEqual(ticker.next_tick(1000.3), 1002.0)

    def test_consecutive_ticks_are_exactly_one_period_apart(self):
        """Processing jitter between calls does not change tick spacing"""
        ticker = Ticker(Cadence(), anchor=1002.0)
        ticks = [ticker.next_tick(now) for now in (1001.0, 1003.9, 1004.0, 1010.0, 1008.5)]
        self.assertEqual(ticks, [1002.0, 1004.0, 1006.0, 1008.0, 1010.0])
        spacings = [later - earlier for earlier, later in zip(ticks, ticks[1:])]
        self.assertEqual(spacings, [2.0, 2.0, 2.0, 2.0])

    def test_aligns_on_first_call_without_anchor(self):
        """Without an anchor the first call aligns from the current time"""
        ticker = Ticker(Cadence())
        self.assertEqual(ticker.next_tick(1001.3), 1002.0)
        self.assertEqual(ticker.next_tick(1001.3), 1004.0)
        self.assertEqual(ticker.anchor, 1002.0)

    def test_ticks_do_not_accumulate_error(self):
        """The thousandth tick equals anchor + 999 periods"""
        cadence = Cadence(period=0.2, probe_timeout=0.1)
        ticker = Ticker(cadence, anchor=50.0)
        tick = None
        for _ in range(1000):
            tick = ticker.next_tick()
        self.assertEqual(tick, 50.0 + 999 * 0.2)

    def test_offset_is_added_to_every_tick(self):
        """The render loop uses an offset after each tick"""
        ticker = Ticker(Cadence(), anchor=10.0, offset=0.05)
        self.assertAlmostEqual(ticker.next_tick(), 10.05)
        self.assertAlmostEqual(ticker.next_tick(), 12.05)

    def test_peek(self):
        """peek returns the most recent tick without advancing"""
        ticker = Ticker(Cadence(), anchor=10.0)
        self.assertIsNone(ticker.peek())
        ticker.next_tick()
        ticker.next_tick()
        self.assertEqual(ticker.peek(), 12.0)
        self.assertEqual(ticker.peek(), 12.0)

    def test_independent_tickers_share_phase(self):
        """Tickers on the same anchor produce the same ticks"""
        cadence = Cadence()
        first = Ticker(cadence, anchor=100.0)
        second = Ticker(cadence, anchor=100.0)
        self.assertEqual([first.next_tick() for _ in range(3)], [second.next_tick() for _ in range(3)])


class TestSleepInterval(unittest.TestCase):
    """Test cases for the sleep-until computation"""

    def test_future_tick(self):
        """Sleep interval is the time left until the tick"""
        self.assertAlmostEqual(Cadence.sleep_interval(12.0, 10.5), 1.5)

    def test_past_tick_is_not_positive(self):
        """A tick already in the past yields a non-positive interval"""
        self.assertLessEqual(Cadence.sleep_interval(12.0, 12.0), 0)
        self.assertLess(Cadence.sleep_interval(12.0, 12.7), 0)

    def test_to_monotonic(self):
        """Wall-clock ticks are translated by the current clock difference"""
        cadence = Cadence()
        self.assertAlmostEqual(cadence.to_monotonic(1002.0, wall_now=1001.25, mono_now=50.0), 50.75)


if __name__ == "__main__":
    unittest.main()
