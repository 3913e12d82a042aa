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
Cadence module for TickPing.

Every probe worker and the render loop derive their wake-up times from the
same formula instead of talking to a central dispatcher. The first tick is
aligned to the next multiple of the period on the wall clock (the next even
second for the default 2 second period) and every later tick is exactly one
period after the previous one. Callers recompute ``tick - now`` each cycle
rather than sleeping a fixed period, so probe execution time never accumulates
into drift.
"""

import math
import time
from typing import Optional

from tickping.errors import ConfigError

DEFAULT_PERIOD_SECONDS = 2.0
DEFAULT_PROBE_TIMEOUT_SECONDS = 1.9


class Cadence:
    """
    Shared tick formula.

    The probe timeout is part of the cadence because the two are coupled: a
    probe must always finish before the next tick of the same target.
    """

    def __init__(
        self,
        period: float = DEFAULT_PERIOD_SECONDS,
        probe_timeout: float = DEFAULT_PROBE_TIMEOUT_SECONDS,
    ) -> None:
        """
        Initialize the Cadence.

        Args:
            period: Seconds between consecutive ticks (default: 2.0)
            probe_timeout: Hard ceiling in seconds for one probe (default: 1.9)

        Raises:
            ConfigError: If period or timeout is not positive, or if the
                timeout is not strictly below the period
        """
        if period <= 0:
            raise ConfigError("period must be a positive number of seconds.")
        if probe_timeout <= 0:
            raise ConfigError("probe timeout must be a positive number of seconds.")
        if probe_timeout >= period:
            raise ConfigError(
                f"probe timeout ({probe_timeout:.3f}s) must be below the period ({period:.3f}s) "
                "so that cycles never overlap."
            )
        self.period = period
        self.probe_timeout = probe_timeout

    def first_tick(self, now: float) -> float:
        """
        Compute the first aligned tick strictly after ``now``.

        Args:
            now: Wall-clock time in seconds since the epoch

        Returns:
            The next multiple of the period, e.g. the next even second
        """
        return (math.floor(now / self.period) + 1) * self.period

    def tick_at(self, anchor: float, index: int) -> float:
        """Return the tick ``index`` periods after ``anchor``."""
        return anchor + index * self.period

    def to_monotonic(self, wall_tick: float, wall_now: Optional[float] = None, mono_now: Optional[float] = None) -> float:
        """
        Translate a wall-clock tick into the monotonic clock used for sleeping.

        Note: This conversion is done once per run. Wall-clock adjustments
        after startup move the ticks relative to the wall clock, not relative
        to each other.
        """
        if wall_now is None:
            wall_now = time.time()
        if mono_now is None:
            mono_now = time.monotonic()
        return mono_now + (wall_tick - wall_now)

    @staticmethod
    def sleep_interval(tick: float, now: float) -> float:
        """
        Return how long to sleep until ``tick``.

        Zero or negative means the tick has already passed and the cycle
        should run immediately.
        """
        return tick - now


class Ticker:
    """
    Per-consumer cursor over the shared cadence.

    Each worker and the render loop own one Ticker. Ticks are computed as
    ``anchor + n * period`` so repeated calls never accumulate floating point
    error.
    """

    def __init__(self, cadence: Cadence, anchor: Optional[float] = None, offset: float = 0.0) -> None:
        self.cadence = cadence
        self.anchor = anchor
        self.offset = offset
        self.index = -1

    def next_tick(self, current_time: Optional[float] = None) -> float:
        """
        Advance to the next tick.

        On the first call the tick is the shared anchor, or the aligned tick
        after ``current_time`` when no anchor was given. Later calls return
        the previous tick plus exactly one period; ``current_time`` is then
        ignored so processing jitter cannot shift the schedule.
        """
        if self.anchor is None:
            if current_time is None:
                current_time = time.time()
            self.anchor = self.cadence.first_tick(current_time)
        self.index += 1
        return self.cadence.tick_at(self.anchor, self.index) + self.offset

    def peek(self) -> Optional[float]:
        """Return the most recent tick, or None before the first call."""
        if self.anchor is None or self.index < 0:
            return None
        return self.cadence.tick_at(self.anchor, self.index) + self.offset
