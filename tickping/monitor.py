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
# Review for correctness and security.

"""
Render/log loop and run orchestration for TickPing.

The Monitor anchors the shared cadence, starts one ProbeWorker per target and
then runs the render loop on the calling thread. The render loop wakes a
small offset after every tick, takes a snapshot of the aggregate, redraws the
console, and logs the targets that failed since the previous render. On
shutdown it joins the workers, runs one final render cycle and writes the
terminal state to the result log.
"""

import logging
import threading
import time
from typing import Callable, Dict, List, Optional, Sequence

from tickping.cadence import Cadence, Ticker
from tickping.errors import ConfigError
from tickping.event_log import EventLog
from tickping.models import ProbeOutcome, TargetStats
from tickping.prober import BoundedProbe, Prober
from tickping.render import (
    ConsoleRenderer,
    build_status_line,
    build_table_lines,
    colorize_table_lines,
    format_timestamp,
)
from tickping.stats import CycleTracker, StatsAggregate
from tickping.worker import ProbeWorker, wait_until

logger = logging.getLogger(__name__)

DEFAULT_RENDER_OFFSET_SECONDS = 0.05
# Extra time allowed for a killed probe process to be reaped during shutdown.
SHUTDOWN_GRACE_SECONDS = 0.5


class Monitor:
    """Run probe workers and the render/log loop for a fixed set of targets."""

    def __init__(
        self,
        targets: Sequence[str],
        probe: Callable[[str], ProbeOutcome],
        event_log: EventLog,
        cadence: Optional[Cadence] = None,
        duration: Optional[float] = None,
        render_offset: float = DEFAULT_RENDER_OFFSET_SECONDS,
        renderer: Optional[ConsoleRenderer] = None,
        use_color: bool = False,
        clock: Callable[[], float] = time.monotonic,
        wall_clock: Callable[[], float] = time.time,
    ) -> None:
        """
        Initialize the Monitor.

        Args:
            targets: Target identifiers, one worker each
            probe: Probe function; anything other than a Prober or BoundedProbe
                is wrapped so every call honours the cadence's probe timeout
            event_log: Result log for unreachable lines and the terminal state
            cadence: Shared tick formula (default: 2 s period, 1.9 s timeout)
            duration: Optional run duration in seconds, counted from the first tick
            render_offset: Seconds after each tick at which the render loop wakes
            renderer: Console renderer, or None to skip drawing
            use_color: Colour failing rows when drawing
            clock: Monotonic clock used for all sleeping
            wall_clock: Wall clock used only to align the first tick

        Raises:
            ConfigError: If a Prober or BoundedProbe timeout is not below the period
        """
        if not targets:
            raise ValueError("at least one target is required.")
        if duration is not None and duration < 0:
            raise ValueError("duration must not be negative.")
        self.cadence = cadence if cadence is not None else Cadence()
        if not 0 <= render_offset < self.cadence.period:
            raise ValueError("render_offset must be between 0 and the period.")
        self.targets = list(dict.fromkeys(targets))
        if isinstance(probe, (Prober, BoundedProbe)):
            probe_timeout = probe.timeout_ms / 1000.0 if isinstance(probe, Prober) else probe.timeout
            if probe_timeout >= self.cadence.period:
                raise ConfigError(
                    f"probe timeout ({probe_timeout:.3f}s) must be below the period ({self.cadence.period:.3f}s) "
                    "so that cycles never overlap."
                )
            self.probe = probe
        else:
            self.probe = BoundedProbe(probe, self.cadence.probe_timeout)
        self.event_log = event_log
        self.duration = duration
        self.render_offset = render_offset
        self.renderer = renderer
        self.use_color = use_color
        self.clock = clock
        self.wall_clock = wall_clock

        self.aggregate = StatsAggregate(self.targets)
        self.cycle_tracker = CycleTracker()
        self.stop_event = threading.Event()
        self.workers: List[ProbeWorker] = []
        self.anchor: Optional[float] = None
        self.deadline: Optional[float] = None
        self.cycles_rendered = 0
        self.last_table_lines: List[str] = []
        self.stop_reason: Optional[str] = None

    def request_stop(self, reason: str = "stop requested") -> None:
        """Ask every worker and the render loop to stop. Safe to call from any thread or a signal handler."""
        if self.stop_reason is None:
            self.stop_reason = reason
        self.stop_event.set()

    def start(self) -> None:
        """Anchor the cadence and start one worker thread per target."""
        wall_now = self.wall_clock()
        mono_now = self.clock()
        first_tick = self.cadence.first_tick(wall_now)
        self.anchor = self.cadence.to_monotonic(first_tick, wall_now, mono_now)
        if self.duration is not None:
            self.deadline = self.anchor + self.duration
        logger.debug("First tick in %.3fs for %d target(s)", self.anchor - mono_now, len(self.targets))
        for target in self.targets:
            worker = ProbeWorker(
                target,
                self.probe,
                self.aggregate,
                Ticker(self.cadence, anchor=self.anchor),
                self.stop_event,
                deadline=self.deadline,
                clock=self.clock,
            )
            worker.start()
            self.workers.append(worker)

    def render_cycle(self, final: bool = False) -> List[str]:
        """
        Snapshot, draw and log one cycle.

        Returns:
            Targets that failed since the previous cycle
        """
        snapshot = self.aggregate.snapshot()
        unreachable = self.cycle_tracker.unreachable_since_last(snapshot)
        table_lines = build_table_lines(snapshot)
        self.last_table_lines = table_lines
        if self.renderer is not None:
            remaining = None if self.deadline is None else max(0.0, self.deadline - self.clock())
            status_line = build_status_line(format_timestamp(), self.cycles_rendered, remaining, len(unreachable), final)
            self.renderer.draw([*colorize_table_lines(table_lines, snapshot, unreachable, self.use_color), "", status_line])
        self.event_log.log_unreachable(unreachable)
        return unreachable

    def run(self) -> Dict[str, TargetStats]:
        """
        Run until the duration elapses or a stop is requested.

        Returns:
            Final snapshot of the statistics
        """
        self.start()
        ticker = Ticker(self.cadence, anchor=self.anchor, offset=self.render_offset)
        try:
            self.render_cycle()
            while not self.stop_event.is_set():
                tick = ticker.next_tick()
                if not wait_until(tick, self.stop_event, self.deadline, self.clock):
                    if not self.stop_event.is_set():
                        self.request_stop("duration elapsed")
                    break
                self.cycles_rendered += 1
                self.render_cycle()
        except KeyboardInterrupt:
            self.request_stop("interrupted")
        finally:
            self.shutdown()
        return self.aggregate.snapshot()

    def shutdown(self) -> None:
        """Stop workers, run the final render cycle and write the terminal state."""
        self.request_stop()
        join_deadline = self.clock() + self.cadence.probe_timeout + SHUTDOWN_GRACE_SECONDS
        for worker in self.workers:
            worker.join(max(0.0, join_deadline - self.clock()))
        still_running = [worker.target for worker in self.workers if worker.thread is not None and worker.thread.is_alive()]
        if still_running:
            logger.warning("Workers still running at shutdown: %s", ", ".join(still_running))
        self.render_cycle(final=True)
        self.event_log.log_final_state(self.last_table_lines)
        if self.renderer is not None:
            self.renderer.finish()
        logger.debug("Monitor stopped: %s", self.stop_reason)
