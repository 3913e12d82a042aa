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
Probe workers for TickPing.

Each target gets one worker running on its own thread. A worker sleeps until
the next shared tick, probes its target, records the outcome in the shared
aggregate and re-arms for the following tick. Workers never wait on each
other; a slow or hanging target only ever delays its own worker, and the
probe bound keeps even that delay below one period.
"""

import enum
import logging
import threading
import time
from typing import Callable, Optional

from tickping.cadence import Cadence, Ticker
from tickping.models import ProbeOutcome
from tickping.stats import StatsAggregate

logger = logging.getLogger(__name__)


class WorkerState(enum.Enum):
    """Lifecycle of a probe worker."""

    WAITING_FOR_TICK = "waiting"
    PROBING = "probing"
    RECORDING = "recording"
    STOPPED = "stopped"


def wait_until(
    when: float,
    stop_event: threading.Event,
    deadline: Optional[float] = None,
    clock: Callable[[], float] = time.monotonic,
) -> bool:
    """
    Sleep until ``when`` on ``clock`` unless told to stop.

    Args:
        when: Target time on ``clock``
        stop_event: Event that interrupts the wait when set
        deadline: Optional end of the run on ``clock``; a wait reaching it
            sleeps only up to the deadline and then reports a stop
        clock: Monotonic clock function

    Returns:
        True if ``when`` was reached and the caller should continue,
        False if the caller should stop
    """
    if deadline is not None and when >= deadline:
        remaining = deadline - clock()
        if remaining > 0:
            stop_event.wait(remaining)
        return False
    remaining = Cadence.sleep_interval(when, clock())
    if remaining > 0 and stop_event.wait(remaining):
        return False
    if deadline is not None and clock() >= deadline:
        return False
    return not stop_event.is_set()


class ProbeWorker:
    """
    Tick-driven probe loop for a single target.

    States cycle WAITING_FOR_TICK -> PROBING -> RECORDING -> WAITING_FOR_TICK
    and end in STOPPED once the stop event is set or the run deadline is
    reached.
    """

    def __init__(
        self,
        target: str,
        probe: Callable[[str], ProbeOutcome],
        aggregate: StatsAggregate,
        ticker: Ticker,
        stop_event: threading.Event,
        deadline: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """
        Initialize the worker.

        Args:
            target: Target identifier owned by this worker
            probe: Bounded probe function
            aggregate: Shared statistics the outcome is recorded into
            ticker: Cursor over the shared cadence, anchored on the monotonic clock
            stop_event: Shared shutdown signal
            deadline: Optional end of the run on ``clock``
            clock: Monotonic clock function
        """
        self.target = target
        self.probe = probe
        self.aggregate = aggregate
        self.ticker = ticker
        self.stop_event = stop_event
        self.deadline = deadline
        self.clock = clock
        self.state = WorkerState.WAITING_FOR_TICK
        self.cycles = 0
        self.thread: Optional[threading.Thread] = None

    def start(self) -> threading.Thread:
        """Start the worker on a daemon thread and return the thread."""
        self.thread = threading.Thread(target=self.run, name=f"tickping-{self.target}", daemon=True)
        self.thread.start()
        return self.thread

    def join(self, timeout: Optional[float] = None) -> None:
        if self.thread is not None:
            self.thread.join(timeout)

    def run_once(self) -> ProbeOutcome:
        """Probe the target once and record the outcome."""
        self.state = WorkerState.PROBING
        try:
            outcome = self.probe(self.target)
        except Exception as e:  # pylint: disable=broad-exception-caught
            logger.warning("Error probing %s: %s", self.target, e)
            outcome = ProbeOutcome.failed(str(e))
        self.state = WorkerState.RECORDING
        self.aggregate.record(self.target, outcome)
        self.cycles += 1
        if not outcome.success:
            logger.debug("No reply from %s (cycle %d): %s", self.target, self.cycles, outcome.reason)
        self.state = WorkerState.WAITING_FOR_TICK
        return outcome

    def run(self) -> None:
        """Loop until stopped. Intended as a thread target."""
        try:
            while not self.stop_event.is_set():
                self.state = WorkerState.WAITING_FOR_TICK
                tick = self.ticker.next_tick(self.clock())
                if not wait_until(tick, self.stop_event, self.deadline, self.clock):
                    break
                self.run_once()
        finally:
            self.state = WorkerState.STOPPED
