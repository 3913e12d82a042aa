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
Statistics aggregation for TickPing.

This module holds the shared per-target counters, the per-cycle failure
detection used for the result log, and helpers that turn counters into
display values.
"""

import dataclasses
import threading
from typing import Dict, Iterable, List, Optional, Tuple

from tickping.models import ProbeOutcome, TargetStats


class StatsAggregate:
    """
    Mapping from target to running counters, shared by all threads.

    The key set is fixed at construction. ``record`` and ``snapshot`` are the
    only ways in, and both hold the same lock, so a snapshot never observes a
    half-applied update.
    """

    def __init__(self, targets: Iterable[str]) -> None:
        self._lock = threading.Lock()
        self._stats: Dict[str, TargetStats] = {target: TargetStats() for target in targets}

    @property
    def targets(self) -> List[str]:
        return list(self._stats)

    def __len__(self) -> int:
        return len(self._stats)

    def __contains__(self, target: object) -> bool:
        return target in self._stats

    def record(self, target: str, outcome: ProbeOutcome) -> None:
        """
        Fold one probe outcome into the counters of ``target``.

        Args:
            target: A target from the startup list
            outcome: Result of the probe

        Raises:
            KeyError: If ``target`` was not part of the startup list
        """
        with self._lock:
            entry = self._stats[target]
            entry.attempts += 1
            if not outcome.success:
                return
            entry.successes += 1
            latency = outcome.latency_ms
            if latency is None:
                return
            entry.min_latency = latency if entry.min_latency is None else min(entry.min_latency, latency)
            entry.max_latency = latency if entry.max_latency is None else max(entry.max_latency, latency)
            entry.sum_latency += latency
            entry.latency_samples += 1

    def snapshot(self) -> Dict[str, TargetStats]:
        """Return copies of all counters taken at a single instant, in target order."""
        with self._lock:
            return {target: dataclasses.replace(entry) for target, entry in self._stats.items()}

    def get(self, target: str) -> TargetStats:
        """Return a copy of the counters for one target."""
        with self._lock:
            return dataclasses.replace(self._stats[target])


class CycleTracker:
    """
    Detect targets that failed during the last render cycle.

    A target is unreachable for a cycle when its attempt count grew since the
    previous snapshot while its success count did not. Targets whose probe has
    not landed yet are left for the next cycle.
    """

    def __init__(self) -> None:
        self._previous: Dict[str, Tuple[int, int]] = {}

    def unreachable_since_last(self, snapshot: Dict[str, TargetStats]) -> List[str]:
        """
        Compare ``snapshot`` against the previous one and remember it.

        Returns:
            Targets that only failed since the previous call, in snapshot order
        """
        unreachable = []
        for target, entry in snapshot.items():
            prev_attempts, prev_successes = self._previous.get(target, (0, 0))
            new_attempts = max(0, entry.attempts - prev_attempts)
            new_successes = max(0, entry.successes - prev_successes)
            if new_attempts > 0 and new_successes == 0:
                unreachable.append(target)
            self._previous[target] = (entry.attempts, entry.successes)
        return unreachable


def format_latency(value: Optional[float]) -> str:
    """Format a latency value in ms with two decimals, or '-' when absent."""
    if value is None:
        return "-"
    return f"{value:.2f}"


def build_counts_label(entry: TargetStats) -> str:
    """
    Build the successes/attempts label.

    Args:
        entry: Counters for one target

    Returns:
        String label like "3/5"
    """
    return f"{entry.successes}/{entry.attempts}"


def classify_health(entry: TargetStats, failed_last_cycle: bool) -> Optional[str]:
    """
    Classify a target for colouring.

    Returns:
        'fail' when the latest cycle failed, 'degraded' when failures exist in
        the history, 'success' when every attempt succeeded, or None before the
        first attempt
    """
    if entry.attempts == 0:
        return None
    if failed_last_cycle:
        return "fail"
    if entry.failures > 0:
        return "degraded"
    return "success"


def compute_totals(snapshot: Dict[str, TargetStats]) -> Dict[str, int]:
    """Sum attempts and successes over all targets."""
    attempts = sum(entry.attempts for entry in snapshot.values())
    successes = sum(entry.successes for entry in snapshot.values())
    return {"targets": len(snapshot), "attempts": attempts, "successes": successes, "failures": attempts - successes}
