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
Data types shared by the probe, aggregation and rendering code.
"""

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class ProbeOutcome:
    """
    Result of one bounded reachability attempt.

    A success may or may not carry a latency sample. Failures never do;
    ``reason`` is free-form diagnostic text and is only used for logging.
    """

    success: bool
    latency_ms: Optional[float] = None
    reason: Optional[str] = None

    @classmethod
    def succeeded(cls, latency_ms: Optional[float] = None) -> "ProbeOutcome":
        if latency_ms is not None and latency_ms < 0:
            raise ValueError("latency_ms must be non-negative.")
        return cls(success=True, latency_ms=latency_ms)

    @classmethod
    def failed(cls, reason: Optional[str] = None) -> "ProbeOutcome":
        return cls(success=False, latency_ms=None, reason=reason)


@dataclass
class TargetStats:
    """Running counters for a single target."""

    attempts: int = 0
    successes: int = 0
    min_latency: Optional[float] = None
    max_latency: Optional[float] = None
    sum_latency: float = 0.0
    latency_samples: int = 0

    @property
    def average_latency(self) -> Optional[float]:
        if self.latency_samples == 0:
            return None
        return self.sum_latency / self.latency_samples

    @property
    def failures(self) -> int:
        return self.attempts - self.successes
