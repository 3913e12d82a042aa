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
Bounded reachability probes for TickPing.

This module runs one external reachability check per call and guarantees a
hard wall-clock ceiling on it. The default mechanism is the system ``ping``
binary with a single-attempt configuration:

  - Windows: ping -n 1 -w <timeout_ms> <target>
  - macOS:   ping -c 1 -W <timeout_ms> <target>
  - Linux:   ping -c 1 -W <timeout_seconds> <target>

Whatever the platform flags promise, the process is killed and reaped once the
ceiling passes. Timeouts, non-zero exits and spawn errors all become a failed
ProbeOutcome; nothing is raised to the caller. Diagnostic output of the check
is captured and discarded so the live table stays clean.

Latency extraction is a pluggable callable (``parse_latency`` by default).
"""

import json
import logging
import math
import subprocess
import sys
import threading
import time
from typing import Any, Callable, Dict, List, Optional, Tuple

from tickping.models import ProbeOutcome

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_MS = 1900
# Reported for replies below the resolution of the ping output (e.g. "time<1ms").
SUB_MILLISECOND_LATENCY_MS = 0.5
LATENCY_PREFIXES = ("time=", "zeit=")

CommandBuilder = Callable[[str, int], List[str]]
LatencyParser = Callable[[str], Optional[float]]
ProbeFunc = Callable[[str], ProbeOutcome]


def build_ping_command(target: str, timeout_ms: int, ping_command: str = "ping", platform: Optional[str] = None) -> List[str]:
    """
    Build a single-attempt ping command line for the current platform.

    Args:
        target: Hostname or address to probe
        timeout_ms: Per-reply wait in milliseconds
        ping_command: Name or path of the ping binary
        platform: Override for ``sys.platform`` (used in tests)

    Returns:
        Argument list suitable for subprocess
    """
    if platform is None:
        platform = sys.platform
    if platform.startswith("win"):
        return [ping_command, "-n", "1", "-w", str(timeout_ms), target]
    if platform == "darwin":
        return [ping_command, "-c", "1", "-W", str(timeout_ms), target]
    # iputils takes whole seconds; the wall-clock kill below enforces the real bound.
    wait_seconds = max(1, math.ceil(timeout_ms / 1000))
    return [ping_command, "-c", "1", "-W", str(wait_seconds), target]


def parse_latency(output: str) -> Optional[float]:
    """
    Extract the round-trip time in milliseconds from ping output.

    Recognizes tokens like ``time=12.3``, ``time=12.3ms``, ``Zeit=4ms`` and
    ``time<1ms``. The first matching token wins.

    Args:
        output: Captured standard output of the ping process

    Returns:
        Latency in milliseconds, or None if no token could be parsed
    """
    for part in output.split():
        lower = part.lower()
        if lower.startswith("time<"):
            return SUB_MILLISECOND_LATENCY_MS
        for prefix in LATENCY_PREFIXES:
            if not lower.startswith(prefix):
                continue
            value = lower[len(prefix) :]
            if value.endswith("ms"):
                value = value[:-2]
            if value.startswith("<"):
                return SUB_MILLISECOND_LATENCY_MS
            try:
                latency = float(value)
            except ValueError:
                continue
            if latency >= 0:
                return latency
    return None


class Prober:
    """
    Probe targets with an external process under a hard timeout.

    Instances are callable, so a Prober can be handed to the workers wherever
    a plain ``probe(target) -> ProbeOutcome`` function is expected.
    """

    def __init__(
        self,
        timeout_ms: int = DEFAULT_TIMEOUT_MS,
        ping_command: str = "ping",
        command_builder: Optional[CommandBuilder] = None,
        parser: LatencyParser = parse_latency,
    ) -> None:
        if timeout_ms <= 0:
            raise ValueError("timeout_ms must be a positive integer in milliseconds.")
        self.timeout_ms = timeout_ms
        self.ping_command = ping_command
        self.command_builder = command_builder
        self.parser = parser

    def build_command(self, target: str) -> List[str]:
        if self.command_builder is not None:
            return self.command_builder(target, self.timeout_ms)
        return build_ping_command(target, self.timeout_ms, self.ping_command)

    def probe(self, target: str) -> ProbeOutcome:
        """
        Run one reachability check against ``target``.

        The call returns within the timeout plus the time needed to kill and
        reap the process, even if the check itself would never finish.
        """
        deadline = time.monotonic() + self.timeout_ms / 1000.0
        cmd_args = self.build_command(target)
        try:
            with subprocess.Popen(
                cmd_args,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.DEVNULL,
                text=True,
                errors="replace",
            ) as proc:
                try:
                    stdout, _ = proc.communicate(timeout=max(0.0, deadline - time.monotonic()))
                except subprocess.TimeoutExpired:
                    proc.kill()
                    proc.wait()
                    return ProbeOutcome.failed(f"timed out after {self.timeout_ms} ms")
        except OSError as e:
            logger.debug("Could not start probe for %s: %s", target, e)
            return ProbeOutcome.failed(f"spawn error: {e}")

        if proc.returncode != 0:
            return ProbeOutcome.failed(f"exit status {proc.returncode}")
        try:
            latency_ms = self.parser(stdout or "")
        except ValueError as e:
            logger.debug("Unparseable probe output for %s: %s", target, e)
            latency_ms = None
        return ProbeOutcome.succeeded(latency_ms)

    __call__ = probe


def _start_call(func: ProbeFunc, target: str) -> Tuple[threading.Thread, Dict[str, Any]]:
    """Run ``func(target)`` on a daemon thread; the result dict is filled when it returns."""
    result: Dict[str, Any] = {}

    def runner() -> None:
        try:
            result["outcome"] = func(target)
        except Exception as e:  # pylint: disable=broad-exception-caught
            result["error"] = e

    thread = threading.Thread(target=runner, name=f"probe-{target}", daemon=True)
    thread.start()
    return thread, result


def _finish_call(thread: threading.Thread, result: Dict[str, Any], target: str, timeout: float) -> ProbeOutcome:
    thread.join(timeout)
    if thread.is_alive():
        return ProbeOutcome.failed(f"timed out after {int(timeout * 1000)} ms")
    if "error" in result:
        logger.warning("Probe for %s raised: %s", target, result["error"])
        return ProbeOutcome.failed(str(result["error"]))
    outcome = result.get("outcome")
    if not isinstance(outcome, ProbeOutcome):
        return ProbeOutcome.failed("probe returned no outcome")
    return outcome


def call_with_deadline(func: ProbeFunc, target: str, timeout: float) -> ProbeOutcome:
    """
    Call an in-process probe function with a hard wall-clock bound.

    The function runs on a daemon thread. If it has not returned when the
    timeout passes the thread is abandoned and the attempt counts as a failure.
    Exceptions raised by the function also count as failures.

    Args:
        func: Callable returning a ProbeOutcome for a target
        target: Target to probe
        timeout: Ceiling in seconds

    Returns:
        The function's outcome, or a failed outcome
    """
    thread, result = _start_call(func, target)
    return _finish_call(thread, result, target, timeout)


class BoundedProbe:
    """
    Wrap a probe function so every call honours ``timeout`` seconds.

    At most one call per target is in flight. While an abandoned call for a
    target is still running, further calls for that target fail at once
    instead of starting another thread.
    """

    def __init__(self, func: ProbeFunc, timeout: float) -> None:
        self.func = func
        self.timeout = timeout
        self._lock = threading.Lock()
        self._in_flight: Dict[str, threading.Thread] = {}

    def __call__(self, target: str) -> ProbeOutcome:
        with self._lock:
            previous = self._in_flight.get(target)
            if previous is not None and previous.is_alive():
                logger.debug("Skipping probe for %s: previous call has not returned", target)
                return ProbeOutcome.failed("previous probe still running")
            thread, result = _start_call(self.func, target)
            self._in_flight[target] = thread
        return _finish_call(thread, result, target, self.timeout)


def main() -> None:
    """
    Command-line interface for a single probe.

    Usage:
        python3 -m tickping.prober <target> [timeout_ms]

    Outputs JSON with the result:
        {"target": "192.0.2.1", "success": true, "latency_ms": 12.3, "reason": null}
    """
    if len(sys.argv) < 2:
        print("Usage: python3 -m tickping.prober <target> [timeout_ms]", file=sys.stderr)
        sys.exit(1)

    target = sys.argv[1]
    timeout_ms = DEFAULT_TIMEOUT_MS
    if len(sys.argv) >= 3:
        try:
            timeout_ms = int(sys.argv[2])
        except ValueError:
            print("Error: timeout_ms must be an integer", file=sys.stderr)
            sys.exit(1)
        if timeout_ms <= 0:
            print("Error: timeout_ms must be a positive integer", file=sys.stderr)
            sys.exit(1)

    outcome = Prober(timeout_ms=timeout_ms).probe(target)
    print(
        json.dumps(
            {
                "target": target,
                "success": outcome.success,
                "latency_ms": outcome.latency_ms,
                "reason": outcome.reason,
            }
        )
    )
    sys.exit(0 if outcome.success else 1)


if __name__ == "__main__":
    main()
