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
Command-line interface for TickPing.

This module contains the main entry point and command-line argument handling.
"""

import argparse
import contextlib
import logging
import os
import signal
import sys
from typing import Any, Dict, Iterator, List, Optional

from tickping import __version__
from tickping.cadence import Cadence
from tickping.config import load_config
from tickping.core import DEFAULT_RESULT_FILE, DEFAULT_TARGETS_FILE, default_path, read_target_file
from tickping.errors import ConfigError, TargetListError
from tickping.event_log import EventLog
from tickping.input_keys import KeyWatcher, cbreak_mode
from tickping.models import TargetStats
from tickping.monitor import Monitor
from tickping.prober import Prober
from tickping.render import ConsoleRenderer

logger = logging.getLogger(__name__)


def _configure_logging(log_level: str, log_file: Optional[str]) -> None:
    """Configure logging handlers for CLI execution."""
    handlers: List[logging.Handler] = [logging.StreamHandler()]
    if log_file:
        handlers.insert(0, logging.FileHandler(os.path.expanduser(log_file), encoding="utf-8"))
    logging.basicConfig(
        level=getattr(logging, log_level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        handlers=handlers,
        force=True,
    )


@contextlib.contextmanager
def _quiet_console_logging(level: int = logging.WARNING) -> Iterator[None]:
    """Raise console handlers to ``level`` while the live table is drawn; file handlers keep their level."""
    raised = []
    for handler in logging.getLogger().handlers:
        if type(handler) is logging.StreamHandler and handler.level < level:  # pylint: disable=unidiomatic-typecheck
            raised.append((handler, handler.level))
            handler.setLevel(level)
    try:
        yield
    finally:
        for handler, previous_level in raised:
            handler.setLevel(previous_level)


# Hardcoded defaults for config-overridable fields.
# Applied after config merging for any field still set to None.
_HARDCODED_DEFAULTS: Dict[str, Any] = {
    "period": 2.0,
    "timeout_ms": 1900,
    "render_offset": 0.05,
    "ping_command": "ping",
    "log_level": "INFO",
    "color": False,
}


def _apply_config_to_args(args: argparse.Namespace, config: Dict[str, Any]) -> None:
    """
    Overlay config file values onto a parsed argument namespace.

    Only fields that are still ``None`` (i.e. not explicitly set on the CLI)
    are updated.  Config-supplied ``targets`` are applied only when no target
    file was given on the CLI or in the config.

    Args:
        args: Namespace returned by ``argparse.ArgumentParser.parse_args()``.
        config: Dictionary of values loaded from the config file.
    """
    for key, value in config.items():
        if key == "targets":
            continue
        if hasattr(args, key) and getattr(args, key) is None:
            setattr(args, key, value)
    if config.get("targets") and args.input is None:
        args.targets = config["targets"]


def _is_duration(value: str) -> bool:
    return value.isascii() and value.isdigit()


def _apply_positionals(parser: argparse.ArgumentParser, args: argparse.Namespace) -> None:
    """
    Interpret ``[DURATION] [TARGETS_FILE] [RESULT_FILE]`` positional arguments.

    The first all-digit argument is the duration in seconds; the remaining
    arguments fill the target file and then the result file.
    """
    slots = ["input", "output"]
    duration_seen = False
    for value in args.positional:
        if not duration_seen and _is_duration(value):
            duration_seen = True
            if args.duration is not None:
                parser.error("duration given both as an option and as an argument.")
            args.duration = float(value)
            continue
        if not slots:
            parser.error(f"unexpected argument: {value}")
        slot = slots.pop(0)
        if getattr(args, slot) is not None:
            parser.error(f"{slot} file given both as an option and as an argument.")
        setattr(args, slot, value)


def handle_options(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse and validate command-line arguments."""
    parser = argparse.ArgumentParser(
        description="TickPing - Probe many targets in lockstep and log the ones that go unreachable",
        epilog="Example: tickping 600 ips.txt result.txt  (run for 10 minutes). "
        "Probes start on even-second boundaries and repeat every period.",
    )
    parser.add_argument(
        "positional",
        nargs="*",
        metavar="ARG",
        help="[DURATION] [TARGETS_FILE] [RESULT_FILE] (defaults: unlimited, ./ips.txt, ./result.txt)",
    )
    parser.add_argument(
        "-d",
        "--duration",
        type=float,
        default=None,
        help="Run duration in seconds (default: run until stopped)",
    )
    parser.add_argument(
        "-f",
        "--input",
        type=str,
        default=None,
        help="Target list file, one hostname or address per line (default: ./ips.txt)",
    )
    parser.add_argument(
        "-o",
        "--output",
        type=str,
        default=None,
        help="Result log file for unreachable events and the final state (default: ./result.txt)",
    )
    parser.add_argument(
        "-p",
        "--period",
        type=float,
        default=None,
        help="Seconds between probe cycles (default: 2.0)",
    )
    parser.add_argument(
        "-t",
        "--timeout-ms",
        type=int,
        default=None,
        help="Hard timeout per probe in milliseconds, must be below the period (default: 1900)",
    )
    parser.add_argument(
        "--render-offset",
        type=float,
        default=None,
        help="Seconds after each tick at which the table is redrawn (default: 0.05)",
    )
    parser.add_argument(
        "--ping-command",
        type=str,
        default=None,
        help="Ping binary to invoke (default: ping)",
    )
    parser.add_argument(
        "-C",
        "--color",
        action="store_true",
        default=None,
        help="Enable colored output (red=failed this cycle, yellow=failures seen)",
    )
    parser.add_argument(
        "--log-level",
        type=str.upper,
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level for diagnostic output (default: INFO)",
    )
    parser.add_argument(
        "--log-file",
        type=str,
        default=None,
        help="Optional file for diagnostic logging (separate from the result log)",
    )
    parser.add_argument(
        "--no-config",
        action="store_true",
        default=False,
        help="Skip loading ~/.tickping.conf config file",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    args = parser.parse_args(argv)
    args.targets = None
    _apply_positionals(parser, args)

    # Load and apply config file unless --no-config was given
    if not args.no_config:
        try:
            config = load_config()
            _apply_config_to_args(args, config)
        except ConfigError as exc:
            parser.error(str(exc))

    # Apply hardcoded defaults for any config-overridable field still at None
    for field, default in _HARDCODED_DEFAULTS.items():
        if getattr(args, field, None) is None:
            setattr(args, field, default)
    if args.input is None and not args.targets:
        args.input = default_path(DEFAULT_TARGETS_FILE)
    if args.output is None:
        args.output = default_path(DEFAULT_RESULT_FILE)

    if args.duration is not None and args.duration < 0:
        parser.error("--duration must not be negative.")
    if args.timeout_ms <= 0:
        parser.error("--timeout-ms must be a positive integer.")
    try:
        args.cadence = Cadence(period=args.period, probe_timeout=args.timeout_ms / 1000.0)
    except ConfigError as exc:
        parser.error(str(exc))
    if not 0 <= args.render_offset < args.period:
        parser.error("--render-offset must be between 0 and the period.")
    return args


def _load_targets(args: argparse.Namespace) -> List[str]:
    if args.targets:
        return list(dict.fromkeys(args.targets))
    return read_target_file(args.input)


def print_summary(snapshot: Dict[str, TargetStats], stream=None) -> None:
    """Print the end-of-run summary."""
    if stream is None:
        stream = sys.stdout
    print("\n" + "=" * 60, file=stream)
    print("SUMMARY", file=stream)
    print("=" * 60, file=stream)
    for target, entry in snapshot.items():
        percentage = (entry.successes / entry.attempts * 100) if entry.attempts > 0 else 0
        status = "OK" if entry.successes > 0 else "FAILED"
        print(
            f"{target:30} {entry.successes}/{entry.attempts} replies, {entry.failures} failed "
            f"({percentage:.1f}%) [{status}]",
            file=stream,
        )


def run(args: argparse.Namespace) -> int:
    """Run the TickPing monitor with parsed arguments. Returns the process exit status."""
    _configure_logging(getattr(args, "log_level", "INFO"), getattr(args, "log_file", None))
    try:
        targets = _load_targets(args)
    except TargetListError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    duration_label = "unlimited" if args.duration is None else f"{args.duration:g}s"
    logger.info(
        "TickPing - Probing %d target(s) every %gs with timeout=%dms, duration=%s, results in %s",
        len(targets),
        args.cadence.period,
        args.timeout_ms,
        duration_label,
        args.output,
    )
    monitor = Monitor(
        targets,
        Prober(timeout_ms=args.timeout_ms, ping_command=args.ping_command),
        EventLog(args.output),
        cadence=args.cadence,
        duration=args.duration,
        render_offset=args.render_offset,
        renderer=ConsoleRenderer(),
        use_color=args.color and sys.stdout.isatty(),
    )

    previous_handler = signal.signal(signal.SIGTERM, lambda _signum, _frame: monitor.request_stop("terminated"))
    try:
        with _quiet_console_logging(), cbreak_mode() as keyboard:
            if keyboard:
                KeyWatcher(lambda: monitor.request_stop("quit key"), monitor.stop_event).start()
            snapshot = monitor.run()
    finally:
        signal.signal(signal.SIGTERM, previous_handler)

    print_summary(snapshot)
    if monitor.event_log.write_errors:
        logger.warning("%d write(s) to %s failed.", monitor.event_log.write_errors, args.output)
    return 0


def main() -> None:
    """Main entrypoint for the CLI - parses arguments and runs the application."""
    args = handle_options()
    sys.exit(run(args))
