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
TickPing UI Rendering Module

This module builds the statistics table and draws it in place on the
terminal. Table lines are plain text so the same lines can be written to the
result log as the terminal state; colour is applied only when drawing.
"""

import os
import re
import sys
from datetime import datetime
from typing import Dict, List, Optional, Sequence, TextIO, Tuple

from tickping.models import TargetStats
from tickping.stats import build_counts_label, classify_health, format_latency

ANSI_RESET = "\x1b[0m"
ANSI_ESCAPE_RE = re.compile(r"\x1b\[[0-9;]*m")
STATUS_COLORS = {
    "success": "",
    "degraded": "\x1b[33m",  # Yellow
    "fail": "\x1b[31m",  # Red
}
TARGET_COLUMN_WIDTH = 20
COUNTS_COLUMN_WIDTH = 16
LATENCY_COLUMN_WIDTH = 10
TABLE_HEADER = ("Target", "Success/Total", "min (ms)", "avg (ms)", "max (ms)")


# ============================================================================
# ANSI/Text Utility Functions
# ============================================================================


def strip_ansi(text: str) -> str:
    """Remove ANSI escape sequences from text."""
    return ANSI_ESCAPE_RE.sub("", text)


def visible_len(text: str) -> int:
    """Get the visible length of text (excluding ANSI codes)."""
    return len(strip_ansi(text))


def truncate_visible(text: str, width: int) -> Tuple[str, int]:
    """
    Truncate text to a visible width, preserving ANSI codes.

    Returns:
        Tuple of (truncated_text, visible_count)
    """
    result = []
    visible_count = 0
    index = 0
    while index < len(text) and visible_count < width:
        if text[index] == "\x1b":
            match = ANSI_ESCAPE_RE.match(text, index)
            if match:
                result.append(match.group(0))
                index = match.end()
                continue
        result.append(text[index])
        index += 1
        visible_count += 1
    truncated = "".join(result)
    if "\x1b[" in truncated and not truncated.endswith(ANSI_RESET):
        truncated += ANSI_RESET
    return truncated, visible_count


def colorize_text(text: str, status: Optional[str], use_color: bool) -> str:
    """Apply color to text based on status."""
    if not use_color or not status:
        return text
    color = STATUS_COLORS.get(status)
    if not color:
        return text
    return f"{color}{text}{ANSI_RESET}"


# ============================================================================
# Table Building
# ============================================================================


def format_table_row(target: str, counts: str, min_ms: str, avg_ms: str, max_ms: str) -> str:
    """Format one table row with the fixed column widths."""
    return (
        f"{target:<{TARGET_COLUMN_WIDTH}} {counts:>{COUNTS_COLUMN_WIDTH}} "
        f"{min_ms:>{LATENCY_COLUMN_WIDTH}} {avg_ms:>{LATENCY_COLUMN_WIDTH}} {max_ms:>{LATENCY_COLUMN_WIDTH}}"
    )


def build_table_lines(snapshot: Dict[str, TargetStats]) -> List[str]:
    """
    Build the statistics table for a snapshot.

    Args:
        snapshot: Ordered mapping of target to counters

    Returns:
        Header line followed by one line per target
    """
    lines = [format_table_row(*TABLE_HEADER)]
    for target, entry in snapshot.items():
        lines.append(
            format_table_row(
                target,
                build_counts_label(entry),
                format_latency(entry.min_latency),
                format_latency(entry.average_latency),
                format_latency(entry.max_latency),
            )
        )
    return lines


def colorize_table_lines(
    lines: Sequence[str],
    snapshot: Dict[str, TargetStats],
    unreachable: Sequence[str],
    use_color: bool,
) -> List[str]:
    """Colour the target rows of a table built by ``build_table_lines``."""
    if not use_color:
        return list(lines)
    failed = set(unreachable)
    colored = [lines[0]]
    for line, (target, entry) in zip(lines[1:], snapshot.items()):
        colored.append(colorize_text(line, classify_health(entry, target in failed), use_color))
    return colored


def format_remaining(seconds: Optional[float]) -> str:
    """Format the remaining run time as M:SS, or 'unlimited'."""
    if seconds is None:
        return "unlimited"
    seconds = max(0, int(round(seconds)))
    minutes, secs = divmod(seconds, 60)
    return f"{minutes}:{secs:02d}"


def build_status_line(
    timestamp: str,
    cycle: int,
    remaining: Optional[float],
    unreachable_count: int,
    final: bool = False,
) -> str:
    """Build the status line shown below the table."""
    state = "FINAL" if final else "LIVE"
    parts = [
        f"{timestamp} [{state}]",
        f"Cycle: {cycle}",
        f"Unreachable: {unreachable_count}",
        f"Remaining: {format_remaining(remaining)}",
    ]
    if not final:
        parts.append("q: quit")
    return " | ".join(parts)


# ============================================================================
# Console Drawing
# ============================================================================


def get_terminal_size(fallback: Tuple[int, int] = (80, 24)) -> os.terminal_size:
    """
    Get the terminal size by directly querying the terminal.

    Args:
        fallback: Tuple of (columns, lines) to use if terminal size
                  cannot be determined

    Returns:
        os.terminal_size with columns and lines attributes
    """
    for stream in (sys.stdout, sys.stderr, sys.stdin):
        try:
            if stream.isatty():
                return os.get_terminal_size(stream.fileno())
        except (AttributeError, ValueError, OSError):
            continue
    return os.terminal_size(fallback)


class ConsoleRenderer:
    """
    Redraw a block of lines in place.

    The first draw clears the screen; later draws only rewrite lines that
    changed since the previous frame.
    """

    def __init__(self, stream: Optional[TextIO] = None, truncate: bool = True) -> None:
        self.stream = stream if stream is not None else sys.stdout
        self.truncate = truncate
        self.last_lines: Optional[List[str]] = None

    def _fit(self, lines: Sequence[str]) -> List[str]:
        if not self.truncate:
            return list(lines)
        width = get_terminal_size(fallback=(80, 24)).columns
        return [truncate_visible(line, width)[0] if visible_len(line) > width else line for line in lines]

    def draw(self, lines: Sequence[str]) -> None:
        """Draw ``lines`` starting at the top-left corner of the terminal."""
        lines = self._fit(lines)
        if self.last_lines is None:
            output_chunks = ["\x1b[2J\x1b[H"]
            for index, line in enumerate(lines):
                output_chunks.append(f"\x1b[{index + 1};1H\x1b[2K{line}")
            self.stream.write("".join(output_chunks))
            self.stream.flush()
            self.last_lines = lines
            return

        max_lines = max(len(self.last_lines), len(lines))
        output_chunks = []
        for index in range(max_lines):
            previous_line = self.last_lines[index] if index < len(self.last_lines) else None
            current_line = lines[index] if index < len(lines) else ""
            if previous_line == current_line and index < len(lines):
                continue
            output_chunks.append(f"\x1b[{index + 1};1H\x1b[2K{current_line}")

        if output_chunks:
            self.stream.write("".join(output_chunks))
            self.stream.flush()
        self.last_lines = lines

    def finish(self) -> None:
        """Move the cursor below the last frame so the shell prompt does not overwrite it."""
        if self.last_lines is None:
            return
        self.stream.write(f"\x1b[{len(self.last_lines) + 1};1H\n")
        self.stream.flush()


# ============================================================================
# Formatting Functions
# ============================================================================


def format_timestamp(now: Optional[datetime] = None) -> str:
    """Format a local timestamp as used in the result log."""
    if now is None:
        now = datetime.now()
    return now.strftime("%Y-%m-%d %H:%M:%S")
