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
Append-only result log for TickPing.

The result log records per-cycle unreachable targets and the terminal state
at shutdown:

    [2026-10-18 12:00:02] unreachable: 10.0.0.7, db01
    [2026-10-18 12:05:00] Final state:
    Target                  Success/Total   min (ms) ...

Writes are best effort. The file is opened in append mode for every event
(and created if absent) and any OSError is swallowed, so a full disk or a
revoked permission never stops the monitor.
"""

import logging
import os
from datetime import datetime
from typing import Callable, Sequence

from tickping.render import format_timestamp

logger = logging.getLogger(__name__)


class EventLog:
    """Best-effort writer for the result log."""

    def __init__(self, path: str, now: Callable[[], datetime] = datetime.now) -> None:
        """
        Initialize the result log.

        Args:
            path: Path of the log file (``~`` is expanded)
            now: Clock returning local datetimes for the line timestamps
        """
        self.path = os.path.expanduser(path)
        self.now = now
        self.write_errors = 0

    def _timestamp(self) -> str:
        return f"[{format_timestamp(self.now())}]"

    def append_lines(self, lines: Sequence[str]) -> bool:
        """
        Append lines to the log file.

        Returns:
            True if the lines were written, False if the write failed
        """
        try:
            with open(self.path, "a", encoding="utf-8") as log_file:
                for line in lines:
                    log_file.write(line + "\n")
        except OSError as e:
            self.write_errors += 1
            logger.debug("Could not append to result log %s: %s", self.path, e)
            return False
        return True

    def log_unreachable(self, targets: Sequence[str]) -> bool:
        """Log one line naming the targets that failed this cycle. No-op for an empty list."""
        if not targets:
            return False
        return self.append_lines([f"{self._timestamp()} unreachable: {', '.join(targets)}"])

    def log_final_state(self, table_lines: Sequence[str]) -> bool:
        """Log the terminal-state header followed by the final table."""
        return self.append_lines([f"{self._timestamp()} Final state:", *table_lines])
