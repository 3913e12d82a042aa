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
Target list handling for TickPing.

This module reads the newline-delimited target list once at startup and
resolves the default file locations.
"""

import os
from typing import List, Optional

from tickping.errors import TargetListError

DEFAULT_TARGETS_FILE = "ips.txt"
DEFAULT_RESULT_FILE = "result.txt"
# Threads are one per target; keep the fan-out bounded.
MAX_TARGETS = 512


def parse_target_line(line: str) -> Optional[str]:
    """
    Parse a single line from the target list.

    Args:
        line: Line of text from the file

    Returns:
        The target, or None for blank and comment lines
    """
    stripped = line.strip()
    if not stripped or stripped.startswith("#"):
        return None
    return stripped


def parse_targets(text: str) -> List[str]:
    """Parse targets from file content, dropping duplicates but keeping the first-seen order."""
    targets = []
    for line in text.splitlines():
        target = parse_target_line(line)
        if target is not None:
            targets.append(target)
    return list(dict.fromkeys(targets))


def read_target_file(path: str) -> List[str]:
    """
    Read and parse targets from a file.

    Args:
        path: Path to the target list

    Returns:
        List of targets in file order

    Raises:
        TargetListError: If the file is missing, unreadable, empty or too long
    """
    path = os.path.expanduser(path)
    if not os.path.exists(path):
        raise TargetListError(f"Target list file not found: {path}", path=path)
    try:
        with open(path, "r", encoding="utf-8") as f:
            content = f.read()
    except (OSError, UnicodeDecodeError) as e:
        raise TargetListError(f"Failed to read target list file {path}: {e}", path=path) from e

    targets = parse_targets(content)
    if not targets:
        raise TargetListError(f"No targets found in {path}", path=path)
    if len(targets) > MAX_TARGETS:
        raise TargetListError(
            f"Target count exceeds maximum supported workers ({len(targets)} > {MAX_TARGETS}). Reduce the target list.",
            path=path,
        )
    return targets


def default_path(filename: str, base_dir: Optional[str] = None) -> str:
    """Return ``filename`` inside ``base_dir`` (the current directory by default)."""
    if base_dir is None:
        base_dir = os.getcwd()
    return os.path.join(base_dir, filename)
