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
Exception types for TickPing.

Only startup problems are raised as exceptions. Probe failures and result-log
I/O errors are handled where they happen and never propagate.
"""


class TickPingError(Exception):
    """Base class for TickPing errors."""


class TargetListError(TickPingError):
    """Raised when the target list is missing, unreadable or empty."""

    def __init__(self, message, path=None):
        super().__init__(message)
        self.path = path


class ConfigError(TickPingError, ValueError):
    """Raised when configuration values are invalid or inconsistent."""
