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
Keyboard input handling for TickPing using the readchar library.

The only key binding is ``q`` (or ``Q``), which requests a controlled
shutdown so the terminal state still reaches the result log. Keys are polled
on a background thread with ``select`` so the render loop never blocks on
stdin.
"""

import contextlib
import logging
import select
import sys
import threading
from typing import Callable, Generator, Optional

import readchar

if sys.platform != "win32":
    import termios
    import tty

logger = logging.getLogger(__name__)

KEYBOARD_SUPPORTED = sys.platform != "win32"
KEY_POLL_INTERVAL = 0.1
QUIT_KEYS = frozenset(("q", "Q"))


@contextlib.contextmanager
def cbreak_mode(fd: Optional[int] = None) -> Generator[bool, None, None]:
    """Context manager that puts a terminal into cbreak mode and restores it on exit.

    This ensures terminal state is properly restored even when a signal (e.g. SIGINT)
    interrupts the caller, preventing the shell from being left in an unusable state.

    Args:
        fd: Terminal file descriptor to configure.  Defaults to ``sys.stdin.fileno()``.

    Yields:
        True when cbreak mode is active, False when stdin is not a terminal.
    """
    if not KEYBOARD_SUPPORTED or not sys.stdin.isatty():
        yield False
        return
    if fd is None:
        fd = sys.stdin.fileno()
    try:
        old_settings = termios.tcgetattr(fd)
    except termios.error:
        # Not a real terminal (e.g. a pipe or test mock) – skip setup.
        yield False
        return
    try:
        tty.setcbreak(fd)
        yield True
    finally:
        termios.tcsetattr(fd, termios.TCSADRAIN, old_settings)


def read_key(timeout: float = 0.0) -> Optional[str]:
    """
    Read one key from stdin if input arrives within ``timeout`` seconds.

    Returns:
        The key string as returned by readchar, or None if no input is available
    """
    if not KEYBOARD_SUPPORTED or not sys.stdin.isatty():
        return None
    ready, _, _ = select.select([sys.stdin], [], [], timeout)
    if not ready:
        return None
    try:
        return readchar.readkey()
    except (OSError, EOFError) as e:
        logger.debug("Keyboard read failed: %s", e)
        return None


class KeyWatcher:
    """Poll the keyboard on a daemon thread and call ``on_quit`` when a quit key is pressed."""

    def __init__(
        self,
        on_quit: Callable[[], None],
        stop_event: threading.Event,
        reader: Callable[[float], Optional[str]] = read_key,
    ) -> None:
        self.on_quit = on_quit
        self.stop_event = stop_event
        self.reader = reader
        self.thread: Optional[threading.Thread] = None

    def poll_once(self) -> bool:
        """Read at most one key. Returns True if a quit key was handled."""
        key = self.reader(KEY_POLL_INTERVAL)
        if key in QUIT_KEYS:
            self.on_quit()
            return True
        return False

    def run(self) -> None:
        while not self.stop_event.is_set():
            if self.poll_once():
                break

    def start(self) -> None:
        self.thread = threading.Thread(target=self.run, name="tickping-keys", daemon=True)
        self.thread.start()
