#!/usr/bin/env python3
# -*- coding: utf-8 -*-
# ****************************************************************************************************************************************************
# * BSD 3-Clause License
# *
# * Copyright (c) 2025, Mana Battery
# * All rights reserved.
# *
# * Redistribution and use in source and binary forms, with or without modification, are permitted provided that the following conditions are met:
# *
# * 1. Redistributions of source code must retain the above copyright notice, this list of conditions and the following disclaimer.
# * 2. Redistributions in binary form must reproduce the above copyright notice, this list of conditions and the following disclaimer in the
# *    documentation and/or other materials provided with the distribution.
# * 3. Neither the name of the copyright holder nor the names of its contributors may be used to endorse or promote products derived from this
# *    software without specific prior written permission.
# *
# * THIS SOFTWARE IS PROVIDED BY THE COPYRIGHT HOLDERS AND CONTRIBUTORS "AS IS" AND ANY EXPRESS OR IMPLIED WARRANTIES, INCLUDING, BUT NOT LIMITED TO,
# * THE IMPLIED WARRANTIES OF MERCHANTABILITY AND FITNESS FOR A PARTICULAR PURPOSE ARE DISCLAIMED. IN NO EVENT SHALL THE COPYRIGHT HOLDER OR
# * CONTRIBUTORS BE LIABLE FOR ANY DIRECT, INDIRECT, INCIDENTAL, SPECIAL, EXEMPLARY, OR CONSEQUENTIAL DAMAGES (INCLUDING, BUT NOT LIMITED TO,
# * PROCUREMENT OF SUBSTITUTE GOODS OR SERVICES; LOSS OF USE, DATA, OR PROFITS; OR BUSINESS INTERRUPTION) HOWEVER CAUSED AND ON ANY THEORY OF
# * LIABILITY, WHETHER IN CONTRACT, STRICT LIABILITY, OR TORT (INCLUDING NEGLIGENCE OR OTHERWISE) ARISING IN ANY WAY OUT OF THE USE OF THIS SOFTWARE,
# * EVEN IF ADVISED OF THE POSSIBILITY OF SUCH DAMAGE.
# ****************************************************************************************************************************************************
"""Colored terminal output and stage progress reporting.

The impact manager reports its stages ("Finding Targets", "Hashing Targets", ...)
through ProgressLogger. Stage headers and notices are colored, RESULT lines
are written uncolored so the list of affected test targets can be piped.
"""

import os
import sys
import time
import enum
import logging
from contextlib import contextmanager
from typing import Callable, Iterator, Optional, TextIO, TypeVar

from colorama import Fore, Style, init

logger = logging.getLogger(__name__)

# Keep escape codes when piped through subprocess; should_use_color() decides
init(autoreset=False, strip=False)

T = TypeVar("T")


class Colors:
    """Color codes for terminal output."""

    RED = Fore.RED
    GREEN = Fore.GREEN
    YELLOW = Fore.YELLOW
    CYAN = Fore.CYAN
    WHITE = Fore.WHITE

    RESET = Style.RESET_ALL
    BRIGHT = Style.BRIGHT
    DIM = Style.DIM

    @staticmethod
    def disable() -> None:
        """Disable all color output."""
        for attr in dir(Colors):
            if not attr.startswith("_") and attr != "disable":
                setattr(Colors, attr, "")


def colored(text: str, color: str = "", style: str = "") -> str:
    """Return colored text string.

    Args:
        text: Text to colorize
        color: Color code (e.g., Colors.RED)
        style: Style code (e.g., Colors.BRIGHT)

    Returns:
        Formatted string with color codes
    """
    if not color and not style:
        return text
    return f"{style}{color}{text}{Colors.RESET}"


def print_error(text: str, file: Optional[TextIO] = None, prefix: bool = True) -> None:
    """Print error message in red to stderr.

    Args:
        text: Error message to print
        file: File object (default: sys.stderr)
        prefix: If True, prepend "Error: " to message (default: True)
    """
    message = f"Error: {text}" if prefix else text
    print(colored(message, Colors.RED), file=file if file is not None else sys.stderr)


def print_warning(text: str, file: Optional[TextIO] = None, prefix: bool = True) -> None:
    """Print warning message in yellow to stderr."""
    message = f"Warning: {text}" if prefix else text
    print(colored(message, Colors.YELLOW), file=file if file is not None else sys.stderr)


def should_use_color(force_color: bool = False, no_color: bool = False) -> bool:
    """Determine if color should be used based on environment and flags.

    Args:
        force_color: Force color output regardless of terminal
        no_color: Disable color output

    Returns:
        True if color should be used
    """
    if no_color:
        return False
    if force_color:
        return True
    if not sys.stdout.isatty():
        return False
    # See no-color.org
    return not os.environ.get("NO_COLOR")


class LogLevel(enum.IntEnum):
    """Importance of a progress message.

    COMPACT: stage headers and summary notices, always shown unless quiet
    INFO: diagnostics such as the toolchain version
    RESULT: machine-consumable result lines, always shown
    """

    COMPACT = 0
    INFO = 1
    RESULT = 2


class ProgressLogger:
    """Writes named, leveled progress messages for one tool invocation.

    Args:
        file: Output stream (default: sys.stdout at write time)
        quiet: Only print RESULT lines
        verbose: Also print INFO diagnostics
    """

    def __init__(self, file: Optional[TextIO] = None, quiet: bool = False, verbose: bool = False):
        self.file = file
        self.quiet = quiet
        self.verbose = verbose
        self._depth = 0

    def _write(self, text: str) -> None:
        print(text, file=self.file if self.file is not None else sys.stdout)

    def _is_visible(self, level: LogLevel) -> bool:
        if level == LogLevel.RESULT:
            return True
        if self.quiet:
            return False
        return level == LogLevel.COMPACT or self.verbose

    def log(self, text: str, level: LogLevel = LogLevel.COMPACT) -> None:
        """Print a single message at the given level."""
        logger.debug("[%s] %s", level.name.lower(), text)
        if not self._is_visible(level):
            return
        if level == LogLevel.RESULT:
            self._write(text)
            return
        indent = "  " * self._depth
        color = Colors.WHITE if level == LogLevel.INFO else Colors.CYAN
        self._write(f"{indent}{colored(text, color)}")

    def step(self, header: str, func: Callable[[], T], level: LogLevel = LogLevel.COMPACT) -> T:
        """Run one stage under a header and report its duration.

        Exceptions raised by func propagate unchanged.
        """
        with self.section(header, level):
            return func()

    @contextmanager
    def section(self, header: str, level: LogLevel = LogLevel.COMPACT) -> Iterator[None]:
        """Group the messages logged inside the block under a header."""
        self.log(header, level)
        start_time = time.time()
        self._depth += 1
        try:
            yield
        finally:
            self._depth -= 1
        elapsed = time.time() - start_time
        logger.debug("%s finished in %.2fs", header, elapsed)
        if self.verbose and self._is_visible(level):
            self._write(f"{'  ' * (self._depth + 1)}{colored(f'done in {elapsed:.2f}s', Colors.DIM)}")
