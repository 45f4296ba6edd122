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
"""External tool detection and toolchain diagnostics for impact-check.

Tool detection results are cached within the Python process session to avoid
repeated subprocess calls. Detection includes version extraction and command
validation.

CLI Interface:
    python3 -m impactcheck.tool_detection --find-ninja   # Output command name, exit 0/1
    python3 -m impactcheck.tool_detection --verbose      # Enable debug logging
"""

import sys
import shutil
import logging
import argparse
import subprocess
from typing import Optional, Dict, List
from dataclasses import dataclass

from impactcheck.constants import NINJA_COMMAND_TIMEOUT
from impactcheck.progress_utils import LogLevel, ProgressLogger

logger = logging.getLogger(__name__)

# Tool command variants to try (in order of preference)
NINJA_COMMANDS = ["ninja", "ninja-build"]

# Session-level cache for tool detection results (keyed by function name)
_tool_cache: Dict[str, "ToolInfo"] = {}


@dataclass
class ToolInfo:
    """Information about a detected external tool.

    Attributes:
        command: Command name (e.g., "ninja")
        version: Raw version string as reported by tool (e.g., "1.11.1")
    """

    command: Optional[str]
    version: Optional[str]

    def is_found(self) -> bool:
        """Check if tool was found."""
        return self.command is not None


def clear_cache() -> None:
    """Clear the tool detection cache.

    Useful for testing or when environment changes during process lifetime.
    """
    _tool_cache.clear()
    logger.debug("Tool detection cache cleared")


def _try_command(cmd_parts: List[str], timeout: int = NINJA_COMMAND_TIMEOUT) -> Optional[str]:
    """Try to run a command with --version and return version output.

    Args:
        cmd_parts: Command parts (e.g., ["ninja"])
        timeout: Timeout in seconds for subprocess call

    Returns:
        Version output string if successful, None otherwise
    """
    try:
        result = subprocess.run(cmd_parts + ["--version"], capture_output=True, text=True, check=True, timeout=timeout)
        return result.stdout.strip()
    except (subprocess.CalledProcessError, FileNotFoundError, subprocess.TimeoutExpired):
        return None


def _extract_version(output: str) -> str:
    """Return the first line of a version output, stripped."""
    lines = output.split("\n")
    return lines[0].strip() if lines else output.strip()


def find_ninja() -> ToolInfo:
    """Find an available ninja build tool executable.

    Tries commands in order: ninja, ninja-build

    Returns:
        ToolInfo with command and version if found, or empty ToolInfo if not found
    """
    cache_key = "find_ninja"
    if cache_key in _tool_cache:
        return _tool_cache[cache_key]

    for cmd in NINJA_COMMANDS:
        logger.debug("Trying %s...", cmd)
        version_output = _try_command([cmd])
        if not version_output:
            logger.debug("%s not found", cmd)
            continue
        if not shutil.which(cmd):
            logger.debug("%s responded but not in PATH", cmd)
            continue

        version = _extract_version(version_output)
        logger.debug("Found %s version %s", cmd, version)
        tool_info = ToolInfo(command=cmd, version=version)
        _tool_cache[cache_key] = tool_info
        return tool_info

    logger.debug("ninja not found")
    tool_info = ToolInfo(command=None, version=None)
    _tool_cache[cache_key] = tool_info
    return tool_info


class EnvironmentCollector:
    """Emits toolchain diagnostics ahead of every impact manager operation."""

    def __init__(self, progress: ProgressLogger):
        self.progress = progress

    def log_toolchain_version(self) -> None:
        """Log the ninja version in use. Never affects control flow."""
        ninja = find_ninja()
        if ninja.is_found():
            self.progress.log(f"Ninja: {ninja.version}", LogLevel.INFO)
        else:
            logger.warning("ninja not found in PATH")
            self.progress.log("Ninja: not found", LogLevel.INFO)


def main() -> int:
    """Main entry point for CLI usage.

    Returns:
        Exit code: 0 if ninja was found, 1 otherwise
    """
    parser = argparse.ArgumentParser(description="Detect external tools used by impact-check")
    parser.add_argument("--find-ninja", action="store_true", help="Print the ninja command name")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    args = parser.parse_args()

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s: %(message)s")

    ninja = find_ninja()
    if args.find_ninja:
        if ninja.is_found():
            print(ninja.command)
            return 0
        return 1

    print(f"ninja: {ninja.version if ninja.is_found() else 'not found'}")
    return 0 if ninja.is_found() else 1


if __name__ == "__main__":
    sys.exit(main())
