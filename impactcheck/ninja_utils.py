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
"""Headers discovered by the compiler, read from ninja's deps log.

build.ninja only names the sources of each object file. The headers a source
includes are recorded by ninja in its deps log (.ninja_deps) once the object
has been built, and 'ninja -t deps' prints them:

    Core/CMakeFiles/Core.dir/core.cpp.o: #deps 3, deps mtime 1712 (VALID)
        ../src/Core/core.cpp
        ../src/Core/core.h
        /usr/include/c++/13/string

Without a deps log (the build directory has never been built) there is
nothing to discover and only the inputs declared in build.ninja count.
"""

import os
import re
import logging
import subprocess
from typing import Dict, List

from impactcheck.constants import NINJA_DEPS_LOG, NINJA_DEPS_TIMEOUT, SYSTEM_HEADER_PREFIXES
from impactcheck.tool_detection import find_ninja

logger = logging.getLogger(__name__)

RE_DEPS_RECORD = re.compile(r"^(\S.*?):(?:\s+#deps\b.*)?$")


def parse_deps_output(output: str) -> Dict[str, List[str]]:
    """Parse 'ninja -t deps' output.

    Args:
        output: stdout of 'ninja -t deps'

    Returns:
        Dependency paths per output file, in the order ninja lists them
    """
    deps: Dict[str, List[str]] = {}
    current: List[str] = []
    for line in output.splitlines():
        if not line.strip():
            continue
        if line[0].isspace():
            current.append(line.strip())
            continue
        match = RE_DEPS_RECORD.match(line)
        if not match:
            logger.debug("Ignoring unexpected ninja -t deps line: %s", line)
            current = []
            continue
        current = deps.setdefault(match.group(1), [])
    return deps


def is_system_header(path: str) -> bool:
    return path.startswith(SYSTEM_HEADER_PREFIXES)


def get_discovered_dependencies(build_dir: str, timeout: int = NINJA_DEPS_TIMEOUT) -> Dict[str, List[str]]:
    """Read the headers ninja recorded for every object file of a build directory.

    System headers and files that no longer exist are left out.

    Args:
        build_dir: Path to the ninja build directory
        timeout: Timeout in seconds for the ninja call

    Returns:
        Discovered dependencies per object file (empty if ninja or its deps log is unavailable)
    """
    if not os.path.isfile(os.path.join(build_dir, NINJA_DEPS_LOG)):
        logger.debug("No %s in %s, using declared inputs only", NINJA_DEPS_LOG, build_dir)
        return {}

    ninja_tool = find_ninja()
    if not ninja_tool.is_found():
        logger.warning("ninja not found - header dependencies are not fingerprinted")
        return {}

    assert ninja_tool.command is not None, "Tool command should not be None when found"

    try:
        result = subprocess.run([ninja_tool.command, "-t", "deps"], capture_output=True, text=True, cwd=build_dir, timeout=timeout)
    except subprocess.TimeoutExpired:
        logger.warning("ninja -t deps timed out after %s seconds - header dependencies are not fingerprinted", timeout)
        return {}
    except FileNotFoundError:
        logger.warning("ninja command not found")
        return {}

    if result.returncode != 0:
        logger.warning("ninja -t deps failed with code %s - header dependencies are not fingerprinted", result.returncode)
        if result.stderr:
            logger.debug("Stderr: %s", result.stderr[:500])
        return {}

    discovered: Dict[str, List[str]] = {}
    for output, paths in parse_deps_output(result.stdout).items():
        kept = []
        for path in paths:
            if is_system_header(path):
                continue
            full_path = path if os.path.isabs(path) else os.path.join(build_dir, path)
            if not os.path.exists(full_path):
                logger.debug("Skipping stale dependency %s of %s", path, output)
                continue
            kept.append(path)
        discovered[output] = kept

    logger.info("Read discovered dependencies of %s object files", len(discovered))
    return discovered
