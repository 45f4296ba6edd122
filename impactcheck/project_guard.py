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
"""Detection of build directories already managed by impact-check.

Tooling that installs in-place build artifacts leaves a JSON marker in the
build directory. While that marker is present, resolving and hashing targets
against the directory is refused.
"""

import os
import json
import logging

from impactcheck.constants import MANAGED_MARKER_FILE, ManagedMarkerError

logger = logging.getLogger(__name__)


class ProjectGuard:
    """Checks the management marker of one build directory.

    Args:
        build_dir: Path to the ninja build directory
    """

    def __init__(self, build_dir: str):
        self.build_dir = build_dir

    @property
    def marker_path(self) -> str:
        return os.path.join(self.build_dir, MANAGED_MARKER_FILE)

    def is_already_managed(self) -> bool:
        """Check whether the build directory already carries impact-check artifacts.

        Returns:
            True if a marker is present and flags the directory as managed

        Raises:
            OSError: If the marker exists but cannot be read
            ManagedMarkerError: If the marker is not a valid JSON object
        """
        marker_path = self.marker_path
        if not os.path.exists(marker_path):
            logger.debug("No management marker at %s", marker_path)
            return False

        with open(marker_path, "r", encoding="utf-8") as f:
            content = f.read()

        try:
            marker = json.loads(content)
        except json.JSONDecodeError as e:
            raise ManagedMarkerError(f"Invalid management marker {marker_path}: {e}") from e

        if not isinstance(marker, dict):
            raise ManagedMarkerError(f"Invalid management marker {marker_path}: expected a JSON object")

        managed = bool(marker.get("managed", True))
        logger.debug("Management marker %s: managed=%s", marker_path, managed)
        return managed
