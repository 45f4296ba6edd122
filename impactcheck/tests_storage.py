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
"""Persistent records of test targets that passed at a given fingerprint.

Records are grouped per build configuration: each configuration gets its own
JSON file named after BuildConfiguration.storage_key(), so passes recorded
under one configuration never satisfy a lookup under another.
"""

import os
import json
import time
import logging
from typing import Any, Dict, List, Optional

from impactcheck.constants import CACHE_DIR, TESTS_STORAGE_FORMAT_VERSION, TESTS_STORAGE_SUBDIR, TestsStorageError
from impactcheck.target_types import BuildConfiguration, Target, TargetsMap

logger = logging.getLogger(__name__)


def get_default_storage_dir(build_dir: str) -> str:
    """Get the default pass record directory inside the build directory.

    Args:
        build_dir: Path to the build directory

    Returns:
        Path to the tests storage directory
    """
    return os.path.join(build_dir, CACHE_DIR, TESTS_STORAGE_SUBDIR)


class TestsStorage:
    """Reads and writes pass records.

    Args:
        storage_dir: Directory holding one record file per build configuration
    """

    __test__ = False  # Not a pytest test class despite the name

    def __init__(self, storage_dir: str):
        self.storage_dir = storage_dir

    def get_records_path(self, configuration: BuildConfiguration) -> str:
        return os.path.join(self.storage_dir, f"{configuration.storage_key()}.json")

    def _load_records(self, configuration: BuildConfiguration) -> Dict[str, Dict[str, Any]]:
        """Load the records of one configuration.

        Returns:
            Mapping of target uuid to record ({"name", "hash", "timestamp"})

        Raises:
            TestsStorageError: If the record file exists but cannot be read or parsed
        """
        path = self.get_records_path(configuration)
        if not os.path.exists(path):
            logger.debug("No pass records at %s", path)
            return {}

        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise TestsStorageError(f"Failed to read pass records {path}: {e}") from e

        if not isinstance(data, dict) or not isinstance(data.get("targets"), dict):
            raise TestsStorageError(f"Invalid pass records {path}: missing 'targets' mapping")

        version = data.get("version")
        if version != TESTS_STORAGE_FORMAT_VERSION:
            raise TestsStorageError(f"Unsupported pass records version {version} in {path}")

        records: Dict[str, Dict[str, Any]] = data["targets"]
        for uuid, record in records.items():
            if not isinstance(record, dict):
                raise TestsStorageError(f"Invalid pass record for {uuid} in {path}: expected a JSON object")
        return records

    def _write_records(self, configuration: BuildConfiguration, records: Dict[str, Dict[str, Any]]) -> None:
        """Write the records of one configuration atomically (temp file + rename)."""
        path = self.get_records_path(configuration)
        temp_path = path + ".tmp"
        payload = {
            "version": TESTS_STORAGE_FORMAT_VERSION,
            "configuration": configuration.to_dict(),
            "targets": records,
        }

        try:
            os.makedirs(self.storage_dir, exist_ok=True)
            with open(temp_path, "w", encoding="utf-8") as f:
                json.dump(payload, f, indent=2, sort_keys=True)
            os.replace(temp_path, path)
        except OSError as e:
            if os.path.exists(temp_path):
                try:
                    os.remove(temp_path)
                except OSError:
                    logger.debug("Could not remove %s", temp_path)
            raise TestsStorageError(f"Failed to write pass records {path}: {e}") from e

        logger.debug("Saved %s pass records to %s", len(records), path)

    def find_missing_tests(self, targets: TargetsMap, configuration: BuildConfiguration) -> List[Target]:
        """Find test targets without a pass record for their current fingerprint.

        Args:
            targets: Fingerprinted test targets
            configuration: Build configuration the records are scoped to

        Returns:
            Targets (in input order) whose recorded fingerprint is absent or different
        """
        records = self._load_records(configuration)
        missing: List[Target] = []
        for uuid, target in targets.items():
            record: Optional[Dict[str, Any]] = records.get(uuid)
            if target.hash is None or record is None or record.get("hash") != target.hash:
                missing.append(target)
        logger.debug("%s of %s test targets have no matching pass record", len(missing), len(targets))
        return missing

    def save_tests(self, targets: TargetsMap, configuration: BuildConfiguration) -> None:
        """Record the targets as passed at their current fingerprints.

        An existing record for the same target and configuration is replaced.

        Args:
            targets: Fingerprinted test targets
            configuration: Build configuration the records are scoped to
        """
        records = self._load_records(configuration)
        timestamp = time.time()
        saved = 0
        for uuid, target in targets.items():
            if target.hash is None:
                logger.warning("Skipping %s: target has no fingerprint", target.name)
                continue
            records[uuid] = {"name": target.name, "hash": target.hash, "timestamp": timestamp}
            saved += 1
        self._write_records(configuration, records)
        logger.info("Recorded %s passed test targets", saved)
