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
"""Decide which test targets must run and record the ones that passed.

Both operations share one pipeline: resolve the selected targets together
with everything they depend on, fingerprint that whole set, then keep only
the test targets. Pass records are looked up and written for that subset.
"""

import logging
from typing import List, Optional, Pattern

from impactcheck.constants import AlreadyManagedError
from impactcheck.progress_utils import LogLevel, ProgressLogger
from impactcheck.project_guard import ProjectGuard
from impactcheck.target_hasher import TargetsHasher
from impactcheck.target_resolver import NinjaTargetResolver
from impactcheck.target_types import BuildConfiguration, Target, TargetsMap, filter_tests
from impactcheck.tests_storage import TestsStorage
from impactcheck.tool_detection import EnvironmentCollector

logger = logging.getLogger(__name__)


class ImpactManager:
    """Reports affected test targets and marks test targets as passed.

    Every collaborator is passed in, so tests can substitute any of them.
    """

    def __init__(
        self,
        progress: ProgressLogger,
        environment_collector: EnvironmentCollector,
        project_guard: ProjectGuard,
        targets_resolver: NinjaTargetResolver,
        targets_hasher: TargetsHasher,
        tests_storage: TestsStorage,
    ):
        self.progress = progress
        self.environment_collector = environment_collector
        self.project_guard = project_guard
        self.targets_resolver = targets_resolver
        self.targets_hasher = targets_hasher
        self.tests_storage = tests_storage

    def _check_environment(self) -> None:
        self.environment_collector.log_toolchain_version()
        if self.project_guard.is_already_managed():
            raise AlreadyManagedError()

    def _fetch_test_targets(
        self, targets_regex: Optional[Pattern[str]], except_targets_regex: Optional[Pattern[str]], configuration: BuildConfiguration
    ) -> TargetsMap:
        targets = self.progress.step(
            "Finding Targets",
            lambda: self.targets_resolver.find_targets(targets_regex, except_targets_regex, including_tests=True),
        )
        # Non-test dependencies are hashed too so their changes reach the test fingerprints
        self.progress.step("Hashing Targets", lambda: self.targets_hasher.hash(targets, configuration.build_args))
        test_targets = filter_tests(targets)
        logger.debug("Resolved %s targets, %s of them test targets", len(targets), len(test_targets))
        return test_targets

    def report_impact(
        self, targets_regex: Optional[Pattern[str]], except_targets_regex: Optional[Pattern[str]], configuration: BuildConfiguration
    ) -> List[Target]:
        """Print the test targets that have no pass record for their current fingerprint.

        Args:
            targets_regex: Select targets by name (None = all)
            except_targets_regex: Exclude targets by name
            configuration: Build configuration the pass records are scoped to

        Returns:
            The affected (missing) test targets, in resolution order

        Raises:
            AlreadyManagedError: If the build directory is already managed
        """
        self._check_environment()
        targets = self._fetch_test_targets(targets_regex, except_targets_regex, configuration)

        missing_targets = self.tests_storage.find_missing_tests(targets, configuration)
        if not missing_targets:
            self.progress.log("No Affected Test Targets")
            return missing_targets

        reported = [target for target in missing_targets if target.hash is not None]
        with self.progress.section(f"Affected Test Targets ({len(reported)})"):
            for target in reported:
                self.progress.log(f"{target.name} ({target.hash})", LogLevel.RESULT)
        return missing_targets

    def mark_as_passed(
        self, targets_regex: Optional[Pattern[str]], except_targets_regex: Optional[Pattern[str]], configuration: BuildConfiguration
    ) -> None:
        """Record every selected test target as passed at its current fingerprint.

        Args:
            targets_regex: Select targets by name (None = all)
            except_targets_regex: Exclude targets by name
            configuration: Build configuration the pass records are scoped to

        Raises:
            AlreadyManagedError: If the build directory is already managed
        """
        self._check_environment()
        targets = self._fetch_test_targets(targets_regex, except_targets_regex, configuration)
        self.progress.step("Marking Tests as Passed", lambda: self.tests_storage.save_tests(targets, configuration))
