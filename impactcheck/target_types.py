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
"""Type definitions for targets and build configurations.

This module contains the dataclasses shared by the resolver, the hasher,
the pass record storage and the impact manager.
"""

import json
import hashlib
from typing import Any, Dict, List, Optional, Sequence, Tuple
from dataclasses import dataclass, field


@dataclass
class Target:
    """A build unit resolved from build.ninja.

    Attributes:
        uuid: Stable identifier (ninja output path relative to the build directory)
        name: Display name (basename of the output)
        is_tests: Whether the target is a test executable
        hash: Content fingerprint, None until the hasher has run
        inputs: Source files feeding the target, as written in build.ninja
        dependencies: uuids of the libraries the target links against directly
    """

    uuid: str
    name: str
    is_tests: bool = False
    hash: Optional[str] = None
    inputs: List[str] = field(default_factory=list)
    dependencies: List[str] = field(default_factory=list)


# Insertion ordered: resolution order is build.ninja declaration order
TargetsMap = Dict[str, Target]


def filter_tests(targets: TargetsMap) -> TargetsMap:
    """Return only the test targets, keeping resolution order."""
    return {uuid: target for uuid, target in targets.items() if target.is_tests}


@dataclass(frozen=True)
class BuildConfiguration:
    """Build axis that scopes fingerprints and pass records.

    Two configurations are equal iff every field is equal. Changing any
    field means previously recorded passes no longer apply.

    Attributes:
        sdk: Platform or SDK the tests are built for (e.g. 'linux', 'android')
        config: Configuration name (e.g. 'Debug', 'Release')
        arch: Target architecture (e.g. 'x86_64', 'arm64')
        build_args: Ordered extra build arguments
        output_path: Optional artifact output path
    """

    sdk: str
    config: str
    arch: str
    build_args: Tuple[str, ...] = ()
    output_path: Optional[str] = None

    def __post_init__(self) -> None:
        if not isinstance(self.build_args, tuple):
            object.__setattr__(self, "build_args", tuple(self.build_args))

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization.

        Returns:
            Dictionary with all configuration fields
        """
        return {
            "sdk": self.sdk,
            "config": self.config,
            "arch": self.arch,
            "build_args": list(self.build_args),
            "output_path": self.output_path,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BuildConfiguration":
        """Create a configuration from its to_dict() representation."""
        return cls(
            sdk=data["sdk"],
            config=data["config"],
            arch=data["arch"],
            build_args=tuple(data.get("build_args", ())),
            output_path=data.get("output_path"),
        )

    def storage_key(self) -> str:
        """Stable digest of all fields, used to scope pass records on disk."""
        payload = json.dumps(self.to_dict(), sort_keys=True, separators=(",", ":"))
        return hashlib.sha1(payload.encode("utf-8")).hexdigest()


def make_build_configuration(sdk: str, config: str, arch: str, build_args: Optional[Sequence[str]] = None, output_path: Optional[str] = None) -> BuildConfiguration:
    """Build a configuration from loosely typed CLI values."""
    return BuildConfiguration(sdk=sdk, config=config, arch=arch, build_args=tuple(build_args or ()), output_path=output_path)
