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
"""Shared constants for impact-check.

This module provides centralized constants and the exception hierarchy used
across the impact-check modules and the command line tool.
"""

# =============================================================================
# Exit Codes
# =============================================================================

EXIT_SUCCESS = 0
EXIT_INVALID_ARGS = 1
EXIT_RUNTIME_ERROR = 2
EXIT_ALREADY_MANAGED = 3
EXIT_KEYBOARD_INTERRUPT = 130

# =============================================================================
# Tool Identity
# =============================================================================

TOOL_NAME = "impact-check"

# =============================================================================
# Build System Constants
# =============================================================================

BUILD_NINJA = "build.ninja"  # Ninja manifest expected in every build directory

# Rule prefixes recognised in build.ninja (CMake appends __<target>_<config>)
LIBRARY_LINKER_RULES = ("CXX_STATIC_LIBRARY_LINKER", "CXX_SHARED_LIBRARY_LINKER", "C_STATIC_LIBRARY_LINKER", "C_SHARED_LIBRARY_LINKER")
EXECUTABLE_LINKER_RULES = ("CXX_EXECUTABLE_LINKER", "C_EXECUTABLE_LINKER")
COMPILER_RULES = ("CXX_COMPILER", "C_COMPILER")

# Executables named like core_tests, test_core, FrameworkA-Tests or CoreTests
TEST_TARGET_PATTERN = r"(?:^|[_\-.])[Tt]ests?(?:$|[_\-.])|[A-Za-z0-9]Tests?$"

# =============================================================================
# Fingerprinting Constants
# =============================================================================

HASH_LENGTH = 7  # Number of hex characters reported for a target fingerprint
DEFAULT_MAX_WORKERS = None  # None = let the thread pool pick from the CPU count
FILE_READ_CHUNK_SIZE = 1024 * 1024

# =============================================================================
# Storage Constants
# =============================================================================

CACHE_DIR = ".impactcheck_cache"  # Cache directory name in build directory
TESTS_STORAGE_SUBDIR = "tests"  # Pass records live in CACHE_DIR/TESTS_STORAGE_SUBDIR
TESTS_STORAGE_FORMAT_VERSION = 1

# Marker left in the build directory by tooling that installs in-place build artifacts
MANAGED_MARKER_FILE = ".impactcheck_managed.json"

# =============================================================================
# Performance Constants
# =============================================================================

NINJA_COMMAND_TIMEOUT = 5  # Timeout for ninja --version (seconds)
NINJA_DEPS_TIMEOUT = 60  # Timeout for ninja -t deps (seconds)

# =============================================================================
# Discovered Dependency Constants
# =============================================================================

NINJA_DEPS_LOG = ".ninja_deps"  # Binary deps log ninja keeps in the build directory
SYSTEM_HEADER_PREFIXES = ("/usr/", "/lib/")  # Discovered headers under these paths are not fingerprinted

# =============================================================================
# Exception Classes
# =============================================================================


class ImpactCheckError(Exception):
    """Base exception for all impact-check errors.

    All impact-check exceptions carry an exit_code attribute that indicates
    what exit code the program should use when this error is caught at the
    main entry point.
    """

    def __init__(self, message: str, exit_code: int = EXIT_RUNTIME_ERROR):
        super().__init__(message)
        self.exit_code = exit_code


# Validation errors (EXIT_INVALID_ARGS)
class ValidationError(ImpactCheckError):
    """Raised when input validation fails (arguments, paths, etc)."""

    def __init__(self, message: str):
        super().__init__(message, EXIT_INVALID_ARGS)


class BuildDirectoryError(ValidationError):
    """Raised when build directory is invalid or inaccessible."""


class ArgumentError(ValidationError):
    """Raised when command-line arguments are invalid."""


class ManagedMarkerError(ValidationError):
    """Raised when the management marker in the build directory cannot be parsed."""


class AlreadyManagedError(ImpactCheckError):
    """Raised when the project already has impact-check build artifacts installed.

    Every operation refuses to run until the installation is reversed.
    """

    def __init__(self) -> None:
        super().__init__(
            f"The project is already managed by {TOOL_NAME}.\n" f"Remove {MANAGED_MARKER_FILE} from the build directory or regenerate the build directory.",
            EXIT_ALREADY_MANAGED,
        )


# Analysis/processing errors (EXIT_RUNTIME_ERROR)
class AnalysisError(ImpactCheckError):
    """Raised when analysis or processing operations fail."""


class TargetHashingError(AnalysisError):
    """Raised when target fingerprints cannot be computed."""


class TestsStorageError(ImpactCheckError):
    """Raised when pass records cannot be read or written."""

    __test__ = False  # Not a pytest test class despite the name
