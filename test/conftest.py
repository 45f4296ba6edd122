#!/usr/bin/env python3
#****************************************************************************************************************************************************
#* BSD 3-Clause License
#*
#* Copyright (c) 2025, Mana Battery
#* All rights reserved.
#*
#* Redistribution and use in source and binary forms, with or without modification, are permitted provided that the following conditions are met:
#*
#* 1. Redistributions of source code must retain the above copyright notice, this list of conditions and the following disclaimer.
#* 2. Redistributions in binary form must reproduce the above copyright notice, this list of conditions and the following disclaimer in the
#*    documentation and/or other materials provided with the distribution.
#* 3. Neither the name of the copyright holder nor the names of its contributors may be used to endorse or promote products derived from this
#*    software without specific prior written permission.
#*
#* THIS SOFTWARE IS PROVIDED BY THE COPYRIGHT HOLDERS AND CONTRIBUTORS "AS IS" AND ANY EXPRESS OR IMPLIED WARRANTIES, INCLUDING, BUT NOT LIMITED TO,
#* THE IMPLIED WARRANTIES OF MERCHANTABILITY AND FITNESS FOR A PARTICULAR PURPOSE ARE DISCLAIMED. IN NO EVENT SHALL THE COPYRIGHT HOLDER OR
#* CONTRIBUTORS BE LIABLE FOR ANY DIRECT, INDIRECT, INCIDENTAL, SPECIAL, EXEMPLARY, OR CONSEQUENTIAL DAMAGES (INCLUDING, BUT NOT LIMITED TO,
#* PROCUREMENT OF SUBSTITUTE GOODS OR SERVICES; LOSS OF USE, DATA, OR PROFITS; OR BUSINESS INTERRUPTION) HOWEVER CAUSED AND ON ANY THEORY OF
#* LIABILITY, WHETHER IN CONTRACT, STRICT LIABILITY, OR TORT (INCLUDING NEGLIGENCE OR OTHERWISE) ARISING IN ANY WAY OUT OF THE USE OF THIS SOFTWARE,
#* EVEN IF ADVISED OF THE POSSIBILITY OF SUCH DAMAGE.
#****************************************************************************************************************************************************
"""Pytest configuration and shared fixtures for impact-check tests.

Fixtures:
- temp_dir: isolated temporary directory
- sample_project: a CMake-style ninja build directory with sources
- ninja_deps_log: fakes a built directory with a ninja deps log
- progress: a ProgressLogger that records sections and messages
"""

import sys
import subprocess
import shutil
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Callable, Dict, Generator, Iterator, List, Tuple

import pytest

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from impactcheck.progress_utils import LogLevel, ProgressLogger
from impactcheck.tool_detection import ToolInfo, clear_cache

SAMPLE_BUILD_NINJA = """# CMAKE generated file: DO NOT EDIT!
ninja_required_version = 1.5

rule CXX_COMPILER__Core_Debug
  command = g++ $FLAGS -c $in -o $out

build Core/CMakeFiles/Core.dir/core.cpp.o: CXX_COMPILER__Core_Debug ../src/Core/core.cpp | ../src/Core/core_config.h || cmake_object_order_depends_target_Core
  FLAGS = -g

build Core/libCore.a: CXX_STATIC_LIBRARY_LINKER__Core_Debug Core/CMakeFiles/Core.dir/core.cpp.o

build UI/CMakeFiles/UI.dir/ui.cpp.o: CXX_COMPILER__UI_Debug ../src/UI/ui.cpp
build UI/libUI.a: CXX_STATIC_LIBRARY_LINKER__UI_Debug UI/CMakeFiles/UI.dir/ui.cpp.o || Core/libCore.a

build Core/CMakeFiles/core_tests.dir/core_tests.cpp.o: CXX_COMPILER__core_tests_Debug ../src/Core/core_tests.cpp
build Core/core_tests: CXX_EXECUTABLE_LINKER__core_tests_Debug Core/CMakeFiles/core_tests.dir/core_tests.cpp.o | Core/libCore.a || Core/libCore.a

build UI/CMakeFiles/UITests.dir/ui_tests.cpp.o: CXX_COMPILER__UITests_Debug ../src/UI/ui_tests.cpp
build UI/UITests: CXX_EXECUTABLE_LINKER__UITests_Debug UI/CMakeFiles/UITests.dir/ui_tests.cpp.o $
    | UI/libUI.a Core/libCore.a || UI/libUI.a

build App/CMakeFiles/app.dir/main.cpp.o: CXX_COMPILER__app_Debug ../src/App/main.cpp
build App/app: CXX_EXECUTABLE_LINKER__app_Debug App/CMakeFiles/app.dir/main.cpp.o | UI/libUI.a

build all: phony Core/core_tests UI/UITests App/app
"""

SAMPLE_SOURCES = {
    "Core/core.cpp": "#include \"core.h\"\nint core() { return 1; }\n",
    "Core/core.h": "int core();\n",
    "Core/core_config.h": "#define CORE_CONFIG 1\n",
    "Core/core_tests.cpp": "int main() { return 0; }\n",
    "UI/ui.cpp": "int ui() { return 2; }\n",
    "UI/ui_tests.cpp": "int main() { return 0; }\n",
    "App/main.cpp": "int main() { return 0; }\n",
}


@pytest.fixture
def temp_dir() -> Generator[str, None, None]:
    """Create a temporary directory for tests.

    Scope: function (default)
    Use for: File I/O operations that need isolation
    """
    tmpdir = tempfile.mkdtemp(prefix="impactcheck_test_")
    yield tmpdir
    shutil.rmtree(tmpdir, ignore_errors=True)


@pytest.fixture
def sample_project(temp_dir: str) -> Dict[str, Path]:
    """Create a ninja build directory for a small project.

    Targets (declaration order):
        Core/libCore.a    library
        UI/libUI.a        library, depends on libCore.a
        Core/core_tests   test executable, depends on libCore.a
        UI/UITests        test executable, depends on libUI.a and libCore.a
        App/app           executable, depends on libUI.a

    Returns:
        Dict with 'root', 'build_dir' and 'src_dir' paths
    """
    root = Path(temp_dir)
    src_dir = root / "src"
    for relative_path, content in SAMPLE_SOURCES.items():
        source = src_dir / relative_path
        source.parent.mkdir(parents=True, exist_ok=True)
        source.write_text(content)

    build_dir = root / "build"
    build_dir.mkdir(parents=True, exist_ok=True)
    (build_dir / "build.ninja").write_text(SAMPLE_BUILD_NINJA)

    return {"root": root, "build_dir": build_dir, "src_dir": src_dir}


SAMPLE_NINJA_DEPS = """Core/CMakeFiles/Core.dir/core.cpp.o: #deps 3, deps mtime 1712000000 (VALID)
    ../src/Core/core.cpp
    ../src/Core/core.h
    /usr/include/stdio.h

Core/CMakeFiles/core_tests.dir/core_tests.cpp.o: #deps 2, deps mtime 1712000000 (VALID)
    ../src/Core/core_tests.cpp
    ../src/Core/core.h

"""


@pytest.fixture
def ninja_deps_log(monkeypatch: Any) -> Callable[..., None]:
    """Simulate a built directory whose deps log holds the given 'ninja -t deps' output.

    Returns:
        Function (build_dir, output) that writes .ninja_deps and fakes ninja
    """
    outputs: Dict[str, str] = {}

    def fake_run(cmd: List[str], **kwargs: Any) -> Any:
        assert cmd[1:] == ["-t", "deps"]
        return subprocess.CompletedProcess(cmd, 0, stdout=outputs[str(kwargs["cwd"])], stderr="")

    monkeypatch.setattr("impactcheck.ninja_utils.find_ninja", lambda: ToolInfo(command="ninja", version="1.11.1"))
    monkeypatch.setattr("subprocess.run", fake_run)

    def write(build_dir: Path, output: str = SAMPLE_NINJA_DEPS) -> None:
        (build_dir / ".ninja_deps").write_bytes(b"# ninjadeps\n")
        outputs[str(build_dir)] = output

    return write


class RecordingProgressLogger(ProgressLogger):
    """ProgressLogger that records what would be printed."""

    def __init__(self) -> None:
        super().__init__()
        self.sections: List[Tuple[str, LogLevel]] = []
        self.messages: List[Tuple[str, LogLevel]] = []

    def log(self, text: str, level: LogLevel = LogLevel.COMPACT) -> None:
        self.messages.append((text, level))

    @contextmanager
    def section(self, header: str, level: LogLevel = LogLevel.COMPACT) -> Iterator[None]:
        self.sections.append((header, level))
        yield


@pytest.fixture
def progress() -> RecordingProgressLogger:
    """Recording progress logger for impact manager tests."""
    return RecordingProgressLogger()


@pytest.fixture(autouse=True)
def reset_tool_cache() -> Generator[None, None, None]:
    """Keep tool detection results from leaking between tests."""
    clear_cache()
    yield
    clear_cache()
