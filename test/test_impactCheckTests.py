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
"""Integration tests for impactCheckTests.py"""

import re
import json
from pathlib import Path
from typing import Any, Dict, List

import pytest

import impactCheckTests
from impactcheck.constants import EXIT_ALREADY_MANAGED, EXIT_INVALID_ARGS, EXIT_SUCCESS, MANAGED_MARKER_FILE, AlreadyManagedError, ArgumentError, BuildDirectoryError
from impactcheck.tool_detection import ToolInfo

RESULT_LINE = re.compile(r"^(\S+) \(([0-9a-f]{7})\)$")


@pytest.fixture(autouse=True)
def fake_ninja(monkeypatch: Any) -> None:
    """Avoid running the real ninja for the toolchain diagnostic."""
    monkeypatch.setattr("impactcheck.tool_detection.find_ninja", lambda: ToolInfo(command="ninja", version="1.11.1"))


def run_tool(capsys: pytest.CaptureFixture, command: str, build_dir: Path, *extra: str) -> List[str]:
    """Run the tool quietly and return the printed result lines."""
    assert impactCheckTests.main([command, str(build_dir), "--quiet", "--no-color", *extra]) == EXIT_SUCCESS
    return capsys.readouterr().out.splitlines()


def affected_names(lines: List[str]) -> List[str]:
    names = []
    for line in lines:
        match = RESULT_LINE.match(line)
        assert match, line
        names.append(match.group(1))
    return names


class TestWorkflow:
    """End to end runs against a generated build directory."""

    def test_first_run_reports_every_test_target(self, sample_project: Dict[str, Path], capsys: pytest.CaptureFixture) -> None:
        lines = run_tool(capsys, "impact", sample_project["build_dir"])
        assert affected_names(lines) == ["core_tests", "UITests"]

    def test_nothing_affected_after_mark_passed(self, sample_project: Dict[str, Path], capsys: pytest.CaptureFixture) -> None:
        build_dir = sample_project["build_dir"]
        run_tool(capsys, "mark-passed", build_dir)

        assert run_tool(capsys, "impact", build_dir) == []

        assert impactCheckTests.main(["impact", str(build_dir), "--no-color"]) == EXIT_SUCCESS
        output = capsys.readouterr().out
        assert "Finding Targets" in output
        assert "Hashing Targets" in output
        assert "No Affected Test Targets" in output

    def test_library_change_affects_dependent_tests(self, sample_project: Dict[str, Path], capsys: pytest.CaptureFixture) -> None:
        build_dir = sample_project["build_dir"]
        run_tool(capsys, "mark-passed", build_dir)

        (sample_project["src_dir"] / "UI" / "ui.cpp").write_text("int ui() { return 5; }\n")
        assert affected_names(run_tool(capsys, "impact", build_dir)) == ["UITests"]

        (sample_project["src_dir"] / "Core" / "core.cpp").write_text("int core() { return 5; }\n")
        assert affected_names(run_tool(capsys, "impact", build_dir)) == ["core_tests", "UITests"]

    def test_header_change_affects_dependent_tests(self, sample_project: Dict[str, Path], capsys: pytest.CaptureFixture, ninja_deps_log: Any) -> None:
        """A header only named in ninja's deps log still marks its users as affected."""
        build_dir = sample_project["build_dir"]
        ninja_deps_log(build_dir)
        run_tool(capsys, "mark-passed", build_dir)

        (sample_project["src_dir"] / "Core" / "core.h").write_text("int core(int value);\n")
        assert affected_names(run_tool(capsys, "impact", build_dir)) == ["core_tests", "UITests"]

    def test_no_header_deps(self, sample_project: Dict[str, Path], capsys: pytest.CaptureFixture, ninja_deps_log: Any) -> None:
        build_dir = sample_project["build_dir"]
        ninja_deps_log(build_dir)
        run_tool(capsys, "mark-passed", build_dir, "--no-header-deps")

        (sample_project["src_dir"] / "Core" / "core.h").write_text("int core(int value);\n")
        assert run_tool(capsys, "impact", build_dir, "--no-header-deps") == []

    def test_partial_mark_passed(self, sample_project: Dict[str, Path], capsys: pytest.CaptureFixture) -> None:
        """Only the selected test targets are recorded."""
        build_dir = sample_project["build_dir"]
        run_tool(capsys, "mark-passed", build_dir, "--targets", "^core_tests$")
        assert affected_names(run_tool(capsys, "impact", build_dir)) == ["UITests"]
        assert run_tool(capsys, "impact", build_dir, "--except", "UI") == []

    @pytest.mark.parametrize(
        "changed",
        [
            ["--config", "Release"],
            ["--arch", "arm64"],
            ["--sdk", "android"],
            ["--build-arg", "CMAKE_UNITY_BUILD=ON"],
            ["--output-path", "dist"],
        ],
    )
    def test_configuration_change_affects_everything(self, sample_project: Dict[str, Path], capsys: pytest.CaptureFixture, changed: List[str]) -> None:
        build_dir = sample_project["build_dir"]
        run_tool(capsys, "mark-passed", build_dir)
        assert affected_names(run_tool(capsys, "impact", build_dir, *changed)) == ["core_tests", "UITests"]

    def test_custom_storage_dir(self, sample_project: Dict[str, Path], capsys: pytest.CaptureFixture) -> None:
        build_dir = sample_project["build_dir"]
        storage_dir = sample_project["root"] / "records"
        run_tool(capsys, "mark-passed", build_dir, "--storage-dir", str(storage_dir), "--jobs", "2")

        record_files = list(storage_dir.glob("*.json"))
        assert len(record_files) == 1
        assert set(json.loads(record_files[0].read_text())["targets"]) == {"Core/core_tests", "UI/UITests"}
        assert affected_names(run_tool(capsys, "impact", build_dir)) == ["core_tests", "UITests"]


class TestErrors:
    """Errors propagate out of main with their exit codes."""

    @pytest.mark.parametrize("command", ["impact", "mark-passed"])
    def test_managed_build_directory(self, sample_project: Dict[str, Path], capsys: pytest.CaptureFixture, command: str) -> None:
        build_dir = sample_project["build_dir"]
        (build_dir / MANAGED_MARKER_FILE).write_text(json.dumps({"tool": "impact-check"}))

        with pytest.raises(AlreadyManagedError) as exc_info:
            impactCheckTests.main([command, str(build_dir), "--no-color"])

        assert exc_info.value.exit_code == EXIT_ALREADY_MANAGED
        assert "Finding Targets" not in capsys.readouterr().out
        assert not (build_dir / ".impactcheck_cache").exists()

    def test_invalid_regex(self, sample_project: Dict[str, Path]) -> None:
        with pytest.raises(ArgumentError, match="--targets") as exc_info:
            impactCheckTests.main(["impact", str(sample_project["build_dir"]), "--targets", "([unclosed"])
        assert exc_info.value.exit_code == EXIT_INVALID_ARGS

    def test_invalid_jobs(self, sample_project: Dict[str, Path]) -> None:
        with pytest.raises(ArgumentError, match="--jobs"):
            impactCheckTests.main(["impact", str(sample_project["build_dir"]), "--jobs", "0"])

    def test_missing_build_directory(self, temp_dir: str) -> None:
        with pytest.raises(BuildDirectoryError):
            impactCheckTests.main(["impact", str(Path(temp_dir) / "missing"), "--no-color"])

    def test_command_is_required(self) -> None:
        with pytest.raises(SystemExit) as exc_info:
            impactCheckTests.main([])
        assert exc_info.value.code == 2


class TestRun:
    """Tests for the console script wrapper."""

    def test_maps_errors_to_exit_codes(self, sample_project: Dict[str, Path], monkeypatch: Any, capsys: pytest.CaptureFixture) -> None:
        build_dir = sample_project["build_dir"]
        (build_dir / MANAGED_MARKER_FILE).write_text("{}")
        monkeypatch.setattr("sys.argv", ["impactCheckTests.py", "impact", str(build_dir), "--no-color"])

        with pytest.raises(SystemExit) as exc_info:
            impactCheckTests.run()

        assert exc_info.value.code == EXIT_ALREADY_MANAGED
        assert "already managed" in capsys.readouterr().err

    def test_success(self, sample_project: Dict[str, Path], monkeypatch: Any) -> None:
        monkeypatch.setattr("sys.argv", ["impactCheckTests.py", "impact", str(sample_project["build_dir"]), "--quiet", "--no-color"])
        with pytest.raises(SystemExit) as exc_info:
            impactCheckTests.run()
        assert exc_info.value.code == EXIT_SUCCESS
