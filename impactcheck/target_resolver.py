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
"""Resolve build targets and their library dependencies from build.ninja.

Link edges (static/shared libraries and executables) become targets. Compile
edges are used to map each object file back to its sources so that a target's
inputs are real source files rather than build products. Headers ninja
recorded for the object files are added to those inputs. Libraries found
among a link edge's inputs become the target's dependencies.
"""

import os
import re
import logging
from typing import Dict, List, Optional, Pattern, Set, Tuple, Any
from dataclasses import dataclass, field

import networkx as nx

from impactcheck.constants import (
    BUILD_NINJA,
    COMPILER_RULES,
    EXECUTABLE_LINKER_RULES,
    LIBRARY_LINKER_RULES,
    TEST_TARGET_PATTERN,
    BuildDirectoryError,
)
from impactcheck.ninja_utils import get_discovered_dependencies
from impactcheck.target_types import Target, TargetsMap

logger = logging.getLogger(__name__)

RE_TEST_TARGET = re.compile(TEST_TARGET_PATTERN)


@dataclass
class NinjaBuildEdge:
    """One parsed build statement.

    Attributes:
        outputs: Explicit outputs
        rule: Rule name (e.g. CXX_EXECUTABLE_LINKER__app_Debug)
        explicit_inputs: Inputs before '|'
        implicit_inputs: Inputs between '|' and '||'
        order_only_inputs: Inputs after '||'
    """

    outputs: List[str]
    rule: str
    explicit_inputs: List[str] = field(default_factory=list)
    implicit_inputs: List[str] = field(default_factory=list)
    order_only_inputs: List[str] = field(default_factory=list)

    def all_inputs(self) -> List[str]:
        return self.explicit_inputs + self.implicit_inputs + self.order_only_inputs


def _tokenize_build_statement(text: str) -> Tuple[List[str], int]:
    """Split a build statement body into tokens, honoring ninja '$' escapes.

    Args:
        text: Statement text after the leading 'build '

    Returns:
        Tuple of (tokens, index of the first token after the unescaped ':', or -1)
    """
    tokens: List[str] = []
    current: List[str] = []
    colon_index = -1
    i = 0
    while i < len(text):
        ch = text[i]
        if ch == "$" and i + 1 < len(text):
            current.append(text[i + 1])
            i += 2
            continue
        if ch.isspace() or (ch == ":" and colon_index < 0):
            if current:
                tokens.append("".join(current))
                current = []
            if ch == ":":
                colon_index = len(tokens)
            i += 1
            continue
        current.append(ch)
        i += 1
    if current:
        tokens.append("".join(current))
    return tokens, colon_index


def parse_build_statement(line: str) -> Optional[NinjaBuildEdge]:
    """Parse a single 'build' line into a NinjaBuildEdge.

    Args:
        line: Complete statement with continuations already joined

    Returns:
        Parsed edge, or None if the line is not a well-formed build statement
    """
    if not line.startswith("build "):
        return None

    tokens, colon_index = _tokenize_build_statement(line[len("build ") :])
    if colon_index <= 0 or colon_index >= len(tokens):
        logger.debug("Skipping malformed build statement: %s", line[:120])
        return None

    outputs: List[str] = []
    for token in tokens[:colon_index]:
        if token == "|":
            break  # implicit outputs follow
        outputs.append(token)

    edge = NinjaBuildEdge(outputs=outputs, rule=tokens[colon_index])
    bucket = edge.explicit_inputs
    for token in tokens[colon_index + 1 :]:
        if token == "|":
            bucket = edge.implicit_inputs
        elif token == "||":
            bucket = edge.order_only_inputs
        elif token == "|@":
            break  # validations do not feed the target
        else:
            bucket.append(token)
    return edge


def read_build_statements(build_ninja_path: str) -> List[NinjaBuildEdge]:
    """Read all build statements from a build.ninja file.

    Args:
        build_ninja_path: Path to build.ninja

    Returns:
        List of edges in declaration order

    Raises:
        OSError: If the file cannot be read
    """
    edges: List[NinjaBuildEdge] = []
    pending = ""

    with open(build_ninja_path, "r", encoding="utf-8") as f:
        for raw_line in f:
            line = raw_line.rstrip("\n").rstrip("\r")
            if pending:
                line = pending + line.lstrip()
                pending = ""
            # A trailing unescaped '$' continues the statement on the next line
            stripped = line.rstrip()
            trailing = len(stripped) - len(stripped.rstrip("$"))
            if trailing % 2 == 1:
                pending = stripped[:-1] + " "
                continue
            if not line or line.startswith("#") or line[0].isspace():
                continue
            edge = parse_build_statement(line)
            if edge is not None:
                edges.append(edge)

    if pending:
        edge = parse_build_statement(pending.rstrip())
        if edge is not None:
            edges.append(edge)
    return edges


def _rule_matches(rule: str, prefixes: Tuple[str, ...]) -> bool:
    return rule.startswith(prefixes)


def is_test_target_name(name: str) -> bool:
    """Check whether an executable name denotes a test target."""
    return RE_TEST_TARGET.search(name) is not None


def parse_ninja_targets(build_ninja_path: str, discovered_deps: Optional[Dict[str, List[str]]] = None) -> TargetsMap:
    """Parse build.ninja into freshly created targets.

    A target's inputs are the explicit and implicit inputs of the compile
    edges of its object files, followed by the headers discovered for those
    objects. Order-only inputs only sequence the build and are not inputs.

    Args:
        build_ninja_path: Path to build.ninja
        discovered_deps: Headers per object file from ninja's deps log

    Returns:
        Targets keyed by uuid, in declaration order
    """
    discovered_deps = discovered_deps or {}
    logger.info("Parsing %s...", build_ninja_path)
    edges = read_build_statements(build_ninja_path)

    object_to_sources: Dict[str, List[str]] = {}
    link_edges: List[Tuple[NinjaBuildEdge, bool]] = []
    library_outputs: Set[str] = set()

    for edge in edges:
        if _rule_matches(edge.rule, COMPILER_RULES):
            for output in edge.outputs:
                object_to_sources[output] = edge.explicit_inputs + edge.implicit_inputs
        elif _rule_matches(edge.rule, LIBRARY_LINKER_RULES):
            link_edges.append((edge, False))
            library_outputs.add(edge.outputs[0])
        elif _rule_matches(edge.rule, EXECUTABLE_LINKER_RULES):
            link_edges.append((edge, True))

    targets: TargetsMap = {}
    for edge, is_executable in link_edges:
        uuid = edge.outputs[0]
        if uuid in targets:
            logger.warning("Duplicate build statement for %s, keeping the first", uuid)
            continue

        inputs: List[str] = []
        for obj in edge.explicit_inputs:
            for source in object_to_sources.get(obj, []) + discovered_deps.get(obj, []):
                if source not in inputs:
                    inputs.append(source)

        dependencies: List[str] = []
        for dep in edge.all_inputs():
            if dep in library_outputs and dep != uuid and dep not in dependencies:
                dependencies.append(dep)

        name = os.path.basename(uuid)
        targets[uuid] = Target(
            uuid=uuid,
            name=name,
            is_tests=is_executable and is_test_target_name(name),
            inputs=inputs,
            dependencies=dependencies,
        )

    test_count = sum(1 for target in targets.values() if target.is_tests)
    logger.info("Found %s targets (%s test targets)", len(targets), test_count)
    return targets


def build_target_graph(targets: TargetsMap) -> "nx.DiGraph[Any]":
    """Build a directed graph with an edge from each target to each dependency.

    Args:
        targets: Targets keyed by uuid

    Returns:
        NetworkX DiGraph containing every target as a node
    """
    graph: "nx.DiGraph[Any]" = nx.DiGraph()
    graph.add_nodes_from(targets.keys())
    for uuid, target in targets.items():
        for dep in target.dependencies:
            graph.add_edge(uuid, dep)
    return graph


def _matches(pattern: Optional[Pattern[str]], name: str) -> bool:
    return pattern is not None and pattern.search(name) is not None


class NinjaTargetResolver:
    """Finds targets of a ninja build directory.

    Args:
        build_dir: Path to the ninja build directory
        use_discovered_deps: Add the headers recorded in ninja's deps log to target inputs
    """

    def __init__(self, build_dir: str, use_discovered_deps: bool = True):
        self.build_dir = build_dir
        self.use_discovered_deps = use_discovered_deps

    @property
    def build_ninja_path(self) -> str:
        return os.path.join(self.build_dir, BUILD_NINJA)

    def _validate(self) -> None:
        if not os.path.isdir(self.build_dir):
            raise BuildDirectoryError(f"Build directory does not exist: {self.build_dir}")
        if not os.path.isfile(self.build_ninja_path):
            raise BuildDirectoryError(f"{BUILD_NINJA} not found in {self.build_dir}. Is this a ninja build directory?")

    def find_targets(
        self, targets_regex: Optional[Pattern[str]] = None, except_targets_regex: Optional[Pattern[str]] = None, including_tests: bool = False
    ) -> TargetsMap:
        """Select targets by name and add everything they depend on.

        Args:
            targets_regex: Select targets whose name matches (None = all targets)
            except_targets_regex: Drop selected targets whose name matches
            including_tests: Keep test targets in the selection

        Returns:
            Selected targets plus their transitive dependencies, in declaration order

        Raises:
            BuildDirectoryError: If the build directory or build.ninja is missing
        """
        self._validate()
        discovered_deps = get_discovered_dependencies(self.build_dir) if self.use_discovered_deps else {}
        all_targets = parse_ninja_targets(self.build_ninja_path, discovered_deps)
        graph = build_target_graph(all_targets)

        selected: Set[str] = set()
        for uuid, target in all_targets.items():
            if target.is_tests and not including_tests:
                continue
            if targets_regex is not None and not _matches(targets_regex, target.name):
                continue
            if _matches(except_targets_regex, target.name):
                continue
            selected.add(uuid)

        resolved = set(selected)
        for uuid in selected:
            resolved.update(nx.descendants(graph, uuid))

        logger.debug("Selected %s targets, %s with dependencies", len(selected), len(resolved))
        return {uuid: target for uuid, target in all_targets.items() if uuid in resolved}
