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
"""Content fingerprints for resolved targets.

A target's fingerprint covers its own sources, the extra build arguments and
the fingerprints of the libraries it links against, so a change anywhere in
the dependency closure changes the fingerprint of every dependent target.
"""

import os
import hashlib
import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Dict, List, Optional, Sequence, Set, Any

import networkx as nx

from impactcheck.constants import DEFAULT_MAX_WORKERS, FILE_READ_CHUNK_SIZE, HASH_LENGTH, TargetHashingError
from impactcheck.target_resolver import build_target_graph
from impactcheck.target_types import Target, TargetsMap

logger = logging.getLogger(__name__)


def compute_file_digest(path: str) -> str:
    """Compute the SHA-1 digest of a file's content.

    Raises:
        OSError: If the file cannot be read
    """
    digest = hashlib.sha1()
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(FILE_READ_CHUNK_SIZE), b""):
            digest.update(chunk)
    return digest.hexdigest()


def compute_target_hash(target: Target, input_digests: Dict[str, str], build_args: Sequence[str], dependency_hashes: Sequence[str]) -> str:
    """Combine everything a target depends on into a short fingerprint.

    Args:
        target: Target to fingerprint
        input_digests: Content digest per input path of the target
        build_args: Extra build arguments, order significant
        dependency_hashes: Fingerprints of the direct dependencies, in dependency order

    Returns:
        First HASH_LENGTH hex characters of the SHA-1 fingerprint
    """
    digest = hashlib.sha1()
    digest.update(f"name:{target.name}\n".encode("utf-8"))
    digest.update(f"tests:{int(target.is_tests)}\n".encode("utf-8"))
    for path in sorted(input_digests):
        digest.update(f"input:{path}:{input_digests[path]}\n".encode("utf-8"))
    for arg in build_args:
        digest.update(f"arg:{arg}\n".encode("utf-8"))
    for dep_hash in dependency_hashes:
        digest.update(f"dep:{dep_hash}\n".encode("utf-8"))
    return digest.hexdigest()[:HASH_LENGTH]


class TargetsHasher:
    """Attaches fingerprints to targets.

    Input file digests are cached per hasher instance, so hashing the same
    target set twice reads each file once.

    Args:
        build_dir: Directory that input paths in build.ninja are relative to
        max_workers: Thread pool size for reading input files (None = default)
    """

    def __init__(self, build_dir: str, max_workers: Optional[int] = DEFAULT_MAX_WORKERS):
        self.build_dir = build_dir
        self.max_workers = max_workers
        self._file_digests: Dict[str, str] = {}

    def _resolve_input(self, path: str) -> str:
        if os.path.isabs(path):
            return path
        return os.path.normpath(os.path.join(self.build_dir, path))

    def _digest_inputs(self, targets: List[Target]) -> None:
        """Read every input not yet cached, in parallel."""
        pending: Set[str] = set()
        for target in targets:
            for path in target.inputs:
                resolved = self._resolve_input(path)
                if resolved not in self._file_digests:
                    pending.add(resolved)
        if not pending:
            return

        ordered = sorted(pending)
        logger.debug("Hashing %s input files", len(ordered))
        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            for path, digest in zip(ordered, executor.map(compute_file_digest, ordered)):
                self._file_digests[path] = digest

    def hash(self, targets: TargetsMap, build_args: Sequence[str]) -> None:
        """Attach a fingerprint to every target that does not have one yet.

        Args:
            targets: Targets keyed by uuid, fingerprints are written in place
            build_args: Extra build arguments of the current configuration

        Raises:
            TargetHashingError: If a dependency is missing from targets or dependencies form a cycle
            OSError: If an input file cannot be read
        """
        for target in targets.values():
            for dep in target.dependencies:
                if dep not in targets:
                    raise TargetHashingError(f"Dependency {dep} of {target.name} is not part of the resolved targets")

        graph: "nx.DiGraph[Any]" = build_target_graph(targets)
        try:
            # Edges point at dependencies, so reverse the order to hash leaves first
            order = list(reversed(list(nx.topological_sort(graph))))
        except nx.NetworkXUnfeasible as e:
            cycle = nx.find_cycle(graph)
            raise TargetHashingError(f"Dependency cycle between targets: {cycle}") from e

        unhashed = [targets[uuid] for uuid in order if targets[uuid].hash is None]
        if not unhashed:
            logger.debug("All %s targets already hashed", len(targets))
            return

        self._digest_inputs(unhashed)

        for target in unhashed:
            input_digests = {path: self._file_digests[self._resolve_input(path)] for path in target.inputs}
            dependency_hashes = [str(targets[dep].hash) for dep in target.dependencies]
            target.hash = compute_target_hash(target, input_digests, build_args, dependency_hashes)
            logger.debug("%s: %s", target.name, target.hash)

        logger.info("Hashed %s targets", len(unhashed))
