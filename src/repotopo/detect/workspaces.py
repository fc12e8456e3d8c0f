"""Workspace enumeration: member declarations -> WorkspaceInfo records."""

import asyncio
import logging
import posixpath
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from pathlib import Path

from ..constants import DEPENDENCY_CACHE_DIRS, MAX_MANIFEST_BYTES, PROBE_BATCH_SIZE
from .glob_cache import CachedGlobResolver
from .result import WorkspaceInfo
from .utils import file_exists, is_safe_path, normalize_relative, read_bounded

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Member:
    """A declared workspace member: a relative path and an optional name hint."""

    path: str
    name: str | None = None


@dataclass
class MemberSpec:
    """Members declared by an ecosystem's signature file.

    patterns are globs relative to the root; a leading "!" marks an
    exclusion. members are explicit paths that need no expansion.
    """

    patterns: list[str] = field(default_factory=list)
    members: list[Member] = field(default_factory=list)

    def is_empty(self) -> bool:
        has_includes = any(not p.startswith("!") for p in self.patterns)
        return not has_includes and not self.members


WorkspaceProbe = Callable[["DetectionContext", Member], Awaitable[WorkspaceInfo | None]]


class DetectionContext:
    """Filesystem access shared by the detectors of one MonorepoDetector.

    Bundles the project root, the detector's glob resolver and the resource
    limits, and implements workspace enumeration on top of them.
    """

    def __init__(
        self,
        root: Path,
        resolver: CachedGlobResolver,
        *,
        max_workspaces: int,
        max_manifest_bytes: int = MAX_MANIFEST_BYTES,
    ):
        self.root = root
        self.resolver = resolver
        self.max_workspaces = max_workspaces
        self.max_manifest_bytes = max_manifest_bytes

    async def exists(self, relative: str) -> bool:
        return await file_exists(self.root / relative)

    async def read(self, relative: str) -> str | None:
        """Read a manifest relative to the root.

        Returns None when the file does not exist or is not confined to the
        root. Raises FileTooLargeError / OSError for oversized or unreadable
        files so callers treat them as parse failures.
        """
        path = self.root / relative
        if not await file_exists(path):
            return None
        if not await asyncio.to_thread(is_safe_path, relative, self.root):
            logger.debug(f"Refusing to read manifest outside project root: {relative}")
            return None
        return await read_bounded(path, self.max_manifest_bytes)

    async def glob(self, pattern: str) -> list[str]:
        return await self.resolver.resolve(pattern, self.root, DEPENDENCY_CACHE_DIRS)

    async def expand(self, spec: MemberSpec) -> list[Member]:
        """Expand a MemberSpec into root-confined members, in declaration order.

        Glob matches come first (pattern by pattern, each sorted), then
        explicit members. Duplicates, symlink aliases of an earlier member and
        exclusion matches are dropped.
        """
        includes = [
            normalize_relative(p) for p in spec.patterns if not p.startswith("!")
        ]
        excludes = [
            normalize_relative(p[1:]) for p in spec.patterns if p.startswith("!")
        ]

        include_results = await asyncio.gather(*(self.glob(p) for p in includes))
        exclude_results = await asyncio.gather(*(self.glob(p) for p in excludes))
        excluded = {
            normalize_relative(m) for matches in exclude_results for m in matches
        }

        candidates: list[Member] = []
        seen: set[str] = set()
        declared = [Member(m) for matches in include_results for m in matches]
        for member in declared + spec.members:
            path = normalize_relative(member.path)
            if path in seen or path in excluded:
                continue
            seen.add(path)
            candidates.append(Member(path, member.name))

        return await asyncio.to_thread(self._confined, candidates)

    def _confined(self, candidates: list[Member]) -> list[Member]:
        safe = []
        root_real = self.root.resolve()
        seen_real: set[Path] = set()
        for member in candidates:
            # "../<root name>" resolves back into the root but is not a member
            path = posixpath.normpath(member.path)
            climbs = path == ".." or path.startswith("../")
            if climbs or not is_safe_path(path, self.root):
                logger.debug(f"Skipping workspace outside project root: {member.path}")
                continue

            try:
                real = (self.root / path).resolve()
            except (OSError, RuntimeError) as e:
                logger.debug(f"Skipping unresolvable workspace {member.path}: {e}")
                continue
            # a symlink may alias an earlier member or point back at the root
            if real in seen_real or (real == root_real and path != "."):
                logger.debug(f"Skipping aliased workspace: {member.path}")
                continue
            seen_real.add(real)
            safe.append(Member(path, member.name))
        return safe

    async def find_workspaces(
        self, spec: MemberSpec, probe: WorkspaceProbe
    ) -> list[WorkspaceInfo]:
        """Resolve declared members into workspaces.

        CONTRACT:
          Inputs:
            - spec: glob patterns and/or explicit member paths
            - probe: reads one member's manifest and builds its WorkspaceInfo,
              returning None when the member has no manifest

          Outputs:
            - list of WorkspaceInfo in expansion order, at most max_workspaces

          Invariants:
            - Every workspace path is confined to the project root
            - A probe that raises only drops its own member
            - Output order never depends on probe completion order

          Algorithm:
            1. Expand and confine members (see expand)
            2. Probe members concurrently in batches of PROBE_BATCH_SIZE
            3. Collect non-None results by request index until the cap is hit
        """
        candidates = await self.expand(spec)
        workspaces: list[WorkspaceInfo] = []

        for start in range(0, len(candidates), PROBE_BATCH_SIZE):
            batch = candidates[start : start + PROBE_BATCH_SIZE]
            results = await asyncio.gather(*(self._probe(probe, m) for m in batch))
            for offset, workspace in enumerate(results):
                if workspace is None:
                    continue
                workspaces.append(workspace)
                if len(workspaces) >= self.max_workspaces:
                    remaining = len(candidates) - (start + offset + 1)
                    if remaining > 0:
                        logger.warning(
                            f"Limiting workspaces to {self.max_workspaces} "
                            f"({remaining} candidates not included)"
                        )
                    return workspaces

        return workspaces

    async def _probe(
        self, probe: WorkspaceProbe, member: Member
    ) -> WorkspaceInfo | None:
        try:
            return await probe(self, member)
        except Exception as e:
            logger.debug(f"Failed to read workspace manifest at {member.path}: {e}")
            return None
