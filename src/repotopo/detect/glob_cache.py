"""Glob pattern resolution with a short-lived, size-capped cache.

The dozen ecosystem detectors frequently expand the same patterns against
the same root during one analysis. Results are cached per detector instance
for a short TTL; a cache miss always reproduces exactly what a hit returns.
"""

import asyncio
import logging
import time
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from pathlib import Path, PurePosixPath

from ..constants import GLOB_CACHE_MAX_ENTRIES, GLOB_CACHE_TTL_SECONDS, VERBOSE

logger = logging.getLogger(__name__)


@dataclass
class GlobCacheEntry:
    """Cached expansion of one pattern."""

    pattern: str
    results: tuple[str, ...]
    timestamp: float


def _expand(pattern: str, cwd: Path, ignore: frozenset[str]) -> list[str]:
    if not pattern or Path(pattern).anchor:
        logger.debug(f"Ignoring empty or absolute pattern: {pattern!r}")
        return []
    if pattern == ".":
        # Path.glob rejects a bare "."; a workspace may list the root itself
        return ["."]
    try:
        # Path.glob never descends into symlinked directories for "**"
        matches = list(cwd.glob(pattern))
    except ValueError as e:
        logger.debug(f"Invalid glob pattern {pattern!r}: {e}")
        return []

    literal = set(PurePosixPath(pattern).parts)
    results = set()
    for match in matches:
        parts = match.relative_to(cwd).parts
        if not parts:
            continue
        # wildcards never match hidden entries, only literal components do
        if any(p.startswith(".") and p not in literal for p in parts):
            continue
        if ignore and any(part in ignore for part in parts):
            continue
        results.add(PurePosixPath(*parts).as_posix())
    # glob order depends on the filesystem; sort for reproducible output
    return sorted(results)


class CachedGlobResolver:
    """Expands glob patterns relative to a directory, caching the results.

    Thread-safety: not thread-safe. The resolver belongs to a single detector
    and is only touched from the event loop thread, between awaits.
    """

    def __init__(
        self,
        *,
        enable_cache: bool = True,
        ttl_seconds: float = GLOB_CACHE_TTL_SECONDS,
        max_entries: int = GLOB_CACHE_MAX_ENTRIES,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.enable_cache = enable_cache
        self.ttl_seconds = ttl_seconds
        self.max_entries = max_entries
        self._clock = clock
        self._cache: dict[str, GlobCacheEntry] = {}

    def __len__(self) -> int:
        return len(self._cache)

    async def resolve(
        self, pattern: str, cwd: Path, ignore: Iterable[str] = ()
    ) -> list[str]:
        """Expand pattern relative to cwd.

        CONTRACT:
          Inputs:
            - pattern: glob pattern (``*``, ``?``, ``[...]`` and ``**``)
            - cwd: directory the pattern is relative to
            - ignore: directory names; any match containing one is dropped

          Outputs:
            - sorted list of matching paths relative to cwd, POSIX separators

          Invariants:
            - Cache hit and cache miss return equal lists
            - Returned list is a fresh copy, safe for the caller to mutate
            - At most max_entries entries are cached; the oldest-inserted entry
              is evicted first. Hits do not refresh an entry or extend its TTL
        """
        ignore_set = frozenset(ignore)

        if not self.enable_cache:
            return await asyncio.to_thread(_expand, pattern, cwd, ignore_set)

        key = f"{pattern}:{cwd}:{','.join(sorted(ignore_set))}"
        now = self._clock()
        cached = self._cache.get(key)
        if cached is not None and now - cached.timestamp < self.ttl_seconds:
            logger.log(VERBOSE, f"Cache hit for pattern: {pattern}")
            return list(cached.results)

        logger.debug(f"Cache miss for pattern: {pattern}")
        results = await asyncio.to_thread(_expand, pattern, cwd, ignore_set)
        self._cache[key] = GlobCacheEntry(
            pattern=pattern, results=tuple(results), timestamp=now
        )
        self._evict()
        return list(results)

    def _evict(self) -> None:
        # insertion order, not recency: the timestamp also drives the TTL
        while len(self._cache) > self.max_entries:
            oldest = min(self._cache, key=lambda k: self._cache[k].timestamp)
            logger.debug(f"Evicting glob cache entry: {self._cache[oldest].pattern}")
            del self._cache[oldest]

    def clear(self) -> None:
        """Drop every cached expansion."""
        self._cache.clear()
        logger.log(VERBOSE, "Cache cleared")
