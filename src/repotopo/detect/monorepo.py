"""Monorepo detection orchestrator."""

import asyncio
import enum
import logging
import time
from collections.abc import Sequence
from dataclasses import replace
from pathlib import Path

from ..config import DetectorOptions
from ..constants import VERBOSE
from .classifier import is_cross_language
from .ecosystems import ECOSYSTEMS, Ecosystem
from .glob_cache import CachedGlobResolver
from .parsers import ManifestParseError
from .result import MonorepoInfo
from .utils import run_sync
from .workspaces import DetectionContext

logger = logging.getLogger(__name__)


class DetectionState(enum.Enum):
    """Progress of a MonorepoDetector.detect() call."""

    NOT_STARTED = "not_started"
    RUNNING_DETECTOR = "running_detector"
    FOUND = "found"
    CLASSIFIED = "classified"
    NOT_A_MONOREPO = "not_a_monorepo"


class MonorepoDetector:
    """Decides whether a project root is a monorepo and enumerates its workspaces.

    Each instance owns its glob cache; repeated detect() calls on the same
    instance reuse cached expansions until they expire.
    """

    def __init__(
        self,
        project_root: Path,
        options: DetectorOptions | None = None,
        *,
        ecosystems: Sequence[Ecosystem] = ECOSYSTEMS,
    ):
        self.project_root = Path(project_root)
        self.options = options or DetectorOptions()
        self.ecosystems = tuple(ecosystems)
        self.resolver = CachedGlobResolver(enable_cache=self.options.enable_cache)
        self.last_state = DetectionState.NOT_STARTED

    def _context(self) -> DetectionContext:
        return DetectionContext(
            self.project_root,
            self.resolver,
            max_workspaces=self.options.max_workspaces,
        )

    async def detect(self) -> MonorepoInfo:
        """Detect the governing monorepo tool and its workspaces.

        CONTRACT:
          Inputs:
            - self.project_root: absolute, existing directory

          Outputs:
            - MonorepoInfo from the first ecosystem (in priority order) that
              resolves at least its minimum number of workspaces
            - negative MonorepoInfo when no ecosystem matches

          Invariants:
            - Never raises for detection failures
            - detection_time_ms is set on every return path
            - cross_language is only True for a positive result
            - At most options.max_workspaces workspaces

          Algorithm:
            1. For each ecosystem, run its detection under a timeout
               (timeouts, parse failures and I/O errors count as negative)
            2. Stop at the first positive result
            3. Classify the workspaces as cross-language or not
        """
        start = time.perf_counter()
        root_path = str(self.project_root)
        logger.debug(f"Starting monorepo detection for: {root_path}")

        result = MonorepoInfo.negative(root_path)
        self.last_state = DetectionState.NOT_STARTED
        try:
            ctx = self._context()
            for ecosystem in self.ecosystems:
                self.last_state = DetectionState.RUNNING_DETECTOR
                detected = await self._run_ecosystem(ecosystem, ctx)
                if detected.is_monorepo:
                    self.last_state = DetectionState.FOUND
                    logger.log(
                        VERBOSE,
                        f"Detected {detected.tool} monorepo with "
                        f"{len(detected.workspaces)} workspaces",
                    )
                    result = detected
                    break

            if result.is_monorepo:
                cross_language = is_cross_language(result.workspaces)
                logger.log(
                    VERBOSE, f"Cross-language: {'yes' if cross_language else 'no'}"
                )
                result = replace(result, cross_language=cross_language)
                self.last_state = DetectionState.CLASSIFIED
            else:
                self.last_state = DetectionState.NOT_A_MONOREPO
        except Exception as e:
            logger.error(f"Monorepo detection failed: {e}")
            result = MonorepoInfo.negative(root_path)
            self.last_state = DetectionState.NOT_A_MONOREPO

        elapsed_ms = int((time.perf_counter() - start) * 1000)
        logger.debug(f"Detection completed in {elapsed_ms}ms")
        return replace(result, detection_time_ms=elapsed_ms)

    async def _run_ecosystem(
        self, ecosystem: Ecosystem, ctx: DetectionContext
    ) -> MonorepoInfo:
        negative = MonorepoInfo.negative(str(self.project_root))
        logger.debug(f"Trying {ecosystem.tool} detection")
        try:
            return await asyncio.wait_for(
                ecosystem.detect(ctx), timeout=self.options.timeout_seconds
            )
        except TimeoutError:
            logger.warning(
                f"{ecosystem.tool} detection timed out after "
                f"{self.options.timeout_ms}ms"
            )
        except (ManifestParseError, OSError) as e:
            logger.debug(f"{ecosystem.tool} detection failed: {e}")
        except Exception as e:
            logger.warning(f"Unexpected error during {ecosystem.tool} detection: {e}")
        return negative

    def clear_cache(self) -> None:
        """Drop cached glob expansions."""
        self.resolver.clear()


def detect_monorepo(
    project_path: Path, options: DetectorOptions | None = None
) -> MonorepoInfo:
    """Synchronous wrapper around MonorepoDetector.detect().

    Must not be called from a running event loop.
    """
    return run_sync(MonorepoDetector(project_path, options).detect())
