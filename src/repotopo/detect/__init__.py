"""Workspace topology detection - monorepo tools, workspaces and tech stacks.

This module decides whether a project root is a monorepo, which ecosystem
(lerna, pnpm, Cargo, Gradle, a .sln file, ...) governs it, and which member
workspaces it contains, each with its own technology fingerprint.

Usage:
    from repotopo.detect import MonorepoDetector

    info = await MonorepoDetector(Path("/path/to/project")).detect()
    if info.is_monorepo:
        for ws in info.workspaces:
            print(f"{ws.name} ({ws.path}): {', '.join(ws.technologies)}")

    # Or synchronously
    info = detect_monorepo(Path("/path/to/project"))
"""

from .classifier import is_cross_language, language_family
from .ecosystems import ECOSYSTEMS, Ecosystem
from .git_workflow import GitWorkflowAnalyzer, GitWorkflowError
from .glob_cache import CachedGlobResolver
from .monorepo import DetectionState, MonorepoDetector, detect_monorepo
from .parsers import ManifestParseError
from .result import (
    GitConventions,
    MonorepoInfo,
    ProjectContext,
    TechStack,
    WorkspaceInfo,
)
from .tech_stack import TechStackDetector
from .utils import FileTooLargeError, is_safe_path

__all__ = [
    "ECOSYSTEMS",
    "CachedGlobResolver",
    "DetectionState",
    "Ecosystem",
    "FileTooLargeError",
    "GitConventions",
    "GitWorkflowAnalyzer",
    "GitWorkflowError",
    "ManifestParseError",
    "MonorepoDetector",
    "MonorepoInfo",
    "ProjectContext",
    "TechStack",
    "TechStackDetector",
    "WorkspaceInfo",
    "detect_monorepo",
    "is_cross_language",
    "is_safe_path",
    "language_family",
]
