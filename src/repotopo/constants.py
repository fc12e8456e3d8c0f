"""Shared constants for repotopo."""

import logging
from typing import TypedDict

# Extra log level for detection progress that is too chatty for INFO but
# useful without full DEBUG output (detected tool, cache hits, verdicts).
VERBOSE = 15
logging.addLevelName(VERBOSE, "VERBOSE")


class FamilyInfo(TypedDict):
    """Type definition for a language family."""

    name: str
    technologies: list[str]


# Language families used to decide whether a monorepo is polyglot.
# Framework tags (React, Django, ...) intentionally map to no family.
LANGUAGE_FAMILIES: dict[str, FamilyInfo] = {
    "js": {"name": "JS", "technologies": ["JavaScript", "TypeScript"]},
    "python": {"name": "Python", "technologies": ["Python"]},
    "jvm": {"name": "JVM", "technologies": ["Java", "Kotlin"]},
    "go": {"name": "Go", "technologies": ["Go"]},
    "rust": {"name": "Rust", "technologies": ["Rust"]},
    "dotnet": {"name": "DotNet", "technologies": ["C#", "F#", "Visual Basic"]},
}

# Defaults and hard limits for MonorepoDetector
DEFAULT_MAX_WORKSPACES = 1000
DEFAULT_TIMEOUT_MS = 30_000
MAX_TIMEOUT_MS = 300_000

# Glob cache
GLOB_CACHE_TTL_SECONDS = 60.0
GLOB_CACHE_MAX_ENTRIES = 256

# Per-manifest read bound (1 MiB)
MAX_MANIFEST_BYTES = 1024 * 1024

# Concurrent manifest probes issued per batch during enumeration
PROBE_BATCH_SIZE = 64

# Sibling-package fallback and solution-file thresholds
MIN_SIBLING_PACKAGES = 3
MIN_SOLUTION_PROJECTS = 2

# Fallback extension scan bounds for tech stack detection
MAX_SCAN_DEPTH = 3
MAX_FILES_TO_SCAN = 5000

# Dependency caches never treated as workspace candidates
DEPENDENCY_CACHE_DIRS = frozenset(
    {
        "node_modules",
        "bower_components",
        ".git",
        "__pycache__",
        ".venv",
        ".tox",
        "vendor",
        "target",
        "dist",
        "build",
    }
)

# Directories skipped by the fallback extension scan
SCAN_SKIP_DIRS = frozenset(
    {
        "node_modules",
        ".git",
        "dist",
        "build",
        "out",
        ".next",
        "__pycache__",
        "target",
        "vendor",
        ".venv",
        "venv",
        ".tox",
        "bin",
        "obj",
    }
)
