"""Root-level tech stack detection from manifest files and file extensions."""

import asyncio
import logging
import os
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import Any

from ..constants import (
    MAX_FILES_TO_SCAN,
    MAX_MANIFEST_BYTES,
    MAX_SCAN_DEPTH,
    SCAN_SKIP_DIRS,
)
from .parsers import (
    ManifestParseError,
    parse_json,
    parse_toml,
    string_list,
    toml_table,
)
from .result import TechStack
from .utils import extract_package_name, file_exists, is_safe_path, read_bounded

logger = logging.getLogger(__name__)

# Dependency name -> identifier, for the root package.json
NODE_FRAMEWORKS = {
    "react": "react",
    "vue": "vue",
    "@angular/core": "angular",
    "next": "next",
    "svelte": "svelte",
    "express": "express",
    "@nestjs/core": "nestjs",
    "react-native": "react-native",
}

NODE_TOOLS = {
    "vite": "vite",
    "@vitejs/plugin-react": "vite",
    "webpack": "webpack",
    "jest": "jest",
    "vitest": "vitest",
    "eslint": "eslint",
    "prettier": "prettier",
}

PYTHON_FRAMEWORKS = {"django", "flask", "fastapi"}
PYTHON_TOOLS = {"pytest"}

# File extension -> language identifier for the fallback scan.
# TypeScript extensions shadow JavaScript ones.
EXTENSION_LANGUAGES = {
    ".py": "python",
    ".java": "java",
    ".kt": "kotlin",
    ".go": "go",
    ".rs": "rust",
    ".cs": "csharp",
    ".rb": "ruby",
    ".php": "php",
}
TYPESCRIPT_EXTENSIONS = {".ts", ".tsx"}
JAVASCRIPT_EXTENSIONS = {".js", ".jsx", ".mjs", ".cjs"}

DOCKER_FILES = (
    "Dockerfile",
    "docker-compose.yml",
    "docker-compose.yaml",
    "compose.yaml",
)

Sniffer = Callable[[Path], Awaitable[TechStack]]


async def _read_manifest(path: Path) -> str | None:
    """Read a root manifest, returning None when missing or unreadable."""
    if not await file_exists(path):
        return None
    try:
        return await read_bounded(path, MAX_MANIFEST_BYTES)
    except OSError as e:
        logger.warning(f"Could not read {path.name}: {e}")
        return None


async def sniff_node(root: Path) -> TechStack:
    found = TechStack()
    content = await _read_manifest(root / "package.json")
    if content is None:
        return found

    try:
        data = parse_json(content)
    except ManifestParseError as e:
        logger.warning(f"Failed to parse package.json: {e}")
        return found

    deps: dict[str, Any] = {}
    for key in ("dependencies", "devDependencies"):
        section = data.get(key)
        if isinstance(section, dict):
            deps.update(section)

    if "typescript" in deps or await file_exists(root / "tsconfig.json"):
        found.languages.append("typescript")
    else:
        found.languages.append("javascript")

    for name, ident in NODE_FRAMEWORKS.items():
        if name in deps and ident not in found.frameworks:
            found.frameworks.append(ident)
    for name, ident in NODE_TOOLS.items():
        if name in deps and ident not in found.tools:
            found.tools.append(ident)
    return found


def _pyproject_requirements(content: str) -> list[str]:
    try:
        data = parse_toml(content)
    except ManifestParseError as e:
        logger.warning(f"Failed to parse pyproject.toml: {e}")
        return []

    project = toml_table(data, "project") or {}
    requirements = string_list(project.get("dependencies"))
    optional = project.get("optional-dependencies")
    if isinstance(optional, dict):
        for group in optional.values():
            requirements.extend(string_list(group))
    for table in ("dependencies", "dev-dependencies"):
        requirements.extend((toml_table(data, "tool", "poetry", table) or {}).keys())
    return requirements


async def sniff_python(root: Path) -> TechStack:
    found = TechStack()
    requirements: list[str] = []

    requirements_txt = await _read_manifest(root / "requirements.txt")
    if requirements_txt is not None:
        requirements.extend(
            line.strip()
            for line in requirements_txt.splitlines()
            if line.strip() and not line.strip().startswith(("#", "-"))
        )

    pyproject = await _read_manifest(root / "pyproject.toml")
    if pyproject is not None:
        requirements.extend(_pyproject_requirements(pyproject))

    has_setup_py = await file_exists(root / "setup.py")
    if requirements_txt is None and pyproject is None and not has_setup_py:
        return found

    found.languages.append("python")
    for requirement in requirements:
        package = extract_package_name(requirement, normalize_case=True)
        if package in PYTHON_FRAMEWORKS and package not in found.frameworks:
            found.frameworks.append(package)
        if package in PYTHON_TOOLS and package not in found.tools:
            found.tools.append(package)
    return found


async def sniff_java(root: Path) -> TechStack:
    found = TechStack()
    pom = await _read_manifest(root / "pom.xml")
    if pom is not None:
        found.languages.append("java")
        if "spring-boot" in pom:
            found.frameworks.append("spring")
        if "junit" in pom:
            found.tools.append("junit")
        found.tools.append("maven")

    gradle_kts = await file_exists(root / "build.gradle.kts")
    gradle = gradle_kts or await file_exists(root / "build.gradle")
    if gradle:
        if "java" not in found.languages:
            found.languages.append("java")
        if gradle_kts:
            found.languages.append("kotlin")
        found.tools.append("gradle")
    return found


async def sniff_go(root: Path) -> TechStack:
    found = TechStack()
    if await file_exists(root / "go.mod"):
        found.languages.append("go")
    return found


async def sniff_rust(root: Path) -> TechStack:
    found = TechStack()
    if await file_exists(root / "Cargo.toml"):
        found.languages.append("rust")
        found.tools.append("cargo")
    return found


def _list_names(root: Path) -> list[str]:
    try:
        return os.listdir(root)
    except OSError as e:
        logger.debug(f"Could not list {root}: {e}")
        return []


async def sniff_csharp(root: Path) -> TechStack:
    found = TechStack()
    names = await asyncio.to_thread(_list_names, root)
    if any(name.endswith((".csproj", ".sln")) for name in names):
        found.languages.append("csharp")
    return found


async def sniff_docker(root: Path) -> TechStack:
    found = TechStack()
    for name in DOCKER_FILES:
        if await file_exists(root / name):
            found.tools.append("docker")
            break
    return found


# Merge order for sniffer results
SNIFFERS: tuple[Sniffer, ...] = (
    sniff_node,
    sniff_python,
    sniff_java,
    sniff_go,
    sniff_rust,
    sniff_csharp,
    sniff_docker,
)


def scan_extensions(
    root: Path,
    max_depth: int = MAX_SCAN_DEPTH,
    max_files: int = MAX_FILES_TO_SCAN,
) -> set[str]:
    """Collect lowercase file extensions under root.

    Counts files in root and in directories fewer than max_depth levels
    below it, and stops after max_files files. Skips dependency/build
    directories and symlinks that escape the root.
    """
    extensions: set[str] = set()
    count = 0

    for dirpath, dirnames, filenames in os.walk(root, followlinks=False):
        current = Path(dirpath)
        depth = len(current.relative_to(root).parts)
        if depth >= max_depth - 1:
            dirnames[:] = []
        else:
            dirnames[:] = sorted(
                d
                for d in dirnames
                if d not in SCAN_SKIP_DIRS
                and is_safe_path((current / d).relative_to(root), root)
            )

        for filename in filenames:
            if count >= max_files:
                logger.warning(
                    f"File scan limit reached ({max_files} files). "
                    "Detection may be incomplete."
                )
                return extensions
            count += 1
            suffix = Path(filename).suffix.lower()
            if suffix:
                extensions.add(suffix)

    return extensions


def languages_from_extensions(extensions: set[str]) -> list[str]:
    languages = []
    if extensions & TYPESCRIPT_EXTENSIONS:
        languages.append("typescript")
    elif extensions & JAVASCRIPT_EXTENSIONS:
        languages.append("javascript")
    languages.extend(
        language for ext, language in EXTENSION_LANGUAGES.items() if ext in extensions
    )
    return languages


def calculate_confidence(stack: TechStack) -> float:
    confidence = 0.0
    if stack.languages:
        confidence += 0.5
    if stack.frameworks:
        confidence += 0.3
    if stack.tools:
        confidence += 0.2
    return min(confidence, 1.0)


def _merge(results: list[TechStack]) -> TechStack:
    merged = TechStack()
    for found in results:
        for target, items in (
            (merged.languages, found.languages),
            (merged.frameworks, found.frameworks),
            (merged.tools, found.tools),
        ):
            target.extend(item for item in items if item not in target)
    return merged


class TechStackDetector:
    """Detects languages, frameworks and tools at a project root."""

    def __init__(self, sniffers: tuple[Sniffer, ...] = SNIFFERS):
        self.sniffers = sniffers

    async def detect(self, project_root: Path) -> TechStack:
        """Detect the root tech stack.

        CONTRACT:
          Inputs:
            - project_root: directory path, must exist and be readable

          Outputs:
            - TechStack with lowercase identifiers (e.g. "typescript",
              "react", "docker") and confidence in [0, 1]

          Invariants:
            - Never raises; a failing sniffer contributes nothing
            - Identifiers are de-duplicated, in fixed sniffer order

          Algorithm:
            1. Run all manifest sniffers concurrently
            2. Merge their findings in SNIFFERS order
            3. If no language was found, fall back to an extension scan
            4. Confidence = 0.5 (languages) + 0.3 (frameworks) + 0.2 (tools)
        """
        root = Path(project_root)
        results = await asyncio.gather(
            *(sniffer(root) for sniffer in self.sniffers), return_exceptions=True
        )

        found: list[TechStack] = []
        for sniffer, result in zip(self.sniffers, results, strict=True):
            if isinstance(result, BaseException):
                logger.warning(f"{sniffer.__name__} failed: {result}")
                continue
            found.append(result)

        stack = _merge(found)
        if not stack.languages:
            logger.debug("No manifest languages found, scanning file extensions")
            try:
                extensions = await asyncio.to_thread(scan_extensions, root)
            except OSError as e:
                logger.warning(f"Extension scan failed: {e}")
                extensions = set()
            stack.languages.extend(languages_from_extensions(extensions))

        stack.confidence = calculate_confidence(stack)
        logger.debug(
            f"Tech stack: languages={stack.languages}, "
            f"frameworks={stack.frameworks}, tools={stack.tools}"
        )
        return stack
