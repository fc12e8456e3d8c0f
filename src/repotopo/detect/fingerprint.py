"""Per-ecosystem workspace probes and technology fingerprints.

Each probe looks at one declared member, reads its manifest (size-bounded,
root-confined) and returns a WorkspaceInfo carrying the member's name and
technology tags, or None when the member has no manifest of that kind.
Parse errors propagate; the enumerator drops the member and carries on.
"""

import logging
import re
from pathlib import PurePosixPath
from typing import Any

from .parsers import (
    parse_go_module_name,
    parse_go_requires,
    parse_json,
    parse_pom,
    parse_setup_py_name,
    parse_toml,
    pom_child_text,
    string_list,
    toml_table,
)
from .result import WorkspaceInfo
from .utils import extract_package_name
from .workspaces import DetectionContext, Member

logger = logging.getLogger(__name__)

# Dependency name to technology tag mappings (frameworks only)
NODE_PACKAGE_MAPPING = {
    "react": "React",
    "vue": "Vue",
    "angular": "Angular",
    "@angular/core": "Angular",
    "next": "Next.js",
    "svelte": "Svelte",
    "express": "Express",
    "@nestjs/core": "NestJS",
}

PYTHON_PACKAGE_MAPPING = {
    "django": "Django",
    "flask": "Flask",
    "fastapi": "FastAPI",
}

JAVA_ARTIFACT_MAPPING = {
    "spring-boot-starter": "Spring Boot",
    "quarkus-core": "Quarkus",
    "quarkus-rest": "Quarkus",
    "ktor-server": "Ktor",
}

RUST_CRATE_MAPPING = {
    "actix-web": "Actix",
    "rocket": "Rocket",
    "tokio": "Tokio",
}

GO_MODULE_MAPPING = {
    "github.com/gin-gonic/gin": "Gin",
    "github.com/labstack/echo": "Echo",
    "github.com/gofiber/fiber": "Fiber",
}

DOTNET_PROJECT_LANGUAGES = {
    ".csproj": "C#",
    ".fsproj": "F#",
    ".vbproj": "Visual Basic",
}

# implementation("group:artifact:version") / api 'group:artifact'
_GRADLE_DEPENDENCY_RE = re.compile(
    r"""["']([^"':\s]+):([^"':\s]+)(?::[^"']*)?["']"""
)


def _dedupe(tags: list[str]) -> tuple[str, ...]:
    return tuple(dict.fromkeys(tags))


def _member_name(member: Member, ctx: DetectionContext) -> str:
    name = PurePosixPath(member.path).name
    return name if name and name != "." else ctx.root.name


def package_json_technologies(data: dict[str, Any]) -> tuple[str, ...]:
    """Technology tags for an npm package.

    TypeScript when the package depends on typescript or ships types,
    JavaScript otherwise, followed by known frameworks.
    """
    deps: dict[str, Any] = {}
    for key in ("dependencies", "devDependencies"):
        section = data.get(key)
        if isinstance(section, dict):
            deps.update(section)

    is_typescript = "typescript" in deps or bool(data.get("types"))
    tags = ["TypeScript" if is_typescript else "JavaScript"]
    tags.extend(tag for name, tag in NODE_PACKAGE_MAPPING.items() if name in deps)
    return _dedupe(tags)


async def probe_npm_package(
    ctx: DetectionContext, member: Member
) -> WorkspaceInfo | None:
    content = await ctx.read(f"{member.path}/package.json")
    if content is None:
        return None

    data = parse_json(content)
    name = data.get("name")
    return WorkspaceInfo(
        name=name if isinstance(name, str) and name else _member_name(member, ctx),
        path=member.path,
        type="NPM Package",
        technologies=package_json_technologies(data),
    )


async def probe_rust_crate(
    ctx: DetectionContext, member: Member
) -> WorkspaceInfo | None:
    content = await ctx.read(f"{member.path}/Cargo.toml")
    if content is None:
        return None

    data = parse_toml(content)
    package = toml_table(data, "package") or {}
    name = package.get("name")

    crates: set[str] = set()
    for key in ("dependencies", "dev-dependencies"):
        crates.update((toml_table(data, key) or {}).keys())

    tags = ["Rust"]
    tags.extend(tag for crate, tag in RUST_CRATE_MAPPING.items() if crate in crates)
    return WorkspaceInfo(
        name=name if isinstance(name, str) and name else _member_name(member, ctx),
        path=member.path,
        type="Rust Crate",
        technologies=_dedupe(tags),
    )


def _go_framework(module_path: str) -> str | None:
    for prefix, tag in GO_MODULE_MAPPING.items():
        if module_path == prefix or module_path.startswith(prefix + "/"):
            return tag
    return None


async def probe_go_module(
    ctx: DetectionContext, member: Member
) -> WorkspaceInfo | None:
    content = await ctx.read(f"{member.path}/go.mod")
    if content is None:
        return None

    tags = ["Go"]
    for required in parse_go_requires(content):
        tag = _go_framework(required)
        if tag:
            tags.append(tag)

    return WorkspaceInfo(
        name=parse_go_module_name(content) or member.path,
        path=member.path,
        type="Go Module",
        technologies=_dedupe(tags),
    )


def _artifact_technology(artifact: str) -> str | None:
    for pattern, tag in JAVA_ARTIFACT_MAPPING.items():
        if pattern in artifact:
            return tag
    return None


async def probe_maven_module(
    ctx: DetectionContext, member: Member
) -> WorkspaceInfo | None:
    # <module> may name the module's pom file instead of its directory
    module_dir = member.path
    if module_dir.endswith(".xml"):
        module_dir = str(PurePosixPath(module_dir).parent)
        content = await ctx.read(member.path)
    else:
        content = await ctx.read(f"{module_dir}/pom.xml")
    if content is None:
        return None

    root = parse_pom(content)
    tags = ["Java"]
    if "kotlin-maven-plugin" in content:
        tags.append("Kotlin")
    for element in root.iter():
        if element.tag.rsplit("}", 1)[-1] != "dependency":
            continue
        artifact = pom_child_text(element, "artifactId")
        tag = _artifact_technology(artifact) if artifact else None
        if tag:
            tags.append(tag)

    return WorkspaceInfo(
        name=pom_child_text(root, "artifactId") or _member_name(member, ctx),
        path=module_dir,
        type="Maven Module",
        technologies=_dedupe(tags),
    )


async def probe_gradle_project(
    ctx: DetectionContext, member: Member
) -> WorkspaceInfo | None:
    kts = await ctx.read(f"{member.path}/build.gradle.kts")
    if kts is not None:
        content: str | None = kts
    else:
        content = await ctx.read(f"{member.path}/build.gradle")
    if content is None:
        return None

    is_kotlin = kts is not None or "org.jetbrains.kotlin" in content
    tags = ["Kotlin" if is_kotlin else "Java"]
    for _group, artifact in _GRADLE_DEPENDENCY_RE.findall(content):
        tag = _artifact_technology(artifact)
        if tag:
            tags.append(tag)

    return WorkspaceInfo(
        name=member.name or member.path,
        path=member.path,
        type="Gradle Project",
        technologies=_dedupe(tags),
    )


def _python_requirements(data: dict[str, Any]) -> list[str]:
    project = toml_table(data, "project") or {}
    requirements = string_list(project.get("dependencies"))
    optional = project.get("optional-dependencies")
    if isinstance(optional, dict):
        for extra in optional.values():
            requirements.extend(string_list(extra))
    poetry_deps = toml_table(data, "tool", "poetry", "dependencies") or {}
    requirements.extend(poetry_deps.keys())
    return requirements


async def probe_python_package(
    ctx: DetectionContext, member: Member
) -> WorkspaceInfo | None:
    tags = ["Python"]
    name: Any = None

    pyproject = await ctx.read(f"{member.path}/pyproject.toml")
    if pyproject is not None:
        data = parse_toml(pyproject)
        name = (toml_table(data, "project") or {}).get("name") or (
            toml_table(data, "tool", "poetry") or {}
        ).get("name")
        for requirement in _python_requirements(data):
            package = extract_package_name(requirement, normalize_case=True)
            if package in PYTHON_PACKAGE_MAPPING:
                tags.append(PYTHON_PACKAGE_MAPPING[package])
    else:
        setup_py = await ctx.read(f"{member.path}/setup.py")
        if setup_py is None:
            return None
        name = parse_setup_py_name(setup_py)

    return WorkspaceInfo(
        name=name if isinstance(name, str) and name else _member_name(member, ctx),
        path=member.path,
        type="Python Package",
        technologies=_dedupe(tags),
    )


async def probe_dotnet_project(
    ctx: DetectionContext, member: Member
) -> WorkspaceInfo | None:
    """Workspace for a project referenced by a solution file.

    The solution line itself is the evidence; the project file is only
    read, when present, to spot ASP.NET Core web projects.
    """
    project_file = PurePosixPath(member.path)
    language = DOTNET_PROJECT_LANGUAGES.get(project_file.suffix.lower())
    if language is None:
        return None

    tags = [language]
    try:
        content = await ctx.read(member.path)
    except OSError as e:
        logger.debug(f"Could not read project file {member.path}: {e}")
        content = None
    if content and "Microsoft.NET.Sdk.Web" in content:
        tags.append("ASP.NET Core")

    parent = str(project_file.parent)
    return WorkspaceInfo(
        name=member.name or project_file.stem,
        path=parent if parent else ".",
        type=f"{language} Project",
        technologies=_dedupe(tags),
    )
