"""Ecosystem descriptors: how each build tool declares its workspace members.

Every supported ecosystem is one Ecosystem entry in ECOSYSTEMS. An entry
knows its signature file(s), how to pull member declarations out of them
and which probe turns a member directory into a WorkspaceInfo. The
orchestrator walks the tuple in order and keeps the first positive result,
so the order encodes priority (lerna.json beats a plain package.json
workspaces field, a declared workspace beats the sibling-package fallback).
"""

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from pathlib import PurePosixPath
from typing import Any

from ..constants import MIN_SIBLING_PACKAGES, MIN_SOLUTION_PROJECTS
from .fingerprint import (
    DOTNET_PROJECT_LANGUAGES,
    probe_dotnet_project,
    probe_go_module,
    probe_gradle_project,
    probe_maven_module,
    probe_npm_package,
    probe_python_package,
    probe_rust_crate,
)
from .parsers import (
    gradle_project_dir,
    parse_go_work,
    parse_gradle_includes,
    parse_json,
    parse_pom,
    parse_solution_projects,
    parse_toml,
    parse_yaml,
    pom_modules,
    string_list,
    toml_table,
)
from .result import MonorepoInfo
from .workspaces import DetectionContext, Member, MemberSpec, WorkspaceProbe

logger = logging.getLogger(__name__)

JS_TECHNOLOGIES = ("JavaScript", "TypeScript")

MemberFinder = Callable[[DetectionContext], Awaitable[MemberSpec | None]]


@dataclass(frozen=True)
class Ecosystem:
    """One monorepo flavour.

    find_members returns None when the signature is absent (or present but
    not declaring a workspace). Parse failures raise and are handled by the
    caller.
    """

    tool: str
    root_technologies: tuple[str, ...]
    find_members: MemberFinder
    probe: WorkspaceProbe
    min_workspaces: int = 1

    async def detect(self, ctx: DetectionContext) -> MonorepoInfo:
        """Run this ecosystem's detection against ctx.root.

        CONTRACT:
          Inputs:
            - ctx: detection context of the owning MonorepoDetector

          Outputs:
            - MonorepoInfo with is_monorepo=True, this tool and the discovered
              workspaces (cross_language left False for the classifier)
            - MonorepoInfo.negative when the signature is absent or fewer
              than min_workspaces declared members resolve to workspaces

          Invariants:
            - is_monorepo=True implies at least one workspace
            - Raises ManifestParseError / OSError for unreadable signature
              files; the orchestrator turns those into a negative result
        """
        root_path = str(ctx.root)
        spec = await self.find_members(ctx)
        if spec is None or spec.is_empty():
            return MonorepoInfo.negative(root_path)

        workspaces = await ctx.find_workspaces(spec, self.probe)
        if len(workspaces) < self.min_workspaces:
            logger.debug(
                f"{self.tool}: {len(workspaces)} workspaces resolved, "
                f"need {self.min_workspaces}"
            )
            return MonorepoInfo.negative(root_path)

        return MonorepoInfo(
            is_monorepo=True,
            root_path=root_path,
            tool=self.tool,
            workspaces=tuple(workspaces),
            root_technologies=self.root_technologies,
        )


def _package_json_workspaces(data: dict[str, Any]) -> list[str] | None:
    """Workspace globs from package.json: an array or {"packages": [...]}.

    Returns None when the field is absent.
    """
    field = data.get("workspaces")
    if field is None:
        return None
    if isinstance(field, dict):
        return string_list(field.get("packages"))
    return string_list(field)


async def _root_package_json_workspaces(ctx: DetectionContext) -> list[str] | None:
    content = await ctx.read("package.json")
    if content is None:
        return None
    return _package_json_workspaces(parse_json(content))


async def find_lerna_members(ctx: DetectionContext) -> MemberSpec | None:
    content = await ctx.read("lerna.json")
    if content is None:
        return None

    config = parse_json(content)
    patterns = string_list(config.get("packages")) or string_list(
        config.get("workspaces")
    )
    if not patterns:
        # useWorkspaces setups keep the globs in package.json
        patterns = await _root_package_json_workspaces(ctx) or ["packages/*"]
    return MemberSpec(patterns=patterns)


async def find_pnpm_members(ctx: DetectionContext) -> MemberSpec | None:
    content = await ctx.read("pnpm-workspace.yaml")
    if content is None:
        return None
    return MemberSpec(patterns=string_list(parse_yaml(content).get("packages")))


async def find_yarn_members(ctx: DetectionContext) -> MemberSpec | None:
    if not await ctx.exists("yarn.lock"):
        return None
    patterns = await _root_package_json_workspaces(ctx)
    return MemberSpec(patterns=patterns) if patterns is not None else None


async def find_npm_members(ctx: DetectionContext) -> MemberSpec | None:
    patterns = await _root_package_json_workspaces(ctx)
    return MemberSpec(patterns=patterns) if patterns is not None else None


async def find_go_work_members(ctx: DetectionContext) -> MemberSpec | None:
    content = await ctx.read("go.work")
    if content is None:
        return None
    return MemberSpec(members=[Member(path) for path in parse_go_work(content)])


def _members_minus_exclude(table: dict[str, Any]) -> MemberSpec:
    patterns = string_list(table.get("members"))
    patterns.extend(f"!{p}" for p in string_list(table.get("exclude")))
    return MemberSpec(patterns=patterns)


async def find_cargo_members(ctx: DetectionContext) -> MemberSpec | None:
    content = await ctx.read("Cargo.toml")
    if content is None:
        return None
    workspace = toml_table(parse_toml(content), "workspace")
    return _members_minus_exclude(workspace) if workspace is not None else None


async def find_maven_modules(ctx: DetectionContext) -> MemberSpec | None:
    content = await ctx.read("pom.xml")
    if content is None:
        return None
    modules = pom_modules(parse_pom(content))
    return MemberSpec(members=[Member(m) for m in modules]) if modules else None


async def find_gradle_projects(ctx: DetectionContext) -> MemberSpec | None:
    content = await ctx.read("settings.gradle")
    if content is None:
        content = await ctx.read("settings.gradle.kts")
    if content is None:
        return None

    members = [
        Member(gradle_project_dir(include), name=include.lstrip(":"))
        for include in parse_gradle_includes(content)
        if gradle_project_dir(include)
    ]
    return MemberSpec(members=members) if members else None


async def _root_pyproject(ctx: DetectionContext) -> dict[str, Any] | None:
    content = await ctx.read("pyproject.toml")
    return parse_toml(content) if content is not None else None


async def find_poetry_members(ctx: DetectionContext) -> MemberSpec | None:
    data = await _root_pyproject(ctx)
    workspace = toml_table(data, "tool", "poetry", "workspace") if data else None
    if workspace is None:
        return None
    return MemberSpec(patterns=string_list(workspace.get("members")))


async def find_uv_members(ctx: DetectionContext) -> MemberSpec | None:
    data = await _root_pyproject(ctx)
    workspace = toml_table(data, "tool", "uv", "workspace") if data else None
    return _members_minus_exclude(workspace) if workspace is not None else None


async def find_sibling_python_packages(ctx: DetectionContext) -> MemberSpec | None:
    """Undeclared Python monorepo: root pyproject.toml plus sibling packages.

    Needs at least MIN_SIBLING_PACKAGES top-level directories holding a
    pyproject.toml or setup.py.
    """
    if not await ctx.exists("pyproject.toml"):
        return None

    matches = await ctx.glob("*/pyproject.toml") + await ctx.glob("*/setup.py")
    directories = sorted({str(PurePosixPath(m).parent) for m in matches})
    if len(directories) < MIN_SIBLING_PACKAGES:
        logger.debug(
            f"Found {len(directories)} sibling Python packages, "
            f"need {MIN_SIBLING_PACKAGES}"
        )
        return None
    return MemberSpec(members=[Member(d) for d in directories])


async def find_solution_projects(ctx: DetectionContext) -> MemberSpec | None:
    """Projects referenced by the first (sorted) .sln file at the root."""
    solutions = await ctx.glob("*.sln")
    if not solutions:
        return None

    content = await ctx.read(solutions[0])
    if content is None:
        return None

    projects = []
    directories: set[PurePosixPath] = set()
    for name, path in parse_solution_projects(content):
        project_file = PurePosixPath(path)
        if project_file.suffix.lower() not in DOTNET_PROJECT_LANGUAGES:
            continue
        # workspaces are directories; the first project listed in one wins
        if project_file.parent in directories:
            logger.debug(f"Skipping second project in {project_file.parent}: {path}")
            continue
        directories.add(project_file.parent)
        projects.append(Member(path, name=name))
    return MemberSpec(members=projects) if projects else None


# Detection order; the first ecosystem that yields workspaces wins
ECOSYSTEMS: tuple[Ecosystem, ...] = (
    Ecosystem("lerna", JS_TECHNOLOGIES, find_lerna_members, probe_npm_package),
    Ecosystem("pnpm", JS_TECHNOLOGIES, find_pnpm_members, probe_npm_package),
    Ecosystem("yarn", JS_TECHNOLOGIES, find_yarn_members, probe_npm_package),
    Ecosystem("npm", JS_TECHNOLOGIES, find_npm_members, probe_npm_package),
    Ecosystem("go-workspace", ("Go",), find_go_work_members, probe_go_module),
    Ecosystem("cargo-workspace", ("Rust",), find_cargo_members, probe_rust_crate),
    Ecosystem("maven", ("Java",), find_maven_modules, probe_maven_module),
    Ecosystem(
        "gradle", ("Java", "Kotlin"), find_gradle_projects, probe_gradle_project
    ),
    Ecosystem("poetry", ("Python",), find_poetry_members, probe_python_package),
    Ecosystem("uv-workspace", ("Python",), find_uv_members, probe_python_package),
    Ecosystem(
        "python-custom",
        ("Python",),
        find_sibling_python_packages,
        probe_python_package,
        min_workspaces=MIN_SIBLING_PACKAGES,
    ),
    Ecosystem(
        "dotnet-solution",
        ("C#",),
        find_solution_projects,
        probe_dotnet_project,
        min_workspaces=MIN_SOLUTION_PROJECTS,
    ),
)
