"""Tests for repotopo.analyzer."""

import json
import time
from pathlib import Path
from unittest.mock import patch

import pytest

from repotopo.analyzer import (
    ProjectAnalyzer,
    analyze_project,
    calculate_confidence,
    infer_project_type,
    monorepo_project_type,
    top_technologies,
)
from repotopo.config import DetectorOptions
from repotopo.detect.git_workflow import GitWorkflowError
from repotopo.detect.result import (
    Conventions,
    DocumentationContext,
    GitConventions,
    MonorepoInfo,
    ProjectContext,
    TechStack,
    WorkspaceInfo,
)


class FakeDocs:
    """Documentation source returning a fixed context."""

    def __init__(self, context: DocumentationContext | None = None):
        self.context = context or DocumentationContext(
            purpose="Billing platform",
            domain=["payments"],
            custom_instructions=["Use pnpm"],
            conventions=Conventions(commit_style="conventional"),
        )

    async def analyze(self, project_root: Path) -> DocumentationContext:
        return self.context


class FailingDocs:
    async def analyze(self, project_root: Path) -> DocumentationContext:
        raise RuntimeError("docs unavailable")


class FakeGit:
    def __init__(self, conventions: GitConventions | None = None):
        self.conventions = conventions

    async def detect(self, project_root: Path) -> GitConventions:
        if self.conventions is None:
            raise GitWorkflowError("Not a git repository")
        return self.conventions


GITHUB_FLOW = GitConventions(
    workflow="github-flow", branch_prefixes=["feature", "fix"], main_branch="main"
)


def ws(name: str, *technologies: str) -> WorkspaceInfo:
    return WorkspaceInfo(
        name=name,
        path=f"packages/{name}",
        type="NPM Package",
        technologies=technologies,
    )


class TestProjectType:
    """Type labels."""

    def test_framework_wins(self) -> None:
        stack = TechStack(languages=["typescript"], frameworks=["react"])

        assert infer_project_type(stack) == "React Application"

    def test_frontend_tooling(self) -> None:
        stack = TechStack(languages=["javascript"], tools=["webpack"])

        assert infer_project_type(stack) == "JavaScript/TypeScript Frontend"

    def test_language_only(self) -> None:
        assert infer_project_type(TechStack(languages=["go"])) == "Go Application"

    def test_unknown(self) -> None:
        assert infer_project_type(TechStack()) == "Unknown Project Type"

    def test_monorepo_label(self) -> None:
        info = MonorepoInfo(
            is_monorepo=True,
            root_path="/r",
            tool="pnpm",
            workspaces=(ws("a", "TypeScript", "React"), ws("b", "TypeScript")),
            root_technologies=("JavaScript", "TypeScript"),
        )

        assert top_technologies(info) == ["TypeScript", "React"]
        assert (
            monorepo_project_type(info)
            == "pnpm monorepo (TypeScript, React) with 2 workspaces"
        )

    def test_top_technologies_falls_back_to_root(self) -> None:
        info = MonorepoInfo(
            is_monorepo=True,
            root_path="/r",
            tool="cargo",
            workspaces=(ws("a"),),
            root_technologies=("Rust",),
        )

        assert top_technologies(info) == ["Rust"]


class TestConfidence:
    """Analysis confidence weights."""

    def test_empty_context(self) -> None:
        assert calculate_confidence(ProjectContext()) == 0.0

    def test_all_signals(self) -> None:
        context = ProjectContext(
            purpose="x",
            tech_stack=["python"],
            domain=["ml"],
            git_workflow="gitflow",
            monorepo=MonorepoInfo(is_monorepo=True, root_path="/r", tool="uv"),
        )

        assert calculate_confidence(context) == pytest.approx(1.0)

    def test_negative_monorepo_adds_nothing(self) -> None:
        context = ProjectContext(
            tech_stack=["go"], monorepo=MonorepoInfo.negative("/r")
        )

        assert calculate_confidence(context) == pytest.approx(0.25)


class TestProjectAnalyzer:
    """End-to-end analysis with injected collaborators."""

    @pytest.mark.asyncio
    async def test_monorepo_project(self, make_tree) -> None:
        root = make_tree(
            {
                "package.json": json.dumps(
                    {
                        "workspaces": ["packages/*"],
                        "devDependencies": {"typescript": "^5"},
                    }
                ),
                "packages/a/package.json": json.dumps(
                    {"name": "a", "devDependencies": {"typescript": "^5"}}
                ),
                "packages/b/package.json": json.dumps(
                    {"name": "b", "types": "index.d.ts"}
                ),
            }
        )
        analyzer = ProjectAnalyzer(
            doc_source=FakeDocs(), git_analyzer=FakeGit(GITHUB_FLOW)
        )

        context = await analyzer.analyze(root)

        assert context.type == "npm monorepo (TypeScript) with 2 workspaces"
        assert context.tech_stack == ["typescript"]
        assert context.monorepo is not None
        assert context.monorepo.tool == "npm"
        assert context.purpose == "Billing platform"
        assert context.domain == ["payments"]
        assert context.custom_instructions == ["Use pnpm"]
        assert context.git_workflow == "github-flow"
        assert context.conventions.git_workflow == "github-flow"
        assert context.conventions.commit_style == "conventional"
        assert context.conventions.branch_naming == "feature, fix"
        assert context.confidence == pytest.approx(1.0)

    @pytest.mark.asyncio
    async def test_single_project(self, make_tree) -> None:
        root = make_tree({"requirements.txt": "flask\n"})
        analyzer = ProjectAnalyzer(git_analyzer=FakeGit())

        context = await analyzer.analyze(root)

        assert context.type == "Flask Application"
        assert context.monorepo is not None
        assert context.monorepo.is_monorepo is False
        assert context.git_workflow is None
        assert context.confidence == pytest.approx(0.25)

    @pytest.mark.asyncio
    async def test_collaborator_failures_degrade(
        self, make_tree, caplog: pytest.LogCaptureFixture
    ) -> None:
        """Failing documentation and git analysis leave their fields empty."""
        root = make_tree({"go.mod": "module x\n"})
        analyzer = ProjectAnalyzer(doc_source=FailingDocs(), git_analyzer=FakeGit())

        context = await analyzer.analyze(root)

        assert context.type == "Go Application"
        assert context.purpose == ""
        assert context.git_workflow is None
        assert "Documentation analysis failed: docs unavailable" in caplog.text
        assert "Git workflow analysis failed" in caplog.text

    @pytest.mark.asyncio
    async def test_monorepo_detector_crash_is_tolerated(self, make_tree) -> None:
        root = make_tree({"Cargo.toml": "[package]\nname = 'x'\n"})
        analyzer = ProjectAnalyzer(git_analyzer=FakeGit())

        with patch(
            "repotopo.analyzer.MonorepoDetector.detect",
            side_effect=RuntimeError("boom"),
        ):
            context = await analyzer.analyze(root)

        assert context.monorepo is None
        assert context.type == "Rust Application"

    @pytest.mark.asyncio
    async def test_rejects_missing_directory(self, tmp_path: Path) -> None:
        with pytest.raises(NotADirectoryError):
            await ProjectAnalyzer().analyze(tmp_path / "missing")

    def test_sync_wrapper(self, make_tree) -> None:
        root = make_tree({"go.mod": "module x\n"})

        with patch(
            "repotopo.detect.git_workflow.GitWorkflowAnalyzer.detect_sync",
            side_effect=GitWorkflowError("no git"),
        ):
            context = analyze_project(root)

        assert context.tech_stack == ["go"]
        assert context.to_dict()["monorepo"]["is_monorepo"] is False

    def test_sync_wrapper_returns_within_timeout(self, make_tree) -> None:
        """A stalled glob does not hold analyze_project past the timeout."""
        root = make_tree({"package.json": json.dumps({"workspaces": ["pkgs/*"]})})

        def stalled_expand(*args: object) -> list[str]:
            time.sleep(3)
            return []

        started = time.perf_counter()
        with (
            patch("repotopo.detect.glob_cache._expand", stalled_expand),
            patch(
                "repotopo.detect.git_workflow.GitWorkflowAnalyzer.detect_sync",
                side_effect=GitWorkflowError("no git"),
            ),
        ):
            context = analyze_project(root, DetectorOptions(timeout_ms=100))

        assert time.perf_counter() - started < 2
        assert context.monorepo is not None
        assert context.monorepo.is_monorepo is False
