"""Tests for repotopo.cli module."""

import json
from importlib.metadata import version
from pathlib import Path
from unittest.mock import patch

import pytest
from click.testing import CliRunner

from repotopo.cli import main
from repotopo.detect.git_workflow import GitWorkflowError


@pytest.fixture
def runner() -> CliRunner:
    """Create a Click CLI test runner."""
    return CliRunner()


@pytest.fixture
def npm_monorepo(make_tree) -> Path:
    """A two-package npm workspace: an Express API and a TypeScript web app."""
    return make_tree(
        {
            "package.json": json.dumps({"workspaces": ["packages/*"]}),
            "packages/api/package.json": json.dumps(
                {"name": "api", "dependencies": {"express": "^4"}}
            ),
            "packages/web/package.json": json.dumps(
                {"name": "web", "devDependencies": {"typescript": "^5"}}
            ),
        }
    )


@pytest.fixture(autouse=True)
def no_git():
    """Keep the tests independent of any enclosing git repository."""
    with patch(
        "repotopo.detect.git_workflow.GitWorkflowAnalyzer.detect_sync",
        side_effect=GitWorkflowError("Git workflow detection failed: no git"),
    ):
        yield


class TestCliHelp:
    """Tests for CLI help and version output."""

    def test_help_shows_description(self, runner: CliRunner) -> None:
        result = runner.invoke(main, ["--help"])

        assert result.exit_code == 0
        assert "Detect monorepo topology" in result.output
        assert "--monorepo-only" in result.output

    def test_version(self, runner: CliRunner) -> None:
        result = runner.invoke(main, ["--version"])

        assert result.exit_code == 0
        assert version("repotopo") in result.output


class TestMonorepoOnly:
    """--monorepo-only output."""

    def test_json(self, runner: CliRunner, npm_monorepo: Path) -> None:
        result = runner.invoke(main, [str(npm_monorepo), "--monorepo-only", "--json"])

        assert result.exit_code == 0, result.output
        data = json.loads(result.output)
        assert data["is_monorepo"] is True
        assert data["tool"] == "npm"
        assert [w["name"] for w in data["workspaces"]] == ["api", "web"]
        assert data["workspaces"][0]["technologies"] == ["JavaScript", "Express"]
        assert data["cross_language"] is False
        assert isinstance(data["detection_time_ms"], int)

    def test_summary(self, runner: CliRunner, npm_monorepo: Path) -> None:
        result = runner.invoke(main, [str(npm_monorepo), "--monorepo-only"])

        assert result.exit_code == 0
        assert "Monorepo: npm" in result.output
        assert "Workspaces (2):" in result.output
        assert "web [NPM Package] packages/web" in result.output
        assert "Detection: " in result.output

    def test_not_a_monorepo(self, runner: CliRunner, project: Path) -> None:
        result = runner.invoke(main, [str(project), "--monorepo-only"])

        assert result.exit_code == 0
        assert result.output.startswith("Not a monorepo: ")

    def test_max_workspaces_flag(self, runner: CliRunner, npm_monorepo: Path) -> None:
        result = runner.invoke(
            main,
            [str(npm_monorepo), "--monorepo-only", "--json", "--max-workspaces", "1"],
        )

        assert result.exit_code == 0
        assert len(json.loads(result.output)["workspaces"]) == 1


class TestFullAnalysis:
    """Default analysis output."""

    def test_summary(self, runner: CliRunner, npm_monorepo: Path) -> None:
        result = runner.invoke(main, [str(npm_monorepo)])

        assert result.exit_code == 0, result.output
        assert "Type: npm monorepo (" in result.output
        assert "with 2 workspaces" in result.output
        assert "Languages: javascript" in result.output
        assert "Confidence: 40%" in result.output
        assert "Monorepo: npm" in result.output

    def test_json(self, runner: CliRunner, npm_monorepo: Path) -> None:
        result = runner.invoke(main, [str(npm_monorepo), "--json"])

        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["tech_stack"] == ["javascript"]
        assert data["git_workflow"] is None
        assert data["monorepo"]["tool"] == "npm"


class TestOptions:
    """Flag and config file handling."""

    def test_invalid_max_workspaces(self, runner: CliRunner, project: Path) -> None:
        result = runner.invoke(main, [str(project), "--max-workspaces", "0"])

        assert result.exit_code == 2
        assert "must be positive" in result.output

    def test_invalid_config_file(self, runner: CliRunner, project: Path) -> None:
        (project / ".repotopo.yaml").write_text('version: "9"\n')

        result = runner.invoke(main, [str(project)])

        assert result.exit_code == 2
        assert "upgrade repotopo" in result.output

    def test_explicit_config(
        self, runner: CliRunner, npm_monorepo: Path, tmp_path: Path
    ) -> None:
        config = tmp_path / "limits.yaml"
        config.write_text('version: "1"\ndetection:\n  max_workspaces: 1\n')

        result = runner.invoke(
            main,
            [str(npm_monorepo), "--monorepo-only", "--json", "--config", str(config)],
        )

        assert result.exit_code == 0
        assert len(json.loads(result.output)["workspaces"]) == 1

    def test_flag_overrides_config(self, runner: CliRunner, npm_monorepo: Path) -> None:
        (npm_monorepo / ".repotopo.yaml").write_text(
            'version: "1"\ndetection:\n  max_workspaces: 1\n'
        )

        result = runner.invoke(
            main,
            [str(npm_monorepo), "--monorepo-only", "--json", "--max-workspaces", "5"],
        )

        assert result.exit_code == 0
        assert len(json.loads(result.output)["workspaces"]) == 2

    def test_missing_path(self, runner: CliRunner, tmp_path: Path) -> None:
        result = runner.invoke(main, [str(tmp_path / "nope")])

        assert result.exit_code == 2
