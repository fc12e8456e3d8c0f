"""CLI output for detection results.

Human-readable summaries and JSON rendering for MonorepoInfo and
ProjectContext. All output goes through click.echo so it is captured by
CliRunner in tests.
"""

import json
import logging

import click

from .result import MonorepoInfo, ProjectContext

logger = logging.getLogger(__name__)


def display_monorepo_summary(info: MonorepoInfo) -> None:
    """Display a human-readable monorepo summary.

    CONTRACT:
      Inputs:
        - info: MonorepoInfo from MonorepoDetector.detect()

      Outputs:
        - None (prints to console)

      Invariants:
        - A negative result prints a single line
        - Workspaces are listed in discovery order
    """
    if not info.is_monorepo:
        click.echo(f"Not a monorepo: {info.root_path}")
        return

    polyglot = " (cross-language)" if info.cross_language else ""
    click.echo(f"Monorepo: {info.tool}{polyglot}")
    if info.root_technologies:
        click.echo(f"Root technologies: {', '.join(info.root_technologies)}")

    click.echo(f"\nWorkspaces ({len(info.workspaces)}):")
    for workspace in info.workspaces:
        technologies = ", ".join(workspace.technologies)
        click.echo(f"  • {workspace.name} [{workspace.type}] {workspace.path}")
        if technologies:
            click.echo(f"      {technologies}")

    if info.detection_time_ms is not None:
        click.echo(f"\nDetection: {info.detection_time_ms}ms")


def display_project_summary(context: ProjectContext) -> None:
    """Display a human-readable project analysis summary."""
    click.echo(f"Type: {context.type}")
    if context.tech_stack:
        click.echo(f"Languages: {', '.join(context.tech_stack)}")
    if context.purpose:
        click.echo(f"Purpose: {context.purpose}")
    if context.domain:
        click.echo(f"Domain: {', '.join(context.domain)}")
    if context.git_workflow:
        click.echo(f"Git workflow: {context.git_workflow}")
    click.echo(f"Confidence: {context.confidence:.0%}")

    if context.monorepo is not None and context.monorepo.is_monorepo:
        click.echo()
        display_monorepo_summary(context.monorepo)


def display_json(result: MonorepoInfo | ProjectContext) -> None:
    """Print a result as pretty JSON on stdout."""
    click.echo(json.dumps(result.to_dict(), indent=2))
