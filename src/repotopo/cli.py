"""Main CLI entry point for repotopo."""

import logging
from importlib.metadata import version
from pathlib import Path

import click

from .analyzer import analyze_project
from .config import (
    ConfigValidationError,
    ConfigVersionError,
    DetectorOptions,
)
from .constants import VERBOSE
from .detect.cli_integration import (
    display_json,
    display_monorepo_summary,
    display_project_summary,
)
from .detect.monorepo import detect_monorepo


def _configure_logging(*, verbose: bool, debug: bool) -> None:
    if debug:
        level = logging.DEBUG
    elif verbose:
        level = VERBOSE
    else:
        return
    logging.basicConfig(level=level, format="[%(levelname)s] %(name)s: %(message)s")


def _resolve_options(
    project_path: Path,
    config_path: Path | None,
    max_workspaces: int | None,
    timeout_ms: int | None,
    no_cache: bool,
) -> DetectorOptions:
    """Options from the config file, overridden by command line flags."""
    if config_path is not None:
        options = DetectorOptions.load(config_path)
    else:
        options = DetectorOptions.discover(project_path)

    return DetectorOptions(
        max_workspaces=(
            max_workspaces if max_workspaces is not None else options.max_workspaces
        ),
        timeout_ms=timeout_ms if timeout_ms is not None else options.timeout_ms,
        enable_cache=options.enable_cache and not no_cache,
    )


@click.command()
@click.version_option(
    version=version("repotopo"),
    prog_name="repotopo",
)
@click.argument(
    "project_path",
    required=False,
    default=".",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
)
@click.option("--json", "as_json", is_flag=True, help="Output results as JSON")
@click.option(
    "--monorepo-only",
    is_flag=True,
    help="Run monorepo detection only, skipping tech stack and git analysis",
)
@click.option(
    "--max-workspaces",
    type=int,
    default=None,
    help="Maximum number of workspaces to report",
)
@click.option(
    "--timeout-ms",
    type=int,
    default=None,
    help="Per-detector timeout in milliseconds",
)
@click.option("--no-cache", is_flag=True, help="Disable the glob result cache")
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="Path to a .repotopo.yaml file (default: PROJECT_PATH/.repotopo.yaml)",
)
@click.option("--verbose", is_flag=True, help="Log detection progress")
@click.option("--debug", is_flag=True, help="Enable debug logging")
def main(
    project_path: Path,
    as_json: bool,
    monorepo_only: bool,
    max_workspaces: int | None,
    timeout_ms: int | None,
    no_cache: bool,
    config_path: Path | None,
    verbose: bool = False,
    debug: bool = False,
) -> None:
    """repotopo - Detect monorepo topology and tech stack.

    Analyzes PROJECT_PATH (default: current directory) and reports the
    governing monorepo tool, its workspaces and their technologies.
    """
    _configure_logging(verbose=verbose, debug=debug)
    project_path = project_path.resolve()

    try:
        options = _resolve_options(
            project_path, config_path, max_workspaces, timeout_ms, no_cache
        )
    except (ConfigValidationError, ConfigVersionError) as e:
        raise click.BadParameter(str(e)) from e

    if monorepo_only:
        info = detect_monorepo(project_path, options)
        if as_json:
            display_json(info)
        else:
            display_monorepo_summary(info)
        return

    context = analyze_project(project_path, options)
    if as_json:
        display_json(context)
    else:
        display_project_summary(context)
