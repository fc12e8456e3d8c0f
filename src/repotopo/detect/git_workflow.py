"""Git branching workflow detection from local and remote branch names."""

import asyncio
import logging
import re
import subprocess
from pathlib import Path

from .result import GitConventions

logger = logging.getLogger(__name__)

GIT_TIMEOUT_SECONDS = 10

MAIN_BRANCHES = ("main", "master")
TRUNK_BRANCHES = ("main", "master", "trunk")
DEVELOP_BRANCHES = ("develop", "development")
GITFLOW_PREFIXES = ("feature/", "release/", "hotfix/")
MAX_TRUNK_BASED_BRANCHES = 3

_ISSUE_NUMBER_RE = re.compile(r"^\d+")
_REMOTE_PREFIX_RE = re.compile(r"^remotes/[^/]+/")


class GitWorkflowError(Exception):
    """Raised when the branching workflow cannot be determined."""

    pass


def _git(project_root: Path, *args: str) -> subprocess.CompletedProcess[str]:
    return subprocess.run(
        ["git", *args],
        cwd=project_root,
        capture_output=True,
        text=True,
        timeout=GIT_TIMEOUT_SECONDS,
    )


def parse_branches(output: str) -> list[str]:
    """Normalize ``git branch -a`` output into unique branch names.

    Examples:
      - "* main"                          -> "main"
      - "  remotes/origin/feature/login"  -> "feature/login"
      - "  remotes/origin/HEAD -> ..."    -> skipped
    """
    branches: list[str] = []
    for line in output.splitlines():
        name = line.replace("*", "", 1).strip()
        if not name or "HEAD" in name:
            continue
        name = _REMOTE_PREFIX_RE.sub("", name)
        if name and name not in branches:
            branches.append(name)
    return branches


def branch_prefixes(branches: list[str]) -> list[str]:
    """First path segment of every slash-separated branch name, first-seen order."""
    prefixes: list[str] = []
    for branch in branches:
        head, sep, _rest = branch.partition("/")
        if sep and head and head not in prefixes:
            prefixes.append(head)
    return prefixes


def _first(branches: list[str], candidates: tuple[str, ...]) -> str | None:
    return next((b for b in branches if b in candidates), None)


def _is_gitflow(branches: list[str]) -> bool:
    has_develop = _first(branches, DEVELOP_BRANCHES) is not None
    return has_develop and any(b.startswith(GITFLOW_PREFIXES) for b in branches)


def _is_github_flow(branches: list[str]) -> bool:
    if _first(branches, MAIN_BRANCHES) is None:
        return False
    if _first(branches, DEVELOP_BRANCHES) is not None:
        return False
    others = [b for b in branches if b not in MAIN_BRANCHES]
    return any(
        "feature" in b or "fix" in b or "add" in b or _ISSUE_NUMBER_RE.match(b)
        for b in others
    )


def _is_trunk_based(branches: list[str]) -> bool:
    has_trunk = _first(branches, TRUNK_BRANCHES) is not None
    return has_trunk and len(branches) <= MAX_TRUNK_BASED_BRANCHES


def classify_branches(branches: list[str]) -> GitConventions:
    """Classify a branch list as gitflow, github-flow, trunk-based or custom.

    Rules are checked in that order; the first match wins.
    """
    main_branch = _first(branches, MAIN_BRANCHES) or "main"

    if _is_gitflow(branches):
        return GitConventions(
            workflow="gitflow",
            branch_prefixes=branch_prefixes(branches),
            main_branch=main_branch,
            develop_branch=_first(branches, DEVELOP_BRANCHES) or "develop",
            release_branches=[b for b in branches if b.startswith("release/")],
            hotfix_pattern="hotfix/*",
        )
    if _is_github_flow(branches):
        return GitConventions(
            workflow="github-flow",
            branch_prefixes=branch_prefixes(branches),
            main_branch=main_branch,
        )
    if _is_trunk_based(branches):
        return GitConventions(
            workflow="trunk-based",
            branch_prefixes=[],
            main_branch=_first(branches, TRUNK_BRANCHES) or "main",
        )
    return GitConventions(
        workflow="custom",
        branch_prefixes=branch_prefixes(branches),
        main_branch=main_branch,
    )


class GitWorkflowAnalyzer:
    """Infers a project's branching workflow by running read-only git commands."""

    def detect_sync(self, project_root: Path) -> GitConventions:
        """Detect the branching workflow of the repository at project_root.

        Raises:
            GitWorkflowError: If project_root is not a git repository or git
                is not available
        """
        try:
            check = _git(project_root, "rev-parse", "--git-dir")
        except (FileNotFoundError, subprocess.TimeoutExpired) as e:
            raise GitWorkflowError(f"Git workflow detection failed: {e}") from e
        if check.returncode != 0:
            raise GitWorkflowError(
                "Git workflow detection failed: Not a git repository"
            )

        try:
            listing = _git(project_root, "branch", "-a")
        except subprocess.TimeoutExpired as e:
            logger.warning(f"git branch timed out: {e}")
            branches: list[str] = []
        else:
            branches = parse_branches(listing.stdout) if listing.returncode == 0 else []

        conventions = classify_branches(branches)
        logger.debug(
            f"Git workflow: {conventions.workflow} ({len(branches)} branches)"
        )
        return conventions

    async def detect(self, project_root: Path) -> GitConventions:
        return await asyncio.to_thread(self.detect_sync, project_root)
