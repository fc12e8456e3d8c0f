"""Cross-language classification of monorepo workspaces."""

import logging
from collections.abc import Iterable

from ..constants import LANGUAGE_FAMILIES
from .result import WorkspaceInfo

logger = logging.getLogger(__name__)

# Technology tag -> family key, built once from LANGUAGE_FAMILIES
_TECHNOLOGY_FAMILY: dict[str, str] = {
    technology: key
    for key, family in LANGUAGE_FAMILIES.items()
    for technology in family["technologies"]
}


def language_family(technology: str) -> str | None:
    """Return the family key for a technology tag, or None for frameworks."""
    return _TECHNOLOGY_FAMILY.get(technology)


def workspace_families(workspaces: Iterable[WorkspaceInfo]) -> set[str]:
    """All language families present across the given workspaces."""
    families = set()
    for workspace in workspaces:
        for technology in workspace.technologies:
            family = language_family(technology)
            if family is not None:
                families.add(family)
    return families


def is_cross_language(workspaces: Iterable[WorkspaceInfo]) -> bool:
    """True when the workspaces span more than one language family.

    JavaScript and TypeScript count as one family, as do Java and Kotlin;
    framework tags (React, Django, ...) are ignored.
    """
    families = workspace_families(workspaces)
    if len(families) > 1:
        names = sorted(LANGUAGE_FAMILIES[f]["name"] for f in families)
        logger.debug(f"Workspaces span language families: {', '.join(names)}")
    return len(families) > 1
