"""Data classes for detection and analysis results."""

from dataclasses import asdict, dataclass, field
from typing import Any, Literal

GitWorkflow = Literal["gitflow", "github-flow", "trunk-based", "custom"]


@dataclass(frozen=True)
class WorkspaceInfo:
    """A single member package/module inside a monorepo."""

    name: str
    path: str
    type: str
    technologies: tuple[str, ...] = ()
    has_own_package_manager: bool = True

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "path": self.path,
            "type": self.type,
            "technologies": list(self.technologies),
            "has_own_package_manager": self.has_own_package_manager,
        }


@dataclass(frozen=True)
class MonorepoInfo:
    """Outcome of monorepo detection for one project root."""

    is_monorepo: bool
    root_path: str
    tool: str | None = None
    workspaces: tuple[WorkspaceInfo, ...] = ()
    root_technologies: tuple[str, ...] = ()
    cross_language: bool = False
    detection_time_ms: int | None = None

    @classmethod
    def negative(cls, root_path: str) -> "MonorepoInfo":
        """Result for a root that is not (or could not be shown to be) a monorepo."""
        return cls(is_monorepo=False, root_path=root_path)

    def to_dict(self) -> dict[str, Any]:
        return {
            "is_monorepo": self.is_monorepo,
            "tool": self.tool,
            "root_path": self.root_path,
            "workspaces": [ws.to_dict() for ws in self.workspaces],
            "root_technologies": list(self.root_technologies),
            "cross_language": self.cross_language,
            "detection_time_ms": self.detection_time_ms,
        }


@dataclass
class TechStack:
    """Languages, frameworks and tools found at a project root."""

    languages: list[str] = field(default_factory=list)
    frameworks: list[str] = field(default_factory=list)
    tools: list[str] = field(default_factory=list)
    confidence: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class Conventions:
    """Project conventions gathered from documentation and git history."""

    git_workflow: GitWorkflow | None = None
    commit_style: Literal["conventional", "custom"] | None = None
    branch_naming: str | None = None


@dataclass
class DocumentationContext:
    """What a documentation collaborator reports about a project."""

    purpose: str = ""
    domain: list[str] = field(default_factory=list)
    custom_instructions: list[str] = field(default_factory=list)
    conventions: Conventions | None = None


@dataclass
class GitConventions:
    """Branching conventions inferred from a git repository."""

    workflow: GitWorkflow
    branch_prefixes: list[str]
    main_branch: str
    develop_branch: str | None = None
    release_branches: list[str] = field(default_factory=list)
    hotfix_pattern: str | None = None


@dataclass
class ProjectContext:
    """Aggregated analysis of a project. Built fresh per analysis call."""

    purpose: str = ""
    type: str = "unknown"
    tech_stack: list[str] = field(default_factory=list)
    domain: list[str] = field(default_factory=list)
    git_workflow: GitWorkflow | None = None
    conventions: Conventions = field(default_factory=Conventions)
    custom_instructions: list[str] = field(default_factory=list)
    confidence: float = 0.0
    monorepo: MonorepoInfo | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "purpose": self.purpose,
            "type": self.type,
            "tech_stack": list(self.tech_stack),
            "domain": list(self.domain),
            "git_workflow": self.git_workflow,
            "conventions": asdict(self.conventions),
            "custom_instructions": list(self.custom_instructions),
            "confidence": self.confidence,
            "monorepo": self.monorepo.to_dict() if self.monorepo else None,
        }
