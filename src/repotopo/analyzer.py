"""Project analysis: tech stack, monorepo topology, documentation and git workflow."""

import asyncio
import logging
from collections import Counter
from pathlib import Path
from typing import Protocol

from .config import DetectorOptions
from .constants import VERBOSE
from .detect.git_workflow import GitWorkflowAnalyzer
from .detect.monorepo import MonorepoDetector
from .detect.result import (
    Conventions,
    DocumentationContext,
    MonorepoInfo,
    ProjectContext,
    TechStack,
)
from .detect.tech_stack import TechStackDetector
from .detect.utils import run_sync

logger = logging.getLogger(__name__)

# Technologies named in a monorepo's type label
TOP_TECHNOLOGIES = 3

# Framework identifier -> project type, checked in order
FRAMEWORK_PROJECT_TYPES = (
    ("react", "React Application"),
    ("vue", "Vue Application"),
    ("angular", "Angular Application"),
    ("next", "Next.js Application"),
    ("svelte", "Svelte Application"),
    ("express", "Express API"),
    ("nestjs", "NestJS Application"),
    ("fastapi", "FastAPI Application"),
    ("django", "Django Application"),
    ("flask", "Flask Application"),
    ("spring", "Spring Boot Application"),
    ("react-native", "React Native Application"),
)

LANGUAGE_PROJECT_TYPES = (
    ("python", "Python Application"),
    ("java", "Java Application"),
    ("kotlin", "Kotlin Application"),
    ("go", "Go Application"),
    ("rust", "Rust Application"),
    ("csharp", "C# Application"),
)


class DocumentationSource(Protocol):
    """Supplies purpose, domain and conventions from project documentation."""

    async def analyze(self, project_root: Path) -> DocumentationContext: ...


class NullDocumentationSource:
    """Documentation source that reports nothing."""

    async def analyze(self, project_root: Path) -> DocumentationContext:
        return DocumentationContext()


def infer_project_type(stack: TechStack) -> str:
    """Coarse project type from the root tech stack."""
    for framework, project_type in FRAMEWORK_PROJECT_TYPES:
        if framework in stack.frameworks:
            return project_type

    if "typescript" in stack.languages or "javascript" in stack.languages:
        if "vite" in stack.tools or "webpack" in stack.tools:
            return "JavaScript/TypeScript Frontend"
        return "JavaScript/TypeScript Application"

    for language, project_type in LANGUAGE_PROJECT_TYPES:
        if language in stack.languages:
            return project_type

    return "Unknown Project Type"


def top_technologies(info: MonorepoInfo, limit: int = TOP_TECHNOLOGIES) -> list[str]:
    """Most frequent workspace technologies; ties keep first-seen order."""
    counts: Counter[str] = Counter()
    for workspace in info.workspaces:
        counts.update(workspace.technologies)
    if not counts:
        return list(info.root_technologies[:limit])
    return [technology for technology, _ in counts.most_common(limit)]


def monorepo_project_type(info: MonorepoInfo) -> str:
    """Type label for a monorepo.

    Example: "pnpm monorepo (TypeScript, React) with 4 workspaces"
    """
    technologies = ", ".join(top_technologies(info))
    count = len(info.workspaces)
    return f"{info.tool} monorepo ({technologies}) with {count} workspaces"


def calculate_confidence(context: ProjectContext) -> float:
    confidence = 0.0
    if context.tech_stack:
        confidence += 0.25
    if context.monorepo is not None and context.monorepo.is_monorepo:
        confidence += 0.15
    if context.purpose:
        confidence += 0.25
    if context.domain:
        confidence += 0.15
    if context.git_workflow:
        confidence += 0.2
    return min(confidence, 1.0)


class ProjectAnalyzer:
    """Builds a ProjectContext for a project directory.

    Collaborators are injectable; the defaults detect from the filesystem
    and git, and report no documentation.
    """

    def __init__(
        self,
        doc_source: DocumentationSource | None = None,
        git_analyzer: GitWorkflowAnalyzer | None = None,
        tech_detector: TechStackDetector | None = None,
        options: DetectorOptions | None = None,
    ):
        self.doc_source = doc_source or NullDocumentationSource()
        self.git_analyzer = git_analyzer or GitWorkflowAnalyzer()
        self.tech_detector = tech_detector or TechStackDetector()
        self.options = options or DetectorOptions()

    async def _detect_monorepo(self, project_root: Path) -> MonorepoInfo | None:
        try:
            return await MonorepoDetector(project_root, self.options).detect()
        except Exception as e:
            logger.warning(f"Monorepo detection failed: {e}")
            return None

    async def analyze(self, project_root: Path) -> ProjectContext:
        """Analyze a project directory.

        CONTRACT:
          Inputs:
            - project_root: existing directory

          Outputs:
            - ProjectContext with tech stack, type label, monorepo info,
              documentation fields, git workflow and confidence in [0, 1]

          Invariants:
            - Detection failures never propagate; documentation and git
              failures are logged as warnings and leave their fields empty
            - A monorepo result replaces the single-project type label

          Raises:
            NotADirectoryError: If project_root is not a directory
        """
        root = Path(project_root)
        if not root.is_dir():
            raise NotADirectoryError(f"Project root is not a directory: {root}")

        logger.debug(f"Starting project analysis for: {root}")
        stack, monorepo = await asyncio.gather(
            self.tech_detector.detect(root), self._detect_monorepo(root)
        )

        context = ProjectContext(
            tech_stack=list(stack.languages),
            type=infer_project_type(stack),
            monorepo=monorepo,
        )
        if monorepo is not None and monorepo.is_monorepo:
            context.type = monorepo_project_type(monorepo)
        logger.log(VERBOSE, f"Detected: {context.type}")

        try:
            docs = await self.doc_source.analyze(root)
        except Exception as e:
            logger.warning(f"Documentation analysis failed: {e}")
        else:
            context.purpose = docs.purpose
            context.domain = list(docs.domain)
            context.custom_instructions = list(docs.custom_instructions)
            if docs.conventions is not None:
                context.conventions = Conventions(
                    git_workflow=docs.conventions.git_workflow,
                    commit_style=docs.conventions.commit_style,
                    branch_naming=docs.conventions.branch_naming,
                )

        try:
            git = await self.git_analyzer.detect(root)
        except Exception as e:
            logger.warning(f"Git workflow analysis failed: {e}")
        else:
            context.git_workflow = git.workflow
            context.conventions.git_workflow = git.workflow
            context.conventions.branch_naming = ", ".join(git.branch_prefixes)
            logger.log(VERBOSE, f"Git workflow: {git.workflow}")

        context.confidence = calculate_confidence(context)
        logger.log(VERBOSE, f"Analysis confidence: {context.confidence:.0%}")
        return context


def analyze_project(
    project_path: Path, options: DetectorOptions | None = None
) -> ProjectContext:
    """Synchronous wrapper around ProjectAnalyzer.analyze()."""
    return run_sync(ProjectAnalyzer(options=options).analyze(project_path))
