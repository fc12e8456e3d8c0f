"""Micro-parsers for the manifest formats that declare workspace members.

Structured formats (JSON, YAML, TOML, XML) go through real parsers and any
failure surfaces as ManifestParseError. The build-DSL and solution-file
parsers are line/regex based over a narrow, well-known subset; they never
raise on malformed text and simply return what they could recognize.
"""

import json
import re
import tomllib
import xml.etree.ElementTree as ET
from typing import Any

import yaml


class ManifestParseError(ValueError):
    """Raised when a manifest is present but cannot be parsed."""

    pass


def parse_json(content: str) -> dict[str, Any]:
    """Parse a JSON object (package.json, lerna.json)."""
    try:
        data = json.loads(content)
    except (ValueError, RecursionError) as e:
        # JSONDecodeError, or integer literals past the digit limit
        raise ManifestParseError(f"Invalid JSON: {e}") from e
    if not isinstance(data, dict):
        raise ManifestParseError("Expected a JSON object")
    return data


def parse_yaml(content: str) -> dict[str, Any]:
    """Parse a YAML mapping (pnpm-workspace.yaml). Empty documents yield {}."""
    try:
        data = yaml.safe_load(content)
    except (yaml.YAMLError, ValueError) as e:
        # Implicit timestamps like 2020-13-45 fail with a plain ValueError
        raise ManifestParseError(f"Invalid YAML: {e}") from e
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ManifestParseError("Expected a YAML mapping")
    return data


def parse_toml(content: str) -> dict[str, Any]:
    """Parse a TOML document (Cargo.toml, pyproject.toml)."""
    try:
        return tomllib.loads(content)
    except tomllib.TOMLDecodeError as e:
        raise ManifestParseError(f"Invalid TOML: {e}") from e


def string_list(value: Any) -> list[str]:
    """Keep only the non-empty string items of a manifest list value."""
    if not isinstance(value, list):
        return []
    return [item.strip() for item in value if isinstance(item, str) and item.strip()]


def toml_table(data: dict[str, Any], *keys: str) -> dict[str, Any] | None:
    """Walk nested TOML tables, returning None if any level is missing."""
    current: Any = data
    for key in keys:
        if not isinstance(current, dict):
            return None
        current = current.get(key)
    return current if isinstance(current, dict) else None


def _strip_namespace(tag: str) -> str:
    return tag.rsplit("}", 1)[-1]


def parse_pom(content: str) -> ET.Element:
    """Parse a Maven pom.xml into its root element."""
    try:
        return ET.fromstring(content)
    except ET.ParseError as e:
        raise ManifestParseError(f"Invalid XML: {e}") from e


def pom_child_text(root: ET.Element, tag: str) -> str | None:
    """Text of a direct child of <project>, ignoring the POM namespace.

    Only direct children are considered, so a module's own artifactId wins
    over the one declared in its <parent> block.
    """
    for child in root:
        if _strip_namespace(child.tag) == tag and child.text and child.text.strip():
            return child.text.strip()
    return None


def pom_modules(root: ET.Element) -> list[str]:
    """Module paths declared in <modules>, including profile-scoped modules."""
    modules: list[str] = []
    for element in root.iter():
        if _strip_namespace(element.tag) != "modules":
            continue
        for module in element:
            if _strip_namespace(module.tag) != "module" or not module.text:
                continue
            path = module.text.strip()
            if path and path not in modules:
                modules.append(path)
    return modules


# Gradle settings: include 'a', ':b'  /  include("a", ":b")  /  include(listOf(...))
_GRADLE_INCLUDE_RE = re.compile(r"^\s*include\b\s*\(?(.*)$")
_QUOTED_RE = re.compile(r"""["']([^"'\n]+)["']""")
_LINE_COMMENT_RE = re.compile(r"//.*$")
_BLOCK_COMMENT_RE = re.compile(r"/\*.*?\*/", re.DOTALL)


def parse_gradle_includes(content: str) -> list[str]:
    """Extract project paths from settings.gradle / settings.gradle.kts.

    Examples:
      - include 'app', 'lib'         -> ["app", "lib"]
      - include(":services:api")     -> [":services:api"]
      - includeBuild("tools")        -> [] (composite builds are not members)
    """
    text = _BLOCK_COMMENT_RE.sub("", content)
    includes: list[str] = []
    # An include statement may span lines, either inside an open
    # parenthesis or through trailing commas (Groovy)
    in_parens = False
    trailing_comma = False

    for raw_line in text.splitlines():
        line = _LINE_COMMENT_RE.sub("", raw_line)
        if in_parens or trailing_comma:
            args = line
        else:
            match = _GRADLE_INCLUDE_RE.match(line)
            if not match:
                continue
            args = match.group(1)
            in_parens = line.strip()[len("include") :].lstrip().startswith("(")

        for name in _QUOTED_RE.findall(args):
            name = name.strip()
            if name and name not in includes:
                includes.append(name)

        stripped = args.strip()
        if ")" in stripped:
            in_parens = False
        trailing_comma = not in_parens and stripped.endswith(",")

    return includes


def gradle_project_dir(project_path: str) -> str:
    """Convert a Gradle project path (":services:api") to "services/api"."""
    return project_path.strip().lstrip(":").replace(":", "/")


# Project("{TYPE-GUID}") = "Name", "Relative\Path.csproj", "{PROJECT-GUID}"
_SLN_PROJECT_RE = re.compile(
    r'^\s*Project\(\s*"[^"]*"\s*\)\s*=\s*"([^"]+)"\s*,\s*"([^"]+)"', re.MULTILINE
)


def parse_solution_projects(content: str) -> list[tuple[str, str]]:
    """Extract (name, relative project file path) pairs from a .sln file.

    Solution folders are included too; callers filter by project file
    extension.
    """
    projects: list[tuple[str, str]] = []
    for match in _SLN_PROJECT_RE.finditer(content):
        name = match.group(1).strip()
        path = match.group(2).strip().replace("\\", "/")
        if name and path:
            projects.append((name, path))
    return projects


def _strip_go_comment(line: str) -> str:
    return line.split("//", 1)[0].strip()


def _unquote(value: str) -> str:
    value = value.strip()
    if len(value) >= 2 and value[0] == value[-1] and value[0] in "\"`":
        return value[1:-1]
    return value


def parse_go_work(content: str) -> list[str]:
    """Extract module directories from go.work ``use`` directives.

    Handles both forms:
      use ./service
      use (
          ./a
          ./b
      )
    """
    modules: list[str] = []
    in_use_block = False

    for raw_line in content.splitlines():
        line = _strip_go_comment(raw_line)
        if not line:
            continue

        if in_use_block:
            if line.startswith(")"):
                in_use_block = False
                continue
            entry = _unquote(line.split()[0]) if line.split() else ""
            if entry and entry not in modules:
                modules.append(entry)
            continue

        if not (line == "use" or line.startswith(("use ", "use\t", "use("))):
            continue

        rest = line[3:].strip()
        if rest.startswith("("):
            rest = rest[1:].strip()
            if rest.endswith(")"):
                # Single-line block: use ( ./a )
                rest = rest[:-1].strip()
            else:
                in_use_block = True
        for token in rest.split():
            entry = _unquote(token)
            if entry and entry not in modules:
                modules.append(entry)

    return modules


def parse_go_module_name(content: str) -> str | None:
    """Return the module path declared by a go.mod ``module`` directive."""
    for raw_line in content.splitlines():
        line = _strip_go_comment(raw_line)
        if line.startswith("module"):
            parts = line.split(None, 1)
            if len(parts) == 2 and parts[0] == "module":
                name = _unquote(parts[1])
                return name or None
    return None


def parse_go_requires(content: str) -> list[str]:
    """Return module paths from go.mod ``require`` directives (versions dropped)."""
    requires: list[str] = []
    in_require_block = False

    for raw_line in content.splitlines():
        line = _strip_go_comment(raw_line)
        if not line:
            continue

        if in_require_block:
            if line.startswith(")"):
                in_require_block = False
            else:
                requires.append(line.split()[0])
            continue

        if line.startswith("require"):
            rest = line[len("require") :].strip()
            if rest.startswith("("):
                in_require_block = True
            elif rest:
                requires.append(rest.split()[0])

    return requires


_SETUP_NAME_RE = re.compile(r"""\bname\s*=\s*["']([^"'\n]+)["']""")


def parse_setup_py_name(content: str) -> str | None:
    """Return the distribution name passed to setup(name=...), if literal."""
    match = _SETUP_NAME_RE.search(content)
    return match.group(1).strip() if match else None
