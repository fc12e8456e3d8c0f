"""Detector options and .repotopo.yaml loading."""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from .constants import DEFAULT_MAX_WORKSPACES, DEFAULT_TIMEOUT_MS, MAX_TIMEOUT_MS

logger = logging.getLogger(__name__)

# Current config schema version
CURRENT_VERSION = "1"

CONFIG_FILENAME = ".repotopo.yaml"


class ConfigVersionError(Exception):
    """Raised when config version is incompatible."""

    pass


class ConfigValidationError(Exception):
    """Raised when config values are invalid."""

    pass


def _validate_version(version: Any) -> str:
    """Validate config version and return normalized version string.

    Args:
        version: Version value from config, or None if missing

    Returns:
        Validated version string

    Raises:
        ConfigVersionError: If version is incompatible
    """
    if version is None:
        logger.warning("Config file missing version field, assuming version '1'")
        return CURRENT_VERSION

    try:
        version_num = int(str(version))
    except ValueError:
        raise ConfigVersionError(
            f"Unrecognized config version '{version}'. "
            f"Supported versions: {CURRENT_VERSION}"
        ) from None

    if version_num > int(CURRENT_VERSION):
        raise ConfigVersionError(
            f"Config file requires repotopo config version {version} or newer. "
            f"Current repotopo supports config version {CURRENT_VERSION}. "
            "Please upgrade repotopo to use this config."
        )
    return str(version)


def _positive_int(name: str, value: Any) -> int:
    # bool is an int subclass; "max_workspaces: true" is a typo, not 1
    if isinstance(value, bool) or not isinstance(value, int):
        raise ConfigValidationError(f"{name} must be an integer, got {value!r}")
    if value <= 0:
        raise ConfigValidationError(f"{name} must be positive, got {value}")
    return value


@dataclass
class DetectorOptions:
    """Resource limits for monorepo detection.

    Attributes:
        max_workspaces: Upper bound on workspaces reported per detection
        timeout_ms: Per-detector time budget; clamped to MAX_TIMEOUT_MS
        enable_cache: Cache glob expansions for the detector's lifetime
    """

    max_workspaces: int = DEFAULT_MAX_WORKSPACES
    timeout_ms: int = DEFAULT_TIMEOUT_MS
    enable_cache: bool = True

    def __post_init__(self) -> None:
        self.max_workspaces = _positive_int("max_workspaces", self.max_workspaces)
        self.timeout_ms = _positive_int("timeout_ms", self.timeout_ms)
        if self.timeout_ms > MAX_TIMEOUT_MS:
            logger.warning(
                f"timeout_ms {self.timeout_ms} exceeds maximum, "
                f"clamping to {MAX_TIMEOUT_MS}"
            )
            self.timeout_ms = MAX_TIMEOUT_MS
        if not isinstance(self.enable_cache, bool):
            raise ConfigValidationError(
                f"enable_cache must be true or false, got {self.enable_cache!r}"
            )

    @property
    def timeout_seconds(self) -> float:
        return self.timeout_ms / 1000

    @classmethod
    def load(cls, path: Path) -> "DetectorOptions":
        """Load options from a .repotopo.yaml file.

        Expected layout:

            version: "1"
            detection:
              max_workspaces: 500
              timeout_ms: 10000
              enable_cache: true

        Missing keys keep their defaults.

        Raises:
            ConfigVersionError: If config version is incompatible
            ConfigValidationError: If the file is malformed or a value is invalid
        """
        try:
            with open(path) as f:
                data = yaml.safe_load(f)
        except (yaml.YAMLError, ValueError) as e:
            raise ConfigValidationError(f"Invalid YAML in {path}: {e}") from e

        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ConfigValidationError(f"{path} must contain a YAML mapping")

        _validate_version(data.get("version"))

        detection = data.get("detection") or {}
        if not isinstance(detection, dict):
            raise ConfigValidationError("'detection' must be a mapping")

        unknown = set(detection) - {"max_workspaces", "timeout_ms", "enable_cache"}
        if unknown:
            logger.warning(f"Ignoring unknown detection options: {sorted(unknown)}")

        return cls(
            max_workspaces=detection.get("max_workspaces", DEFAULT_MAX_WORKSPACES),
            timeout_ms=detection.get("timeout_ms", DEFAULT_TIMEOUT_MS),
            enable_cache=detection.get("enable_cache", True),
        )

    @classmethod
    def discover(cls, project_path: Path) -> "DetectorOptions":
        """Load project_path/.repotopo.yaml if present, defaults otherwise."""
        config_path = project_path / CONFIG_FILENAME
        if config_path.is_file():
            logger.debug(f"Loading detector options from {config_path}")
            return cls.load(config_path)
        return cls()
