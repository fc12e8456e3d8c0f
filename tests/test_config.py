"""Tests for repotopo.config module."""

from pathlib import Path

import pytest

from repotopo.config import (
    CONFIG_FILENAME,
    ConfigValidationError,
    ConfigVersionError,
    DetectorOptions,
)
from repotopo.constants import DEFAULT_MAX_WORKSPACES, DEFAULT_TIMEOUT_MS


class TestDetectorOptions:
    """Validation of detector options."""

    def test_defaults(self) -> None:
        options = DetectorOptions()

        assert options.max_workspaces == DEFAULT_MAX_WORKSPACES
        assert options.timeout_ms == DEFAULT_TIMEOUT_MS
        assert options.enable_cache is True
        assert options.timeout_seconds == pytest.approx(30.0)

    def test_timeout_is_clamped(self, caplog: pytest.LogCaptureFixture) -> None:
        """Timeouts above the maximum are clamped with a warning."""
        options = DetectorOptions(timeout_ms=1_000_000)

        assert options.timeout_ms == 300_000
        assert "timeout_ms 1000000 exceeds maximum, clamping to 300000" in caplog.text

    @pytest.mark.parametrize("value", [0, -5])
    def test_non_positive_values_rejected(self, value: int) -> None:
        with pytest.raises(ConfigValidationError, match="must be positive"):
            DetectorOptions(max_workspaces=value)
        with pytest.raises(ConfigValidationError, match="must be positive"):
            DetectorOptions(timeout_ms=value)

    @pytest.mark.parametrize("value", [True, "100", 1.5, None])
    def test_non_integer_values_rejected(self, value: object) -> None:
        with pytest.raises(ConfigValidationError, match="must be an integer"):
            DetectorOptions(max_workspaces=value)  # type: ignore[arg-type]

    def test_enable_cache_must_be_bool(self) -> None:
        with pytest.raises(ConfigValidationError, match="enable_cache"):
            DetectorOptions(enable_cache="yes")  # type: ignore[arg-type]


class TestLoad:
    """Loading .repotopo.yaml files."""

    def test_load_full_file(self, tmp_path: Path) -> None:
        path = tmp_path / CONFIG_FILENAME
        path.write_text(
            'version: "1"\n'
            "detection:\n"
            "  max_workspaces: 50\n"
            "  timeout_ms: 5000\n"
            "  enable_cache: false\n"
        )

        options = DetectorOptions.load(path)

        assert options == DetectorOptions(
            max_workspaces=50, timeout_ms=5000, enable_cache=False
        )

    def test_missing_keys_keep_defaults(self, tmp_path: Path) -> None:
        path = tmp_path / CONFIG_FILENAME
        path.write_text('version: "1"\ndetection:\n  max_workspaces: 7\n')

        options = DetectorOptions.load(path)

        assert options.max_workspaces == 7
        assert options.timeout_ms == DEFAULT_TIMEOUT_MS

    def test_empty_file_is_defaults(self, tmp_path: Path) -> None:
        path = tmp_path / CONFIG_FILENAME
        path.write_text("")

        assert DetectorOptions.load(path) == DetectorOptions()

    def test_missing_version_warns(
        self, tmp_path: Path, caplog: pytest.LogCaptureFixture
    ) -> None:
        path = tmp_path / CONFIG_FILENAME
        path.write_text("detection:\n  timeout_ms: 100\n")

        options = DetectorOptions.load(path)

        assert options.timeout_ms == 100
        assert "missing version field" in caplog.text

    def test_future_version_rejected(self, tmp_path: Path) -> None:
        path = tmp_path / CONFIG_FILENAME
        path.write_text('version: "2"\n')

        with pytest.raises(ConfigVersionError, match="upgrade repotopo"):
            DetectorOptions.load(path)

    def test_unrecognized_version_rejected(self, tmp_path: Path) -> None:
        path = tmp_path / CONFIG_FILENAME
        path.write_text('version: "one"\n')

        with pytest.raises(ConfigVersionError, match="Unrecognized"):
            DetectorOptions.load(path)

    def test_invalid_yaml(self, tmp_path: Path) -> None:
        path = tmp_path / CONFIG_FILENAME
        path.write_text("detection: [unclosed\n")

        with pytest.raises(ConfigValidationError, match="Invalid YAML"):
            DetectorOptions.load(path)

    def test_non_mapping_document(self, tmp_path: Path) -> None:
        path = tmp_path / CONFIG_FILENAME
        path.write_text("- a\n- b\n")

        with pytest.raises(ConfigValidationError, match="mapping"):
            DetectorOptions.load(path)

    def test_detection_must_be_mapping(self, tmp_path: Path) -> None:
        path = tmp_path / CONFIG_FILENAME
        path.write_text('version: "1"\ndetection: 5\n')

        with pytest.raises(ConfigValidationError, match="'detection'"):
            DetectorOptions.load(path)

    def test_unknown_keys_warn(
        self, tmp_path: Path, caplog: pytest.LogCaptureFixture
    ) -> None:
        path = tmp_path / CONFIG_FILENAME
        path.write_text('version: "1"\ndetection:\n  max_depth: 4\n')

        DetectorOptions.load(path)

        assert "Ignoring unknown detection options: ['max_depth']" in caplog.text

    def test_invalid_value_in_file(self, tmp_path: Path) -> None:
        path = tmp_path / CONFIG_FILENAME
        path.write_text('version: "1"\ndetection:\n  max_workspaces: 0\n')

        with pytest.raises(ConfigValidationError):
            DetectorOptions.load(path)


class TestDiscover:
    """Config discovery in a project directory."""

    def test_no_file_gives_defaults(self, tmp_path: Path) -> None:
        assert DetectorOptions.discover(tmp_path) == DetectorOptions()

    def test_loads_project_file(self, tmp_path: Path) -> None:
        (tmp_path / CONFIG_FILENAME).write_text(
            'version: "1"\ndetection:\n  max_workspaces: 3\n'
        )

        assert DetectorOptions.discover(tmp_path).max_workspaces == 3

    def test_directory_named_like_config_is_ignored(self, tmp_path: Path) -> None:
        (tmp_path / CONFIG_FILENAME).mkdir()

        assert DetectorOptions.discover(tmp_path) == DetectorOptions()
