"""Tests for the schema version check on models.yml and pricing.yml."""

from pathlib import Path
from typing import Any, Dict, Tuple
from unittest.mock import patch

import pytest
import yaml

from video_model_registry import RegistryConfig, VideoModelRegistry
from video_model_registry.config_paths import get_package_config_dir
from video_model_registry.errors import ConfigurationError, InvalidConfigFormatError
from video_model_registry.schema_version import SchemaVersionValidator


def _write(path: Path, data: Dict[str, Any]) -> str:
    with open(path, "w") as f:
        yaml.dump(data, f)
    return str(path)


class TestBundledFiles:
    """The data files shipped with the package carry a supported version."""

    @pytest.mark.parametrize(
        "filename, required_keys",
        [
            ("models.yml", VideoModelRegistry.MODELS_REQUIRED_KEYS),
            ("pricing.yml", VideoModelRegistry.PRICING_REQUIRED_KEYS),
        ],
    )
    def test_bundled_file_is_supported(self, filename: str, required_keys: Tuple[str, ...]) -> None:
        with open(get_package_config_dir() / filename) as f:
            data = yaml.safe_load(f)
        version = SchemaVersionValidator.get_schema_version(data)
        assert SchemaVersionValidator.is_compatible_schema(version)
        assert SchemaVersionValidator.validate_schema_structure(data, version, required_keys)


class TestGetSchemaVersion:
    @pytest.mark.parametrize(
        "raw, expected",
        [("1.0.0", "1.0.0"), ("1.2", "1.2.0"), (1.0, "1.0.0"), ("1", "1.0.0"), ("1.0.0-rc.1", "1.0.0-rc.1")],
    )
    def test_normalises(self, raw: Any, expected: str) -> None:
        assert SchemaVersionValidator.get_schema_version({"version": raw}) == expected

    @pytest.mark.parametrize("data", [{}, {"version": ""}, {"version": None}])
    def test_missing_version_uses_default(self, data: Dict[str, Any]) -> None:
        with patch("video_model_registry.schema_version.log_warning") as mock_log:
            assert SchemaVersionValidator.get_schema_version(data) == SchemaVersionValidator.DEFAULT_SCHEMA_VERSION
        mock_log.assert_called_once()

    @pytest.mark.parametrize("raw", ["v1.0.0", "one", "1.x.y", {"major": 1}])
    def test_rejects_malformed(self, raw: Any) -> None:
        with pytest.raises(ValueError, match="Invalid schema version format"):
            SchemaVersionValidator.get_schema_version({"version": raw})


class TestCompatibility:
    @pytest.mark.parametrize("version", ["1.0.0", "1.9.9", "1.0.0-alpha", "1.0.0+build.7"])
    def test_one_x_is_supported(self, version: str) -> None:
        assert SchemaVersionValidator.is_compatible_schema(version) is True
        assert SchemaVersionValidator.get_compatible_range(version) == "1.x"

    @pytest.mark.parametrize("version", ["0.9.9", "2.0.0", "", "garbage"])
    def test_other_versions_are_not(self, version: str) -> None:
        assert SchemaVersionValidator.is_compatible_schema(version) is False
        assert SchemaVersionValidator.get_compatible_range(version) is None

    def test_missing_required_key(self) -> None:
        with patch("video_model_registry.schema_version.log_error") as mock_log:
            ok = SchemaVersionValidator.validate_schema_structure({"version": "1.0.0"}, "1.0.0", ("models",))
        assert ok is False
        mock_log.assert_called_once()

    def test_structure_of_unsupported_version(self) -> None:
        assert SchemaVersionValidator.validate_schema_structure({"models": {}}, "2.0.0", ("models",)) is False


class TestRegistryVersionCheck:
    """Versions are enforced when the registry loads its files."""

    def test_pricing_file_from_next_major_is_rejected(
        self, tmp_path: Path, data_files: Dict[str, Path], pricing_yaml: Dict[str, Any]
    ) -> None:
        pricing_yaml["version"] = "2.0.0"
        path = _write(tmp_path / "pricing.yml", pricing_yaml)
        with pytest.raises(ConfigurationError, match="Unsupported schema version 2.0.0"):
            VideoModelRegistry(RegistryConfig(models_path=str(data_files["models"]), pricing_path=path))

    def test_malformed_version_is_a_format_error(
        self, tmp_path: Path, data_files: Dict[str, Path], pricing_yaml: Dict[str, Any]
    ) -> None:
        pricing_yaml["version"] = "latest"
        path = _write(tmp_path / "pricing.yml", pricing_yaml)
        with pytest.raises(InvalidConfigFormatError) as exc_info:
            VideoModelRegistry(RegistryConfig(models_path=str(data_files["models"]), pricing_path=path))
        assert exc_info.value.path == path

    def test_unversioned_files_load_as_one_x(
        self, tmp_path: Path, models_yaml: Dict[str, Any], pricing_yaml: Dict[str, Any]
    ) -> None:
        del models_yaml["version"]
        del pricing_yaml["version"]
        registry = VideoModelRegistry(
            RegistryConfig(
                models_path=_write(tmp_path / "models.yml", models_yaml),
                pricing_path=_write(tmp_path / "pricing.yml", pricing_yaml),
            )
        )
        assert registry.pricing.get("M") is not None
