"""Schema version validation and compatibility checking using semver."""

from typing import Any, Dict, Optional, Sequence

import semver

from .logging import LogEvent, log_error, log_warning


class SchemaVersionValidator:
    """Handles schema version validation and compatibility checking using semver."""

    # Define supported schema version ranges
    SUPPORTED_SCHEMA_VERSIONS = {
        "1.x": ">=1.0.0,<2.0.0",
    }

    DEFAULT_SCHEMA_VERSION = "1.0.0"

    @classmethod
    def _check_version_range(cls, version: str, range_spec: str) -> bool:
        """Check if a version satisfies a range specification.

        Args:
            version: Version string to check
            range_spec: Range specification like ">=1.0.0,<2.0.0"

        Returns:
            True if version satisfies the range
        """
        try:
            parsed_version = semver.Version.parse(version)
            conditions = [cond.strip() for cond in range_spec.split(",")]

            for condition in conditions:
                # Pre-releases of a supported base version are accepted
                if condition.startswith(">=") and parsed_version.prerelease:
                    base = semver.Version(parsed_version.major, parsed_version.minor, parsed_version.patch)
                    if not base.match(condition):
                        return False
                elif not parsed_version.match(condition):
                    return False
            return True
        except ValueError:
            return False

    @classmethod
    def get_schema_version(cls, config_data: Dict[str, Any]) -> str:
        """Extract and normalize the schema version from config data.

        Args:
            config_data: Configuration data dictionary

        Returns:
            Valid schema version string

        Raises:
            ValueError: If version is invalid
        """
        version = config_data.get("version")

        if not version:
            log_warning(
                LogEvent.MODEL_REGISTRY,
                "Missing schema version, using default",
                default_version=cls.DEFAULT_SCHEMA_VERSION,
            )
            return cls.DEFAULT_SCHEMA_VERSION

        version_str = str(version)

        try:
            semver.Version.parse(version_str)
        except ValueError:
            # Handle formats like "1.0" -> "1.0.0"
            parts = version_str.split(".")
            if len(parts) == 2:
                version_str = f"{parts[0]}.{parts[1]}.0"
            elif len(parts) == 1:
                version_str = f"{parts[0]}.0.0"
            try:
                semver.Version.parse(version_str)
            except ValueError as e:
                log_error(LogEvent.MODEL_REGISTRY, "Invalid schema version format", version=version_str, error=str(e))
                raise ValueError(f"Invalid schema version format: {version}") from e

        return version_str

    @classmethod
    def is_compatible_schema(cls, version: str) -> bool:
        """Check if schema version is compatible with this registry.

        Args:
            version: Schema version string

        Returns:
            True if version is supported, False otherwise
        """
        return cls.get_compatible_range(version) is not None

    @classmethod
    def get_compatible_range(cls, version: str) -> Optional[str]:
        """Get the compatible version range name for a given version.

        Args:
            version: Schema version string

        Returns:
            Version range name if compatible, None otherwise
        """
        for range_name, range_spec in cls.SUPPORTED_SCHEMA_VERSIONS.items():
            if cls._check_version_range(version, range_spec):
                return range_name
        return None

    @classmethod
    def validate_schema_structure(
        cls, config_data: Dict[str, Any], version: str, required_keys: Sequence[str]
    ) -> bool:
        """Validate that data structure matches the declared schema version.

        Args:
            config_data: Configuration data dictionary
            version: Schema version string
            required_keys: Top-level keys the file must define

        Returns:
            True if structure is valid for the version
        """
        if not cls._check_version_range(version, ">=1.0.0,<2.0.0"):
            return False

        missing_keys = [key for key in required_keys if key not in config_data]
        if missing_keys:
            log_error(
                LogEvent.MODEL_REGISTRY,
                "Missing required keys for schema version",
                version=version,
                missing_keys=missing_keys,
            )
            return False
        return True
