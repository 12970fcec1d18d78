"""Core registry functionality for video generation models.

This module provides the VideoModelRegistry class, which loads the model
catalog, the per-model options and the pricing tables and wires them into
the option provider, the pricing catalog and the price resolver.

Typical usage:

    from video_model_registry import VideoModelRegistry

    registry = VideoModelRegistry()
    price = registry.resolver.resolve_price("Sora 2", selection)

Registries are constructed explicitly and passed to whatever needs them;
there is no process-wide instance.
"""

import os
from decimal import Decimal
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

import yaml

from .catalog import ModelCatalog, ModelEntry
from .config_paths import (
    ENV_DISPLAY_MODE,
    ENV_FAL_API_KEY,
    ENV_FAL_ENDPOINT,
    ENV_FAL_WEBHOOK_URL,
    ENV_MODELS_PATH,
    ENV_PRICING_PATH,
    ENV_RUNWARE_API_KEY,
    ENV_RUNWARE_ENDPOINT,
    get_models_path,
    get_pricing_path,
    get_user_config_dir,
    is_bundled,
)
from .config_result import ConfigResult
from .credits import PriceDisplayMode
from .errors import (
    ConfigFileNotFoundError,
    ConfigurationError,
    InvalidConfigFormatError,
    ModelNotSupportedError,
)
from .logging import LogEvent, log_debug, log_error, log_info, log_warning
from .options import (
    DEFAULT_ASPECT_OPTIONS,
    DEFAULT_RESOLUTION_OPTIONS,
    AspectRatioOption,
    DurationOption,
    ModelConfigurationProvider,
    ModelOptions,
    ResolutionOption,
    to_seconds,
)
from .pricing import PricingCatalog, PricingKey
from .resolver import PricingResolver
from .schema_version import SchemaVersionValidator


class RegistryConfig:
    """Configuration for the video model registry."""

    def __init__(
        self,
        models_path: Optional[str] = None,
        pricing_path: Optional[str] = None,
        display_mode: Optional[str] = None,
    ):
        """Initialize registry configuration.

        Args:
            models_path: Custom path to the models YAML file. If None, the
                         env var, user config dir and bundled file are tried.
            pricing_path: Custom path to the pricing YAML file. Resolved the
                          same way as ``models_path``.
            display_mode: "dollars" or "credits". If None, the
                          ``VMR_PRICE_DISPLAY_MODE`` env var, then "credits".

        Raises:
            ValueError: If the display mode is unknown
        """
        self.explicit_models_path = models_path is not None
        self.explicit_pricing_path = pricing_path is not None
        self.models_path = models_path or get_models_path()
        self.pricing_path = pricing_path or get_pricing_path()
        mode = display_mode or os.environ.get(ENV_DISPLAY_MODE) or PriceDisplayMode.CREDITS.value
        self.display_mode = PriceDisplayMode.parse(mode)


def _aspect_option(item: Any, shared: Mapping[str, AspectRatioOption]) -> AspectRatioOption:
    if isinstance(item, Mapping):
        aspect_id = str(item["id"])
        base = shared.get(aspect_id)
        width, height = (base.width, base.height) if base else _ratio_parts(aspect_id)
        platforms = item.get("platforms")
        return AspectRatioOption(
            id=aspect_id,
            label=str(item.get("label") or aspect_id),
            width=int(item.get("width") or width),
            height=int(item.get("height") or height),
            platforms=tuple(platforms) if platforms is not None else (base.platforms if base else ()),
        )
    aspect_id = str(item)
    if aspect_id in shared:
        return shared[aspect_id]
    width, height = _ratio_parts(aspect_id)
    return AspectRatioOption(aspect_id, aspect_id, width, height)


def _ratio_parts(aspect_id: str) -> Tuple[int, int]:
    parts = aspect_id.split(":")
    if len(parts) != 2:
        raise ValueError(f"Invalid aspect ratio {aspect_id!r}")
    return int(parts[0]), int(parts[1])


def _resolution_option(item: Any, shared: Mapping[str, ResolutionOption]) -> ResolutionOption:
    if isinstance(item, Mapping):
        res_id = str(item["id"])
        base = shared.get(res_id)
        return ResolutionOption(
            id=res_id,
            label=str(item.get("label") or res_id),
            description=item.get("description", base.description if base else None),
        )
    res_id = str(item)
    return shared.get(res_id) or ResolutionOption(res_id, res_id)


def _duration_option(item: Any) -> DurationOption:
    if isinstance(item, Mapping):
        return DurationOption.of(item["seconds"], item.get("description"))
    return DurationOption.of(item)


class VideoModelRegistry:
    """Registry of video models, their options and their prices."""

    MODELS_REQUIRED_KEYS = ("models",)
    PRICING_REQUIRED_KEYS = ("models",)

    def __init__(self, config: Optional[RegistryConfig] = None):
        """Initialize a new registry instance.

        Args:
            config: Configuration for this registry instance. If None, default
                   configuration is used.

        Raises:
            ConfigurationError: If a data file cannot be read, is not valid
                YAML, or declares an unsupported schema version
        """
        self.config = config or RegistryConfig()
        self._last_load_stats: Dict[str, Any] = {}

        models_data = self._require(
            self._load_yaml(self.config.models_path), self.MODELS_REQUIRED_KEYS, self.config.explicit_models_path
        )
        pricing_data = self._require(
            self._load_yaml(self.config.pricing_path), self.PRICING_REQUIRED_KEYS, self.config.explicit_pricing_path
        )

        self.pricing = PricingCatalog.from_dict(pricing_data.get("models") or {}, path=self.config.pricing_path)
        self.catalog = ModelCatalog.from_list(models_data.get("catalog") or [])
        self.configuration = self._load_options(models_data).with_motion_control(self.pricing.motion_control_models())
        self.resolver = PricingResolver(self.pricing, self.configuration, self.catalog)
        self._check_pricing_labels()

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    def _load_yaml(self, path: str) -> ConfigResult:
        """Read and parse one YAML data file.

        Returns:
            ConfigResult: Result of the configuration loading operation
        """
        bundled = is_bundled(path)
        if not Path(path).is_file():
            error_msg = f"Data file not found: {path}"
            log_error(LogEvent.MODEL_REGISTRY, error_msg, path=path)
            return ConfigResult(
                success=False, error=error_msg, exception=FileNotFoundError(path), path=path, bundled=bundled
            )

        try:
            with open(path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            error_msg = f"YAML parsing error in {path}: {e}"
            log_error(LogEvent.MODEL_REGISTRY, error_msg, path=path)
            return ConfigResult(success=False, error=error_msg, exception=e, path=path, bundled=bundled)
        except OSError as e:
            error_msg = f"Error reading {path}: {e}"
            log_error(LogEvent.MODEL_REGISTRY, error_msg, path=path)
            return ConfigResult(success=False, error=error_msg, exception=e, path=path, bundled=bundled)

        if not isinstance(data, dict):
            error_msg = f"Invalid configuration format in {path}: expected dictionary, got {type(data).__name__}"
            log_error(LogEvent.MODEL_REGISTRY, error_msg, path=path)
            return ConfigResult(success=False, error=error_msg, path=path, bundled=bundled)

        log_debug(LogEvent.MODEL_REGISTRY, "Loaded data file", path=path, bundled=bundled)
        return ConfigResult(success=True, data=data, path=path, bundled=bundled)

    def _require(self, result: ConfigResult, required_keys: Sequence[str], explicit: bool) -> Dict[str, Any]:
        """Turn a load result into data, raising on failure."""
        path = result.path
        if not result.success or result.data is None:
            if isinstance(result.exception, FileNotFoundError):
                hint = " (set explicitly)" if explicit else ""
                raise ConfigFileNotFoundError(f"{result.error}{hint}", path=path)
            raise InvalidConfigFormatError(result.error or f"Could not load {path}", path=path)

        data = result.data
        try:
            version = SchemaVersionValidator.get_schema_version(data)
        except ValueError as e:
            raise InvalidConfigFormatError(str(e), path=path) from e

        if not SchemaVersionValidator.is_compatible_schema(version):
            raise ConfigurationError(f"Unsupported schema version {version} in {path}", path=path)
        if not SchemaVersionValidator.validate_schema_structure(data, version, required_keys):
            raise InvalidConfigFormatError(
                f"{path} is missing required keys: {', '.join(k for k in required_keys if k not in data)}",
                path=path,
            )
        if not isinstance(data.get("models") or {}, dict):
            raise InvalidConfigFormatError(f"'models' in {path} must be a mapping", path=path)
        return data

    def _load_options(self, data: Mapping[str, Any]) -> ModelConfigurationProvider:
        """Build the option provider from the ``models`` section.

        Parsing is best-effort per model; failures are logged and the model
        falls back to the default options.
        """
        shared_aspects: Dict[str, AspectRatioOption] = {a.id: a for a in DEFAULT_ASPECT_OPTIONS}
        for aspect_id, block in (data.get("aspect_ratios") or {}).items():
            block = dict(block or {})
            block["id"] = str(aspect_id)
            shared_aspects[str(aspect_id)] = _aspect_option(block, shared_aspects)

        shared_resolutions: Dict[str, ResolutionOption] = {r.id: r for r in DEFAULT_RESOLUTION_OPTIONS}
        for res_id, block in (data.get("resolutions") or {}).items():
            block = dict(block or {})
            block["id"] = str(res_id)
            shared_resolutions[str(res_id)] = _resolution_option(block, shared_resolutions)

        models_data: Mapping[str, Any] = data.get("models") or {}
        models: Dict[str, ModelOptions] = {}
        loaded_count = 0
        skipped_count = 0
        first_error: Optional[str] = None

        for model_name, model_config in models_data.items():
            model_name = str(model_name)
            try:
                model_config = model_config or {}
                aspects = model_config.get("aspect_ratios")
                resolutions = model_config.get("resolutions")
                durations = model_config.get("durations")
                default_duration = model_config.get("default_duration")

                models[model_name] = ModelOptions(
                    model_name=model_name,
                    provider_model=model_config.get("provider_model"),
                    capabilities=[str(c) for c in model_config.get("capabilities") or []],
                    aspect_ratios=[_aspect_option(a, shared_aspects) for a in aspects] if aspects else None,
                    durations=[_duration_option(d) for d in durations] if durations else None,
                    resolutions=[_resolution_option(r, shared_resolutions) for r in resolutions]
                    if resolutions
                    else None,
                    default_duration=to_seconds(default_duration) if default_duration is not None else None,
                    audio_required=bool(model_config.get("audio_required", False)),
                    frame_images=bool(model_config.get("frame_images", False)),
                    description=model_config.get("description"),
                )
                loaded_count += 1
            except (ValueError, KeyError, TypeError, AttributeError) as e:
                if first_error is None:
                    first_error = f"{type(e).__name__}: {e}"
                skipped_count += 1
                log_warning(
                    LogEvent.MODEL_REGISTRY,
                    "Failed to load model options",
                    model=model_name,
                    error=str(e),
                )

        self._last_load_stats = {
            "total": len(models_data),
            "loaded": loaded_count,
            "skipped": skipped_count,
            "first_error": first_error,
        }
        log_info(
            LogEvent.MODEL_REGISTRY,
            "Model load summary",
            total=len(models_data),
            loaded=loaded_count,
            skipped=skipped_count,
        )
        return ModelConfigurationProvider(models)

    def _check_pricing_labels(self) -> None:
        """Warn about table entries no option list can ever select."""
        for model_name in self.pricing.model_names():
            pricing = self.pricing.get(model_name)
            if pricing is None or pricing.table is None:
                continue
            unreachable = pricing.table.unreachable_keys(
                self.configuration.aspect_options(model_name).ids(),
                self.configuration.resolution_options(model_name).ids(),
                [d.duration for d in self.configuration.duration_options(model_name)],
            )
            if unreachable:
                log_warning(
                    LogEvent.PRICING,
                    "Pricing entries do not match any selectable option",
                    model=model_name,
                    count=len(unreachable),
                    first=_key_text(unreachable[0]),
                )

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @property
    def last_load_stats(self) -> Dict[str, Any]:
        return dict(self._last_load_stats)

    def list_models(self) -> List[str]:
        """All known model names: catalog order first, then the rest."""
        names: Dict[str, None] = {}
        for entry in self.catalog.entries():
            names.setdefault(entry.model_name, None)
        for name in self.configuration.model_names():
            names.setdefault(name, None)
        for name in self.pricing.model_names():
            names.setdefault(name, None)
        return list(names)

    def get_model(self, model_name: str) -> ModelEntry:
        """Return the catalog entry for a model.

        Configured models without a catalog entry get a synthesized entry.

        Raises:
            ModelNotSupportedError: If the model is unknown
        """
        entry = self.catalog.get(model_name)
        if entry is not None:
            return entry
        if model_name in self.configuration or model_name in self.pricing:
            options = self.configuration.get(model_name)
            return ModelEntry(
                id=model_name,
                title=model_name,
                model_name=model_name,
                description=(options.description if options else None) or "",
                cost=self.resolver.base_price(model_name),
                capabilities=tuple(self.configuration.capabilities(model_name)),
            )
        available = self.list_models()
        raise ModelNotSupportedError(
            f"Model '{model_name}' is not supported. Available models: {', '.join(available)}",
            model=model_name,
            available_models=available,
        )

    def display_price(self, model_name: str) -> Optional[Decimal]:
        """The "starting from" price shown for a model in list views."""
        entry = self.catalog.get(model_name)
        return self.pricing.display_price(model_name, self.resolver.base_price(model_name) if entry is None else entry.cost)

    def describe(self, model_name: str) -> Dict[str, Any]:
        """Options, capabilities and pricing of a model as plain data.

        Raises:
            ModelNotSupportedError: If the model is unknown
        """
        entry = self.get_model(model_name)
        cfg = self.configuration
        pricing = self.pricing.get(model_name)
        display = self.display_price(model_name)

        pricing_info: Dict[str, Any] = {
            "base_price": str(self.resolver.base_price(model_name)),
            "display_price": str(display) if display is not None else None,
            "variable": bool(pricing and pricing.has_variable_pricing),
            "table": None,
            "audio_addon": None,
            "motion_control": None,
        }
        if pricing is not None:
            if pricing.table is not None:
                pricing_info["table"] = [
                    {
                        "aspect_ratio": key.aspect_ratio,
                        "resolution": key.resolution,
                        "duration": _decimal_text(key.duration),
                        "price": str(price),
                    }
                    for key, price in pricing.table.items()
                ]
            if pricing.audio_addon is not None:
                addon = pricing.audio_addon
                pricing_info["audio_addon"] = {
                    "by_duration": {_decimal_text(d): str(a) for d, a in addon.by_duration.items()},
                    "per_second": str(addon.per_second) if addon.per_second is not None else None,
                }
            if pricing.motion_control is not None:
                pricing_info["motion_control"] = pricing.motion_control.to_dict()

        return {
            "name": model_name,
            "title": entry.title,
            "provider_model": cfg.provider_model(model_name),
            "description": entry.description,
            "capabilities": cfg.capabilities(model_name) or list(entry.capabilities),
            "modes": [m.value for m in cfg.supported_modes(model_name)],
            "audio_required": cfg.audio_required(model_name),
            "aspect_ratios": cfg.aspect_options(model_name).ids(),
            "resolutions": cfg.resolution_options(model_name).ids(),
            "durations": [_decimal_text(d.duration) for d in cfg.duration_options(model_name)],
            "default_duration": _decimal_text(cfg.default_duration(model_name)),
            "pricing": pricing_info,
        }

    def dump_effective(self) -> Dict[str, Any]:
        """Return ``describe`` for every known model."""
        effective: Dict[str, Any] = {}
        for model_name in self.list_models():
            effective[model_name] = self.describe(model_name)
        return effective

    def get_data_info(self) -> Dict[str, Any]:
        """Get information about data configuration and status.

        Returns:
            Dictionary containing data configuration information
        """
        info: Dict[str, Any] = {
            "user_config_directory": str(get_user_config_dir()),
            "display_mode": self.config.display_mode.value,
            "environment_variables": {
                name: os.getenv(name)
                for name in (
                    ENV_MODELS_PATH,
                    ENV_PRICING_PATH,
                    ENV_DISPLAY_MODE,
                    ENV_RUNWARE_ENDPOINT,
                    ENV_FAL_ENDPOINT,
                    ENV_FAL_WEBHOOK_URL,
                )
            },
            "data_files": {},
            "load_stats": {"models": self.last_load_stats, "pricing": self.pricing.last_load_stats},
        }
        for secret in (ENV_RUNWARE_API_KEY, ENV_FAL_API_KEY):
            info["environment_variables"][secret] = "***" if os.getenv(secret) else None
        for label, path in (("models", self.config.models_path), ("pricing", self.config.pricing_path)):
            info["data_files"][label] = {
                "path": path,
                "exists": Path(path).is_file(),
                "using_bundled": is_bundled(path),
            }
        return info


def _decimal_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    return format(value.normalize(), "f")


def _key_text(key: PricingKey) -> str:
    return f"{key.aspect_ratio}/{key.resolution}/{_decimal_text(key.duration)}s"
