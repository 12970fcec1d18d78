"""Pricing data structures for the video model registry."""

from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Iterable, List, Mapping, NamedTuple, Optional, Tuple

from .errors import PricingConfigurationError
from .logging import LogEvent, log_info, log_warning
from .options import to_seconds

ZERO = Decimal("0")


def to_money(value: Any) -> Decimal:
    """Convert a YAML number or string to a Decimal amount.

    Floats go through ``str`` so that 0.0304 stays 0.0304.

    Raises:
        ValueError: If the value is not numeric
    """
    if isinstance(value, bool):
        raise ValueError(f"Price must be a number, got {value!r}")
    try:
        amount = value if isinstance(value, Decimal) else Decimal(str(value))
    except InvalidOperation as e:
        raise ValueError(f"Price must be a number, got {value!r}") from e
    if not amount.is_finite():
        raise ValueError(f"Price must be finite, got {value!r}")
    return amount


class PricingKey(NamedTuple):
    """Lookup key for a variable pricing table.

    Aspect ratio and resolution labels are compared verbatim; only the
    duration is normalised.
    """

    aspect_ratio: str
    resolution: str
    duration: Decimal

    @classmethod
    def of(cls, aspect_ratio: str, resolution: str, duration: Any) -> "PricingKey":
        """Build a key, normalising ``duration`` to Decimal seconds."""
        return cls(aspect_ratio, resolution, to_seconds(duration))


class VideoPricingTable:
    """Exact-match price table keyed by ``PricingKey``."""

    def __init__(self, prices: Mapping[PricingKey, Decimal]):
        """Initialize the table.

        Args:
            prices: Prices keyed by aspect ratio, resolution and duration

        Raises:
            ValueError: If any price is negative
        """
        normalised: Dict[PricingKey, Decimal] = {}
        for key, price in prices.items():
            key = PricingKey.of(*key)
            amount = to_money(price)
            if amount < ZERO:
                raise ValueError(f"Price for {key} must be non-negative")
            normalised[key] = amount
        self._prices = normalised

    @classmethod
    def from_nested(cls, mapping: Mapping[str, Any]) -> "VideoPricingTable":
        """Build a table from ``aspect -> resolution -> duration -> price``.

        Args:
            mapping: Nested mapping as written in ``pricing.yml``

        Returns:
            The pricing table

        Raises:
            ValueError: If the mapping is malformed or a price is negative
        """
        prices: Dict[PricingKey, Decimal] = {}
        for aspect, by_resolution in mapping.items():
            if not isinstance(by_resolution, Mapping):
                raise ValueError(f"Expected resolutions for aspect ratio {aspect!r}")
            for resolution, by_duration in by_resolution.items():
                if not isinstance(by_duration, Mapping):
                    raise ValueError(f"Expected durations for {aspect!r} at {resolution!r}")
                for duration, price in by_duration.items():
                    prices[PricingKey.of(str(aspect), str(resolution), duration)] = to_money(price)
        return cls(prices)

    def __len__(self) -> int:
        return len(self._prices)

    def __contains__(self, key: object) -> bool:
        return key in self._prices

    def price(self, key: PricingKey) -> Optional[Decimal]:
        """Return the stored price for ``key``, or None if absent."""
        return self._prices.get(key)

    def keys(self) -> List[PricingKey]:
        return list(self._prices)

    def items(self) -> List[Tuple[PricingKey, Decimal]]:
        return list(self._prices.items())

    def min_price(self) -> Optional[Decimal]:
        """Lowest price in the table, or None for an empty table."""
        return min(self._prices.values(), default=None)

    def aspect_ratios(self) -> List[str]:
        return _unique(key.aspect_ratio for key in self._prices)

    def resolutions(self) -> List[str]:
        return _unique(key.resolution for key in self._prices)

    def durations(self) -> List[Decimal]:
        return sorted(set(key.duration for key in self._prices))

    def unreachable_keys(
        self,
        aspects: Iterable[str],
        resolutions: Iterable[str],
        durations: Iterable[Decimal],
    ) -> List[PricingKey]:
        """Keys whose labels do not appear in the given option lists.

        Such entries can never be selected, which usually means a label
        mismatch between the option and pricing files.
        """
        aspect_set = set(aspects)
        resolution_set = set(resolutions)
        duration_set = set(durations)
        return [
            key
            for key in self._prices
            if key.aspect_ratio not in aspect_set
            or key.resolution not in resolution_set
            or key.duration not in duration_set
        ]


def _unique(values: Iterable[str]) -> List[str]:
    seen: Dict[str, None] = {}
    for value in values:
        seen.setdefault(value, None)
    return list(seen)


@dataclass(frozen=True)
class AudioAddonTable:
    """Amount a model's base price includes for audio.

    Attributes:
        by_duration: Fixed add-on per duration in seconds
        per_second: Add-on rate applied to durations without a fixed entry
    """

    by_duration: Mapping[Decimal, Decimal] = field(default_factory=dict)
    per_second: Optional[Decimal] = None

    def __post_init__(self) -> None:
        if self.per_second is not None and self.per_second < ZERO:
            raise ValueError("Audio per-second rate must be non-negative")
        for duration, amount in self.by_duration.items():
            if amount < ZERO:
                raise ValueError(f"Audio add-on for {duration}s must be non-negative")

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "AudioAddonTable":
        by_duration = {to_seconds(k): to_money(v) for k, v in (data.get("by_duration") or {}).items()}
        per_second = data.get("per_second")
        return cls(by_duration=by_duration, per_second=to_money(per_second) if per_second is not None else None)

    def addon_for(self, duration: Any) -> Optional[Decimal]:
        """Return the add-on for ``duration`` seconds, or None if none applies."""
        seconds = to_seconds(duration)
        fixed = self.by_duration.get(seconds)
        if fixed is not None:
            return fixed
        if self.per_second is not None:
            return self.per_second * seconds
        return None


# Tiers shown first, in this order; others follow in file order.
TIER_DISPLAY_ORDER = ("standard", "pro")


class MotionControlRates:
    """Per-second rates for motion-control generation, keyed by tier."""

    def __init__(self, rates: Mapping[str, Any]):
        """Initialize the rate table.

        Args:
            rates: Per-second rate keyed by tier name

        Raises:
            ValueError: If the table is empty or a rate is negative
        """
        if not rates:
            raise ValueError("Motion control rates must define at least one tier")
        parsed = {str(tier): to_money(rate) for tier, rate in rates.items()}
        for tier, rate in parsed.items():
            if rate < ZERO:
                raise ValueError(f"Motion control rate for tier {tier!r} must be non-negative")
        ordered = [t for t in TIER_DISPLAY_ORDER if t in parsed]
        ordered += [t for t in parsed if t not in TIER_DISPLAY_ORDER]
        self._rates = {tier: parsed[tier] for tier in ordered}

    def __eq__(self, other: object) -> bool:
        if isinstance(other, MotionControlRates):
            return list(self._rates.items()) == list(other._rates.items())
        return NotImplemented

    def __repr__(self) -> str:
        return f"MotionControlRates({self._rates!r})"

    def tiers(self) -> List[str]:
        """Tier names in display order."""
        return list(self._rates)

    def default_tier(self) -> str:
        return next(iter(self._rates))

    def rate(self, tier: str) -> Optional[Decimal]:
        return self._rates.get(tier)

    def effective_tier(self, tier: Optional[str]) -> str:
        """Tier actually used for pricing.

        A single-tier table always uses its only tier. Otherwise the
        requested tier is used when defined, else the default tier.
        """
        if len(self._rates) == 1:
            return self.default_tier()
        if tier is not None and tier in self._rates:
            return tier
        return self.default_tier()

    def to_dict(self) -> Dict[str, str]:
        return {tier: str(rate) for tier, rate in self._rates.items()}


@dataclass(frozen=True)
class ModelPricing:
    """Everything known about a model's price.

    Attributes:
        model: Model name
        table: Variable pricing table, if the model has one
        flat_price: Flat base price used when no variable price applies
        audio_addon: Amount the table prices include for audio
        motion_control: Per-second motion-control rates
        display_default: Key used for the "starting from" price in list views
    """

    model: str
    table: Optional[VideoPricingTable] = None
    flat_price: Optional[Decimal] = None
    audio_addon: Optional[AudioAddonTable] = None
    motion_control: Optional[MotionControlRates] = None
    display_default: Optional[PricingKey] = None

    @property
    def has_variable_pricing(self) -> bool:
        return self.table is not None

    def validate(self) -> None:
        """Check cross-field invariants.

        Raises:
            PricingConfigurationError: If the audio add-on exceeds a table price
        """
        if self.table is None or self.audio_addon is None:
            return
        for key, price in self.table.items():
            addon = self.audio_addon.addon_for(key.duration)
            if addon is not None and addon > price:
                raise PricingConfigurationError(
                    f"Audio add-on {addon} exceeds price {price} for {key.aspect_ratio} "
                    f"{key.resolution} {key.duration}s",
                    model=self.model,
                )


def _parse_model_pricing(model_name: str, block: Mapping[str, Any]) -> ModelPricing:
    flat = block.get("flat_price")
    table_block = block.get("table")
    audio_block = block.get("audio_addon")
    motion_block = block.get("motion_control")
    default_block = block.get("display_default")

    display_default: Optional[PricingKey] = None
    if isinstance(default_block, Mapping):
        display_default = PricingKey.of(
            str(default_block["aspect_ratio"]),
            str(default_block["resolution"]),
            default_block["duration"],
        )

    return ModelPricing(
        model=model_name,
        table=VideoPricingTable.from_nested(table_block) if isinstance(table_block, Mapping) else None,
        flat_price=to_money(flat) if flat is not None else None,
        audio_addon=AudioAddonTable.from_dict(audio_block) if isinstance(audio_block, Mapping) else None,
        motion_control=MotionControlRates(motion_block) if isinstance(motion_block, Mapping) else None,
        display_default=display_default,
    )


class PricingCatalog:
    """Pricing configuration for every model, loaded once.

    Models absent from the catalog have flat pricing only.
    """

    def __init__(self, models: Optional[Mapping[str, ModelPricing]] = None):
        self._models: Dict[str, ModelPricing] = dict(models or {})
        self._last_load_stats: Dict[str, Any] = {}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any], path: Optional[str] = None) -> "PricingCatalog":
        """Build the catalog from the ``models`` mapping of ``pricing.yml``.

        Parsing is best-effort per model. A model whose block is malformed
        or breaks an invariant is logged and degrades as follows: if only
        its variable pricing is at fault it keeps its flat price, otherwise
        it is skipped entirely.

        Args:
            data: The ``models`` mapping
            path: Source file, for error context

        Returns:
            The pricing catalog
        """
        models: Dict[str, ModelPricing] = {}
        loaded_count = 0
        skipped_count = 0
        first_error: Optional[str] = None

        for model_name, block in data.items():
            model_name = str(model_name)
            try:
                if not isinstance(block, Mapping):
                    raise ValueError("pricing block must be a mapping")
                pricing = _parse_model_pricing(model_name, block)
                pricing.validate()
                models[model_name] = pricing
                loaded_count += 1
            except PricingConfigurationError as e:
                if first_error is None:
                    first_error = f"{type(e).__name__}: {e}"
                skipped_count += 1
                log_warning(
                    LogEvent.PRICING,
                    "Variable pricing disabled for model",
                    model=model_name,
                    path=path,
                    error=str(e),
                )
                flat = block.get("flat_price")
                if flat is not None:
                    models[model_name] = ModelPricing(model=model_name, flat_price=to_money(flat))
            except (ValueError, KeyError, TypeError) as e:
                if first_error is None:
                    first_error = f"{type(e).__name__}: {e}"
                skipped_count += 1
                log_warning(
                    LogEvent.PRICING,
                    "Failed to load model pricing",
                    model=model_name,
                    path=path,
                    error=str(e),
                )

        catalog = cls(models)
        catalog._last_load_stats = {
            "total": len(data),
            "loaded": loaded_count,
            "skipped": skipped_count,
            "first_error": first_error,
        }
        log_info(
            LogEvent.PRICING,
            "Pricing load summary",
            total=len(data),
            loaded=loaded_count,
            skipped=skipped_count,
        )
        return catalog

    def __contains__(self, model_name: object) -> bool:
        return model_name in self._models

    def __len__(self) -> int:
        return len(self._models)

    @property
    def last_load_stats(self) -> Dict[str, Any]:
        return dict(self._last_load_stats)

    def get(self, model_name: str) -> Optional[ModelPricing]:
        """Return the model's pricing, or None for flat pricing only."""
        return self._models.get(model_name)

    def model_names(self) -> List[str]:
        return list(self._models)

    def motion_control_models(self) -> List[str]:
        """Names of models with a motion-control rate table."""
        return [name for name, pricing in self._models.items() if pricing.motion_control is not None]

    def display_price(self, model_name: str, base_cost: Optional[Decimal] = None) -> Optional[Decimal]:
        """The "starting from" price shown in list views.

        Uses the model's display-default key when the table has it, then
        the table minimum, then the flat price, then ``base_cost``.
        """
        pricing = self._models.get(model_name)
        if pricing is None:
            return base_cost
        if pricing.table is not None:
            if pricing.display_default is not None:
                price = pricing.table.price(pricing.display_default)
                if price is not None:
                    return price
            minimum = pricing.table.min_price()
            if minimum is not None:
                return minimum
        if pricing.flat_price is not None:
            return pricing.flat_price
        return base_cost


def resolution_from_dimensions(width: int, height: int) -> str:
    """Map pixel dimensions to a resolution label by the largest side."""
    largest = max(width, height)
    if largest <= 960:
        return "480p"
    if largest <= 1280:
        return "720p"
    return "1080p"


Dimensions = Tuple[int, int]

_VEO_DIMENSIONS: Dict[str, Dict[str, Dimensions]] = {
    "720p": {"16:9": (1280, 720), "9:16": (720, 1280)},
    "1080p": {"16:9": (1920, 1080), "9:16": (1080, 1920)},
}

_KLING_26_PRO_DIMENSIONS: Dict[str, Dict[str, Dimensions]] = {
    "1080p": {"16:9": (1920, 1080), "9:16": (1080, 1920), "1:1": (1440, 1440)},
}

_KLING_25_TURBO_DIMENSIONS: Dict[str, Dict[str, Dimensions]] = {
    "1080p": {"16:9": (1920, 1080), "9:16": (1080, 1920), "1:1": (1080, 1080)},
}

_DEFAULT_DIMENSIONS: Dict[str, Dict[str, Dimensions]] = {
    "480p": {
        "16:9": (864, 480),
        "9:16": (480, 864),
        "4:3": (736, 544),
        "3:4": (544, 736),
        "1:1": (640, 640),
        "21:9": (960, 416),
        "9:21": (416, 960),
    },
    "720p": {
        "16:9": (1280, 720),
        "9:16": (720, 1280),
        "4:3": (960, 720),
        "3:4": (720, 960),
        "1:1": (1024, 1024),
        "21:9": (1680, 720),
        "9:21": (720, 1680),
    },
    "1080p": {
        "16:9": (1920, 1088),
        "9:16": (1088, 1920),
        "4:3": (1664, 1248),
        "3:4": (1248, 1664),
        "1:1": (1440, 1440),
        "21:9": (2176, 928),
        "9:21": (928, 2176),
    },
}

# Provider model ids that only accept exact dimensions.
_MODEL_DIMENSIONS: Tuple[Tuple[str, Dict[str, Dict[str, Dimensions]]], ...] = (
    ("google:3@3", _VEO_DIMENSIONS),
    ("kling-video@2.6-pro", _KLING_26_PRO_DIMENSIONS),
    ("klingai:6@1", _KLING_25_TURBO_DIMENSIONS),
)


def dimensions_for(aspect_ratio: str, resolution: str, model_id: Optional[str] = None) -> Optional[Dimensions]:
    """Pixel size to request for an aspect ratio and resolution.

    Args:
        aspect_ratio: Aspect ratio label, e.g. "9:16"
        resolution: Resolution label, e.g. "720p"
        model_id: Provider model id, for models with their own size table

    Returns:
        ``(width, height)``, or None if the combination is not supported
    """
    table = _DEFAULT_DIMENSIONS
    if model_id:
        lowered = model_id.lower()
        for marker, model_table in _MODEL_DIMENSIONS:
            if marker in lowered:
                table = model_table
                break
    return table.get(resolution, {}).get(aspect_ratio)
