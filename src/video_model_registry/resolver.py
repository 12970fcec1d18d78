"""Price resolution for a model and a selection.

The resolver is a pure function of its inputs: it reads the pricing and
option configuration, never mutates them, caches nothing and never raises
for a missing combination. Anything it cannot price resolves to the
model's flat base price.
"""

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import Any, Dict, Optional

from .catalog import ModelCatalog
from .credits import PriceDisplayMode, format_price_with_unit
from .logging import LogEvent, log_debug
from .options import GenerationMode, ModelConfigurationProvider, resolve_layered, to_seconds
from .pricing import ZERO, PricingCatalog, PricingKey
from .selection import Selection

CURRENCY_MINOR_UNIT = Decimal("0.01")


def round_currency(amount: Decimal) -> Decimal:
    """Round to the currency minor unit, half up."""
    return amount.quantize(CURRENCY_MINOR_UNIT, rounding=ROUND_HALF_UP)


class PriceKind(str, Enum):
    """What a ``PriceResult`` holds."""

    AMOUNT = "amount"
    FALLBACK = "fallback"
    RATE_PENDING = "rate_pending"


@dataclass(frozen=True)
class PriceResult:
    """Outcome of a price resolution.

    Attributes:
        kind: Whether this is a resolved amount, the flat fallback, or a
            per-second rate still waiting for a reference video duration
        value: The amount in dollars (None for ``RATE_PENDING``)
        rate: Per-second rate, for motion-control results
        tier: Motion-control tier the rate came from
    """

    kind: PriceKind
    value: Optional[Decimal] = None
    rate: Optional[Decimal] = None
    tier: Optional[str] = None

    @classmethod
    def amount(cls, value: Decimal, rate: Optional[Decimal] = None, tier: Optional[str] = None) -> "PriceResult":
        return cls(PriceKind.AMOUNT, value=value, rate=rate, tier=tier)

    @classmethod
    def fallback(cls, value: Decimal) -> "PriceResult":
        return cls(PriceKind.FALLBACK, value=value)

    @classmethod
    def rate_pending(cls, rate: Decimal, tier: str) -> "PriceResult":
        return cls(PriceKind.RATE_PENDING, rate=rate, tier=tier)

    @property
    def is_fallback(self) -> bool:
        return self.kind is PriceKind.FALLBACK

    @property
    def payable_amount(self) -> Optional[Decimal]:
        """Amount that can be charged, or None while a rate is pending."""
        return None if self.kind is PriceKind.RATE_PENDING else self.value

    def display(self, mode: PriceDisplayMode = PriceDisplayMode.CREDITS) -> str:
        """User-facing text, e.g. "80 credits" or "$0.08/sec"."""
        if self.kind is PriceKind.RATE_PENDING:
            return f"{format_price_with_unit(self.rate, mode)}/sec"
        return format_price_with_unit(self.value, mode)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind.value,
            "value": str(self.value) if self.value is not None else None,
            "rate": str(self.rate) if self.rate is not None else None,
            "tier": self.tier,
        }


class PricingResolver:
    """Resolves the price of a model for a given selection."""

    def __init__(
        self,
        pricing: PricingCatalog,
        configuration: ModelConfigurationProvider,
        catalog: Optional[ModelCatalog] = None,
    ):
        """Initialize the resolver.

        Args:
            pricing: Pricing configuration
            configuration: Per-model option configuration
            catalog: Model catalog, used for flat base costs
        """
        self.pricing = pricing
        self.configuration = configuration
        self.catalog = catalog or ModelCatalog()

    def base_price(self, model_name: str) -> Decimal:
        """Flat base price: pricing config, then catalog cost, then zero."""
        pricing = self.pricing.get(model_name)
        entry = self.catalog.get(model_name)
        return resolve_layered(
            pricing.flat_price if pricing else None,
            entry.cost if entry else None,
            default=ZERO,
        )

    def resolve_price(self, model_name: str, selection: Selection) -> PriceResult:
        """Resolve the price for ``model_name`` under ``selection``.

        Args:
            model_name: Model name as used in the configuration
            selection: Current selection

        Returns:
            The resolved price
        """
        if selection.mode is GenerationMode.MOTION_CONTROL:
            return self._resolve_motion_control(model_name, selection)

        pricing = self.pricing.get(model_name)
        if pricing is None or pricing.table is None:
            return PriceResult.fallback(self.base_price(model_name))

        aspect = self.configuration.aspect_options(model_name).select(selection.aspect_index)
        resolution = self.configuration.resolution_options(model_name).select(selection.resolution_index)
        duration = self.configuration.duration_options(model_name).select(selection.duration_index)
        if aspect is None or resolution is None or duration is None:
            log_debug(
                LogEvent.PRICING,
                "Selection index out of range, using flat price",
                model=model_name,
                aspect_index=selection.aspect_index,
                resolution_index=selection.resolution_index,
                duration_index=selection.duration_index,
            )
            return PriceResult.fallback(self.base_price(model_name))

        key = PricingKey(aspect.id, resolution.id, duration.duration)
        price = pricing.table.price(key)
        if price is None:
            log_debug(LogEvent.PRICING, "No variable price for selection", model=model_name, key=key)
            return PriceResult.fallback(self.base_price(model_name))

        if (
            not selection.audio_enabled
            and pricing.audio_addon is not None
            and self.configuration.supports_audio(model_name)
        ):
            addon = pricing.audio_addon.addon_for(duration.duration)
            if addon is not None:
                price = price - addon

        return PriceResult.amount(price)

    def _resolve_motion_control(self, model_name: str, selection: Selection) -> PriceResult:
        pricing = self.pricing.get(model_name)
        if pricing is None or pricing.motion_control is None:
            return PriceResult.fallback(self.base_price(model_name))

        rates = pricing.motion_control
        tier = rates.effective_tier(selection.motion_control_tier)
        rate = rates.rate(tier)
        if rate is None:
            return PriceResult.fallback(self.base_price(model_name))

        # A length that is missing or not positive has not been measured yet
        try:
            seconds = to_seconds(selection.reference_video_seconds)
        except ValueError:
            return PriceResult.rate_pending(rate, tier)
        if seconds <= ZERO:
            return PriceResult.rate_pending(rate, tier)
        return PriceResult.amount(round_currency(rate * seconds), rate=rate, tier=tier)
