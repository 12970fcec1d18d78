"""Tests for price resolution."""

from decimal import Decimal
from pathlib import Path
from typing import Any, Dict

import pytest
import yaml

from video_model_registry import (
    GenerationMode,
    ModelConfigurationProvider,
    PriceDisplayMode,
    PriceKind,
    PriceResult,
    PricingCatalog,
    PricingResolver,
    RegistryConfig,
    Selection,
    SelectionState,
    VideoModelRegistry,
)
from video_model_registry.resolver import round_currency


def _selection(registry: VideoModelRegistry, model: str = "M") -> Selection:
    return SelectionState(registry.configuration, model).selection


class TestTablePricing:
    """Prices looked up from the variable pricing table."""

    def test_default_selection_uses_table_price(self, registry: VideoModelRegistry) -> None:
        """9:16, 720p, 8s with audio resolves to the table price."""
        result = registry.resolver.resolve_price("M", _selection(registry))
        assert result.kind is PriceKind.AMOUNT
        assert result.value == Decimal("4.00")

    def test_audio_off_subtracts_addon(self, registry: VideoModelRegistry) -> None:
        selection = _selection(registry)
        selection.audio_enabled = False
        result = registry.resolver.resolve_price("M", selection)
        assert result.value == Decimal("3.50")

    def test_audio_off_without_addon_entry_keeps_price(self, registry: VideoModelRegistry) -> None:
        """The 4s entry has no audio add-on, so muting changes nothing."""
        selection = Selection(aspect_index=0, duration_index=0, resolution_index=0, audio_enabled=False)
        result = registry.resolver.resolve_price("M", selection)
        assert result.value == Decimal("2.00")

    def test_per_second_addon(self, registry: VideoModelRegistry) -> None:
        selection = Selection(aspect_index=0, duration_index=1, resolution_index=0, audio_enabled=False)
        result = registry.resolver.resolve_price("Required", selection)
        assert result.value == Decimal("0.40")

    def test_missing_combination_falls_back_to_flat_price(self, registry: VideoModelRegistry) -> None:
        """16:9 has no table entry, so the flat price applies."""
        selection = Selection(aspect_index=1, duration_index=1, resolution_index=0)
        result = registry.resolver.resolve_price("M", selection)
        assert result.kind is PriceKind.FALLBACK
        assert result.value == Decimal("5.00")

    def test_index_out_of_range_falls_back(self, registry: VideoModelRegistry) -> None:
        selection = Selection(aspect_index=7, duration_index=1, resolution_index=0)
        result = registry.resolver.resolve_price("M", selection)
        assert result.is_fallback
        assert result.value == Decimal("5.00")

    def test_resolution_is_part_of_the_key(self, registry: VideoModelRegistry) -> None:
        selection = Selection(aspect_index=0, duration_index=1, resolution_index=1)
        result = registry.resolver.resolve_price("M", selection)
        assert result.is_fallback

    def test_resolution_is_idempotent(self, registry: VideoModelRegistry) -> None:
        selection = _selection(registry)
        first = registry.resolver.resolve_price("M", selection)
        second = registry.resolver.resolve_price("M", selection)
        assert first == second


class TestFlatPricing:
    """Models without a pricing table."""

    def test_catalog_cost_is_base_price(self, registry: VideoModelRegistry) -> None:
        result = registry.resolver.resolve_price("Flat", _selection(registry, "Flat"))
        assert result.kind is PriceKind.FALLBACK
        assert result.value == Decimal("0.80")

    def test_unknown_model_resolves_to_zero(self, registry: VideoModelRegistry) -> None:
        result = registry.resolver.resolve_price("Nope", Selection())
        assert result.value == Decimal("0")

    def test_flat_price_beats_catalog_cost(self, registry: VideoModelRegistry) -> None:
        assert registry.resolver.base_price("M") == Decimal("5.00")

    def test_resolver_without_catalog(self) -> None:
        resolver = PricingResolver(PricingCatalog(), ModelConfigurationProvider())
        assert resolver.base_price("anything") == Decimal("0")


class TestMotionControl:
    """Per-second motion-control pricing."""

    def _motion(self, registry: VideoModelRegistry, tier=None, seconds=None) -> Selection:
        selection = _selection(registry)
        selection.mode = GenerationMode.MOTION_CONTROL
        selection.motion_control_tier = tier
        selection.reference_video_seconds = seconds
        return selection

    def test_rate_times_seconds(self, registry: VideoModelRegistry) -> None:
        result = registry.resolver.resolve_price("M", self._motion(registry, "pro", Decimal("12")))
        assert result.kind is PriceKind.AMOUNT
        assert result.value == Decimal("1.80")
        assert result.rate == Decimal("0.15")
        assert result.tier == "pro"

    def test_default_tier_is_standard(self, registry: VideoModelRegistry) -> None:
        result = registry.resolver.resolve_price("M", self._motion(registry, None, Decimal("10")))
        assert result.tier == "standard"
        assert result.value == Decimal("0.80")

    def test_unknown_tier_uses_default(self, registry: VideoModelRegistry) -> None:
        result = registry.resolver.resolve_price("M", self._motion(registry, "ultra", Decimal("10")))
        assert result.tier == "standard"

    def test_total_is_rounded_to_cents(self, registry: VideoModelRegistry) -> None:
        result = registry.resolver.resolve_price("M", self._motion(registry, "standard", Decimal("3.3")))
        # 0.08 * 3.3 = 0.264
        assert result.value == Decimal("0.26")

    def test_rate_pending_without_duration(self, registry: VideoModelRegistry) -> None:
        result = registry.resolver.resolve_price("M", self._motion(registry, "pro"))
        assert result.kind is PriceKind.RATE_PENDING
        assert result.value is None
        assert result.payable_amount is None
        assert result.rate == Decimal("0.15")

    def test_model_without_rates_falls_back(self, registry: VideoModelRegistry) -> None:
        selection = Selection(mode=GenerationMode.MOTION_CONTROL, reference_video_seconds=Decimal("5"))
        result = registry.resolver.resolve_price("Flat", selection)
        assert result.is_fallback
        assert result.value == Decimal("0.80")


class TestPriceResult:
    """Display and serialisation of results."""

    def test_display_credits(self) -> None:
        assert PriceResult.amount(Decimal("0.80")).display(PriceDisplayMode.CREDITS) == "80 credits"

    def test_display_dollars(self) -> None:
        assert PriceResult.amount(Decimal("0.5")).display(PriceDisplayMode.DOLLARS) == "$0.50"

    def test_display_rate_pending(self) -> None:
        result = PriceResult.rate_pending(Decimal("0.08"), "standard")
        assert result.display(PriceDisplayMode.DOLLARS) == "$0.08/sec"
        assert result.display(PriceDisplayMode.CREDITS) == "8 credits/sec"

    def test_to_dict(self) -> None:
        data = PriceResult.amount(Decimal("1.80"), rate=Decimal("0.15"), tier="pro").to_dict()
        assert data == {"kind": "amount", "value": "1.80", "rate": "0.15", "tier": "pro"}

    @pytest.mark.parametrize(
        "amount, expected",
        [("0.264", "0.26"), ("0.265", "0.27"), ("1.8", "1.80")],
    )
    def test_round_currency(self, amount: str, expected: str) -> None:
        assert round_currency(Decimal(amount)) == Decimal(expected)


class TestModelWithoutAudio:
    """A model whose pricing carries an audio add-on it cannot use."""

    @pytest.fixture
    def silent_registry(
        self, tmp_path: Path, models_yaml: Dict[str, Any], pricing_yaml: Dict[str, Any]
    ) -> VideoModelRegistry:
        models_yaml["models"]["Silent"] = {
            "capabilities": ["Text to Video", "Image to Video"],
            "aspect_ratios": ["9:16"],
            "resolutions": ["720p"],
            "durations": [{"seconds": 5}],
        }
        pricing_yaml["models"]["Silent"] = {
            "table": {"9:16": {"720p": {5: 0.70}}},
            "audio_addon": {"per_second": 0.07},
            "motion_control": {"pro": 0.12},
        }
        paths = {}
        for name, data in (("models", models_yaml), ("pricing", pricing_yaml)):
            paths[name] = tmp_path / f"{name}.yml"
            with open(paths[name], "w") as f:
                yaml.dump(data, f)
        return VideoModelRegistry(RegistryConfig(models_path=str(paths["models"]), pricing_path=str(paths["pricing"])))

    @pytest.mark.parametrize("audio_enabled", [True, False])
    def test_audio_toggle_keeps_stored_price(self, silent_registry: VideoModelRegistry, audio_enabled: bool) -> None:
        selection = Selection(audio_enabled=audio_enabled)
        result = silent_registry.resolver.resolve_price("Silent", selection)
        assert result.kind is PriceKind.AMOUNT
        assert result.value == Decimal("0.70")

    @pytest.mark.parametrize("tier", [None, "standard", "pro", "ultra"])
    def test_single_tier_ignores_requested_tier(self, silent_registry: VideoModelRegistry, tier) -> None:
        selection = Selection(
            mode=GenerationMode.MOTION_CONTROL,
            motion_control_tier=tier,
            reference_video_seconds=Decimal("10"),
        )
        result = silent_registry.resolver.resolve_price("Silent", selection)
        assert result.tier == "pro"
        assert result.value == Decimal("1.20")


class TestReferenceVideoLength:
    """Motion-control lengths that are not positive."""

    @pytest.mark.parametrize("seconds", [Decimal("0"), Decimal("-20"), -5.0, Decimal("NaN")])
    def test_non_positive_length_is_rate_pending(self, registry: VideoModelRegistry, seconds) -> None:
        selection = Selection(mode=GenerationMode.MOTION_CONTROL, reference_video_seconds=seconds)
        result = registry.resolver.resolve_price("M", selection)
        assert result.kind is PriceKind.RATE_PENDING
        assert result.payable_amount is None
        assert result.rate == Decimal("0.08")
