"""Tests for option sets and the model configuration provider."""

from decimal import Decimal
from unittest.mock import patch

import pytest

from video_model_registry.options import (
    DEFAULT_ASPECT_OPTIONS,
    DEFAULT_DURATION_OPTIONS,
    DEFAULT_RESOLUTION_OPTIONS,
    DurationOption,
    GenerationMode,
    ModelConfigurationProvider,
    ModelOptions,
    OptionSet,
    resolve_layered,
    to_seconds,
)


class TestResolveLayered:
    def test_first_non_none_wins(self) -> None:
        assert resolve_layered(None, 2, 3, default=0) == 2

    def test_falsy_values_are_kept(self) -> None:
        assert resolve_layered(None, [], default=[1]) == []

    def test_default(self) -> None:
        assert resolve_layered(None, None, default="zero") == "zero"


class TestDurations:
    @pytest.mark.parametrize("value", [5, 5.0, "5", Decimal("5")])
    def test_to_seconds(self, value) -> None:
        assert to_seconds(value) == Decimal("5")

    def test_to_seconds_rejects_bool(self) -> None:
        with pytest.raises(ValueError):
            to_seconds(True)

    @pytest.mark.parametrize("value", ["abc", "", "NaN", "inf", Decimal("-Infinity"), None])
    def test_to_seconds_rejects_non_numbers(self, value) -> None:
        with pytest.raises(ValueError, match="Duration must be"):
            to_seconds(value)

    def test_duration_option_labels(self) -> None:
        option = DurationOption.of(8.0, "Standard duration")
        assert option.id == "8"
        assert option.label == "8 seconds"
        assert option.description == "Standard duration"


class TestOptionSet:
    def test_select_and_bounds(self) -> None:
        options = OptionSet(DEFAULT_RESOLUTION_OPTIONS)
        assert options.select(2).id == "1080p"
        assert options.select(3) is None
        assert options.select(-1) is None
        assert options.safe_index(3) == 0
        assert options.ids() == ["480p", "720p", "1080p"]


class TestModelConfigurationProvider:
    @pytest.fixture
    def provider(self) -> ModelConfigurationProvider:
        return ModelConfigurationProvider(
            {
                "A": ModelOptions(
                    model_name="A",
                    provider_model="x:1@1",
                    capabilities=["Text to Video", "Image to Video", "Audio"],
                    durations=[DurationOption.of(4), DurationOption.of(8)],
                    default_duration=Decimal("8"),
                    frame_images=True,
                ),
                "B": ModelOptions(model_name="B", capabilities=["Text to Video"], default_duration=Decimal("7")),
            },
            motion_control_models=["A"],
        )

    def test_unknown_model_gets_defaults(self, provider: ModelConfigurationProvider) -> None:
        assert list(provider.aspect_options("Z")) == list(DEFAULT_ASPECT_OPTIONS)
        assert list(provider.duration_options("Z")) == list(DEFAULT_DURATION_OPTIONS)
        assert provider.capabilities("Z") == []
        assert provider.supported_modes("Z") == []

    def test_model_lists_override_defaults(self, provider: ModelConfigurationProvider) -> None:
        assert provider.duration_options("A").ids() == ["4", "8"]
        assert list(provider.resolution_options("A")) == list(DEFAULT_RESOLUTION_OPTIONS)

    def test_default_duration_index(self, provider: ModelConfigurationProvider) -> None:
        assert provider.default_duration_index("A") == 1

    def test_missing_default_duration_warns(self, provider: ModelConfigurationProvider) -> None:
        with patch("video_model_registry.options.log_warning") as mock_log:
            assert provider.default_duration_index("B") == 0
        mock_log.assert_called_once()

    def test_supported_modes(self, provider: ModelConfigurationProvider) -> None:
        assert provider.supported_modes("A") == [
            GenerationMode.TEXT_TO_VIDEO,
            GenerationMode.IMAGE_TO_VIDEO,
            GenerationMode.FRAME_IMAGES,
            GenerationMode.MOTION_CONTROL,
        ]
        assert provider.supported_modes("B") == [GenerationMode.TEXT_TO_VIDEO]

    def test_capability_queries(self, provider: ModelConfigurationProvider) -> None:
        assert provider.supports_audio("A")
        assert not provider.supports_audio("B")
        assert provider.provider_model("A") == "x:1@1"
        assert provider.provider_model("Z") is None

    def test_with_motion_control_returns_copy(self, provider: ModelConfigurationProvider) -> None:
        updated = provider.with_motion_control(["B"])
        assert updated.supports_motion_control("B")
        assert provider.supports_motion_control("A")
        assert not updated.supports_motion_control("A")
