"""Tests for error classes."""

from decimal import Decimal

from video_model_registry.errors import (
    ConfigFileNotFoundError,
    ConfigurationError,
    DispatchError,
    GenerationValidationError,
    InsufficientCreditsError,
    InvalidConfigFormatError,
    ModelNotSupportedError,
    ModelRegistryError,
    PricingConfigurationError,
    ValidationReason,
)


class TestErrorClasses:
    """Tests for all error classes."""

    def test_model_registry_error(self) -> None:
        error = ModelRegistryError("Base error message")
        assert str(error) == "Base error message"

    def test_configuration_errors(self) -> None:
        error = InvalidConfigFormatError("Bad format", path="/tmp/models.yml", expected_type="list")
        assert error.path == "/tmp/models.yml"
        assert error.expected_type == "list"
        assert isinstance(error, ConfigurationError)
        assert isinstance(ConfigFileNotFoundError("missing"), ConfigurationError)

    def test_pricing_configuration_error(self) -> None:
        error = PricingConfigurationError("Add-on too large", model="M", path="pricing.yml")
        assert error.model == "M"
        assert error.path == "pricing.yml"
        assert isinstance(error, ConfigurationError)

    def test_model_not_supported_error(self) -> None:
        """Test ModelNotSupportedError normalises the available models."""
        error = ModelNotSupportedError("Not supported", model="X", available_models={"b", "a"})
        assert str(error) == "Not supported"
        assert error.available_models == ["a", "b"]

        error = ModelNotSupportedError("Not supported", available_models={"M": {}, "N": {}})
        assert error.available_models == ["M", "N"]

        assert ModelNotSupportedError("Not supported").available_models is None

    def test_generation_validation_error(self) -> None:
        error = GenerationValidationError("Please enter a prompt.", reason=ValidationReason.EMPTY_PROMPT, model="M")
        assert str(error) == "Please enter a prompt."
        assert error.reason.value == "empty_prompt"
        assert error.model == "M"

    def test_insufficient_credits_error(self) -> None:
        error = InsufficientCreditsError("Not enough", required=Decimal("1"), available=Decimal("0.5"))
        assert error.required == Decimal("1")
        assert error.available == Decimal("0.5")
        assert isinstance(error, ModelRegistryError)

    def test_dispatch_error(self) -> None:
        error = DispatchError("Service failed", url="https://api.example", status_code=503)
        assert error.url == "https://api.example"
        assert error.status_code == 503
