"""Error types for the video model registry.

This module defines the error types used by the registry, the pricing
layer and the generation flow.
"""

from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional, Set, Union


class ModelRegistryError(Exception):
    """Base class for all registry-related errors.

    This is the parent class for all registry-specific exceptions.
    """

    pass


class ConfigurationError(ModelRegistryError):
    """Base class for configuration-related errors.

    This is raised for errors related to configuration loading, parsing,
    or validation.
    """

    def __init__(self, message: str, path: Optional[str] = None) -> None:
        """Initialize configuration error.

        Args:
            message: Error message
            path: Optional path to the configuration file that caused the error
        """
        super().__init__(message)
        self.message = message
        self.path = path


class ConfigFileNotFoundError(ConfigurationError):
    """Raised when a required configuration file is not found."""

    pass


class InvalidConfigFormatError(ConfigurationError):
    """Raised when a configuration file has an invalid format.

    Examples:
        >>> try:
        ...     registry._load_yaml(path)
        ... except InvalidConfigFormatError as e:
        ...     print(f"Invalid config format: {e}")
    """

    def __init__(
        self,
        message: str,
        path: Optional[str] = None,
        expected_type: str = "dict",
    ) -> None:
        """Initialize invalid format error.

        Args:
            message: Error message
            path: Optional path to the configuration file
            expected_type: Expected type of the configuration
        """
        super().__init__(message, path)
        self.expected_type = expected_type


class PricingConfigurationError(ConfigurationError):
    """Raised when a model's pricing block breaks a pricing invariant.

    Examples:
        >>> try:
        ...     PricingCatalog.from_dict(data)
        ... except PricingConfigurationError as e:
        ...     print(f"Bad pricing for {e.model}: {e}")
    """

    def __init__(self, message: str, model: str, path: Optional[str] = None) -> None:
        """Initialize pricing configuration error.

        Args:
            message: Error message
            model: Model whose pricing block is invalid
            path: Optional path to the pricing file
        """
        super().__init__(message, path)
        self.model = model


class ModelNotSupportedError(ModelRegistryError):
    """Raised when a model is not known to the registry.

    Examples:
        >>> try:
        ...     registry.get_model("unknown-model")
        ... except ModelNotSupportedError as e:
        ...     print(f"Model {e.model} is not supported")
    """

    def __init__(
        self,
        message: str,
        model: Optional[str] = None,
        available_models: Optional[Union[List[str], Set[str], Dict[str, Any]]] = None,
    ) -> None:
        """Initialize model not supported error.

        Args:
            message: Error message
            model: The unsupported model name
            available_models: Available models (optional)
        """
        super().__init__(message)
        self.model = model
        self.message = message
        # Convert other collection types to list for consistency
        if available_models is not None:
            if isinstance(available_models, dict):
                self.available_models: Optional[List[str]] = list(available_models.keys())
            elif isinstance(available_models, set):
                self.available_models = sorted(available_models)
            else:
                self.available_models = available_models
        else:
            self.available_models = None

    def __str__(self) -> str:
        """Return string representation of the error."""
        return self.message


class ValidationReason(str, Enum):
    """Reasons a generation request is rejected before dispatch."""

    EMPTY_PROMPT = "empty_prompt"
    UNSUPPORTED_MODE = "unsupported_mode"
    MISSING_REFERENCE_IMAGE = "missing_reference_image"
    MISSING_FRAME_IMAGE = "missing_frame_image"
    MISSING_REFERENCE_VIDEO = "missing_reference_video"
    VIDEO_TOO_LONG = "video_too_long"
    INVALID_REFERENCE_VIDEO = "invalid_reference_video"
    INVALID_SELECTION = "invalid_selection"
    PRICE_UNAVAILABLE = "price_unavailable"


class GenerationValidationError(ModelRegistryError):
    """Raised when a generation request is missing required input.

    The message is meant to be shown to the user as-is.

    Examples:
        >>> try:
        ...     validate_request(request, configuration)
        ... except GenerationValidationError as e:
        ...     print(f"{e.reason.value}: {e}")
    """

    def __init__(
        self,
        message: str,
        reason: ValidationReason,
        model: Optional[str] = None,
    ) -> None:
        """Initialize generation validation error.

        Args:
            message: User-facing error message
            reason: Machine-readable reason
            model: Optional model name for context
        """
        super().__init__(message)
        self.message = message
        self.reason = reason
        self.model = model


class InsufficientCreditsError(ModelRegistryError):
    """Raised when the available balance does not cover a generation."""

    def __init__(self, message: str, required: Decimal, available: Decimal) -> None:
        """Initialize insufficient credits error.

        Args:
            message: User-facing error message
            required: Amount required, in dollars
            available: Amount available after pending charges, in dollars
        """
        super().__init__(message)
        self.message = message
        self.required = required
        self.available = available


class DispatchError(ModelRegistryError):
    """Raised when the generation service rejects or fails a request.

    Examples:
        >>> try:
        ...     dispatcher.submit(request)
        ... except DispatchError as e:
        ...     print(f"Generation failed ({e.status_code}): {e}")
    """

    def __init__(
        self,
        message: str,
        url: Optional[str] = None,
        status_code: Optional[int] = None,
    ) -> None:
        """Initialize dispatch error.

        Args:
            message: Error message
            url: Optional URL that was being accessed
            status_code: Optional HTTP status code returned by the service
        """
        super().__init__(message)
        self.message = message
        self.url = url
        self.status_code = status_code
