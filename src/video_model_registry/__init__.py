"""Registry for AI video generation models and their pricing.

This package provides a registry of video models with their allowed
aspect ratios, durations, resolutions and capabilities, the pricing tables
behind them, and a resolver that turns a user's selection into a price in
dollars or credits.
"""

from importlib.metadata import PackageNotFoundError
from importlib.metadata import version as _version

try:
    __version__ = _version("video-model-registry")
except PackageNotFoundError:
    # Running from a source checkout without an install
    __version__ = "0.0.0"

# Import main components for easier access
from .catalog import CatalogFilter, ModelCatalog, ModelEntry, ModelListView, SortOrder
from .credits import (
    CREDITS_PER_DOLLAR,
    CreditBalance,
    PriceDisplayMode,
    dollars_to_credits,
    format_price,
    format_price_with_unit,
)
from .errors import (
    ConfigurationError,
    DispatchError,
    GenerationValidationError,
    InsufficientCreditsError,
    ModelNotSupportedError,
    ModelRegistryError,
    PricingConfigurationError,
    ValidationReason,
)
from .generation import (
    GenerationCoordinator,
    GenerationRequest,
    FalAIDispatcher,
    RunwareDispatcher,
    validate_request,
)
from .options import GenerationMode, ModelConfigurationProvider, resolve_layered
from .pricing import PricingCatalog, PricingKey, VideoPricingTable
from .registry import RegistryConfig, VideoModelRegistry
from .resolver import PriceKind, PriceResult, PricingResolver
from .selection import Selection, SelectionState

# Define public API
__all__ = [
    # Core registry
    "VideoModelRegistry",
    "RegistryConfig",
    "ModelConfigurationProvider",
    "resolve_layered",
    # Catalog
    "ModelCatalog",
    "ModelEntry",
    "ModelListView",
    "CatalogFilter",
    "SortOrder",
    # Pricing
    "PricingCatalog",
    "PricingKey",
    "VideoPricingTable",
    "PricingResolver",
    "PriceResult",
    "PriceKind",
    # Credits
    "CREDITS_PER_DOLLAR",
    "CreditBalance",
    "PriceDisplayMode",
    "dollars_to_credits",
    "format_price",
    "format_price_with_unit",
    # Selection and generation
    "GenerationMode",
    "Selection",
    "SelectionState",
    "GenerationRequest",
    "GenerationCoordinator",
    "RunwareDispatcher",
    "FalAIDispatcher",
    "validate_request",
    # Errors
    "ModelRegistryError",
    "ConfigurationError",
    "PricingConfigurationError",
    "ModelNotSupportedError",
    "GenerationValidationError",
    "ValidationReason",
    "InsufficientCreditsError",
    "DispatchError",
]
