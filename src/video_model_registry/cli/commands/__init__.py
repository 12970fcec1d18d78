"""CLI commands package."""

# Import all command modules to make them available
from . import data, models, price

__all__ = ["data", "models", "price"]
