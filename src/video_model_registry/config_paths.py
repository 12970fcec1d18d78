"""Configuration path handling for the video model registry.

This module implements path resolution for data files following the XDG Base
Directory Specification for user-specific configuration files.
"""

import os
from pathlib import Path
from typing import Dict, Optional

import platformdirs

# Application name used for directory paths
APP_NAME = "video-model-registry"

# Environment variable names
ENV_MODELS_PATH = "VMR_MODELS_PATH"
ENV_PRICING_PATH = "VMR_PRICING_PATH"
ENV_DISPLAY_MODE = "VMR_PRICE_DISPLAY_MODE"
ENV_RUNWARE_API_KEY = "VMR_RUNWARE_API_KEY"
ENV_RUNWARE_ENDPOINT = "VMR_RUNWARE_ENDPOINT"
ENV_FAL_API_KEY = "VMR_FAL_API_KEY"
ENV_FAL_ENDPOINT = "VMR_FAL_ENDPOINT"
ENV_FAL_WEBHOOK_URL = "VMR_FAL_WEBHOOK_URL"

# Default filenames
MODELS_FILENAME = "models.yml"
PRICING_FILENAME = "pricing.yml"

DEFAULT_RUNWARE_ENDPOINT = "https://api.runware.ai/v1"
DEFAULT_FAL_ENDPOINT = "https://queue.fal.run/fal-ai/kling-video/v2.6"


def get_package_config_dir() -> Path:
    """Get the path to the package's bundled config directory."""
    return Path(__file__).parent / "config"


def get_user_config_dir() -> Path:
    """Get the path to the user's config directory for this application."""
    return Path(platformdirs.user_config_dir(APP_NAME))


def _resolve(env_var: str, filename: str) -> str:
    # 1. Environment variable
    env_path = os.environ.get(env_var)
    if env_path and Path(env_path).is_file():
        return env_path

    # 2. User config directory
    user_path = get_user_config_dir() / filename
    if user_path.is_file():
        return str(user_path)

    # 3. Bundled package file
    return str(get_package_config_dir() / filename)


def get_models_path() -> str:
    """Get the path to the model catalog file, respecting XDG specification.

    Returns:
        Path to the models file
    """
    return _resolve(ENV_MODELS_PATH, MODELS_FILENAME)


def get_pricing_path() -> str:
    """Get the path to the pricing file, respecting XDG specification.

    Returns:
        Path to the pricing file
    """
    return _resolve(ENV_PRICING_PATH, PRICING_FILENAME)


def is_bundled(path: str) -> bool:
    """Return True when ``path`` points inside the package config directory."""
    try:
        return Path(path).resolve().parent == get_package_config_dir().resolve()
    except OSError:
        return False


def get_runware_settings() -> Dict[str, Optional[str]]:
    """Return dispatcher settings from the environment."""
    return {
        "api_key": os.environ.get(ENV_RUNWARE_API_KEY),
        "endpoint": os.environ.get(ENV_RUNWARE_ENDPOINT) or DEFAULT_RUNWARE_ENDPOINT,
    }


def get_fal_settings() -> Dict[str, Optional[str]]:
    """Return motion-control dispatcher settings from the environment."""
    return {
        "api_key": os.environ.get(ENV_FAL_API_KEY),
        "endpoint": os.environ.get(ENV_FAL_ENDPOINT) or DEFAULT_FAL_ENDPOINT,
        "webhook_url": os.environ.get(ENV_FAL_WEBHOOK_URL),
    }
