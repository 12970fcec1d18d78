"""Shared fixtures for the video model registry tests."""

import os
from pathlib import Path
from typing import Any, Dict, Generator

import pytest
import yaml

from video_model_registry import RegistryConfig, VideoModelRegistry
from video_model_registry.config_paths import (
    ENV_DISPLAY_MODE,
    ENV_FAL_API_KEY,
    ENV_FAL_ENDPOINT,
    ENV_FAL_WEBHOOK_URL,
    ENV_MODELS_PATH,
    ENV_PRICING_PATH,
    ENV_RUNWARE_API_KEY,
    ENV_RUNWARE_ENDPOINT,
)


def models_data() -> Dict[str, Any]:
    """Models file with one variable-priced model and one flat-priced model."""
    return {
        "version": "1.0.0",
        "catalog": [
            {
                "id": "m",
                "title": "Model M",
                "model_name": "M",
                "description": "Variable pricing test model",
                "cost": 2.00,
                "capabilities": ["Text to Video", "Image to Video", "Audio"],
            },
            {
                "id": "flat",
                "title": "Flat Model",
                "model_name": "Flat",
                "description": "Flat pricing only",
                "cost": 0.80,
                "capabilities": ["Text to Video"],
            },
        ],
        "models": {
            "M": {
                "provider_model": "test:1@1",
                "capabilities": ["Text to Video", "Image to Video", "Audio"],
                "aspect_ratios": ["9:16", "16:9"],
                "resolutions": ["720p", "1080p"],
                "durations": [{"seconds": 4}, {"seconds": 8}, {"seconds": 12}],
                "default_duration": 8,
            },
            "Flat": {"capabilities": ["Text to Video"]},
            "Required": {
                "provider_model": "openai:3@1",
                "capabilities": ["Text to Video", "Audio"],
                "audio_required": True,
                "aspect_ratios": ["9:16"],
                "resolutions": ["720p"],
                "durations": [{"seconds": 4}, {"seconds": 8}],
            },
        },
    }


def pricing_data() -> Dict[str, Any]:
    """Pricing file matching ``models_data``."""
    return {
        "version": "1.0.0",
        "models": {
            "M": {
                "flat_price": 5.00,
                "display_default": {"aspect_ratio": "9:16", "resolution": "720p", "duration": 8},
                "table": {"9:16": {"720p": {4: 2.00, 8: 4.00}}},
                "audio_addon": {"by_duration": {8: 0.50}},
                "motion_control": {"standard": 0.08, "pro": 0.15},
            },
            "Required": {
                "table": {"9:16": {"720p": {4: 0.40, 8: 0.80}}},
                "audio_addon": {"per_second": 0.05},
            },
        },
    }


@pytest.fixture(autouse=True)
def clean_env() -> Generator[None, None, None]:
    """Keep VMR_* variables from the host out of every test."""
    names = [
        ENV_MODELS_PATH,
        ENV_PRICING_PATH,
        ENV_DISPLAY_MODE,
        ENV_RUNWARE_API_KEY,
        ENV_RUNWARE_ENDPOINT,
        ENV_FAL_API_KEY,
        ENV_FAL_ENDPOINT,
        ENV_FAL_WEBHOOK_URL,
    ]
    saved = {name: os.environ.pop(name, None) for name in names}
    yield
    for name, value in saved.items():
        if value is None:
            os.environ.pop(name, None)
        else:
            os.environ[name] = value


@pytest.fixture
def data_files(tmp_path: Path) -> Dict[str, Path]:
    """Write the test models and pricing files.

    Returns:
        Paths keyed by "models" and "pricing"
    """
    models_path = tmp_path / "models.yml"
    pricing_path = tmp_path / "pricing.yml"
    with open(models_path, "w") as f:
        yaml.dump(models_data(), f)
    with open(pricing_path, "w") as f:
        yaml.dump(pricing_data(), f)
    return {"models": models_path, "pricing": pricing_path}


@pytest.fixture
def registry(data_files: Dict[str, Path]) -> VideoModelRegistry:
    """Registry over the test data files, showing prices in credits."""
    return VideoModelRegistry(
        RegistryConfig(
            models_path=str(data_files["models"]),
            pricing_path=str(data_files["pricing"]),
            display_mode="credits",
        )
    )


@pytest.fixture
def models_yaml() -> Dict[str, Any]:
    """A fresh copy of the test models data, safe to modify."""
    return models_data()


@pytest.fixture
def pricing_yaml() -> Dict[str, Any]:
    """A fresh copy of the test pricing data, safe to modify."""
    return pricing_data()
