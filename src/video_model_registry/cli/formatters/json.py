"""JSON output formatter for CLI."""

import datetime as _dt
import json
import sys
from decimal import Decimal
from enum import Enum as _Enum
from typing import Any, Dict, List, Optional, TextIO


def _default_serializer(obj: Any) -> Any:
    """Serialize otherwise non-JSON-serializable objects.

    - Decimal -> plain string, so money keeps its exact value
    - datetime/date -> ISO 8601 string
    - Enum -> value (fallback to name)
    - Fallback -> str(obj)
    """
    if isinstance(obj, Decimal):
        return format(obj, "f")
    if isinstance(obj, (_dt.datetime, _dt.date)):
        return obj.isoformat()
    if isinstance(obj, _Enum):
        return getattr(obj, "value", obj.name)
    return str(obj)


def format_json(data: Any, output: Optional[TextIO] = None, indent: int = 2) -> None:
    """Format data as JSON and write to output.

    Args:
        data: Data to format
        output: Output stream (defaults to stdout)
        indent: JSON indentation level
    """
    if output is None:
        output = sys.stdout

    json.dump(
        data,
        output,
        indent=indent,
        ensure_ascii=False,
        sort_keys=True,
        default=_default_serializer,
    )
    output.write("\n")


def format_models_list_json(models: List[Dict[str, Any]]) -> Dict[str, Any]:
    """Format models list for JSON output.

    The list keeps the order it was given in, since that order is the
    requested sort.
    """
    return {"models": models, "count": len(models)}


def format_quote_json(model_name: str, quote: Dict[str, Any]) -> Dict[str, Any]:
    """Format a price quote for JSON output."""
    return {"model": model_name, **quote}


def format_data_paths_json(paths: Dict[str, Any]) -> Dict[str, Any]:
    """Format data paths for JSON output.

    Args:
        paths: Path information

    Returns:
        Formatted data structure
    """
    return {
        "data_sources": paths,
        "resolution_order": [
            "--models-path / --pricing-path options",
            "VMR_MODELS_PATH / VMR_PRICING_PATH environment variables",
            "User config directory",
            "Bundled package data",
        ],
    }


def format_env_vars_json(env_vars: Dict[str, Optional[str]]) -> Dict[str, Any]:
    """Format environment variables for JSON output.

    Args:
        env_vars: Environment variables

    Returns:
        Formatted data structure
    """
    return {
        "environment_variables": {key: {"value": value, "set": value is not None} for key, value in env_vars.items()},
        "set_count": sum(1 for v in env_vars.values() if v is not None),
        "total_count": len(env_vars),
    }
