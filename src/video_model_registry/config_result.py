"""Configuration loading result object.

This module defines a standard result object for configuration loading operations.
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional


@dataclass
class ConfigResult:
    """Result of a configuration loading operation.

    Attributes:
        success: Whether the operation was successful
        data: Parsed YAML mapping (if successful)
        error: Error message (if unsuccessful)
        exception: Original exception (if an error occurred)
        path: Path to the configuration file that was read
        bundled: Whether the file came from the package itself
    """

    success: bool
    data: Optional[Dict[str, Any]] = None
    error: Optional[str] = None
    exception: Optional[Exception] = None
    path: Optional[str] = None
    bundled: bool = False
