"""CLI utilities package."""

from .helpers import (
    ExitCode,
    configure_logging,
    get_vmr_env_vars,
    handle_error,
    load_registry,
    resolve_format,
    resolve_log_level,
    validate_format_support,
)
from .options import output_option, selection_options

__all__ = [
    "ExitCode",
    "resolve_format",
    "resolve_log_level",
    "configure_logging",
    "handle_error",
    "get_vmr_env_vars",
    "load_registry",
    "validate_format_support",
    "output_option",
    "selection_options",
]
