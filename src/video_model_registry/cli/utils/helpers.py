"""Helper functions for CLI operations."""

import logging
import os
import sys
from typing import Any, Dict, List, Optional

import click
from rich.console import Console
from rich.logging import RichHandler

from ...config_paths import (
    ENV_DISPLAY_MODE,
    ENV_FAL_API_KEY,
    ENV_FAL_ENDPOINT,
    ENV_FAL_WEBHOOK_URL,
    ENV_MODELS_PATH,
    ENV_PRICING_PATH,
    ENV_RUNWARE_API_KEY,
    ENV_RUNWARE_ENDPOINT,
)
from ...errors import ConfigurationError
from ...logging import LOGGER_NAME, get_logger
from ...registry import RegistryConfig, VideoModelRegistry


class ExitCode:
    """Standard exit codes for the CLI."""

    SUCCESS = 0
    GENERIC_ERROR = 1
    INVALID_USAGE = 2
    MODEL_NOT_FOUND = 3
    DATA_SOURCE_ERROR = 4


# Values that are masked when shown
SECRET_ENV_VARS = {ENV_RUNWARE_API_KEY, ENV_FAL_API_KEY}


def resolve_format(cli_format: Optional[str] = None, default_tty: str = "table", default_non_tty: str = "json") -> str:
    """Resolve output format with TTY detection.

    Args:
        cli_format: Format specified via CLI flag
        default_tty: Default format for TTY output
        default_non_tty: Default format for non-TTY output

    Returns:
        Resolved format name
    """
    if cli_format:
        return cli_format.lower()

    # Auto-detect based on TTY
    if sys.stdout.isatty():
        return default_tty
    else:
        return default_non_tty


def resolve_log_level(verbose: int = 0, quiet: int = 0, debug: bool = False) -> str:
    """Map verbosity flags to a logging level name."""
    if debug:
        return "DEBUG"
    if verbose > quiet:
        return "DEBUG" if verbose >= 2 else "INFO"
    if quiet > verbose:
        return "ERROR" if quiet >= 2 else "WARNING"
    return "WARNING"


def configure_logging(level: str) -> None:
    """Send package log records to stderr through Rich at ``level``.

    The handler is attached once; later calls only change the level.
    """
    package_logger = get_logger(LOGGER_NAME)
    package_logger.setLevel(getattr(logging, level))
    if not any(isinstance(h, RichHandler) for h in package_logger.handlers):
        handler = RichHandler(console=Console(stderr=True), show_time=False, show_path=False)
        package_logger.addHandler(handler)
        package_logger.propagate = False


def handle_error(error: Exception, exit_code: int = ExitCode.GENERIC_ERROR) -> None:
    """Handle CLI errors with consistent formatting.

    Args:
        error: Exception to handle
        exit_code: Exit code to use
    """
    click.echo(f"Error: {str(error)}", err=True)
    sys.exit(exit_code)


def get_vmr_env_vars() -> Dict[str, Optional[str]]:
    """Get all VMR_* environment variables.

    Returns:
        Dictionary of VMR environment variables and their values
    """
    vmr_vars: Dict[str, Optional[str]] = {}
    for key, value in os.environ.items():
        if key.startswith("VMR_"):
            vmr_vars[key] = value

    # Include commonly used variables even if not set
    common_vars: List[str] = [
        ENV_MODELS_PATH,
        ENV_PRICING_PATH,
        ENV_DISPLAY_MODE,
        ENV_RUNWARE_API_KEY,
        ENV_RUNWARE_ENDPOINT,
        ENV_FAL_API_KEY,
        ENV_FAL_ENDPOINT,
        ENV_FAL_WEBHOOK_URL,
    ]

    for var in common_vars:
        if var not in vmr_vars:
            vmr_vars[var] = None

    for var in SECRET_ENV_VARS:
        if vmr_vars.get(var):
            vmr_vars[var] = "***"

    return vmr_vars


def validate_format_support(
    format_type: str,
    supported_formats: List[str],
    command_name: str,
    ctx_obj: Dict[str, Any],
) -> str:
    """Validate format support for a command with consistent fallback behavior.

    Args:
        format_type: The requested format
        supported_formats: List of supported formats for this command
        command_name: Name of the command for error messages
        ctx_obj: Click context object containing verbosity settings

    Returns:
        The validated format (may be changed from input for fallback)

    Raises:
        click.BadParameter: For unsupported formats that can't fall back
    """
    if format_type in supported_formats:
        return format_type

    # Table falls back to JSON where a command has no table view
    if format_type == "table":
        fallback_format = "json" if "json" in supported_formats else supported_formats[0]
        # Only show message in verbose mode to avoid cluttering output
        if ctx_obj.get("verbose", 0) > 0:
            click.echo(
                f"Note: {command_name} doesn't support '{format_type}' format, using {fallback_format} instead.",
                err=True,
            )
        return fallback_format
    else:
        supported_list = "', '".join(supported_formats)
        raise click.BadParameter(f"Format '{format_type}' is not supported for {command_name}. Use '{supported_list}'.")


def load_registry(ctx: click.Context) -> VideoModelRegistry:
    """Build the registry for this invocation, or reuse the one already built.

    Configuration problems exit with ``DATA_SOURCE_ERROR``.
    """
    obj = ctx.find_root().obj
    registry = obj.get("registry")
    if registry is None:
        try:
            registry = VideoModelRegistry(
                RegistryConfig(
                    models_path=obj.get("models_path"),
                    pricing_path=obj.get("pricing_path"),
                    display_mode=obj.get("display_mode"),
                )
            )
        except ConfigurationError as e:
            handle_error(e, ExitCode.DATA_SOURCE_ERROR)
        except ValueError as e:
            handle_error(e, ExitCode.INVALID_USAGE)
        obj["registry"] = registry
    return registry
