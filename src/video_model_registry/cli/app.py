"""Main CLI application for the video model registry."""

from typing import Optional

import click
import rich_click as rich_click

from ..credits import PriceDisplayMode
from .utils import ExitCode, configure_logging, resolve_format, resolve_log_level

# Configure rich-click
rich_click.rich_click.USE_RICH_MARKUP = True
rich_click.rich_click.USE_MARKDOWN = True
rich_click.rich_click.SHOW_ARGUMENTS = True
rich_click.rich_click.GROUP_ARGUMENTS_OPTIONS = True


@click.group(invoke_without_command=True)
@click.option(
    "--format",
    type=click.Choice(["table", "json", "yaml"], case_sensitive=False),
    help="Output format. Defaults to 'table' for TTY, 'json' for non-TTY.",
)
@click.option("--verbose", "-v", count=True, help="Increase verbosity (can be used multiple times).")
@click.option("--quiet", "-q", count=True, help="Decrease verbosity (can be used multiple times).")
@click.option("--debug", is_flag=True, help="Enable debug-level logging.")
@click.option("--no-color", is_flag=True, help="Disable color output.")
@click.option("--version", is_flag=True, is_eager=True, help="Print CLI and library version information.")
@click.option(
    "--models-path",
    type=click.Path(dir_okay=False),
    help="Models YAML file. Takes precedence over VMR_MODELS_PATH.",
)
@click.option(
    "--pricing-path",
    type=click.Path(dir_okay=False),
    help="Pricing YAML file. Takes precedence over VMR_PRICING_PATH.",
)
@click.option(
    "--display-mode",
    type=click.Choice([m.value for m in PriceDisplayMode], case_sensitive=False),
    help="Show prices in dollars or credits. Takes precedence over VMR_PRICE_DISPLAY_MODE.",
)
@click.pass_context
def app(
    ctx: click.Context,
    format: Optional[str] = None,
    verbose: int = 0,
    quiet: int = 0,
    debug: bool = False,
    no_color: bool = False,
    version: bool = False,
    models_path: Optional[str] = None,
    pricing_path: Optional[str] = None,
    display_mode: Optional[str] = None,
) -> None:
    """Video Model Registry CLI - inspect models, options and prices.

    Examples:
      # List models sorted by price
      vmr models list --sort asc

      # Quote a selection
      vmr price quote "Wan2.6" --aspect 16:9 --resolution 1080p --duration 10

      # Show every priced combination in dollars
      vmr --display-mode dollars price table "Seedance 1.0 Pro Fast"

      # Show data source paths
      vmr data paths
    """
    if version:
        from .. import __version__

        click.echo(f"VMR CLI version: {__version__}")
        click.echo(f"Library version: {__version__}")
        ctx.exit(ExitCode.SUCCESS)

    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())
        ctx.exit(ExitCode.SUCCESS)

    # Store global options in context for subcommands
    ctx.ensure_object(dict)

    log_level = resolve_log_level(verbose, quiet, debug)
    configure_logging(log_level)

    ctx.obj.update(
        {
            "format": resolve_format(format),
            "format_explicit": format is not None,
            "verbose": verbose,
            "quiet": quiet,
            "debug": debug,
            "no_color": no_color,
            "log_level": log_level,
            "models_path": models_path,
            "pricing_path": pricing_path,
            "display_mode": display_mode,
        }
    )


# Registered after the group exists so command modules can import utils
from .commands import data, models, price  # noqa: E402

app.add_command(data.data)
app.add_command(models.models)
app.add_command(price.price)


if __name__ == "__main__":
    app()
