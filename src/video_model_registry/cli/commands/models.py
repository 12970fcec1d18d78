"""Model inspection commands for the VMR CLI."""

import sys
from typing import Any, Dict, List, Optional, TextIO

import click
import yaml

from ...catalog import CatalogFilter, ModelEntry, ModelListView, SortOrder
from ...credits import format_price_with_unit
from ...errors import ModelNotSupportedError
from ...registry import VideoModelRegistry
from ..formatters import (
    create_console,
    format_json,
    format_models_list_json,
    format_models_table,
)
from ..utils import ExitCode, handle_error, load_registry, output_option, validate_format_support

CAPABILITY_CHOICES = {
    "all": CatalogFilter.ALL,
    "text-to-video": CatalogFilter.TEXT_TO_VIDEO,
    "image-to-video": CatalogFilter.IMAGE_TO_VIDEO,
    "video-to-video": CatalogFilter.VIDEO_TO_VIDEO,
    "audio": CatalogFilter.AUDIO,
}

SORT_CHOICES = {
    "default": SortOrder.DEFAULT,
    "asc": SortOrder.PRICE_ASC,
    "desc": SortOrder.PRICE_DESC,
}


def _model_row(registry: VideoModelRegistry, entry: ModelEntry) -> Dict[str, Any]:
    price = registry.display_price(entry.model_name)
    pricing = registry.pricing.get(entry.model_name)
    return {
        "name": entry.model_name,
        "title": entry.title,
        "capabilities": list(entry.capabilities),
        "cost": entry.cost,
        "display_price": price,
        "price": format_price_with_unit(price, registry.config.display_mode),
        "variable": bool(pricing and pricing.has_variable_pricing),
    }


@click.group()
def models() -> None:
    """Inspect and list models."""
    pass


@models.command("list")
@click.option(
    "--capability",
    type=click.Choice(list(CAPABILITY_CHOICES), case_sensitive=False),
    default="all",
    show_default=True,
    help="Only show models with this capability.",
)
@click.option(
    "--sort",
    type=click.Choice(list(SORT_CHOICES), case_sensitive=False),
    default="default",
    show_default=True,
    help="Sort by base cost.",
)
@click.option("--search", type=str, help="Case-insensitive match on title, name and description.")
@click.pass_context
def list_models(
    ctx: click.Context,
    capability: str = "all",
    sort: str = "default",
    search: Optional[str] = None,
) -> None:
    """List the model catalog with starting prices."""
    registry = load_registry(ctx)
    try:
        view = ModelListView(registry.catalog, CAPABILITY_CHOICES[capability.lower()])
        view.sort_order = SORT_CHOICES[sort.lower()]
        entries = view.search(search) if search else view.visible()
        rows: List[Dict[str, Any]] = [_model_row(registry, entry) for entry in entries]

        format_type = ctx.obj["format"]
        if format_type == "json":
            format_json(format_models_list_json(rows))
        elif format_type == "yaml":
            payload = format_models_list_json([{**row, "cost": str(row["cost"])} for row in rows])
            for row in payload["models"]:
                if row["display_price"] is not None:
                    row["display_price"] = str(row["display_price"])
            click.echo(yaml.safe_dump(payload, default_flow_style=False, sort_keys=True).rstrip())
        else:
            console = create_console(no_color=ctx.obj["no_color"])
            format_models_table(rows, console)

    except Exception as e:
        handle_error(e, ExitCode.GENERIC_ERROR)


@models.command()
@click.argument("model_name", type=str)
@output_option
@click.pass_context
def get(ctx: click.Context, model_name: str, output: Optional[str] = None) -> None:
    """Show options, capabilities and pricing of a model."""
    registry = load_registry(ctx)

    format_type = ctx.obj["format"]
    try:
        format_type = validate_format_support(format_type, ["json", "yaml"], "models get", ctx.obj)
    except click.BadParameter as e:
        handle_error(e, ExitCode.INVALID_USAGE)

    try:
        payload = registry.describe(model_name)
    except ModelNotSupportedError as e:
        handle_error(e, ExitCode.MODEL_NOT_FOUND)
        return

    output_file: Optional[TextIO] = None
    try:
        if output:
            output_file = open(output, "w")

        if format_type == "yaml":
            yaml_output = yaml.safe_dump(payload, default_flow_style=False, sort_keys=True)
            if output_file:
                output_file.write(yaml_output)
            else:
                click.echo(yaml_output.rstrip())
        else:
            format_json(payload, output_file or sys.stdout)
    except OSError as e:
        handle_error(e, ExitCode.GENERIC_ERROR)
    finally:
        if output_file:
            output_file.close()
