"""Price commands for the VMR CLI."""

from decimal import Decimal
from typing import Any, Dict, List, Optional

import click

from ...credits import dollars_to_credits
from ...errors import ModelNotSupportedError
from ...options import GenerationMode, OptionSet, to_seconds
from ...registry import VideoModelRegistry
from ...resolver import PriceKind, PriceResult
from ...selection import Selection, SelectionState
from ..formatters import (
    create_console,
    format_json,
    format_price_grid_table,
    format_price_quote_table,
    format_quote_json,
)
from ..utils import ExitCode, handle_error, load_registry, selection_options


def _index_of(options: OptionSet, option_id: str, label: str) -> int:
    ids = options.ids()
    if option_id not in ids:
        raise click.BadParameter(f"Unknown {label} {option_id!r}; choose from: {', '.join(ids)}")
    return ids.index(option_id)


def _duration_index(options: OptionSet, value: str) -> int:
    try:
        seconds = to_seconds(value)
    except ValueError:
        raise click.BadParameter(f"Duration must be a number of seconds, got {value!r}") from None
    for index, option in enumerate(options):
        if option.duration == seconds:
            return index
    raise click.BadParameter(f"Unknown duration {value!r}; choose from: {', '.join(options.ids())}")


def _require_model(registry: VideoModelRegistry, model_name: str) -> None:
    try:
        registry.get_model(model_name)
    except ModelNotSupportedError as e:
        handle_error(e, ExitCode.MODEL_NOT_FOUND)


def build_selection(
    registry: VideoModelRegistry,
    model_name: str,
    aspect: Optional[str] = None,
    resolution: Optional[str] = None,
    duration: Optional[str] = None,
    no_audio: bool = False,
    mode: str = GenerationMode.TEXT_TO_VIDEO.value,
    tier: Optional[str] = None,
    reference_seconds: Optional[float] = None,
) -> SelectionState:
    """Turn option ids into a selection, starting from the model defaults.

    Raises:
        click.BadParameter: If an id, duration or mode is not valid for the model
    """
    cfg = registry.configuration
    state = SelectionState(cfg, model_name)
    sel = state.selection

    if aspect is not None:
        sel.aspect_index = _index_of(cfg.aspect_options(model_name), aspect, "aspect ratio")
    if resolution is not None:
        sel.resolution_index = _index_of(cfg.resolution_options(model_name), resolution, "resolution")
    if duration is not None:
        sel.duration_index = _duration_index(cfg.duration_options(model_name), duration)
    if no_audio:
        state.set_audio(False)

    generation_mode = GenerationMode(mode.lower())
    if generation_mode not in cfg.supported_modes(model_name):
        supported = ", ".join(m.value for m in cfg.supported_modes(model_name))
        raise click.BadParameter(f"{model_name} does not support {generation_mode.value}; supported: {supported}")
    sel.mode = generation_mode
    sel.motion_control_tier = tier
    if reference_seconds is not None:
        sel.reference_video_seconds = Decimal(str(reference_seconds))
    return state


def quote_data(registry: VideoModelRegistry, state: SelectionState, result: PriceResult) -> Dict[str, Any]:
    """Plain-data view of a resolved price."""
    sel = state.selection
    aspect = state.selected_aspect()
    resolution = state.selected_resolution()
    duration = state.selected_duration()
    payable = result.payable_amount
    return {
        "selection": {
            "aspect_ratio": aspect.id if aspect else None,
            "resolution": resolution.id if resolution else None,
            "duration": duration.id if duration else None,
            "audio": sel.audio_enabled,
            "mode": sel.mode.value,
            "tier": result.tier,
            "reference_seconds": sel.reference_video_seconds,
        },
        "kind": result.kind.value,
        "rate": result.rate,
        "dollars": payable,
        "credits": dollars_to_credits(payable) if payable is not None else None,
        "display": result.display(registry.config.display_mode),
        "display_mode": registry.config.display_mode.value,
    }


def price_grid(registry: VideoModelRegistry, model_name: str) -> Dict[str, Any]:
    """Every reachable table price for a model, with and without audio."""
    cfg = registry.configuration
    resolver = registry.resolver
    can_mute = cfg.supports_audio(model_name) and not cfg.audio_required(model_name)
    rows: List[Dict[str, Any]] = []

    for a, aspect in enumerate(cfg.aspect_options(model_name)):
        for r, resolution in enumerate(cfg.resolution_options(model_name)):
            for d, duration in enumerate(cfg.duration_options(model_name)):
                with_audio = resolver.resolve_price(model_name, Selection(a, d, r, audio_enabled=True))
                if with_audio.kind is not PriceKind.AMOUNT:
                    continue
                without_audio: Optional[Decimal] = None
                if can_mute:
                    without_audio = resolver.resolve_price(model_name, Selection(a, d, r, audio_enabled=False)).value
                rows.append(
                    {
                        "aspect_ratio": aspect.id,
                        "resolution": resolution.id,
                        "duration": duration.id,
                        "price": with_audio.value,
                        "price_without_audio": without_audio,
                        "credits": dollars_to_credits(with_audio.value),
                    }
                )

    pricing = registry.pricing.get(model_name)
    return {
        "model": model_name,
        "base_price": resolver.base_price(model_name),
        "rows": rows,
        "motion_control": pricing.motion_control.to_dict() if pricing and pricing.motion_control else None,
    }


@click.group()
def price() -> None:
    """Quote prices for a model and selection."""
    pass


@price.command()
@click.argument("model_name", type=str)
@selection_options
@click.pass_context
def quote(
    ctx: click.Context,
    model_name: str,
    aspect: Optional[str] = None,
    resolution: Optional[str] = None,
    duration: Optional[str] = None,
    no_audio: bool = False,
    mode: str = GenerationMode.TEXT_TO_VIDEO.value,
    tier: Optional[str] = None,
    reference_seconds: Optional[float] = None,
) -> None:
    """Resolve the price of MODEL_NAME for a selection.

    Unset options use the model defaults: the first aspect ratio and
    resolution, and the model's default duration.
    """
    registry = load_registry(ctx)
    _require_model(registry, model_name)

    try:
        state = build_selection(
            registry, model_name, aspect, resolution, duration, no_audio, mode, tier, reference_seconds
        )
    except click.BadParameter as e:
        handle_error(e, ExitCode.INVALID_USAGE)
        return

    try:
        result = registry.resolver.resolve_price(model_name, state.selection)
        data = quote_data(registry, state, result)

        if ctx.obj["format"] == "table":
            format_price_quote_table(model_name, data, create_console(no_color=ctx.obj["no_color"]))
        else:
            format_json(format_quote_json(model_name, data))
    except Exception as e:
        handle_error(e, ExitCode.GENERIC_ERROR)


@price.command()
@click.argument("model_name", type=str)
@click.pass_context
def table(ctx: click.Context, model_name: str) -> None:
    """Show every priced combination of MODEL_NAME."""
    registry = load_registry(ctx)
    _require_model(registry, model_name)

    try:
        grid = price_grid(registry, model_name)
        if ctx.obj["format"] == "table":
            format_price_grid_table(model_name, grid, create_console(no_color=ctx.obj["no_color"]))
        else:
            format_json(grid)
    except Exception as e:
        handle_error(e, ExitCode.GENERIC_ERROR)
