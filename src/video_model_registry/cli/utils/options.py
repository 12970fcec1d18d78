"""Common CLI options and decorators."""

from functools import wraps
from typing import Any, Callable, TypeVar, cast

import click

from ...options import GenerationMode

F = TypeVar("F", bound=Callable[..., Any])


def output_option(func: F) -> F:
    """Add --output option to a command."""

    @click.option("--output", "-o", type=click.Path(), help="Write output to file instead of stdout.")
    @wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        return func(*args, **kwargs)

    return cast(F, wrapper)


def selection_options(func: F) -> F:
    """Add the options that describe a selection for pricing."""

    @click.option("--aspect", type=str, help="Aspect ratio id, e.g. 9:16. Defaults to the model's first option.")
    @click.option("--resolution", type=str, help="Resolution id, e.g. 720p. Defaults to the model's first option.")
    @click.option("--duration", type=str, help="Duration in seconds. Defaults to the model's default duration.")
    @click.option("--no-audio", is_flag=True, help="Price without audio (models with an audio add-on).")
    @click.option(
        "--mode",
        type=click.Choice([m.value for m in GenerationMode], case_sensitive=False),
        default=GenerationMode.TEXT_TO_VIDEO.value,
        show_default=True,
        help="Generation mode.",
    )
    @click.option("--tier", type=str, help="Motion-control tier, e.g. standard or pro.")
    @click.option(
        "--reference-seconds",
        type=click.FloatRange(min=0, min_open=True),
        help="Length of the motion-control reference video in seconds.",
    )
    @wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        return func(*args, **kwargs)

    return cast(F, wrapper)
