"""Data inspection commands for the VMR CLI."""

import sys
from pathlib import Path
from typing import Any, Dict, Optional, TextIO

import click
import yaml

from ..formatters import (
    create_console,
    format_data_paths_json,
    format_data_paths_table,
    format_env_vars_json,
    format_env_vars_table,
    format_json,
)
from ..utils import ExitCode, get_vmr_env_vars, handle_error, load_registry, output_option


@click.group()
def data() -> None:
    """Inspect data sources and configuration."""
    pass


@data.command()
@click.pass_context
def paths(ctx: click.Context) -> None:
    """Show resolved data source paths and precedence."""
    registry = load_registry(ctx)
    try:
        data_info = registry.get_data_info()
        paths_info: Dict[str, Dict[str, Any]] = {}
        for file_type, file_info in data_info["data_files"].items():
            info = dict(file_info)
            path = Path(info["path"])
            info["file_size"] = path.stat().st_size if path.is_file() else None
            paths_info[f"{file_type}.yml"] = info

        if ctx.obj["format"] == "table":
            console = create_console(None, ctx.obj["no_color"])
            format_data_paths_table(paths_info, console)
        else:
            format_json(format_data_paths_json(paths_info))

    except Exception as e:
        handle_error(e, ExitCode.DATA_SOURCE_ERROR)


@data.command()
@click.pass_context
def env(ctx: click.Context) -> None:
    """Show effective VMR environment variables."""
    try:
        env_vars = get_vmr_env_vars()

        if ctx.obj["format"] == "table":
            console = create_console(None, ctx.obj["no_color"])
            format_env_vars_table(env_vars, console)
        else:
            format_json(format_env_vars_json(env_vars))

    except Exception as e:
        handle_error(e, ExitCode.GENERIC_ERROR)


@data.command()
@output_option
@click.pass_context
def dump(ctx: click.Context, output: Optional[str] = None) -> None:
    """Dump the effective options and pricing of every model."""
    registry = load_registry(ctx)
    format_type = ctx.obj["format"]

    # No table view for a full dump
    if format_type not in ["json", "yaml"]:
        handle_error(
            click.BadParameter("Format '" + format_type + "' is not supported for data dump. Use 'json' or 'yaml'."),
            ExitCode.INVALID_USAGE,
        )
        return

    output_file: Optional[TextIO] = None
    try:
        if output:
            output_file = open(output, "w")

        data_to_output = registry.dump_effective()
        if format_type == "yaml":
            yaml_output = yaml.safe_dump(data_to_output, default_flow_style=False, sort_keys=True)
            if output_file:
                output_file.write(yaml_output)
            else:
                click.echo(yaml_output)
        else:
            format_json(data_to_output, output_file or sys.stdout)

    except Exception as e:
        handle_error(e, ExitCode.DATA_SOURCE_ERROR)
    finally:
        if output_file:
            output_file.close()
