"""Rich table formatter for CLI output."""

import sys
from typing import Any, Dict, List, Optional, TextIO

from rich.console import Console
from rich.table import Table
from rich.text import Text


def create_console(output: Optional[TextIO] = None, no_color: bool = False) -> Console:
    """Create a Rich console instance.

    Args:
        output: Output stream (defaults to stdout)
        no_color: Disable color output

    Returns:
        Console instance
    """
    if output is None:
        output = sys.stdout

    # Let Rich use the actual terminal width to avoid truncating headers
    return Console(file=output, no_color=no_color)


def _format_value(value: Any) -> str:
    if value is None:
        return "N/A"
    if isinstance(value, bool):
        return "✓" if value else "✗"
    if isinstance(value, (list, tuple)):
        return ", ".join(str(v) for v in value)
    return str(value)


def format_models_table(models: List[Dict[str, Any]], console: Optional[Console] = None) -> None:
    """Format the model list as a Rich table.

    Args:
        models: Rows with name, title, capabilities, price and variable keys
        console: Rich console (will create if None)
    """
    if console is None:
        console = create_console()

    table = Table(title="Video Models", show_header=True, header_style="bold magenta")

    table.add_column("Model", style="cyan", no_wrap=True)
    table.add_column("Capabilities")
    table.add_column("Price", justify="right", no_wrap=True)
    table.add_column("Variable", justify="center", no_wrap=True)

    for row in models:
        table.add_row(
            row["name"],
            _format_value(row.get("capabilities")),
            _format_value(row.get("price")),
            _format_value(row.get("variable")),
        )

    console.print(table)


def format_price_quote_table(model_name: str, quote: Dict[str, Any], console: Optional[Console] = None) -> None:
    """Format a single price quote as a two-column table."""
    if console is None:
        console = create_console()

    table = Table(title=f"Price for {model_name}", show_header=True, header_style="bold magenta")
    table.add_column("Field", style="cyan")
    table.add_column("Value", justify="right")

    for key, value in quote["selection"].items():
        table.add_row(key.replace("_", " ").title(), _format_value(value))
    table.add_row("Kind", quote["kind"])
    if quote.get("rate") is not None:
        table.add_row("Rate", f"${quote['rate']}/sec")
    table.add_row("Dollars", _format_value(quote.get("dollars")))
    table.add_row("Credits", _format_value(quote.get("credits")))
    table.add_row("Display", Text(quote["display"], style="bold green"))

    console.print(table)


def format_price_grid_table(model_name: str, grid: Dict[str, Any], console: Optional[Console] = None) -> None:
    """Format every priced combination of a model as a Rich table."""
    if console is None:
        console = create_console()

    rows = grid.get("rows", [])
    if not rows:
        console.print(f"[dim]No variable pricing for {model_name}; flat price {grid.get('base_price')}[/dim]")
    else:
        table = Table(title=f"{model_name} Pricing", show_header=True, header_style="bold magenta")
        table.add_column("Aspect", style="cyan", no_wrap=True)
        table.add_column("Resolution", no_wrap=True)
        table.add_column("Duration", justify="right", no_wrap=True)
        table.add_column("Price", justify="right", no_wrap=True)
        table.add_column("Without\nAudio", justify="right", no_wrap=True)
        table.add_column("Credits", justify="right", no_wrap=True)

        for row in rows:
            table.add_row(
                row["aspect_ratio"],
                row["resolution"],
                f"{row['duration']}s",
                f"${row['price']}",
                f"${row['price_without_audio']}" if row.get("price_without_audio") is not None else "N/A",
                str(row["credits"]),
            )
        console.print(table)

    rates = grid.get("motion_control")
    if rates:
        mc = Table(title="Motion Control", show_header=True, header_style="bold magenta")
        mc.add_column("Tier", style="cyan")
        mc.add_column("Rate", justify="right")
        for tier, rate in rates.items():
            mc.add_row(tier, f"${rate}/sec")
        console.print(mc)


def format_data_paths_table(paths: Dict[str, Any], console: Optional[Console] = None) -> None:
    """Format data paths as a Rich table.

    Args:
        paths: Path information
        console: Rich console (will create if None)
    """
    if console is None:
        console = create_console()

    table = Table(title="Data Source Paths", show_header=True, header_style="bold magenta")

    table.add_column("File", style="cyan")
    table.add_column("Source", style="yellow")
    table.add_column("Path", style="dim")
    table.add_column("Status", justify="center")

    for file_type, path_info in paths.items():
        exists = path_info.get("exists", False)
        source = "Bundled" if path_info.get("using_bundled") else "User Data"
        status = "✓" if exists else "✗"
        status_style = "green" if exists else "red"

        table.add_row(file_type, source, path_info.get("path", "N/A"), Text(status, style=status_style))

    console.print(table)


def format_env_vars_table(env_vars: Dict[str, Optional[str]], console: Optional[Console] = None) -> None:
    """Format environment variables as a Rich table.

    Args:
        env_vars: Environment variables
        console: Rich console (will create if None)
    """
    if console is None:
        console = create_console()

    table = Table(title="VMR Environment Variables", show_header=True, header_style="bold magenta")

    table.add_column("Variable", style="cyan")
    table.add_column("Value", style="yellow")
    table.add_column("Set", justify="center")

    for key, value in sorted(env_vars.items()):
        is_set = value is not None
        display_value = value if is_set else "[dim]<not set>[/dim]"
        status = "✓" if is_set else "✗"
        status_style = "green" if is_set else "red"

        table.add_row(key, display_value, Text(status, style=status_style))

    console.print(table)
