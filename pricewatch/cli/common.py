"""Helpers shared by CLI command modules."""

import click
from pydantic import ValidationError
from rich.console import Console
from rich.panel import Panel

from pricewatch.config import Settings, configure_logging, load_settings
from pricewatch.engine.builder import Engine, build_engine
from pricewatch.errors import PriceWatchError

console = Console()


def error_panel(message: str, title: str = "Error") -> Panel:
    return Panel(
        f"[red]{message}[/red]",
        title=f"[bold red]{title}[/bold red]",
        border_style="red",
    )


def get_settings() -> Settings:
    """Load settings, exiting with a readable error if the file is bad."""
    try:
        settings = load_settings()
    except (ValidationError, ValueError) as e:
        console.print(error_panel(f"Invalid configuration:\n\n{e}", "Configuration Error"))
        raise SystemExit(1)
    configure_logging(settings.logging.level)
    return settings


def get_engine(ctx: click.Context) -> Engine:
    """Build the engine once per CLI invocation and cache it on the context."""
    obj = ctx.ensure_object(dict)
    engine = obj.get("engine")
    if engine is None:
        try:
            engine = build_engine(get_settings())
        except PriceWatchError as e:
            console.print(error_panel(str(e), "Startup Error"))
            raise SystemExit(1)
        ctx.call_on_close(engine.close)
        obj["engine"] = engine
    return engine
