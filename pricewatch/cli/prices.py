"""Price commands for pricewatch CLI.

Handles price lookups through the cache, symbol search and cache
maintenance.
"""

import click
from rich.table import Table

from pricewatch.cli.common import console, error_panel, get_engine
from pricewatch.errors import PriceWatchError, TooManySymbols


@click.command("price")
@click.argument("symbols", nargs=-1, required=True)
@click.option("--refresh", is_flag=True, help="Bypass the cache and fetch fresh quotes.")
@click.pass_context
def price(ctx: click.Context, symbols: tuple[str, ...], refresh: bool) -> None:
    """Show current prices for one or more symbols.

    Symbols that fail are reported individually; the rest are still shown.

    \b
    Examples:
      pricewatch price AAPL
      pricewatch price AAPL MSFT NVDA --refresh
    """
    engine = get_engine(ctx)
    try:
        lookups = engine.price_cache.get_many_prices(list(symbols), use_cache=not refresh)
    except TooManySymbols as e:
        console.print(error_panel(str(e)))
        raise SystemExit(1)

    table = Table(title="Prices", show_header=True, header_style="bold cyan")
    table.add_column("Symbol", style="bold")
    table.add_column("Price", justify="right")
    table.add_column("Change", justify="right")
    table.add_column("Source", style="dim")

    failures = 0
    for lookup in lookups:
        if lookup.quote is None:
            failures += 1
            table.add_row(
                lookup.symbol,
                "[red]-[/red]",
                "",
                f"[red]{type(lookup.error).__name__}: {lookup.error}[/red]",
            )
            continue
        quote = lookup.quote
        change = ""
        if quote.change_percent is not None:
            color = "green" if quote.change_percent >= 0 else "red"
            change = f"[{color}]{quote.change_percent:+.2f}%[/{color}]"
        source = "stale cache" if quote.stale else ("cache" if quote.cached else "live")
        table.add_row(quote.symbol, f"{quote.price:.2f}", change, source)

    console.print(table)
    if failures == len(lookups):
        raise SystemExit(1)


@click.command("search")
@click.argument("query")
@click.option("--limit", default=10, show_default=True, help="Maximum results.")
@click.pass_context
def search(ctx: click.Context, query: str, limit: int) -> None:
    """Search for ticker symbols by company name or partial symbol."""
    engine = get_engine(ctx)
    try:
        results = engine.price_cache.search_symbols(query, limit=limit)
    except PriceWatchError as e:
        console.print(error_panel(str(e)))
        raise SystemExit(1)

    if not results:
        console.print(f"[dim]No symbols match '{query}'[/dim]")
        return
    for symbol in results:
        console.print(f"  {symbol}")


@click.command("cache")
@click.option("--clear-expired", is_flag=True, help="Delete entries older than the TTL.")
@click.pass_context
def cache(ctx: click.Context, clear_expired: bool) -> None:
    """Show cached prices or clear expired entries."""
    engine = get_engine(ctx)

    if clear_expired:
        removed = engine.price_cache.clear_expired()
        console.print(f"[green]✓ Removed {removed} expired cache entries[/green]")
        return

    entries = engine.store.list_cached_prices()
    if not entries:
        console.print("[dim]Price cache is empty.[/dim]")
        return

    table = Table(title="Price Cache", show_header=True, header_style="bold cyan")
    table.add_column("Symbol", style="bold")
    table.add_column("Price", justify="right")
    table.add_column("Updated", style="dim")
    for entry in entries:
        table.add_row(entry.symbol, f"{entry.price:.2f}", entry.updated_at.strftime("%Y-%m-%d %H:%M:%S"))
    console.print(table)
