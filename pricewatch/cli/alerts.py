"""Alert management commands for pricewatch CLI.

Handles creating, listing, enabling, disabling and removing alerts, and
reviewing the triggers they produced.
"""

from typing import Optional

import click
from rich.panel import Panel
from rich.table import Table

from pricewatch.cli.common import console, error_panel, get_engine
from pricewatch.engine.price_cache import validate_symbol
from pricewatch.errors import DuplicateAlert, InvalidSymbol


@click.command("alert")
@click.argument("symbol")
@click.argument("condition", type=click.Choice(["above", "below"], case_sensitive=False))
@click.argument("target_price", type=float)
@click.pass_context
def create_alert(ctx: click.Context, symbol: str, condition: str, target_price: float) -> None:
    """Create a price alert.

    SYMBOL is the ticker (1-5 letters, e.g. AAPL).
    CONDITION is "above" or "below"; the alert fires when the price
    reaches or passes TARGET_PRICE in that direction.

    \b
    Examples:
      pricewatch alert AAPL above 200
      pricewatch alert msft below 350.5
    """
    if target_price <= 0:
        console.print(error_panel("Target price must be positive"))
        raise SystemExit(1)

    try:
        normalized = validate_symbol(symbol)
    except InvalidSymbol as e:
        console.print(error_panel(str(e)))
        raise SystemExit(1)

    engine = get_engine(ctx)
    try:
        alert = engine.store.create_alert(normalized, target_price, condition.upper())
    except DuplicateAlert as e:
        console.print(error_panel(str(e), "Duplicate Alert"))
        raise SystemExit(1)

    console.print(Panel(
        f"[bold green]Alert Created[/bold green]\n\n"
        f"ID:        {alert.id}\n"
        f"Symbol:    {alert.symbol}\n"
        f"Condition: {alert.condition} {alert.target_price:.2f}",
        title="[bold]New Alert[/bold]",
        border_style="green",
    ))


@click.command("alerts")
@click.option("--all", "show_all", is_flag=True, help="Include inactive alerts.")
@click.option("--symbol", default=None, help="Only show alerts for SYMBOL.")
@click.option("--remove", "remove_ids", type=int, multiple=True, help="Delete alert ID (repeatable).")
@click.option("--enable", "enable_id", type=int, default=None, help="Re-activate alert ID.")
@click.option("--disable", "disable_id", type=int, default=None, help="Deactivate alert ID.")
@click.pass_context
def list_alerts(
    ctx: click.Context,
    show_all: bool,
    symbol: Optional[str],
    remove_ids: tuple[int, ...],
    enable_id: Optional[int],
    disable_id: Optional[int],
) -> None:
    """Display or manage alerts.

    Removing an alert also removes every trigger it produced.

    \b
    Examples:
      pricewatch alerts                 # Active alerts
      pricewatch alerts --all           # Include inactive
      pricewatch alerts --remove 3      # Delete alert 3
      pricewatch alerts --disable 4     # Stop evaluating alert 4
    """
    engine = get_engine(ctx)
    store = engine.store

    if remove_ids:
        deleted = store.delete_alerts(list(remove_ids))
        console.print(f"[green]✓ Deleted {deleted} alert(s)[/green]")
        return

    for alert_id, active in ((enable_id, True), (disable_id, False)):
        if alert_id is None:
            continue
        alert = store.update_alert(alert_id, is_active=active)
        if alert is None:
            console.print(f"[yellow]Alert with ID {alert_id} not found[/yellow]")
        else:
            state = "enabled" if active else "disabled"
            console.print(f"[green]✓ Alert {alert_id} ({alert.symbol}) {state}[/green]")
        return

    alerts = store.list_alerts(active=None if show_all else True, symbol=symbol, limit=100)
    if not alerts:
        console.print(Panel(
            "[dim]No alerts set. Use 'pricewatch alert SYMBOL above|below PRICE' to create one.[/dim]",
            title="[bold]Alerts[/bold]",
            border_style="dim",
        ))
        return

    table = Table(title="Alerts", show_header=True, header_style="bold cyan")
    table.add_column("ID", style="dim", width=6)
    table.add_column("Symbol", style="bold")
    table.add_column("Condition")
    table.add_column("Target", justify="right")
    table.add_column("Last Triggered", style="dim")
    table.add_column("Status", justify="center")

    for alert in alerts:
        status = "[green]● Active[/green]" if alert.is_active else "[dim]○ Inactive[/dim]"
        last = alert.last_triggered_at.strftime("%Y-%m-%d %H:%M") if alert.last_triggered_at else "-"
        table.add_row(
            str(alert.id),
            alert.symbol,
            alert.condition,
            f"{alert.target_price:.2f}",
            last,
            status,
        )

    console.print(table)
    console.print(f"\n[dim]Total: {len(alerts)} alerts[/dim]")


@click.command("triggered")
@click.option("--unread", is_flag=True, help="Only show unread triggers.")
@click.option("--read", "read_id", type=int, default=None, help="Mark trigger ID as read.")
@click.option("--read-all", is_flag=True, help="Mark every trigger as read.")
@click.option("--delete", "delete_id", type=int, default=None, help="Delete trigger ID.")
@click.option("--limit", default=50, show_default=True, help="Maximum rows to show.")
@click.pass_context
def triggered(
    ctx: click.Context,
    unread: bool,
    read_id: Optional[int],
    read_all: bool,
    delete_id: Optional[int],
    limit: int,
) -> None:
    """Review triggered alerts.

    An alert does not fire again while it has an unread trigger. Marking
    the trigger read lets it fire on the next crossing.
    """
    store = get_engine(ctx).store

    if read_id is not None:
        if store.mark_trigger_read(read_id):
            console.print(f"[green]✓ Trigger {read_id} marked as read[/green]")
        else:
            console.print(f"[yellow]Trigger with ID {read_id} not found[/yellow]")
        return

    if read_all:
        count = store.mark_all_triggers_read()
        console.print(f"[green]✓ Marked {count} trigger(s) as read[/green]")
        return

    if delete_id is not None:
        if store.delete_triggered(delete_id):
            console.print(f"[green]✓ Deleted trigger {delete_id}[/green]")
        else:
            console.print(f"[yellow]Trigger with ID {delete_id} not found[/yellow]")
        return

    rows = store.list_triggered(unread_only=unread, limit=limit)
    if not rows:
        console.print("[dim]No triggered alerts.[/dim]")
        return

    table = Table(title="Triggered Alerts", show_header=True, header_style="bold cyan")
    table.add_column("ID", style="dim", width=6)
    table.add_column("Alert", style="dim", width=6)
    table.add_column("Symbol", style="bold")
    table.add_column("Condition")
    table.add_column("Target", justify="right")
    table.add_column("Actual", justify="right")
    table.add_column("When", style="dim")
    table.add_column("", justify="center")

    for t in rows:
        table.add_row(
            str(t.id),
            str(t.alert_id),
            t.symbol,
            t.condition,
            f"{t.target_price:.2f}",
            f"{t.actual_price:.2f}",
            t.triggered_at.strftime("%Y-%m-%d %H:%M"),
            "" if t.is_read else "[yellow]● new[/yellow]",
        )
    console.print(table)
