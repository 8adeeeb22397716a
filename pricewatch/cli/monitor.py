"""Evaluation commands for pricewatch CLI.

Runs evaluation cycles once or on an interval, and shows dashboard counts.
"""

from typing import Optional

import click
from rich.panel import Panel
from rich.table import Table

from pricewatch.cli.common import console, error_panel, get_engine
from pricewatch.engine.cycle import CycleReport, run_periodically
from pricewatch.errors import GatewayMisconfigured, PersistenceError


def _print_report(report: CycleReport) -> None:
    lines = [
        f"Alerts checked:  {report.alerts_checked}",
        f"Prices resolved: {len(report.prices)}/{len(report.symbols)}",
        f"Crossings:       {report.crossings}",
        f"Triggered:       {len(report.triggered)}",
        f"Suppressed:      {report.suppressed}",
    ]
    if report.persistence_failures:
        lines.append(f"[red]Write failures:  {report.persistence_failures}[/red]")
    if report.stale_symbols:
        lines.append(f"[yellow]Stale prices:    {', '.join(report.stale_symbols)}[/yellow]")
    if report.deadline_hit:
        lines.append("[yellow]Deadline reached before all symbols were fetched[/yellow]")

    console.print(Panel("\n".join(lines), title="[bold]Evaluation Cycle[/bold]", border_style="cyan"))

    if report.skipped:
        for symbol, reason in sorted(report.skipped.items()):
            console.print(f"  [yellow]⚠ {symbol}[/yellow] [dim]{reason}[/dim]")

    if report.triggered:
        table = Table(title="New Triggers", show_header=True, header_style="bold green")
        table.add_column("Alert", style="dim")
        table.add_column("Symbol", style="bold")
        table.add_column("Condition")
        table.add_column("Target", justify="right")
        table.add_column("Actual", justify="right")
        table.add_column("Delivered", justify="right")
        deliveries = {d.triggered_alert_id: d for d in report.deliveries}
        for t in report.triggered:
            delivery = deliveries.get(t.id)
            delivered = f"{delivery.succeeded}/{delivery.attempted}" if delivery else "-"
            table.add_row(
                str(t.alert_id),
                t.symbol,
                t.condition,
                f"{t.target_price:.2f}",
                f"{t.actual_price:.2f}",
                delivered,
            )
        console.print(table)


@click.command("check")
@click.option("--deadline", type=float, default=None, help="Stop fetching after N seconds.")
@click.option("--symbol", default=None, help="Only evaluate alerts for SYMBOL.")
@click.pass_context
def check(ctx: click.Context, deadline: Optional[float], symbol: Optional[str]) -> None:
    """Run one evaluation cycle now.

    \b
    Examples:
      pricewatch check
      pricewatch check --symbol AAPL --deadline 20
    """
    engine = get_engine(ctx)
    try:
        report = engine.cycle.run(deadline_seconds=deadline, symbol_filter=symbol)
    except GatewayMisconfigured as e:
        console.print(error_panel(str(e), "Push Gateway Error"))
        raise SystemExit(1)
    except PersistenceError as e:
        console.print(error_panel(str(e), "Database Error"))
        raise SystemExit(1)
    _print_report(report)


@click.command("watch")
@click.option("--interval", type=float, default=None, help="Seconds between cycles (default from config).")
@click.option("--cycles", type=int, default=None, help="Stop after N cycles.")
@click.pass_context
def watch(ctx: click.Context, interval: Optional[float], cycles: Optional[int]) -> None:
    """Evaluate alerts repeatedly until interrupted."""
    engine = get_engine(ctx)
    interval = interval or engine.settings.cycle.interval_seconds
    console.print(f"[dim]Evaluating every {interval:g}s. Press Ctrl+C to stop.[/dim]")
    try:
        runs = run_periodically(
            engine.cycle,
            interval_seconds=interval,
            max_cycles=cycles,
            on_report=_print_report,
        )
    except GatewayMisconfigured as e:
        console.print(error_panel(str(e), "Push Gateway Error"))
        raise SystemExit(1)
    except KeyboardInterrupt:
        console.print("\n[dim]Stopped.[/dim]")
        return
    console.print(f"[dim]Completed {runs} cycle(s).[/dim]")


@click.command("stats")
@click.pass_context
def stats(ctx: click.Context) -> None:
    """Show alert and trigger counts."""
    s = get_engine(ctx).store.get_stats()
    console.print(Panel(
        f"Total alerts:     {s.total_alerts}\n"
        f"Active alerts:    {s.active_alerts}\n"
        f"Triggered today:  {s.triggered_today}\n"
        f"Total triggered:  {s.total_triggered}",
        title="[bold]Dashboard[/bold]",
        border_style="cyan",
    ))
