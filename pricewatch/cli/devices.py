"""Device registration commands for pricewatch CLI."""

from typing import Optional

import click
from rich.table import Table

from pricewatch.cli.common import console, error_panel, get_engine
from pricewatch.errors import GatewayMisconfigured


@click.command("register-device")
@click.argument("token")
@click.option("--user", "user_id", default=None, help="User the device belongs to.")
@click.pass_context
def register_device(ctx: click.Context, token: str, user_id: Optional[str]) -> None:
    """Register a push notification TOKEN (re-activates a known token)."""
    device = get_engine(ctx).store.register_device_token(token, user_id)
    console.print(f"[green]✓ Device token registered (ID {device.id})[/green]")


@click.command("devices")
@click.option("--all", "show_all", is_flag=True, help="Include deactivated tokens.")
@click.option("--prune", is_flag=True, help="Delete deactivated tokens.")
@click.pass_context
def devices(ctx: click.Context, show_all: bool, prune: bool) -> None:
    """List registered device tokens."""
    store = get_engine(ctx).store

    if prune:
        removed = store.delete_inactive_device_tokens()
        console.print(f"[green]✓ Removed {removed} inactive token(s)[/green]")
        return

    tokens = store.list_device_tokens(active=None if show_all else True)
    if not tokens:
        console.print("[dim]No device tokens registered.[/dim]")
        return

    table = Table(title="Device Tokens", show_header=True, header_style="bold cyan")
    table.add_column("ID", style="dim", width=6)
    table.add_column("Token")
    table.add_column("User")
    table.add_column("Registered", style="dim")
    table.add_column("Status", justify="center")
    for t in tokens:
        table.add_row(
            str(t.id),
            f"{t.token[:20]}...",
            t.user_id or "-",
            t.created_at.strftime("%Y-%m-%d %H:%M"),
            "[green]● Active[/green]" if t.is_active else "[dim]○ Inactive[/dim]",
        )
    console.print(table)


@click.command("notify-test")
@click.pass_context
def notify_test(ctx: click.Context) -> None:
    """Send a test notification to every active device."""
    engine = get_engine(ctx)
    try:
        report = engine.fanout.send_test()
    except GatewayMisconfigured as e:
        console.print(error_panel(str(e), "Push Gateway Error"))
        raise SystemExit(1)

    console.print(f"Delivered {report.succeeded}/{report.attempted}")
    for token in report.invalidated:
        console.print(f"  [yellow]Deactivated invalid token {token[:20]}...[/yellow]")
    for token in report.transient_failures:
        console.print(f"  [dim]Temporary failure for {token[:20]}...[/dim]")
