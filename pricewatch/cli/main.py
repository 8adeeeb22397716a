"""Main CLI entry point for pricewatch.

This module provides the main click group and lazy loading
of command modules to keep startup fast.
"""

import click
from rich.console import Console

console = Console()


class LazyGroup(click.Group):
    """A click Group that imports command modules on first use."""

    def __init__(self, *args, lazy_subcommands: dict[str, str] | None = None, **kwargs):
        """Initialize the lazy group.

        Args:
            lazy_subcommands: Mapping of command names to module paths.
        """
        super().__init__(*args, **kwargs)
        self._lazy_subcommands = lazy_subcommands or {}

    def list_commands(self, ctx: click.Context) -> list[str]:
        base = super().list_commands(ctx)
        lazy = list(self._lazy_subcommands.keys())
        return sorted(set(base + lazy))

    def get_command(self, ctx: click.Context, cmd_name: str) -> click.Command | None:
        if cmd_name in self.commands:
            return self.commands[cmd_name]
        if cmd_name in self._lazy_subcommands:
            return self._lazy_load(cmd_name)
        return None

    def _lazy_load(self, cmd_name: str) -> click.Command:
        """Import the module for ``cmd_name`` and find its command."""
        import importlib

        module_path = self._lazy_subcommands[cmd_name]
        module = importlib.import_module(module_path)

        cmd = None
        for attr_name in dir(module):
            attr = getattr(module, attr_name)
            if isinstance(attr, click.Command) and attr.name == cmd_name:
                cmd = attr
                break

        if cmd is None:
            raise click.ClickException(f"Could not find command '{cmd_name}' in {module_path}")

        self.add_command(cmd)
        return cmd


LAZY_SUBCOMMANDS = {
    # Alerts
    "alert": "pricewatch.cli.alerts",
    "alerts": "pricewatch.cli.alerts",
    "triggered": "pricewatch.cli.alerts",
    # Prices
    "price": "pricewatch.cli.prices",
    "search": "pricewatch.cli.prices",
    "cache": "pricewatch.cli.prices",
    # Evaluation
    "check": "pricewatch.cli.monitor",
    "watch": "pricewatch.cli.monitor",
    "stats": "pricewatch.cli.monitor",
    # Devices
    "register-device": "pricewatch.cli.devices",
    "devices": "pricewatch.cli.devices",
    "notify-test": "pricewatch.cli.devices",
}


CONTEXT_SETTINGS = {"help_option_names": ["-h", "--help"]}


@click.group(cls=LazyGroup, lazy_subcommands=LAZY_SUBCOMMANDS, context_settings=CONTEXT_SETTINGS)
@click.version_option(package_name="pricewatch")
@click.pass_context
def cli(ctx: click.Context) -> None:
    """pricewatch - price threshold alerts with push notifications.

    Create alerts on stock symbols, run evaluation cycles against cached
    quotes, and notify registered devices when a price crosses its target.

    \b
    Quick Start:
      pricewatch alert AAPL above 200   # Create an alert
      pricewatch check                  # Run one evaluation cycle
      pricewatch watch --interval 60    # Evaluate every minute
    """
    ctx.ensure_object(dict)


def main() -> None:
    """Main entry point for the CLI."""
    cli()


if __name__ == "__main__":
    main()
