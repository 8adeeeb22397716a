"""CLI commands for pricewatch.

This package provides the command-line interface for managing alerts,
looking up prices, running evaluation cycles and registering devices.
"""

from pricewatch.cli.main import cli, main

__all__ = ["cli", "main"]
