"""pricewatch - price threshold alerts with cached quotes and push delivery."""

__version__ = "0.1.0"
