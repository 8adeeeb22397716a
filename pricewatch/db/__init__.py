"""Persistence layer for pricewatch."""

from pricewatch.db.base import AlertStore
from pricewatch.db.store import DataStore

__all__ = ["AlertStore", "DataStore"]
