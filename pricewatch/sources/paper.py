"""Paper quote source for offline runs and dry runs."""

import threading
from datetime import datetime
from typing import Optional

from pricewatch.errors import SymbolNotFound
from pricewatch.sources.base import Quote, QuoteSource


class PaperQuoteSource(QuoteSource):
    """Serves prices from an in-memory table.

    Prices can be changed at runtime with ``set_price`` to simulate market
    moves without touching a real provider.
    """

    def __init__(self, prices: Optional[dict[str, float]] = None):
        """Initialize the paper source.

        Args:
            prices: Initial symbol to price mapping.
        """
        self._prices = {s.upper(): float(p) for s, p in (prices or {}).items()}
        self._lock = threading.Lock()
        self.fetch_count = 0

    def set_price(self, symbol: str, price: float) -> None:
        with self._lock:
            self._prices[symbol.upper()] = float(price)

    def remove(self, symbol: str) -> None:
        with self._lock:
            self._prices.pop(symbol.upper(), None)

    def fetch(self, symbol: str, timeout: float) -> Quote:
        with self._lock:
            self.fetch_count += 1
            price = self._prices.get(symbol)
        if price is None:
            raise SymbolNotFound(f"Stock symbol not found: {symbol}", symbol=symbol)
        return Quote(symbol=symbol, price=price, as_of=datetime.now())

    def search(self, query: str, limit: int = 10) -> list[str]:
        needle = query.strip().upper()
        with self._lock:
            return sorted(s for s in self._prices if needle in s)[:limit]
