"""Yahoo Finance quote source."""

import logging
from datetime import datetime
from typing import Optional

import httpx

from pricewatch.errors import SymbolNotFound, UpstreamError, UpstreamTimeout
from pricewatch.sources.base import Quote, QuoteSource

logger = logging.getLogger(__name__)

BASE_URL = "https://query1.finance.yahoo.com"
CHART_PATH = "/v8/finance/chart/{symbol}"
SEARCH_PATH = "/v1/finance/search"
SEARCH_TIMEOUT = 5.0

USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36"
)


class YahooQuoteSource(QuoteSource):
    """Quote source backed by the public Yahoo Finance chart endpoint."""

    def __init__(self, client: Optional[httpx.Client] = None, base_url: str = BASE_URL):
        """Initialize the source.

        Args:
            client: Preconfigured httpx client. One is created if omitted.
            base_url: API root, overridable for testing.
        """
        self._client = client or httpx.Client(
            base_url=base_url,
            headers={"User-Agent": USER_AGENT},
        )

    def fetch(self, symbol: str, timeout: float) -> Quote:
        try:
            response = self._client.get(CHART_PATH.format(symbol=symbol), timeout=timeout)
        except httpx.TimeoutException as e:
            raise UpstreamTimeout(
                f"Quote request for {symbol} timed out after {timeout}s", symbol=symbol
            ) from e
        except httpx.HTTPError as e:
            raise UpstreamError(f"Failed to fetch price for {symbol}: {e}", symbol=symbol) from e

        if response.status_code == 404:
            raise SymbolNotFound(f"Stock symbol not found: {symbol}", symbol=symbol)
        if response.status_code >= 400:
            raise UpstreamError(
                f"Quote provider returned HTTP {response.status_code} for {symbol}",
                symbol=symbol,
            )

        try:
            payload = response.json()
        except ValueError as e:
            raise UpstreamError(f"Malformed quote response for {symbol}", symbol=symbol) from e

        results = (payload.get("chart") or {}).get("result") or []
        if not results:
            raise SymbolNotFound(f"No data found for symbol: {symbol}", symbol=symbol)

        meta = results[0].get("meta") or {}
        market_price = meta.get("regularMarketPrice")
        previous_close = meta.get("previousClose") or meta.get("chartPreviousClose")
        price = market_price or previous_close
        if not price:
            raise SymbolNotFound(f"No price data available for symbol: {symbol}", symbol=symbol)

        change = change_percent = None
        if market_price and previous_close:
            change = market_price - previous_close
            change_percent = change / previous_close * 100

        market_time = meta.get("regularMarketTime")
        as_of = datetime.fromtimestamp(market_time) if market_time else datetime.now()

        return Quote(
            symbol=symbol,
            price=float(price),
            as_of=as_of,
            change=change,
            change_percent=change_percent,
        )

    def search(self, query: str, limit: int = 10) -> list[str]:
        try:
            response = self._client.get(
                SEARCH_PATH,
                params={"q": query, "quotesCount": limit, "newsCount": 0},
                timeout=SEARCH_TIMEOUT,
            )
            response.raise_for_status()
        except httpx.TimeoutException as e:
            raise UpstreamTimeout(f"Symbol search for '{query}' timed out") from e
        except httpx.HTTPError as e:
            raise UpstreamError(f"Symbol search for '{query}' failed: {e}") from e

        quotes = response.json().get("quotes") or []
        return [
            q["symbol"]
            for q in quotes
            if q.get("typeDisp") == "Equity" and q.get("symbol")
        ][:limit]

    def close(self) -> None:
        self._client.close()
