"""Quote sources for pricewatch."""

from pricewatch.sources.base import Quote, QuoteSource
from pricewatch.sources.paper import PaperQuoteSource
from pricewatch.sources.yahoo import YahooQuoteSource

__all__ = [
    "PaperQuoteSource",
    "Quote",
    "QuoteSource",
    "YahooQuoteSource",
]
