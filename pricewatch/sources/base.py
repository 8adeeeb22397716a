"""Base quote source interface for pricewatch."""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class Quote(BaseModel):
    """A price quote as returned by a quote source."""

    symbol: str = Field(..., description="Ticker symbol")
    price: float = Field(..., ge=0, description="Last traded price")
    as_of: datetime = Field(..., description="Provider timestamp for the price")
    change: Optional[float] = Field(default=None, description="Change from previous close")
    change_percent: Optional[float] = Field(default=None, description="Percentage change")

    model_config = {"frozen": True}


class QuoteSource(ABC):
    """Abstract base class for external price providers.

    Implementations translate their transport failures into the pricewatch
    error taxonomy so the price cache never sees provider-specific errors.
    """

    @abstractmethod
    def fetch(self, symbol: str, timeout: float) -> Quote:
        """Fetch the current quote for a symbol.

        Args:
            symbol: Normalized ticker symbol.
            timeout: Seconds to wait for the provider.

        Returns:
            Quote with the current price.

        Raises:
            SymbolNotFound: If the provider has no data for the symbol.
            UpstreamTimeout: If the provider did not answer in time.
            UpstreamError: On any other transport or payload failure.
        """
        pass

    def search(self, query: str, limit: int = 10) -> list[str]:
        """Search for ticker symbols by company name or partial symbol.

        Sources without a search endpoint return no matches.
        """
        return []

    def close(self) -> None:
        """Release any held connections."""
