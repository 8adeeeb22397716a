"""Price data models."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from pricewatch.errors import PriceWatchError


class CachedPrice(BaseModel):
    """A cached quote row, keyed by symbol."""

    symbol: str = Field(..., min_length=1, description="Ticker symbol")
    price: float = Field(..., ge=0, description="Last known price")
    updated_at: datetime = Field(..., description="When the price was fetched")

    model_config = {"frozen": True}


class PriceQuote(BaseModel):
    """A resolved price as returned by the price cache."""

    symbol: str = Field(..., description="Ticker symbol")
    price: float = Field(..., ge=0, description="Current price")
    change: Optional[float] = Field(default=None, description="Change from previous close")
    change_percent: Optional[float] = Field(default=None, description="Percentage change")
    timestamp: datetime = Field(..., description="Freshness timestamp")
    cached: bool = Field(default=False, description="Served from cache")
    stale: bool = Field(default=False, description="Served from an expired cache entry")

    model_config = {"frozen": True}


class PriceLookup(BaseModel):
    """One entry of a batch price lookup: either a quote or an error."""

    symbol: str = Field(..., description="Symbol as requested (normalized)")
    quote: Optional[PriceQuote] = Field(default=None, description="Resolved quote")
    error: Optional[PriceWatchError] = Field(default=None, description="Lookup failure")

    model_config = {"frozen": True, "arbitrary_types_allowed": True}

    @property
    def ok(self) -> bool:
        return self.quote is not None
