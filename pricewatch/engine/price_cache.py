"""Price cache with TTL freshness, rate-limited fetches and single-flight."""

import logging
import re
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from datetime import datetime, timedelta
from typing import Callable, Optional

from pricewatch.db.store import DataStore
from pricewatch.engine.rate_limiter import QUOTE_FETCH_KEY, SYMBOL_SEARCH_KEY, RateLimiter
from pricewatch.errors import (
    InvalidSymbol,
    PriceWatchError,
    RateLimited,
    TooManySymbols,
    UpstreamError,
)
from pricewatch.models import CachedPrice, PriceLookup, PriceQuote
from pricewatch.sources.base import QuoteSource

logger = logging.getLogger(__name__)

SYMBOL_RE = re.compile(r"^[A-Z]{1,5}$")

DEFAULT_TTL_SECONDS = 300.0
DEFAULT_FETCH_TIMEOUT = 10.0
DEFAULT_MAX_BATCH = 20


def normalize_symbol(symbol: str) -> str:
    """Trim and uppercase a raw symbol."""
    return symbol.strip().upper()


def is_valid_symbol(symbol: str) -> bool:
    """Check a normalized symbol against the 1-5 letter ticker format."""
    return bool(SYMBOL_RE.match(symbol))


def validate_symbol(symbol: str) -> str:
    """Normalize a symbol and check its format.

    Raises:
        InvalidSymbol: If the normalized symbol is not 1-5 letters.
    """
    normalized = normalize_symbol(symbol)
    if not is_valid_symbol(normalized):
        raise InvalidSymbol(f"Invalid stock symbol format: {symbol}", symbol=normalized)
    return normalized


class PriceCache:
    """Resolves symbols to prices, preferring fresh cache entries.

    Cache hits are unmetered. Misses consume one request from the
    ``quote-fetch`` budget and go to the quote source. Concurrent misses for
    the same symbol share a single upstream call.
    """

    def __init__(
        self,
        store: DataStore,
        source: QuoteSource,
        limiter: RateLimiter,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        fetch_timeout: float = DEFAULT_FETCH_TIMEOUT,
        max_batch: int = DEFAULT_MAX_BATCH,
        serve_stale_on_rate_limit: bool = False,
        max_workers: int = 4,
        clock: Callable[[], datetime] = datetime.now,
    ):
        """Initialize the price cache.

        Args:
            store: Persistence for cached prices.
            source: External quote provider.
            limiter: Shared rate limiter.
            ttl_seconds: How long a cached price is fresh.
            fetch_timeout: Per-call timeout passed to the source.
            max_batch: Largest accepted batch for ``get_many_prices``.
            serve_stale_on_rate_limit: Return an expired entry instead of
                raising RateLimited when one exists.
            max_workers: Pool size for batch lookups.
            clock: Wall clock, injectable for tests.
        """
        self.store = store
        self.source = source
        self.limiter = limiter
        self.ttl = timedelta(seconds=ttl_seconds)
        self.fetch_timeout = fetch_timeout
        self.max_batch = max_batch
        self.serve_stale_on_rate_limit = serve_stale_on_rate_limit
        self.max_workers = max_workers
        self._clock = clock
        self._inflight: dict[str, Future] = {}
        self._inflight_lock = threading.Lock()

    def _is_fresh(self, entry: CachedPrice) -> bool:
        return self._clock() - entry.updated_at < self.ttl

    @staticmethod
    def _from_entry(entry: CachedPrice, stale: bool = False) -> PriceQuote:
        return PriceQuote(
            symbol=entry.symbol,
            price=entry.price,
            timestamp=entry.updated_at,
            cached=True,
            stale=stale,
        )

    def get_cached(self, symbol: str) -> Optional[PriceQuote]:
        """Return a fresh cached quote without ever fetching.

        Raises:
            InvalidSymbol: If the symbol format is invalid.
        """
        normalized = validate_symbol(symbol)
        entry = self.store.get_cached_price(normalized)
        if entry and self._is_fresh(entry):
            return self._from_entry(entry)
        return None

    def get_stale(self, symbol: str) -> Optional[PriceQuote]:
        """Return the cached quote regardless of age, marked stale if expired."""
        normalized = validate_symbol(symbol)
        entry = self.store.get_cached_price(normalized)
        if entry is None:
            return None
        return self._from_entry(entry, stale=not self._is_fresh(entry))

    def get_price(self, symbol: str, use_cache: bool = True) -> PriceQuote:
        """Get the current price for a symbol.

        Args:
            symbol: Raw symbol, normalized before use.
            use_cache: Serve a fresh cache entry when available.

        Returns:
            PriceQuote, with ``cached`` set when served from cache.

        Raises:
            InvalidSymbol: If the symbol format is invalid.
            RateLimited: If the fetch budget is exhausted.
            UpstreamTimeout: If the provider timed out.
            SymbolNotFound: If the provider has no data for the symbol.
            UpstreamError: On any other provider failure.
            PersistenceError: If the cache could not be read or written.
        """
        normalized = validate_symbol(symbol)

        if use_cache:
            entry = self.store.get_cached_price(normalized)
            if entry and self._is_fresh(entry):
                return self._from_entry(entry)

        with self._inflight_lock:
            future = self._inflight.get(normalized)
            leader = future is None
            if leader:
                future = Future()
                self._inflight[normalized] = future

        if not leader:
            logger.debug("Joining in-flight fetch for %s", normalized)
            return future.result()

        try:
            quote = None
            if use_cache:
                # A previous leader may have filled the cache since the first check
                entry = self.store.get_cached_price(normalized)
                if entry and self._is_fresh(entry):
                    quote = self._from_entry(entry)
            if quote is None:
                quote = self._fetch(normalized)
        except BaseException as e:
            future.set_exception(e)
            raise
        else:
            future.set_result(quote)
            return quote
        finally:
            with self._inflight_lock:
                self._inflight.pop(normalized, None)

    def _fetch(self, symbol: str) -> PriceQuote:
        """Fetch from the source under the rate budget and update the cache."""
        if not self.limiter.allow(QUOTE_FETCH_KEY):
            if self.serve_stale_on_rate_limit:
                entry = self.store.get_cached_price(symbol)
                if entry is not None:
                    logger.info("Rate limited; serving stale price for %s", symbol)
                    return self._from_entry(entry, stale=not self._is_fresh(entry))
            logger.warning("Rate limit exceeded for %s fetch of %s", QUOTE_FETCH_KEY, symbol)
            raise RateLimited("Rate limit exceeded. Please try again later.", symbol=symbol)

        logger.debug("Fetching %s from %s", symbol, type(self.source).__name__)
        try:
            quote = self.source.fetch(symbol, timeout=self.fetch_timeout)
        except PriceWatchError:
            raise
        except Exception as e:
            raise UpstreamError(f"Failed to fetch price for {symbol}: {e}", symbol=symbol) from e

        now = self._clock()
        self.store.upsert_cached_price(symbol, quote.price, now)
        return PriceQuote(
            symbol=symbol,
            price=quote.price,
            change=quote.change,
            change_percent=quote.change_percent,
            timestamp=now,
            cached=False,
        )

    def _lookup(self, symbol: str, use_cache: bool) -> PriceLookup:
        try:
            return PriceLookup(
                symbol=normalize_symbol(symbol),
                quote=self.get_price(symbol, use_cache=use_cache),
            )
        except PriceWatchError as e:
            logger.warning("Price lookup for %s failed: %s", symbol, e)
            return PriceLookup(symbol=normalize_symbol(symbol), error=e)

    def get_many_prices(
        self, symbols: list[str], use_cache: bool = True
    ) -> list[PriceLookup]:
        """Resolve several symbols independently.

        A failure for one symbol is captured in its entry and never aborts
        the other lookups.

        Returns:
            One PriceLookup per requested symbol, in request order.

        Raises:
            TooManySymbols: If more than ``max_batch`` symbols are requested.
        """
        if len(symbols) > self.max_batch:
            raise TooManySymbols(
                f"Requested {len(symbols)} symbols; at most {self.max_batch} allowed"
            )
        if not symbols:
            return []

        workers = min(self.max_workers, len(symbols))
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="price") as pool:
            return list(pool.map(lambda s: self._lookup(s, use_cache), symbols))

    def search_symbols(self, query: str, limit: int = 10) -> list[str]:
        """Search the quote source for matching equity symbols.

        Raises:
            RateLimited: If the search budget is exhausted.
        """
        if not self.limiter.allow(SYMBOL_SEARCH_KEY):
            raise RateLimited("Search rate limit exceeded")
        return self.source.search(query.strip(), limit=limit)

    def clear_expired(self) -> int:
        """Delete cache entries older than the TTL.

        Returns:
            Number of entries removed.
        """
        removed = self.store.delete_prices_before(self._clock() - self.ttl)
        logger.info("Cleared %d expired cache entries", removed)
        return removed
