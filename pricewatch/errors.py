"""Error taxonomy for pricewatch.

Every failure the engine reports is a subclass of PriceWatchError so that
callers can tell "temporarily unavailable" apart from "permanently absent".
``status_code`` is the HTTP status an API layer would map the error to.
"""


class PriceWatchError(Exception):
    """Base exception for pricewatch."""

    status_code = 500

    def __init__(self, message: str = "", symbol: str | None = None):
        super().__init__(message or self.__class__.__name__)
        self.symbol = symbol


class InvalidSymbol(PriceWatchError):
    """Symbol does not match the ticker format."""

    status_code = 400


class TooManySymbols(PriceWatchError):
    """Batch lookup exceeded the configured symbol limit."""

    status_code = 400


class RateLimited(PriceWatchError):
    """The request budget for a rate-limit key is exhausted."""

    status_code = 429


class UpstreamTimeout(PriceWatchError):
    """The quote provider did not answer within the timeout."""

    status_code = 500


class SymbolNotFound(PriceWatchError):
    """The quote provider has no data for the symbol."""

    status_code = 404


class UpstreamError(PriceWatchError):
    """Any other quote provider or transport failure."""

    status_code = 500


class PersistenceError(PriceWatchError):
    """A database read or write failed."""

    status_code = 500


class DuplicateAlert(PriceWatchError):
    """An active alert with the same parameters already exists."""

    status_code = 409


class GatewayMisconfigured(PriceWatchError):
    """The push gateway cannot be reached with the current configuration."""

    status_code = 500


__all__ = [
    "DuplicateAlert",
    "GatewayMisconfigured",
    "InvalidSymbol",
    "PersistenceError",
    "PriceWatchError",
    "RateLimited",
    "SymbolNotFound",
    "TooManySymbols",
    "UpstreamError",
    "UpstreamTimeout",
]
