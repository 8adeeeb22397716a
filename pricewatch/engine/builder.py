"""Wiring of engine components from settings."""

from dataclasses import dataclass

from pricewatch.config import Settings
from pricewatch.db.store import DataStore
from pricewatch.engine.cycle import EvaluationCycle
from pricewatch.engine.fanout import NotificationFanout
from pricewatch.engine.matcher import AlertMatcher
from pricewatch.engine.price_cache import PriceCache
from pricewatch.engine.rate_limiter import RateLimiter
from pricewatch.engine.recorder import TriggerRecorder
from pricewatch.gateways.base import PushGateway
from pricewatch.sources.base import QuoteSource


@dataclass
class Engine:
    """Process-wide engine components sharing one store and one limiter."""

    settings: Settings
    store: DataStore
    source: QuoteSource
    gateway: PushGateway
    limiter: RateLimiter
    price_cache: PriceCache
    matcher: AlertMatcher
    recorder: TriggerRecorder
    fanout: NotificationFanout
    cycle: EvaluationCycle

    def close(self) -> None:
        self.source.close()
        self.gateway.close()


def build_source(settings: Settings) -> QuoteSource:
    """Create the configured quote source."""
    if settings.quotes.source == "paper":
        from pricewatch.sources.paper import PaperQuoteSource

        return PaperQuoteSource(settings.quotes.paper_prices)

    from pricewatch.sources.yahoo import YahooQuoteSource

    return YahooQuoteSource()


def build_gateway(settings: Settings) -> PushGateway:
    """Create the configured push gateway.

    Raises:
        GatewayMisconfigured: If the FCM gateway lacks credentials.
    """
    notifications = settings.notifications
    if notifications.gateway == "fcm":
        from pricewatch.gateways.fcm import FcmGateway

        return FcmGateway(
            project_id=notifications.fcm_project_id,
            access_token=notifications.fcm_access_token,
            timeout=notifications.timeout_seconds,
        )

    from pricewatch.gateways.console import ConsoleGateway

    return ConsoleGateway()


def build_engine(
    settings: Settings,
    store: DataStore | None = None,
    source: QuoteSource | None = None,
    gateway: PushGateway | None = None,
) -> Engine:
    """Build every engine component from settings.

    Collaborators can be passed in to replace the configured ones.
    """
    store = store or DataStore(settings.database.path)
    source = source or build_source(settings)
    gateway = gateway or build_gateway(settings)

    limiter = RateLimiter(
        window_seconds=settings.rate_limit.window_seconds,
        max_requests=settings.rate_limit.max_requests,
    )
    price_cache = PriceCache(
        store=store,
        source=source,
        limiter=limiter,
        ttl_seconds=settings.cache.ttl_seconds,
        fetch_timeout=settings.quotes.timeout_seconds,
        max_batch=settings.cache.max_batch,
        serve_stale_on_rate_limit=settings.cache.serve_stale_on_rate_limit,
        max_workers=settings.cycle.max_workers,
    )
    matcher = AlertMatcher()
    recorder = TriggerRecorder(
        store, deactivate_on_trigger=settings.alerts.deactivate_on_trigger
    )
    fanout = NotificationFanout(gateway, store)
    cycle = EvaluationCycle(
        alert_store=store,
        price_cache=price_cache,
        matcher=matcher,
        recorder=recorder,
        fanout=fanout,
        max_workers=settings.cycle.max_workers,
        stale_fallback=settings.cycle.stale_fallback,
    )
    return Engine(
        settings=settings,
        store=store,
        source=source,
        gateway=gateway,
        limiter=limiter,
        price_cache=price_cache,
        matcher=matcher,
        recorder=recorder,
        fanout=fanout,
        cycle=cycle,
    )
