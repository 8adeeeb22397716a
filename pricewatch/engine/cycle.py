"""Evaluation cycle: resolve prices, match alerts, record and notify."""

import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Optional

from pydantic import BaseModel, Field

from pricewatch.db.base import AlertStore
from pricewatch.engine.fanout import NotificationFanout
from pricewatch.engine.matcher import AlertMatcher
from pricewatch.engine.price_cache import PriceCache
from pricewatch.engine.recorder import TriggerRecorder
from pricewatch.errors import (
    GatewayMisconfigured,
    PersistenceError,
    PriceWatchError,
    RateLimited,
    UpstreamTimeout,
)
from pricewatch.models import DeliveryReport, PriceQuote, TriggeredAlert

logger = logging.getLogger(__name__)

DEADLINE_SKIP = "deadline exceeded"


class CycleReport(BaseModel):
    """Summary of one evaluation cycle."""

    alerts_checked: int = 0
    symbols: list[str] = Field(default_factory=list)
    prices: dict[str, float] = Field(default_factory=dict)
    stale_symbols: list[str] = Field(default_factory=list)
    skipped: dict[str, str] = Field(default_factory=dict, description="Symbol to reason")
    crossings: int = 0
    triggered: list[TriggeredAlert] = Field(default_factory=list)
    suppressed: int = 0
    persistence_failures: int = 0
    deliveries: list[DeliveryReport] = Field(default_factory=list)
    deadline_hit: bool = False


class EvaluationCycle:
    """Ties the price cache, matcher, recorder and fan-out together.

    Price resolution runs concurrently per symbol on a bounded pool.
    Recording and delivery run sequentially so the one-unread-trigger rule
    holds for every alert.
    """

    def __init__(
        self,
        alert_store: AlertStore,
        price_cache: PriceCache,
        matcher: AlertMatcher,
        recorder: TriggerRecorder,
        fanout: NotificationFanout,
        max_workers: int = 4,
        stale_fallback: bool = True,
        clock: Callable[[], float] = time.monotonic,
    ):
        """Initialize the cycle.

        Args:
            alert_store: Source of active alerts.
            price_cache: Price resolution.
            matcher: Crossing detection.
            recorder: Trigger persistence.
            fanout: Notification delivery.
            max_workers: Concurrent symbol resolutions.
            stale_fallback: Use an expired cache entry when a symbol is rate
                limited or times out.
            clock: Monotonic clock used for the deadline.
        """
        self.alert_store = alert_store
        self.price_cache = price_cache
        self.matcher = matcher
        self.recorder = recorder
        self.fanout = fanout
        self.max_workers = max_workers
        self.stale_fallback = stale_fallback
        self._clock = clock

    def _resolve(
        self, symbol: str, deadline: Optional[float]
    ) -> tuple[Optional[PriceQuote], Optional[str]]:
        """Resolve one symbol, returning (quote, skip_reason)."""
        try:
            if deadline is not None and self._clock() >= deadline:
                # Past the deadline only fresh cache entries are used
                quote = self.price_cache.get_cached(symbol)
                return (quote, None) if quote else (None, DEADLINE_SKIP)
            return self.price_cache.get_price(symbol), None
        except (RateLimited, UpstreamTimeout) as e:
            if self.stale_fallback:
                return self._resolve_stale(symbol, e)
            return None, f"{type(e).__name__}: {e}"
        except PriceWatchError as e:
            return None, f"{type(e).__name__}: {e}"

    def _resolve_stale(
        self, symbol: str, cause: PriceWatchError
    ) -> tuple[Optional[PriceQuote], Optional[str]]:
        try:
            stale = self.price_cache.get_stale(symbol)
        except PriceWatchError as e:
            logger.warning("Cached price for %s unavailable: %s", symbol, e)
            return None, f"{type(cause).__name__}: {cause}; {type(e).__name__}: {e}"
        if stale is None:
            return None, f"{type(cause).__name__}: {cause}"
        logger.info("Using cached price for %s after: %s", symbol, cause)
        return stale, None

    def _resolve_prices(
        self, symbols: list[str], deadline: Optional[float], report: CycleReport
    ) -> None:
        if not symbols:
            return
        workers = min(self.max_workers, len(symbols))
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="cycle") as pool:
            results = pool.map(lambda s: (s, self._resolve(s, deadline)), symbols)
            for symbol, (quote, reason) in results:
                if quote is not None:
                    report.prices[symbol] = quote.price
                    if quote.stale:
                        report.stale_symbols.append(symbol)
                else:
                    report.skipped[symbol] = reason or "unresolved"
                    if reason == DEADLINE_SKIP:
                        report.deadline_hit = True
                    logger.warning("Skipping %s this cycle: %s", symbol, reason)

    def run(
        self,
        deadline_seconds: Optional[float] = None,
        symbol_filter: Optional[str] = None,
    ) -> CycleReport:
        """Run one evaluation cycle.

        Args:
            deadline_seconds: Stop starting new fetches this many seconds
                after the cycle begins. Crossings already resolved are still
                recorded.
            symbol_filter: Only evaluate alerts for this symbol.

        Returns:
            CycleReport describing what happened.

        Raises:
            GatewayMisconfigured: If notifications cannot be sent at all.
            PersistenceError: If the active alerts cannot be loaded.
        """
        started = self._clock()
        deadline = started + deadline_seconds if deadline_seconds is not None else None
        report = CycleReport()

        # Alerts are evaluated against the state read here; edits made during
        # the cycle take effect next cycle.
        alerts = self.alert_store.list_active(symbol_filter)
        report.alerts_checked = len(alerts)
        report.symbols = sorted({a.symbol for a in alerts})

        self._resolve_prices(report.symbols, deadline, report)

        crossings = self.matcher.evaluate(alerts, report.prices)
        report.crossings = len(crossings)

        for event in crossings:
            try:
                triggered = self.recorder.record(event)
            except PersistenceError:
                report.persistence_failures += 1
                logger.exception("Failed to record trigger for alert %s", event.alert.id)
                continue
            if triggered is None:
                report.suppressed += 1
                continue
            report.triggered.append(triggered)
            try:
                report.deliveries.append(self.fanout.dispatch(triggered))
            except PersistenceError:
                report.persistence_failures += 1
                logger.exception("Failed to notify devices for trigger %s", triggered.id)

        logger.info(
            "Cycle done in %.2fs: %d alerts, %d/%d prices, %d triggered, %d suppressed",
            self._clock() - started,
            report.alerts_checked,
            len(report.prices),
            len(report.symbols),
            len(report.triggered),
            report.suppressed,
        )
        return report


def run_periodically(
    cycle: EvaluationCycle,
    interval_seconds: float,
    max_cycles: Optional[int] = None,
    stop_event: Optional[threading.Event] = None,
    deadline_seconds: Optional[float] = None,
    on_report: Optional[Callable[[CycleReport], None]] = None,
) -> int:
    """Run evaluation cycles on a fixed interval.

    A failing cycle is logged and the loop continues, except for
    GatewayMisconfigured which is fatal.

    Args:
        cycle: The evaluation cycle to run.
        interval_seconds: Pause between cycle starts.
        max_cycles: Stop after this many cycles. None runs until stopped.
        stop_event: Set to stop the loop between cycles.
        deadline_seconds: Per-cycle fetch deadline. Defaults to the interval.
        on_report: Callback receiving each CycleReport.

    Returns:
        Number of cycles run.
    """
    stop_event = stop_event or threading.Event()
    deadline = deadline_seconds if deadline_seconds is not None else interval_seconds
    runs = 0
    while not stop_event.is_set():
        started = time.monotonic()
        try:
            report = cycle.run(deadline_seconds=deadline)
            if on_report is not None:
                on_report(report)
        except GatewayMisconfigured:
            raise
        except Exception:
            logger.exception("Evaluation cycle failed; retrying next interval")
        runs += 1
        if max_cycles is not None and runs >= max_cycles:
            break
        elapsed = time.monotonic() - started
        stop_event.wait(max(0.0, interval_seconds - elapsed))
    return runs
