"""Shared fakes for pricewatch tests."""

import sqlite3
import tempfile
import threading
from datetime import datetime, timedelta
from pathlib import Path
from typing import Optional

import pytest

from pricewatch.db.store import DataStore
from pricewatch.errors import SymbolNotFound
from pricewatch.gateways.base import PushGateway
from pricewatch.models import DeliveryStatus, NotificationPayload
from pricewatch.sources.base import Quote, QuoteSource


class ManualClock:
    """Wall clock that only moves when told to."""

    def __init__(self, start: Optional[datetime] = None):
        self.now = start or datetime(2024, 1, 2, 10, 0, 0)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


class ManualTicker:
    """Monotonic clock that only moves when told to."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class ScriptedSource(QuoteSource):
    """Quote source with per-symbol prices or errors and a call counter.

    When ``gate`` is set, every fetch blocks until the gate is opened, which
    lets tests pile up concurrent callers.
    """

    def __init__(self, prices: Optional[dict[str, float]] = None):
        self.prices = dict(prices or {})
        self.errors: dict[str, Exception] = {}
        self.calls: list[str] = []
        self.gate: Optional[threading.Event] = None
        self.entered = threading.Event()
        self._lock = threading.Lock()

    @property
    def fetch_count(self) -> int:
        return len(self.calls)

    def fetch(self, symbol: str, timeout: float) -> Quote:
        with self._lock:
            self.calls.append(symbol)
        self.entered.set()
        if self.gate is not None:
            self.gate.wait(timeout=5)
        if symbol in self.errors:
            raise self.errors[symbol]
        if symbol not in self.prices:
            raise SymbolNotFound(f"Stock symbol not found: {symbol}", symbol=symbol)
        return Quote(symbol=symbol, price=self.prices[symbol], as_of=datetime.now())

    def search(self, query: str, limit: int = 10) -> list[str]:
        return [s for s in sorted(self.prices) if query.upper() in s][:limit]


class RecordingGateway(PushGateway):
    """Gateway that records deliveries and answers from a status table."""

    def __init__(self, statuses: Optional[dict[str, DeliveryStatus]] = None):
        self.statuses = dict(statuses or {})
        self.send_one_calls: list[str] = []
        self.send_many_calls: list[list[str]] = []
        self.raise_on_send: Optional[Exception] = None

    def send_one(self, token: str, payload: NotificationPayload) -> DeliveryStatus:
        if self.raise_on_send is not None:
            raise self.raise_on_send
        self.send_one_calls.append(token)
        return self.statuses.get(token, DeliveryStatus.OK)

    def send_many(
        self, tokens: list[str], payload: NotificationPayload
    ) -> dict[str, DeliveryStatus]:
        self.send_many_calls.append(list(tokens))
        return super().send_many(tokens, payload)


@pytest.fixture
def temp_db():
    """Create a temporary database for testing."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield DataStore(Path(tmpdir) / "test.db")


@pytest.fixture
def clock():
    return ManualClock()


@pytest.fixture
def ticker():
    return ManualTicker()


class StampFailingStore(DataStore):
    """DataStore whose alert stamp fails the first ``failures`` times."""

    def __init__(self, db_path: Path, failures: int = 1):
        super().__init__(db_path)
        self.failures = failures

    def _stamp_triggered(self, conn, alert_id, deactivate, when):
        if self.failures > 0:
            self.failures -= 1
            raise sqlite3.OperationalError("database is locked")
        super()._stamp_triggered(conn, alert_id, deactivate, when)
