"""Property-based tests for the fixed-window rate limiter.

**Feature: pricewatch**
"""

import threading

from hypothesis import given, settings
from hypothesis import strategies as st

from conftest import ManualTicker
from pricewatch.engine.rate_limiter import QUOTE_FETCH_KEY, SYMBOL_SEARCH_KEY, RateLimiter


class TestBudgetEnforcement:
    """
    **Feature: pricewatch, Property: Window Budget**

    *For any* budget N, the first N calls in a window are allowed and every
    further call in the same window is denied.
    """

    def test_budget_of_two(self, ticker: ManualTicker):
        """Three calls against a budget of two yield allow, allow, deny."""
        limiter = RateLimiter(window_seconds=60, max_requests=2, clock=ticker)

        assert limiter.allow("k") is True
        assert limiter.allow("k") is True
        assert limiter.allow("k") is False

    @given(
        budget=st.integers(min_value=1, max_value=50),
        extra=st.integers(min_value=1, max_value=20),
    )
    @settings(max_examples=50)
    def test_exactly_budget_calls_allowed(self, budget: int, extra: int):
        """
        *For any* budget and any number of extra calls, exactly ``budget``
        calls are allowed within one window.
        """
        limiter = RateLimiter(window_seconds=60, max_requests=budget, clock=ManualTicker())

        results = [limiter.allow("k") for _ in range(budget + extra)]

        assert results.count(True) == budget
        assert results[:budget] == [True] * budget
        assert not any(results[budget:])

    def test_denied_calls_do_not_consume_budget(self, ticker: ManualTicker):
        """Denials leave the next window untouched."""
        limiter = RateLimiter(window_seconds=10, max_requests=1, clock=ticker)
        limiter.allow("k")
        for _ in range(5):
            assert limiter.allow("k") is False

        ticker.advance(10)

        assert limiter.remaining("k") == 1
        assert limiter.allow("k") is True
        assert limiter.remaining("k") == 0


class TestWindowReset:
    """
    **Feature: pricewatch, Property: Window Reset**

    *For any* key, once the window has elapsed the budget is restored.
    """

    def test_reset_at_window_boundary(self, ticker: ManualTicker):
        limiter = RateLimiter(window_seconds=60, max_requests=1, clock=ticker)
        assert limiter.allow("k") is True
        assert limiter.allow("k") is False

        ticker.advance(59.9)
        assert limiter.allow("k") is False

        ticker.advance(0.1)
        assert limiter.allow("k") is True

    def test_window_starts_on_first_use(self, ticker: ManualTicker):
        limiter = RateLimiter(window_seconds=60, max_requests=1, clock=ticker)
        ticker.advance(500)

        assert limiter.allow("k") is True
        ticker.advance(30)
        assert limiter.allow("k") is False

    def test_manual_reset(self, ticker: ManualTicker):
        limiter = RateLimiter(window_seconds=60, max_requests=1, clock=ticker)
        limiter.allow("a")
        limiter.allow("b")

        limiter.reset("a")
        assert limiter.allow("a") is True
        assert limiter.allow("b") is False

        limiter.reset()
        assert limiter.allow("b") is True


class TestKeyIndependence:
    """
    **Feature: pricewatch, Property: Independent Keys**

    *For any* two keys, exhausting one never affects the other.
    """

    def test_fetch_and_search_budgets_are_separate(self, ticker: ManualTicker):
        limiter = RateLimiter(window_seconds=60, max_requests=1, clock=ticker)

        assert limiter.allow(QUOTE_FETCH_KEY) is True
        assert limiter.allow(QUOTE_FETCH_KEY) is False
        assert limiter.allow(SYMBOL_SEARCH_KEY) is True

    @given(keys=st.lists(st.text(min_size=1, max_size=8), min_size=2, max_size=6, unique=True))
    @settings(max_examples=30)
    def test_each_key_has_full_budget(self, keys: list[str]):
        limiter = RateLimiter(window_seconds=60, max_requests=3, clock=ManualTicker())

        for key in keys:
            assert [limiter.allow(key) for _ in range(4)] == [True, True, True, False]


class TestConcurrentAllow:
    """Concurrent callers never exceed the budget."""

    def test_threads_share_one_budget(self):
        limiter = RateLimiter(window_seconds=3600, max_requests=25)
        allowed = []
        lock = threading.Lock()
        start = threading.Barrier(8)

        def worker():
            start.wait()
            for _ in range(10):
                ok = limiter.allow("shared")
                with lock:
                    allowed.append(ok)

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert allowed.count(True) == 25
        assert len(allowed) == 80
