"""Property-based tests for alert matching.

**Feature: pricewatch**
"""

from hypothesis import given, settings
from hypothesis import strategies as st

from pricewatch.engine.matcher import AlertMatcher, is_crossed
from pricewatch.models import Alert

prices = st.floats(min_value=0.01, max_value=100_000, allow_nan=False, allow_infinity=False)


def make_alert(alert_id: int, symbol: str, target: float, condition: str, active: bool = True) -> Alert:
    return Alert(
        id=alert_id,
        symbol=symbol,
        target_price=target,
        condition=condition,
        is_active=active,
    )


class TestCrossingBoundaries:
    """
    **Feature: pricewatch, Property: Inclusive Thresholds**

    *For any* target T, ABOVE fires iff price >= T and BELOW fires iff
    price <= T. A price exactly at T fires both.
    """

    def test_boundary_examples(self):
        assert is_crossed("ABOVE", 200.0, 200.0)
        assert is_crossed("ABOVE", 200.01, 200.0)
        assert not is_crossed("ABOVE", 199.99, 200.0)
        assert is_crossed("BELOW", 200.0, 200.0)
        assert is_crossed("BELOW", 199.99, 200.0)
        assert not is_crossed("BELOW", 200.01, 200.0)

    @given(price=prices, target=prices)
    @settings(max_examples=200)
    def test_above_matches_comparison(self, price: float, target: float):
        assert is_crossed("ABOVE", price, target) == (price >= target)

    @given(price=prices, target=prices)
    @settings(max_examples=200)
    def test_below_matches_comparison(self, price: float, target: float):
        assert is_crossed("BELOW", price, target) == (price <= target)

    @given(target=prices)
    @settings(max_examples=50)
    def test_price_on_target_fires_both(self, target: float):
        assert is_crossed("ABOVE", target, target)
        assert is_crossed("BELOW", target, target)


class TestMatcherEvaluate:
    """The matcher groups alerts by symbol and skips unresolved prices."""

    def test_crossed_alerts_returned(self):
        alerts = [
            make_alert(1, "AAPL", 200.0, "ABOVE"),
            make_alert(2, "AAPL", 150.0, "BELOW"),
            make_alert(3, "MSFT", 400.0, "ABOVE"),
        ]

        events = AlertMatcher().evaluate(alerts, {"AAPL": 205.0, "MSFT": 390.0})

        assert [(e.alert.id, e.actual_price) for e in events] == [(1, 205.0)]

    def test_missing_and_none_prices_skipped(self):
        alerts = [
            make_alert(1, "AAPL", 100.0, "ABOVE"),
            make_alert(2, "MSFT", 100.0, "ABOVE"),
        ]

        events = AlertMatcher().evaluate(alerts, {"MSFT": None})

        assert events == []

    def test_inactive_alerts_ignored(self):
        alerts = [make_alert(1, "AAPL", 100.0, "ABOVE", active=False)]
        assert AlertMatcher().evaluate(alerts, {"AAPL": 500.0}) == []

    def test_event_carries_alert_snapshot(self):
        alert = make_alert(7, "NVDA", 120.0, "BELOW")

        (event,) = AlertMatcher().evaluate([alert], {"NVDA": 119.5})

        assert event.alert == alert
        assert event.actual_price == 119.5

    @given(
        targets=st.lists(prices, min_size=1, max_size=20),
        price=prices,
    )
    @settings(max_examples=50)
    def test_every_satisfied_alert_reported(self, targets: list[float], price: float):
        """
        *For any* set of ABOVE alerts on one symbol, exactly those with
        target <= price are reported.
        """
        alerts = [make_alert(i + 1, "AAPL", t, "ABOVE") for i, t in enumerate(targets)]

        events = AlertMatcher().evaluate(alerts, {"AAPL": price})

        expected = {i + 1 for i, t in enumerate(targets) if price >= t}
        assert {e.alert.id for e in events} == expected
