"""Matching of current prices against alert conditions."""

from collections import defaultdict
from typing import Mapping, Optional

from pricewatch.models import Alert, AlertCondition, CrossingEvent


def is_crossed(condition: AlertCondition, price: float, target: float) -> bool:
    """Check whether ``price`` satisfies an alert condition.

    Both boundaries are inclusive: a price exactly on target fires for
    ABOVE and BELOW alike.
    """
    if condition == "ABOVE":
        return price >= target
    if condition == "BELOW":
        return price <= target
    return False


class AlertMatcher:
    """Decides which active alerts are crossed by a price snapshot.

    The matcher only sees the current snapshot. Suppressing repeat triggers
    across cycles is the trigger recorder's job.
    """

    def evaluate(
        self,
        active_alerts: list[Alert],
        prices: Mapping[str, Optional[float]],
    ) -> list[CrossingEvent]:
        """Find crossed alerts.

        Args:
            active_alerts: Alerts to check.
            prices: Current price per symbol. Missing or None entries mean
                the price could not be resolved; those alerts are skipped.

        Returns:
            One CrossingEvent per crossed alert, grouped by symbol.
        """
        by_symbol: dict[str, list[Alert]] = defaultdict(list)
        for alert in active_alerts:
            if alert.is_active:
                by_symbol[alert.symbol].append(alert)

        events: list[CrossingEvent] = []
        for symbol, alerts in by_symbol.items():
            price = prices.get(symbol)
            if price is None:
                continue
            for alert in alerts:
                if is_crossed(alert.condition, price, alert.target_price):
                    events.append(CrossingEvent(alert=alert, actual_price=price))
        return events
