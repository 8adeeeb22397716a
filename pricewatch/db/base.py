"""Alert store interface consumed by the evaluation engine."""

from abc import ABC, abstractmethod
from typing import Optional

from pricewatch.models import Alert


class AlertStore(ABC):
    """Source of active alerts and sink for their triggered state."""

    @abstractmethod
    def list_active(self, symbol_filter: Optional[str] = None) -> list[Alert]:
        """Get all active alerts.

        Args:
            symbol_filter: Restrict to one normalized symbol.

        Returns:
            Active alerts, oldest first.
        """
        pass

    @abstractmethod
    def mark_triggered(self, alert_id: int, deactivate: bool) -> None:
        """Record that an alert fired.

        Args:
            alert_id: ID of the alert.
            deactivate: Also set the alert inactive.
        """
        pass
