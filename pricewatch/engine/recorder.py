"""Persistence of crossings as triggered alerts."""

import logging
from datetime import datetime
from typing import Callable, Optional

from pricewatch.db.store import DataStore
from pricewatch.models import CrossingEvent, TriggeredAlert

logger = logging.getLogger(__name__)


class TriggerRecorder:
    """Turns crossing events into triggered-alert rows, at most one unread per alert.

    While an alert has an unread trigger, further crossings for it are
    suppressed. Marking the trigger read re-arms the alert.

    The unread check, the insert and the alert update share one write
    transaction, which also serializes concurrent recorders on the same
    database.
    """

    def __init__(
        self,
        store: DataStore,
        deactivate_on_trigger: bool = False,
        clock: Callable[[], datetime] = datetime.now,
    ):
        """Initialize the recorder.

        Args:
            store: Persistence for triggers and alert state.
            deactivate_on_trigger: Set the alert inactive when it fires.
                When False the alert stays active and can fire again once
                its trigger is read.
            clock: Wall clock for trigger timestamps.
        """
        self.store = store
        self.deactivate_on_trigger = deactivate_on_trigger
        self._clock = clock

    def record(self, event: CrossingEvent) -> Optional[TriggeredAlert]:
        """Persist a crossing.

        Returns:
            The new TriggeredAlert, or None when an unread trigger for the
            same alert already exists.

        Raises:
            PersistenceError: If the database write fails. Nothing is
                recorded in that case.
        """
        alert = event.alert
        triggered = self.store.create_trigger(
            alert,
            event.actual_price,
            triggered_at=self._clock(),
            deactivate=self.deactivate_on_trigger,
        )
        if triggered is None:
            logger.debug("Alert %s already has an unread trigger; suppressed", alert.id)
            return None

        logger.info(
            "Alert %s triggered: %s %s %.2f at %.2f",
            alert.id,
            alert.symbol,
            alert.condition,
            alert.target_price,
            event.actual_price,
        )
        return triggered
