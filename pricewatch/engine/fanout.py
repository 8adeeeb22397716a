"""Notification fan-out to registered devices."""

import logging
from typing import Optional

from pricewatch.db.store import DataStore
from pricewatch.errors import PersistenceError
from pricewatch.gateways.base import PushGateway
from pricewatch.models import (
    DeliveryReport,
    DeliveryStatus,
    DeviceToken,
    NotificationPayload,
    TriggeredAlert,
)

logger = logging.getLogger(__name__)


def build_payload(triggered: TriggeredAlert) -> NotificationPayload:
    """Build the push notification for a triggered alert."""
    direction = "above" if triggered.condition == "ABOVE" else "below"
    return NotificationPayload(
        title=f"Price Alert: {triggered.symbol}",
        body=(
            f"{triggered.symbol} is now {direction} ${triggered.target_price:.2f} "
            f"(current: ${triggered.actual_price:.2f})"
        ),
        data={
            "alert_id": str(triggered.alert_id),
            "symbol": triggered.symbol,
            "price": f"{triggered.actual_price:.2f}",
            "type": "alert_triggered",
        },
    )


TEST_PAYLOAD = NotificationPayload(
    title="Test Notification",
    body="Push notifications are working for your price alerts.",
    data={"type": "test"},
)


class NotificationFanout:
    """Delivers one notification per trigger to every active device.

    Tokens the gateway reports as invalid are deactivated so later cycles
    stop targeting them. Transient failures leave the token active.
    """

    def __init__(self, gateway: PushGateway, store: DataStore):
        self.gateway = gateway
        self.store = store

    def _deliver(
        self,
        payload: NotificationPayload,
        recipients: Optional[list[DeviceToken]],
        triggered_alert_id: Optional[int] = None,
    ) -> DeliveryReport:
        if recipients is None:
            recipients = self.store.list_device_tokens(active=True)
        tokens = list(dict.fromkeys(t.token for t in recipients if t.is_active))

        if not tokens:
            logger.info("No active device tokens; nothing to deliver")
            return DeliveryReport(triggered_alert_id=triggered_alert_id)

        if len(tokens) == 1:
            results = {tokens[0]: self.gateway.send_one(tokens[0], payload)}
        else:
            results = self.gateway.send_many(tokens, payload)

        invalidated: list[str] = []
        transient: list[str] = []
        unremoved: list[str] = []
        for token in tokens:
            status = results.get(token, DeliveryStatus.TRANSIENT_ERROR)
            if status == DeliveryStatus.INVALID_TOKEN:
                try:
                    self.store.deactivate_device_token(token)
                except PersistenceError:
                    unremoved.append(token)
                    logger.exception("Failed to deactivate device token %s...", token[:12])
                    continue
                invalidated.append(token)
                logger.info("Deactivated invalid device token %s...", token[:12])
            elif status == DeliveryStatus.TRANSIENT_ERROR:
                transient.append(token)

        report = DeliveryReport(
            triggered_alert_id=triggered_alert_id,
            attempted=len(tokens),
            succeeded=len(tokens) - len(invalidated) - len(transient) - len(unremoved),
            invalidated=invalidated,
            transient_failures=transient,
            deactivation_failures=unremoved,
        )
        logger.info(
            "Notifications sent: %d/%d successful", report.succeeded, report.attempted
        )
        return report

    def dispatch(
        self,
        triggered: TriggeredAlert,
        recipient_tokens: Optional[list[DeviceToken]] = None,
    ) -> DeliveryReport:
        """Notify devices about a triggered alert.

        Args:
            triggered: The trigger to announce.
            recipient_tokens: Devices to target. Defaults to every active
                token in the store.

        Returns:
            DeliveryReport with success and failure counts. A token that
            could not be deactivated is reported, not raised.

        Raises:
            GatewayMisconfigured: If the gateway cannot be used at all.
            PersistenceError: If the active tokens cannot be loaded.
        """
        return self._deliver(build_payload(triggered), recipient_tokens, triggered.id)

    def send_test(self, recipient_tokens: Optional[list[DeviceToken]] = None) -> DeliveryReport:
        """Send a test notification through the normal delivery path."""
        return self._deliver(TEST_PAYLOAD, recipient_tokens)
