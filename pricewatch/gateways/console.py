"""Console push gateway for dry runs."""

import logging

from pricewatch.gateways.base import PushGateway
from pricewatch.models import DeliveryStatus, NotificationPayload

logger = logging.getLogger(__name__)


class ConsoleGateway(PushGateway):
    """Logs notifications instead of delivering them."""

    def __init__(self):
        self.sent: list[tuple[str, NotificationPayload]] = []

    def send_one(self, token: str, payload: NotificationPayload) -> DeliveryStatus:
        self.sent.append((token, payload))
        logger.info("[push %s...] %s: %s", token[:12], payload.title, payload.body)
        return DeliveryStatus.OK
