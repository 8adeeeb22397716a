"""Base push gateway interface for pricewatch."""

from abc import ABC, abstractmethod

from pricewatch.models import DeliveryStatus, NotificationPayload


class PushGateway(ABC):
    """Abstract base class for push notification providers.

    ``send_one`` and ``send_many`` report per-token outcomes and only raise
    GatewayMisconfigured, which means no token can be reached at all.
    """

    @abstractmethod
    def send_one(self, token: str, payload: NotificationPayload) -> DeliveryStatus:
        """Deliver a notification to one device token.

        Args:
            token: Device token.
            payload: Notification content.

        Returns:
            Delivery outcome for the token.

        Raises:
            GatewayMisconfigured: If the gateway rejects our credentials.
        """
        pass

    def send_many(
        self, tokens: list[str], payload: NotificationPayload
    ) -> dict[str, DeliveryStatus]:
        """Deliver a notification to several device tokens.

        Each token is attempted independently, so one bad token never
        prevents delivery to the rest.

        Returns:
            Mapping of token to delivery outcome.
        """
        return {token: self.send_one(token, payload) for token in tokens}

    def close(self) -> None:
        """Release any held connections."""
