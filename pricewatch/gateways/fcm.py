"""Firebase Cloud Messaging push gateway (HTTP v1 API)."""

import logging
from typing import Optional

import httpx

from pricewatch.errors import GatewayMisconfigured
from pricewatch.gateways.base import PushGateway
from pricewatch.models import DeliveryStatus, NotificationPayload

logger = logging.getLogger(__name__)

FCM_URL = "https://fcm.googleapis.com/v1/projects/{project_id}/messages:send"

# FCM error codes that mean the token will never work again
INVALID_TOKEN_CODES = {"UNREGISTERED", "INVALID_ARGUMENT"}


class FcmGateway(PushGateway):
    """Delivers web push notifications through FCM.

    Requires a project ID and an OAuth2 access token for a service account
    with the ``firebase.messaging`` scope.
    """

    def __init__(
        self,
        project_id: str,
        access_token: str,
        timeout: float = 10.0,
        client: Optional[httpx.Client] = None,
    ):
        """Initialize the FCM gateway.

        Raises:
            GatewayMisconfigured: If credentials are missing.
        """
        if not project_id or not access_token:
            raise GatewayMisconfigured(
                "FCM gateway requires fcm_project_id and fcm_access_token"
            )
        self.project_id = project_id
        self._url = FCM_URL.format(project_id=project_id)
        self._client = client or httpx.Client(timeout=timeout)
        self._headers = {"Authorization": f"Bearer {access_token}"}

    @staticmethod
    def _build_message(token: str, payload: NotificationPayload) -> dict:
        return {
            "message": {
                "token": token,
                "notification": {"title": payload.title, "body": payload.body},
                "data": payload.data,
                "webpush": {
                    "notification": {
                        "title": payload.title,
                        "body": payload.body,
                        "icon": "/icon-192x192.png",
                        "badge": "/badge-72x72.png",
                        "tag": "stock-alert",
                        "requireInteraction": True,
                    },
                    "fcm_options": {"link": "/"},
                },
            }
        }

    @staticmethod
    def _error_codes(response: httpx.Response) -> set[str]:
        try:
            error = response.json().get("error") or {}
        except ValueError:
            return set()
        codes = {error.get("status", "")}
        for detail in error.get("details") or []:
            codes.add(detail.get("errorCode", ""))
        return {c for c in codes if c}

    def send_one(self, token: str, payload: NotificationPayload) -> DeliveryStatus:
        try:
            response = self._client.post(
                self._url,
                json=self._build_message(token, payload),
                headers=self._headers,
            )
        except httpx.HTTPError as e:
            logger.warning("FCM transport error for %s...: %s", token[:12], e)
            return DeliveryStatus.TRANSIENT_ERROR

        if response.status_code == 200:
            return DeliveryStatus.OK
        if response.status_code in (401, 403):
            raise GatewayMisconfigured(
                f"FCM rejected credentials for project {self.project_id} "
                f"(HTTP {response.status_code})"
            )

        codes = self._error_codes(response)
        if response.status_code == 404 or codes & INVALID_TOKEN_CODES:
            return DeliveryStatus.INVALID_TOKEN

        logger.warning(
            "FCM delivery to %s... failed with HTTP %s %s",
            token[:12],
            response.status_code,
            ",".join(sorted(codes)),
        )
        return DeliveryStatus.TRANSIENT_ERROR

    def close(self) -> None:
        self._client.close()
