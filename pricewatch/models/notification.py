"""Notification and delivery data models."""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class DeliveryStatus(str, Enum):
    """Outcome of delivering a notification to a single token."""

    OK = "ok"
    INVALID_TOKEN = "invalid_token"
    TRANSIENT_ERROR = "transient_error"


class NotificationPayload(BaseModel):
    """Push notification content."""

    title: str = Field(..., min_length=1, max_length=100)
    body: str = Field(..., min_length=1, max_length=500)
    data: dict[str, str] = Field(default_factory=dict)

    model_config = {"frozen": True}


class DeliveryReport(BaseModel):
    """Result of fanning out one notification."""

    triggered_alert_id: Optional[int] = Field(default=None)
    attempted: int = Field(default=0, ge=0)
    succeeded: int = Field(default=0, ge=0)
    invalidated: list[str] = Field(default_factory=list, description="Tokens deactivated")
    transient_failures: list[str] = Field(default_factory=list, description="Tokens to retry later")
    deactivation_failures: list[str] = Field(
        default_factory=list, description="Invalid tokens that could not be deactivated"
    )

    model_config = {"frozen": True}

    @property
    def failed(self) -> int:
        return self.attempted - self.succeeded
