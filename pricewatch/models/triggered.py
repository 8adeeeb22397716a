"""Triggered alert data model."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from pricewatch.models.alert import AlertCondition


class TriggeredAlert(BaseModel):
    """Snapshot of an alert at the moment its price condition was met.

    Symbol, target price and condition are copied from the alert so later
    edits to the alert do not rewrite history. Only ``is_read`` changes
    after creation.
    """

    id: Optional[int] = Field(default=None, description="Database ID")
    alert_id: int = Field(..., description="ID of the originating alert")
    symbol: str = Field(..., min_length=1, description="Symbol at trigger time")
    target_price: float = Field(..., gt=0, description="Target price at trigger time")
    condition: AlertCondition = Field(..., description="Condition at trigger time")
    actual_price: float = Field(..., ge=0, description="Price that caused the trigger")
    triggered_at: datetime = Field(
        default_factory=datetime.now, description="Trigger timestamp"
    )
    is_read: bool = Field(default=False, description="Acknowledged by the user")

    model_config = {"frozen": True}
