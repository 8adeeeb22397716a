"""Alert data model."""

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field

AlertCondition = Literal["ABOVE", "BELOW"]

SYMBOL_PATTERN = r"^[A-Z]{1,5}$"


class Alert(BaseModel):
    """Represents a price threshold alert."""

    id: Optional[int] = Field(default=None, description="Database ID")
    symbol: str = Field(..., pattern=SYMBOL_PATTERN, description="Normalized ticker symbol")
    target_price: float = Field(..., gt=0, description="Threshold price")
    condition: AlertCondition = Field(..., description="Fire when price is ABOVE or BELOW target")
    is_active: bool = Field(default=True, description="Whether the alert is evaluated")
    created_at: datetime = Field(
        default_factory=datetime.now, description="Alert creation timestamp"
    )
    updated_at: datetime = Field(
        default_factory=datetime.now, description="Last modification timestamp"
    )
    last_triggered_at: Optional[datetime] = Field(
        default=None, description="When the alert last produced a trigger"
    )

    model_config = {"frozen": True}
