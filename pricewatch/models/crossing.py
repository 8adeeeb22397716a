"""Crossing event model."""

from pydantic import BaseModel, Field

from pricewatch.models.alert import Alert


class CrossingEvent(BaseModel):
    """An alert whose condition is satisfied by the current price."""

    alert: Alert = Field(..., description="Alert snapshot read at cycle start")
    actual_price: float = Field(..., ge=0, description="Price that satisfied the condition")

    model_config = {"frozen": True}
