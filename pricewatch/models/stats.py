"""Dashboard statistics model."""

from pydantic import BaseModel, Field


class DashboardStats(BaseModel):
    """Alert and trigger counts."""

    total_alerts: int = Field(..., ge=0)
    active_alerts: int = Field(..., ge=0)
    triggered_today: int = Field(..., ge=0)
    total_triggered: int = Field(..., ge=0)

    model_config = {"frozen": True}
