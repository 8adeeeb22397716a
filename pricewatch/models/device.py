"""Device token data model."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class DeviceToken(BaseModel):
    """A push notification registration for one device."""

    id: Optional[int] = Field(default=None, description="Database ID")
    token: str = Field(..., min_length=1, description="Opaque push token")
    user_id: Optional[str] = Field(default=None, description="Owning user, if known")
    is_active: bool = Field(default=True, description="Whether the token is targeted")
    created_at: datetime = Field(default_factory=datetime.now)
    updated_at: datetime = Field(default_factory=datetime.now)

    model_config = {"frozen": True}
