"""Data models for pricewatch."""

from pricewatch.models.alert import SYMBOL_PATTERN, Alert, AlertCondition
from pricewatch.models.crossing import CrossingEvent
from pricewatch.models.device import DeviceToken
from pricewatch.models.notification import (
    DeliveryReport,
    DeliveryStatus,
    NotificationPayload,
)
from pricewatch.models.price import CachedPrice, PriceLookup, PriceQuote
from pricewatch.models.stats import DashboardStats
from pricewatch.models.triggered import TriggeredAlert

__all__ = [
    "Alert",
    "AlertCondition",
    "CachedPrice",
    "CrossingEvent",
    "DashboardStats",
    "DeliveryReport",
    "DeliveryStatus",
    "DeviceToken",
    "NotificationPayload",
    "PriceLookup",
    "PriceQuote",
    "SYMBOL_PATTERN",
    "TriggeredAlert",
]
