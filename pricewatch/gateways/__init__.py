"""Push gateways for pricewatch."""

from pricewatch.gateways.base import PushGateway
from pricewatch.gateways.console import ConsoleGateway
from pricewatch.gateways.fcm import FcmGateway

__all__ = [
    "ConsoleGateway",
    "FcmGateway",
    "PushGateway",
]
