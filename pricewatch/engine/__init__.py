"""Price cache and alert evaluation engine."""

from pricewatch.engine.builder import Engine, build_engine
from pricewatch.engine.cycle import CycleReport, EvaluationCycle, run_periodically
from pricewatch.engine.fanout import NotificationFanout, build_payload
from pricewatch.engine.matcher import AlertMatcher, is_crossed
from pricewatch.engine.price_cache import (
    PriceCache,
    is_valid_symbol,
    normalize_symbol,
    validate_symbol,
)
from pricewatch.engine.rate_limiter import RateLimiter
from pricewatch.engine.recorder import TriggerRecorder

__all__ = [
    "AlertMatcher",
    "CycleReport",
    "Engine",
    "EvaluationCycle",
    "NotificationFanout",
    "PriceCache",
    "RateLimiter",
    "TriggerRecorder",
    "build_engine",
    "build_payload",
    "is_crossed",
    "is_valid_symbol",
    "normalize_symbol",
    "run_periodically",
    "validate_symbol",
]
