# app/core/utils.py
import math
from datetime import datetime, timezone
from typing import Optional

# Float noise allowed when comparing summed hours (1.1 + 2.2 vs 3.3)
HOURS_EPSILON = 1e-9


def utcnow() -> datetime:
    """Server clock as a naive UTC datetime (the storage convention)"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is None:
        return None
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def round2(value: Optional[float]) -> float:
    """Two-decimal rounding used for every numeric output"""
    if value is None:
        return 0.0
    return round(float(value), 2)


def round_half_up(value: float) -> int:
    """Nearest integer with .5 rounded away from zero"""
    if value < 0:
        return -int(math.floor(-value + 0.5))
    return int(math.floor(value + 0.5))


def exceeds_hours(total: float, limit: float) -> bool:
    """Strict hour comparison that tolerates float summation noise only"""
    return float(total) > float(limit) + HOURS_EPSILON


def format_hours(value: float, places: int = 2) -> str:
    """Compact display of an hour amount: 3 -> '3', 2.5 -> '2.5'"""
    if value is None:
        return "0"
    return f"{round(float(value), places):g}"
