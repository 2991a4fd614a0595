"""Time helpers shared by the services."""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime, timezone
import math

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def round_half_up(value: float) -> int:
    """Round to the nearest integer with halves going up (2.5 -> 3)."""
    return math.floor(value + 0.5)


def minutes_between(started_at: datetime, ended_at: datetime) -> int:
    return round_half_up((ended_at - started_at).total_seconds() / 60)
