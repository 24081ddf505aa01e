"""Month arithmetic shared by the aggregator, forecaster and detectors."""

import logging
import math
from datetime import date, datetime, time
from typing import List, Optional, Tuple, Union

from app.config import get_settings
from app.constants import MONTH_ABBREVIATIONS

logger = logging.getLogger(__name__)

Moment = Union[date, datetime]


def as_datetime(moment: Moment) -> datetime:
    if isinstance(moment, datetime):
        return moment.replace(tzinfo=None)
    return datetime.combine(moment, time())


def shift_month(year: int, month: int, offset: int) -> Tuple[int, int]:
    index = year * 12 + (month - 1) + offset
    return index // 12, index % 12 + 1


def month_label(year: int, month: int) -> str:
    return f"{MONTH_ABBREVIATIONS[month - 1]}-{str(year)[2:]}"


def clamp_window(months: int, upper: Optional[int] = None) -> int:
    upper = upper or get_settings().max_window_months
    if months > upper:
        logger.debug("Clamping window of %d months to %d", months, upper)
        return upper
    return max(0, months)


def month_window(now: Moment, months: int) -> List[Tuple[int, int]]:
    """Trailing ``months`` calendar months ending at the month of ``now``, oldest first."""
    months = clamp_window(months)
    return [shift_month(now.year, now.month, -(months - 1 - i)) for i in range(months)]


def following_months(now: Moment, count: int) -> List[Tuple[int, int]]:
    return [shift_month(now.year, now.month, i) for i in range(1, count + 1)]


def days_until(deadline: date, now: Moment) -> int:
    """Whole days until ``deadline`` (midnight), rounded up; negative once overdue."""
    delta = as_datetime(deadline) - as_datetime(now)
    return math.ceil(delta.total_seconds() / 86400)
