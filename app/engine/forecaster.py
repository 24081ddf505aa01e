"""Volume and win-rate projections over monthly buckets.

A least-squares line is fitted separately to the monthly volume and to the
monthly win rate, and each projected month is expanded into pessimistic, base
and optimistic scenarios using fixed business offsets.
"""

import logging
import math
from dataclasses import dataclass
from typing import List, Sequence

from app.config import get_settings
from app.constants import (
    OPTIMISTIC_VOLUME_MULTIPLIER,
    OPTIMISTIC_WIN_RATE_OFFSET,
    PESSIMISTIC_VOLUME_MULTIPLIER,
    PESSIMISTIC_WIN_RATE_OFFSET,
    SMOOTHING_ALPHA,
)
from app.engine.calendar import Moment, clamp_window, following_months, month_label
from app.schemas import ForecastPoint, MonthBucket, TimelinePoint

logger = logging.getLogger(__name__)


def round_half_up(value: float, digits: int = 0) -> float:
    scale = 10 ** digits
    return math.floor(value * scale + 0.5) / scale


def clamp(value: float, lower: float, upper: float) -> float:
    return max(lower, min(upper, value))


@dataclass(frozen=True)
class LinearTrend:
    slope: float
    intercept: float

    @classmethod
    def fit(cls, values: Sequence[float]) -> "LinearTrend":
        n = len(values)
        if n < 2:
            return cls(slope=0.0, intercept=float(values[0]) if n else 0.0)
        mean_x = (n - 1) / 2
        mean_y = sum(values) / n
        num = sum((x - mean_x) * (y - mean_y) for x, y in enumerate(values))
        den = sum((x - mean_x) ** 2 for x in range(n))
        slope = num / den if den != 0 else 0.0
        return cls(slope=slope, intercept=mean_y - slope * mean_x)

    def value_at(self, x: float) -> float:
        return self.intercept + self.slope * x

    def predict(self, x: float) -> int:
        return max(0, int(round_half_up(self.value_at(x))))


def exponential_smoothing(values: Sequence[float], alpha: float = SMOOTHING_ALPHA) -> List[float]:
    smoothed: List[float] = []
    for y in values:
        smoothed.append(y if not smoothed else alpha * y + (1 - alpha) * smoothed[-1])
    return smoothed


def win_rate_fit_input(buckets: Sequence[MonthBucket]) -> List[float]:
    # Months without decided disputes are fitted as 0% but displayed as unknown.
    return [b.won / b.decided * 100 if b.decided else 0.0 for b in buckets]


def scenario_point(label: str, base_volume: int, base_win_rate: float) -> ForecastPoint:
    return ForecastPoint(
        label=label,
        pessimistic_volume=int(round_half_up(base_volume * PESSIMISTIC_VOLUME_MULTIPLIER)),
        base_volume=base_volume,
        optimistic_volume=int(round_half_up(base_volume * OPTIMISTIC_VOLUME_MULTIPLIER)),
        pessimistic_win_rate=round_half_up(clamp(base_win_rate + PESSIMISTIC_WIN_RATE_OFFSET, 0, 100), 1),
        base_win_rate=base_win_rate,
        optimistic_win_rate=round_half_up(clamp(base_win_rate + OPTIMISTIC_WIN_RATE_OFFSET, 0, 100), 1),
    )


def forecast_scenarios(buckets: Sequence[MonthBucket], horizon: int, now: Moment) -> List[ForecastPoint]:
    horizon = clamp_window(horizon, get_settings().max_horizon_months)
    n = len(buckets)
    volume = LinearTrend.fit([b.count for b in buckets])
    win_rate = LinearTrend.fit(win_rate_fit_input(buckets))
    logger.debug("Volume slope %.3f, win-rate slope %.3f over %d months", volume.slope, win_rate.slope, n)

    points = []
    for i, (year, month) in enumerate(following_months(now, horizon), start=1):
        x = n + i - 1
        base_win_rate = clamp(round_half_up(win_rate.value_at(x), 1), 0, 100)
        points.append(scenario_point(month_label(year, month), volume.predict(x), base_win_rate))
    return points


def combined_timeline(buckets: Sequence[MonthBucket], forecast: Sequence[ForecastPoint]) -> List[TimelinePoint]:
    timeline = [TimelinePoint(label=b.label, actual_volume=b.count, actual_win_rate=b.win_rate) for b in buckets]
    timeline.extend(TimelinePoint(**point.model_dump()) for point in forecast)
    return timeline
