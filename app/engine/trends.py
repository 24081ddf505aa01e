"""Emerging-category detection, z-score anomalies and smoothed volume momentum."""

import logging
import math
from typing import Dict, List, Sequence

from app.constants import (
    ANOMALY_MIN_POINTS,
    ANOMALY_Z_THRESHOLD,
    TREND_MIN_POINTS,
    TREND_PCT_THRESHOLD,
    TREND_RECENT_WINDOW,
    TREND_TOP_N,
)
from app.engine.forecaster import exponential_smoothing
from app.schemas import AnomalyEvent, MonthBucket, TrendResult, VolumeMomentum

logger = logging.getLogger(__name__)


def _mean(values: Sequence[float]) -> float:
    return sum(values) / len(values)


def detect_emerging_trends(
    category_series: Dict[str, Sequence[int]],
    recent_window: int = TREND_RECENT_WINDOW,
    threshold: float = TREND_PCT_THRESHOLD,
    limit: int = TREND_TOP_N,
) -> List[TrendResult]:
    """Compare the last ``recent_window`` months of each category against the months before them.

    Categories with fewer than four months of history are left out entirely.
    Only moves of at least ``threshold`` percent are reported, largest first.
    """
    results = []
    for category, series in category_series.items():
        if len(series) < max(TREND_MIN_POINTS, recent_window + 1):
            logger.debug("Skipping %r: %d points is too short for trend detection", category, len(series))
            continue
        recent_avg = _mean(series[-recent_window:])
        baseline_avg = _mean(series[:-recent_window])
        pct_change = (recent_avg - baseline_avg) / baseline_avg * 100 if baseline_avg > 0 else 0.0
        if abs(pct_change) < threshold:
            continue
        results.append(TrendResult(
            category=category,
            recent_avg=round(recent_avg, 2),
            baseline_avg=round(baseline_avg, 2),
            pct_change=round(pct_change, 1),
            direction="rising" if pct_change > 0 else "falling",
        ))
    results.sort(key=lambda r: abs(r.pct_change), reverse=True)
    return results[:limit]


def detect_anomalies(values: Sequence[float], threshold: float = ANOMALY_Z_THRESHOLD) -> List[bool]:
    n = len(values)
    if n < ANOMALY_MIN_POINTS:
        return [False] * n
    mean = _mean(values)
    std = math.sqrt(sum((v - mean) ** 2 for v in values) / n)
    if std == 0:
        return [False] * n
    return [abs((v - mean) / std) > threshold for v in values]


def anomaly_events(buckets: Sequence[MonthBucket], threshold: float = ANOMALY_Z_THRESHOLD) -> List[AnomalyEvent]:
    """Spike/drop events for volume, amount and win rate, most recent month first."""
    metrics = {
        "Dispute Volume": [float(b.count) for b in buckets],
        "CB Amount": [round(b.amount_sum, 2) for b in buckets],
        "Win Rate": [b.win_rate if b.win_rate is not None else 0.0 for b in buckets],
    }
    flags = {name: detect_anomalies(values, threshold) for name, values in metrics.items()}
    means = {name: _mean(values) if values else 0.0 for name, values in metrics.items()}

    events = []
    for i, bucket in enumerate(buckets):
        for name, values in metrics.items():
            if not flags[name][i]:
                continue
            events.append(AnomalyEvent(
                month=bucket.label,
                metric=name,
                value=values[i],
                mean=round(means[name], 1),
                kind="spike" if values[i] > means[name] else "drop",
            ))
    events.reverse()
    return events


def volume_momentum(counts: Sequence[float]) -> VolumeMomentum:
    smoothed = exponential_smoothing(counts)
    if len(smoothed) < 2 or smoothed[-1] == smoothed[-2]:
        direction = "flat"
    else:
        direction = "rising" if smoothed[-1] > smoothed[-2] else "falling"
    return VolumeMomentum(smoothed=[round(s, 2) for s in smoothed], direction=direction)
