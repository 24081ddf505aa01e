"""Monthly and per-category rollups of dispute records.

Every series returned here covers the full requested window, zero-filled, so
that callers can line series up index by index.
"""

import logging
from typing import Callable, Dict, Iterable, List, Optional

from app.config import get_settings
from app.engine.calendar import Moment, month_label, month_window
from app.schemas import DisputeRecord, MonthBucket

logger = logging.getLogger(__name__)

CategoryFn = Callable[[DisputeRecord], Optional[str]]


def by_reason_category(record: DisputeRecord) -> str:
    return record.reason_category or "Other"


def by_card_network(record: DisputeRecord) -> str:
    return record.card_network or "Other"


def by_card_type(record: DisputeRecord) -> str:
    return record.card_type or "Other"


def by_merchant_id(record: DisputeRecord) -> str:
    return record.merchant_id or "Unknown"


CATEGORY_EXTRACTORS: Dict[str, CategoryFn] = {
    "reason_category": by_reason_category,
    "card_network": by_card_network,
    "card_type": by_card_type,
    "merchant_id": by_merchant_id,
}


def aggregate_by_month(records: Iterable[DisputeRecord], now: Moment, months: int) -> List[MonthBucket]:
    window = month_window(now, months)
    buckets = {key: MonthBucket(year=key[0], month=key[1], label=month_label(*key)) for key in window}

    skipped = 0
    for record in records:
        when = record.effective_date
        if when is None:
            skipped += 1
            continue
        bucket = buckets.get((when.year, when.month))
        if bucket is None:
            continue
        bucket.count += 1
        bucket.amount_sum += record.amount_usd
        if record.status == "won":
            bucket.won += 1
        elif record.status == "lost":
            bucket.lost += 1

    if skipped:
        logger.debug("Excluded %d undated records from monthly buckets", skipped)
    return [buckets[key] for key in window]


def aggregate_by_category(
    records: Iterable[DisputeRecord],
    category_fn: CategoryFn,
    now: Moment,
    months: int,
) -> Dict[str, List[int]]:
    window = month_window(now, months)
    position = {key: i for i, key in enumerate(window)}
    series: Dict[str, List[int]] = {}

    for record in records:
        when = record.effective_date
        if when is None:
            continue
        index = position.get((when.year, when.month))
        if index is None:
            continue
        category = category_fn(record) or "Other"
        series.setdefault(category, [0] * len(window))[index] += 1

    limit = get_settings().max_categories
    if len(series) > limit:
        logger.debug("Keeping the %d largest of %d categories", limit, len(series))
        ranked = sorted(series.items(), key=lambda item: sum(item[1]), reverse=True)[:limit]
        series = dict(ranked)
    return series


def month_over_month_delta(current: float, previous: float) -> Optional[float]:
    if not previous:
        return None
    return round((current - previous) / previous * 100, 1)
