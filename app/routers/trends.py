from datetime import date, datetime
from fastapi import APIRouter, Depends, Query, HTTPException
from sqlalchemy.orm import Session
from typing import List
from app.config import get_settings
from app.constants import ANOMALY_Z_THRESHOLD
from app.database import get_db
from app.dependencies import get_now, load_records
from app.engine.aggregator import CATEGORY_EXTRACTORS, aggregate_by_category, aggregate_by_month, month_over_month_delta
from app.engine.calendar import shift_month
from app.engine.trends import anomaly_events, detect_emerging_trends, volume_momentum
from app.schemas import AnomalyEvent, MonthBucketOut, TrendResult, VolumeMomentum

router = APIRouter()


@router.get("/trends", response_model=List[MonthBucketOut])
def get_trends(
    months: int = Query(None, ge=1, description="Trailing months to return (defaults to the configured window)"),
    now: datetime = Depends(get_now),
    db: Session = Depends(get_db),
):
    """
    Monthly dispute volume, amount and win rate for the trailing window, oldest first.
    Months without activity are returned with zero counts; win rate is null when nothing was decided.
    """
    records = load_records(db)
    buckets = aggregate_by_month(records, now, months or get_settings().default_window_months)
    if not buckets:
        return []

    # The month before the window gives the oldest bucket its month-over-month delta.
    year, month = shift_month(buckets[0].year, buckets[0].month, -1)
    previous = aggregate_by_month(records, date(year, month, 1), 1)

    result = []
    for prev, b in zip(previous + buckets, buckets):
        result.append(MonthBucketOut(
            label=b.label,
            year=b.year,
            month=b.month,
            count=b.count,
            won=b.won,
            lost=b.lost,
            amount_sum=round(b.amount_sum, 2),
            win_rate=b.win_rate,
            volume_delta_pct=month_over_month_delta(b.count, prev.count),
        ))
    return result


@router.get("/trends/emerging", response_model=List[TrendResult])
def get_emerging_trends(
    dimension: str = Query("reason_category", description="Grouping dimension: reason_category, card_network, card_type or merchant_id"),
    months: int = Query(None, ge=4, description="Trailing months to compare (defaults to the configured window)"),
    now: datetime = Depends(get_now),
    db: Session = Depends(get_db),
):
    """
    Categories whose last two months moved at least 15% against the months before them (top 5).
    """
    if dimension not in CATEGORY_EXTRACTORS:
        raise HTTPException(status_code=400, detail=f"dimension must be one of: {', '.join(sorted(CATEGORY_EXTRACTORS))}")
    series = aggregate_by_category(
        load_records(db), CATEGORY_EXTRACTORS[dimension], now, months or get_settings().default_window_months
    )
    return detect_emerging_trends(series)


@router.get("/trends/momentum", response_model=VolumeMomentum)
def get_volume_momentum(now: datetime = Depends(get_now), db: Session = Depends(get_db)):
    buckets = aggregate_by_month(load_records(db), now, get_settings().default_window_months)
    return volume_momentum([b.count for b in buckets])


@router.get("/anomalies", response_model=List[AnomalyEvent])
def get_anomalies(
    threshold: float = Query(ANOMALY_Z_THRESHOLD, gt=0, description="Z-score above which a month is flagged"),
    now: datetime = Depends(get_now),
    db: Session = Depends(get_db),
):
    """
    Months whose volume, amount or win rate deviates from the window mean by more than `threshold` standard deviations.
    Most recent month first.
    """
    buckets = aggregate_by_month(load_records(db), now, get_settings().anomaly_window_months)
    return anomaly_events(buckets, threshold)
