from datetime import datetime
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import List
from app.config import get_settings
from app.database import get_db
from app.dependencies import get_now, load_records
from app.engine.aggregator import aggregate_by_month
from app.engine.forecaster import combined_timeline, forecast_scenarios
from app.schemas import ForecastPoint, TimelinePoint

router = APIRouter()


def _history_and_forecast(db: Session, now: datetime, months: int, horizon: int):
    settings = get_settings()
    buckets = aggregate_by_month(load_records(db), now, months or settings.default_window_months)
    forecast = forecast_scenarios(buckets, horizon or settings.forecast_horizon_months, now)
    return buckets, forecast


@router.get("/forecast", response_model=List[ForecastPoint])
def get_forecast(
    months: int = Query(None, ge=1, description="Trailing months the trend is fitted on"),
    horizon: int = Query(None, ge=1, description="Months to project"),
    now: datetime = Depends(get_now),
    db: Session = Depends(get_db),
):
    """
    Pessimistic / base / optimistic projections of dispute volume and win rate for the coming months.
    """
    _, forecast = _history_and_forecast(db, now, months, horizon)
    return forecast


@router.get("/forecast/timeline", response_model=List[TimelinePoint])
def get_forecast_timeline(
    months: int = Query(None, ge=1, description="Trailing months the trend is fitted on"),
    horizon: int = Query(None, ge=1, description="Months to project"),
    now: datetime = Depends(get_now),
    db: Session = Depends(get_db),
):
    """
    Historical actuals followed by forecast points, as one continuous series for charting.
    """
    buckets, forecast = _history_and_forecast(db, now, months, horizon)
    return combined_timeline(buckets, forecast)
