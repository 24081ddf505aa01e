from datetime import datetime
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from app.config import get_settings
from app.database import get_db
from app.dependencies import get_now, load_records
from app.engine.insights import build_insight_summary
from app.schemas import InsightSummary

router = APIRouter()


@router.get("/insights", response_model=InsightSummary)
def get_insights(now: datetime = Depends(get_now), db: Session = Depends(get_db)):
    """
    Headline numbers for the dispute portfolio: win rate and its latest month-over-month move,
    SLA pressure on open disputes, fraud share, not-fought exposure, and best/weakest reason categories.
    """
    return build_insight_summary(load_records(db), now, get_settings().default_window_months)
