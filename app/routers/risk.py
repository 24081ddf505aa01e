from datetime import datetime
from fastapi import APIRouter, Depends, Query, HTTPException
from sqlalchemy.orm import Session
from typing import List
from app.constants import RISK_TIERS
from app.database import get_db
from app.dependencies import get_now, load_records
from app.engine.risk_scorer import is_open, score_dispute, score_open_disputes
from app.models import Dispute
from app.schemas import DisputeRecord, RiskAssessment

router = APIRouter()

TIER_FLOORS = {tier: floor for floor, tier in RISK_TIERS}


@router.get("/risk-scores", response_model=List[RiskAssessment])
def get_risk_scores(
    min_tier: str = Query("Low", description="Lowest tier to include: Low, Medium, High or Critical"),
    limit: int = Query(50, ge=1, le=500, description="Maximum number of results"),
    offset: int = Query(0, ge=0, description="Number of results to skip"),
    now: datetime = Depends(get_now),
    db: Session = Depends(get_db),
):
    """
    Risk-ranked queue of open disputes (won, lost and not-fought cases are not scored).
    """
    if min_tier not in TIER_FLOORS:
        raise HTTPException(status_code=400, detail=f"min_tier must be one of: {', '.join(TIER_FLOORS)}")
    floor = TIER_FLOORS[min_tier]
    assessments = [a for a in score_open_disputes(load_records(db), now) if a.score >= floor]
    return assessments[offset:offset + limit]


@router.get("/risk-scores/{dispute_id}", response_model=RiskAssessment)
def get_risk_score(dispute_id: str, now: datetime = Depends(get_now), db: Session = Depends(get_db)):
    row = db.get(Dispute, dispute_id)
    if row is None:
        raise HTTPException(status_code=404, detail=f"dispute '{dispute_id}' not found")
    record = DisputeRecord.model_validate(row)
    if not is_open(record):
        raise HTTPException(status_code=409, detail=f"dispute '{dispute_id}' is closed ({record.status}) and is not scored")
    return score_dispute(record, now)
