import logging
from fastapi import APIRouter, Depends, Query, HTTPException
from fastapi.responses import Response
from sqlalchemy.orm import Session
from typing import List
from app.database import get_db
from app.dependencies import load_records, load_volumes
from app.engine.vamp import RISK_TIERS, build_mid_rows, mid_rows_to_csv, sort_mid_rows, summarize_mid_rows
from app.models import MidVolume
from app.schemas import MidRiskRow, MidRiskSummary, MidVolumeIn

router = APIRouter()
logger = logging.getLogger(__name__)

SORT_FIELDS = {"cb_count_ratio", "cb_amount_ratio", "fraud_ratio", "cb_count", "cb_amount_usd", "txn_count"}


def _filtered_rows(db: Session, network: str, tier: str, sort_by: str, descending: bool) -> List[MidRiskRow]:
    if tier and tier not in RISK_TIERS:
        raise HTTPException(status_code=400, detail=f"tier must be one of: {', '.join(RISK_TIERS)}")
    if sort_by not in SORT_FIELDS:
        raise HTTPException(status_code=400, detail=f"sort_by must be one of: {', '.join(sorted(SORT_FIELDS))}")
    rows = build_mid_rows(load_records(db), load_volumes(db))
    rows = [r for r in rows if (not network or r.network == network) and (not tier or r.tier == tier)]
    return sort_mid_rows(rows, sort_by, descending)


@router.put("/mid-volumes", response_model=List[MidVolumeIn])
def upsert_mid_volumes(volumes: List[MidVolumeIn], db: Session = Depends(get_db)):
    """
    Record the transaction count and amount per MID for the reporting period.
    """
    for volume in volumes:
        db.merge(MidVolume(**volume.model_dump()))
    db.commit()
    logger.info("Upserted transaction volumes for %d MIDs", len(volumes))
    return volumes


@router.get("/mid-volumes", response_model=List[MidVolumeIn])
def list_mid_volumes(db: Session = Depends(get_db)):
    return list(load_volumes(db).values())


@router.get("/mid-health", response_model=List[MidRiskRow])
def get_mid_health(
    network: str = Query(None, description="Only MIDs on this card network"),
    tier: str = Query(None, description="Only MIDs in this tier: healthy, standard, excessive or unknown"),
    sort_by: str = Query("cb_count_ratio", description="Numeric column to sort on"),
    descending: bool = Query(True, description="Sort direction"),
    db: Session = Depends(get_db),
):
    """
    Chargeback ratio per MID against the VAMP thresholds.
    Ratios are null (tier `unknown`) for MIDs without recorded transaction volume.
    """
    return _filtered_rows(db, network, tier, sort_by, descending)


@router.get("/mid-health/summary", response_model=MidRiskSummary)
def get_mid_health_summary(db: Session = Depends(get_db)):
    return summarize_mid_rows(build_mid_rows(load_records(db), load_volumes(db)))


@router.get("/mid-health/export")
def export_mid_health(
    network: str = Query(None, description="Only MIDs on this card network"),
    tier: str = Query(None, description="Only MIDs in this tier"),
    sort_by: str = Query("cb_count_ratio", description="Numeric column to sort on"),
    descending: bool = Query(True, description="Sort direction"),
    db: Session = Depends(get_db),
):
    rows = _filtered_rows(db, network, tier, sort_by, descending)
    return Response(
        content=mid_rows_to_csv(rows),
        media_type="text/csv",
        headers={"Content-Disposition": "attachment; filename=mid_health_report.csv"},
    )
