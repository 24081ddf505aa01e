import logging
import uuid
from fastapi import APIRouter, Depends, Query, HTTPException
from sqlalchemy.orm import Session
from typing import List
from app.database import get_db
from app.models import Dispute
from app.schemas import DisputeRecord, DisputeIntakeResult

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/disputes", response_model=DisputeIntakeResult, status_code=201)
def create_disputes(records: List[DisputeRecord], db: Session = Depends(get_db)):
    """
    Bulk intake of dispute records. Records without an id get a generated one;
    an existing id is overwritten with the new values.
    """
    ids = []
    for record in records:
        values = record.model_dump()
        values["id"] = record.id or str(uuid.uuid4())
        db.merge(Dispute(**values))
        ids.append(values["id"])
    db.commit()
    logger.info("Stored %d dispute records", len(ids))
    return DisputeIntakeResult(inserted=len(ids), ids=ids)


@router.get("/disputes", response_model=List[DisputeRecord])
def list_disputes(
    status: str = Query(None, description="Only disputes with this status"),
    limit: int = Query(50, ge=1, le=500, description="Maximum number of results"),
    offset: int = Query(0, ge=0, description="Number of results to skip"),
    db: Session = Depends(get_db),
):
    query = db.query(Dispute)
    if status:
        query = query.filter(Dispute.status == status)
    rows = query.order_by(Dispute.created_date.desc(), Dispute.id).limit(limit).offset(offset).all()
    return [DisputeRecord.model_validate(row) for row in rows]


@router.get("/disputes/{dispute_id}", response_model=DisputeRecord)
def get_dispute(dispute_id: str, db: Session = Depends(get_db)):
    row = db.get(Dispute, dispute_id)
    if row is None:
        raise HTTPException(status_code=404, detail=f"dispute '{dispute_id}' not found")
    return DisputeRecord.model_validate(row)
