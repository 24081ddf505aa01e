from datetime import date, datetime
from typing import Dict, List, Optional

from fastapi import Query
from sqlalchemy.orm import Session

from app.engine.calendar import as_datetime
from app.models import Dispute, MidVolume
from app.schemas import DisputeRecord, MidVolumeIn


def get_now(
    as_of: Optional[date] = Query(None, description="Evaluate as of this date (defaults to now)"),
) -> datetime:
    return as_datetime(as_of) if as_of is not None else datetime.now()


def load_records(db: Session) -> List[DisputeRecord]:
    return [DisputeRecord.model_validate(row) for row in db.query(Dispute).all()]


def load_volumes(db: Session) -> Dict[str, MidVolumeIn]:
    return {row.mid: MidVolumeIn.model_validate(row) for row in db.query(MidVolume).all()}
