from fastapi import APIRouter, Depends, Query, HTTPException
from sqlalchemy.orm import Session
from sqlalchemy import text
from typing import List
from app.database import get_db
from app.schemas import WinRateBreakdown

router = APIRouter()

DIMENSION_COLUMNS = {
    "reason_category": "reason_category",
    "card_network": "card_network",
    "card_type": "card_type",
    "reason_code": "reason_code",
}


@router.get("/win-rate", response_model=List[WinRateBreakdown])
def get_win_rate(
    dimension: str = Query("reason_category", description="Grouping dimension: reason_category, card_network, card_type or reason_code"),
    limit: int = Query(50, ge=1, le=500, description="Maximum number of results"),
    offset: int = Query(0, ge=0, description="Number of results to skip"),
    db: Session = Depends(get_db),
):
    """
    Return dispute win rate per segment of the chosen dimension.
    Win rate is computed over decided disputes only (won + lost); it is null when none are decided.
    """
    if dimension not in DIMENSION_COLUMNS:
        raise HTTPException(status_code=400, detail=f"dimension must be one of: {', '.join(sorted(DIMENSION_COLUMNS))}")
    col = DIMENSION_COLUMNS[dimension]

    rows = db.execute(text(f"""
        SELECT
            :dimension AS dimension,
            COALESCE({col}, 'Other') AS segment_value,
            COUNT(*) AS total,
            SUM(CASE WHEN status = 'won' THEN 1 ELSE 0 END) AS won,
            SUM(CASE WHEN status = 'lost' THEN 1 ELSE 0 END) AS lost,
            SUM(CASE WHEN status NOT IN ('won', 'lost', 'not_fought') THEN 1 ELSE 0 END) AS open,
            ROUND(
                CAST(SUM(CASE WHEN status = 'won' THEN 1 ELSE 0 END) AS FLOAT)
                / NULLIF(
                    SUM(CASE WHEN status IN ('won', 'lost') THEN 1 ELSE 0 END),
                    0
                ) * 100,
                2
            ) AS win_rate
        FROM disputes
        GROUP BY COALESCE({col}, 'Other')
        ORDER BY win_rate DESC, total DESC
        LIMIT :limit OFFSET :offset
    """), {"dimension": dimension, "limit": limit, "offset": offset}).fetchall()

    return [
        WinRateBreakdown(
            dimension=row[0],
            segment_value=row[1],
            total=row[2],
            won=row[3],
            lost=row[4],
            open=row[5],
            win_rate=row[6],
        )
        for row in rows
    ]
