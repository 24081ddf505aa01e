from datetime import datetime, timedelta
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from sqlalchemy import text
from typing import List
from app.constants import HIGH_AMOUNT_THRESHOLD_USD, SLA_DUE_SOON_DAYS
from app.database import get_db
from app.dependencies import get_now, load_records, load_volumes
from app.engine.vamp import build_mid_rows
from app.schemas import Alert

router = APIRouter()

OPEN_FILTER = "status NOT IN ('won', 'lost', 'not_fought')"


@router.get("/alerts", response_model=List[Alert])
def get_alerts(
    high_value_threshold: float = Query(HIGH_AMOUNT_THRESHOLD_USD, ge=0, description="USD amount above which an open dispute is flagged"),
    now: datetime = Depends(get_now),
    db: Session = Depends(get_db),
):
    alerts = []
    today = now.date()

    overdue_rows = db.execute(text(f"""
        SELECT id, merchant_alias, sla_deadline
        FROM disputes
        WHERE sla_deadline IS NOT NULL
          AND sla_deadline < :today
          AND {OPEN_FILTER}
        ORDER BY sla_deadline ASC
    """), {"today": today.isoformat()}).fetchall()

    for row in overdue_rows:
        alerts.append(Alert(
            alert_type="SLA_OVERDUE",
            severity="HIGH",
            description=f"Dispute {row[0]} passed its SLA deadline on {row[2]}",
            entity_id=row[0],
            entity_name=row[1],
        ))

    due_rows = db.execute(text(f"""
        SELECT id, merchant_alias, sla_deadline
        FROM disputes
        WHERE sla_deadline IS NOT NULL
          AND sla_deadline >= :today
          AND sla_deadline <= :horizon
          AND {OPEN_FILTER}
        ORDER BY sla_deadline ASC
    """), {"today": today.isoformat(), "horizon": (today + timedelta(days=SLA_DUE_SOON_DAYS)).isoformat()}).fetchall()

    for row in due_rows:
        alerts.append(Alert(
            alert_type="SLA_DUE_SOON",
            severity="MEDIUM",
            description=f"Dispute {row[0]} is due on {row[2]} (within {SLA_DUE_SOON_DAYS} days)",
            entity_id=row[0],
            entity_name=row[1],
        ))

    high_value_rows = db.execute(text(f"""
        SELECT
            id,
            merchant_alias,
            ROUND(COALESCE(chargeback_amount_usd, chargeback_amount), 2) AS amount_usd
        FROM disputes
        WHERE COALESCE(chargeback_amount_usd, chargeback_amount) > :threshold
          AND {OPEN_FILTER}
        ORDER BY amount_usd DESC
    """), {"threshold": high_value_threshold}).fetchall()

    for row in high_value_rows:
        alerts.append(Alert(
            alert_type="HIGH_VALUE_DISPUTE",
            severity="HIGH",
            description=f"High-value open dispute ${row[2]:.2f} USD ({row[0]})",
            entity_id=row[0],
            entity_name=row[1],
            metric_value=row[2],
        ))

    for row in build_mid_rows(load_records(db), load_volumes(db)):
        if row.tier not in ("standard", "excessive"):
            continue
        alerts.append(Alert(
            alert_type="VAMP_EXCESSIVE" if row.tier == "excessive" else "VAMP_STANDARD",
            severity="HIGH" if row.tier == "excessive" else "MEDIUM",
            description=f"MID '{row.alias}' chargeback ratio is {row.cb_count_ratio * 100:.2f}% on {row.network}",
            entity_id=row.mid,
            entity_name=row.alias,
            metric_value=round(row.cb_count_ratio * 100, 4),
        ))

    return alerts
