"""Additive 0-100 risk score for disputes that are still open.

Factors are independent and may overlap; the sum is capped rather than
normalised.
"""

from typing import Iterable, List

from app.constants import (
    CLOSED_STATUSES,
    ESCALATED_CASE_POINTS,
    ESCALATED_CASE_TYPES,
    FRAUD_CATEGORY_POINTS,
    FRAUD_REASON_CATEGORY,
    HIGH_AMOUNT_POINTS,
    HIGH_AMOUNT_THRESHOLD_USD,
    MAX_RISK_SCORE,
    MEDIUM_AMOUNT_POINTS,
    MEDIUM_AMOUNT_THRESHOLD_USD,
    MISSING_EVIDENCE_POINTS,
    RISK_TIERS,
    SLA_CRITICAL_DAYS,
    SLA_CRITICAL_POINTS,
    SLA_OVERDUE_POINTS,
    SLA_UNKNOWN_POINTS,
    SLA_WARNING_DAYS,
    SLA_WARNING_POINTS,
)
from app.engine.calendar import Moment, days_until
from app.schemas import DisputeRecord, RiskAssessment, RiskFactor


def risk_tier(score: int) -> str:
    for lower_bound, tier in RISK_TIERS:
        if score >= lower_bound:
            return tier
    return RISK_TIERS[-1][1]


def is_open(record: DisputeRecord) -> bool:
    return record.status not in CLOSED_STATUSES


def _amount_factor(record: DisputeRecord):
    amount = record.amount_usd
    if amount > HIGH_AMOUNT_THRESHOLD_USD:
        return RiskFactor(name="amount", points=HIGH_AMOUNT_POINTS, detail=f"Amount ${amount:,.2f} above ${HIGH_AMOUNT_THRESHOLD_USD:,.0f}")
    if amount > MEDIUM_AMOUNT_THRESHOLD_USD:
        return RiskFactor(name="amount", points=MEDIUM_AMOUNT_POINTS, detail=f"Amount ${amount:,.2f} above ${MEDIUM_AMOUNT_THRESHOLD_USD:,.0f}")
    return None


def _sla_factor(record: DisputeRecord, now: Moment):
    if record.sla_deadline is None:
        return RiskFactor(name="sla", points=SLA_UNKNOWN_POINTS, detail="No SLA deadline recorded")
    days = days_until(record.sla_deadline, now)
    if days < 0:
        return RiskFactor(name="sla", points=SLA_OVERDUE_POINTS, detail=f"SLA overdue by {-days} day(s)")
    if days <= SLA_CRITICAL_DAYS:
        return RiskFactor(name="sla", points=SLA_CRITICAL_POINTS, detail=f"SLA due in {days} day(s)")
    if days <= SLA_WARNING_DAYS:
        return RiskFactor(name="sla", points=SLA_WARNING_POINTS, detail=f"SLA due in {days} day(s)")
    return None


def _category_factor(record: DisputeRecord):
    if record.reason_category == FRAUD_REASON_CATEGORY:
        return RiskFactor(name="category", points=FRAUD_CATEGORY_POINTS, detail="Fraud reason category")
    return None


def _case_type_factor(record: DisputeRecord):
    if (record.case_type or "").strip().lower() in ESCALATED_CASE_TYPES:
        return RiskFactor(name="case_type", points=ESCALATED_CASE_POINTS, detail=f"Escalated case: {record.case_type}")
    return None


def _evidence_factor(record: DisputeRecord):
    if record.missing_evidence == "Yes":
        return RiskFactor(name="evidence", points=MISSING_EVIDENCE_POINTS, detail="Mandatory evidence missing")
    return None


def score_dispute(record: DisputeRecord, now: Moment) -> RiskAssessment:
    factors = [
        factor
        for factor in (
            _amount_factor(record),
            _sla_factor(record, now),
            _category_factor(record),
            _case_type_factor(record),
            _evidence_factor(record),
        )
        if factor is not None
    ]
    score = min(MAX_RISK_SCORE, sum(f.points for f in factors))
    return RiskAssessment(case_id=record.id, score=score, tier=risk_tier(score), factors=factors)


def score_open_disputes(records: Iterable[DisputeRecord], now: Moment) -> List[RiskAssessment]:
    """Score every open dispute, highest risk first."""
    assessments = [score_dispute(r, now) for r in records if is_open(r)]
    return sorted(assessments, key=lambda a: a.score, reverse=True)
