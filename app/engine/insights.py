import logging
from typing import List, Optional, Sequence, Tuple

from app.constants import FRAUD_REASON_CATEGORY, INSIGHT_TOP_CATEGORIES, SLA_DUE_SOON_DAYS
from app.engine.aggregator import aggregate_by_month, by_reason_category
from app.engine.calendar import Moment, days_until
from app.engine.forecaster import round_half_up
from app.engine.risk_scorer import is_open
from app.schemas import CategoryWinRate, DisputeRecord, InsightSummary

logger = logging.getLogger(__name__)


def category_win_rates(records: Sequence[DisputeRecord]) -> List[CategoryWinRate]:
    """Share of won disputes per reason category (over all disputes, not only decided ones)."""
    totals = {}
    for record in records:
        category = by_reason_category(record)
        won, total = totals.get(category, (0, 0))
        totals[category] = (won + (record.status == "won"), total + 1)
    rates = [
        CategoryWinRate(category=category, win_rate=int(round_half_up(won / total * 100)), total=total)
        for category, (won, total) in totals.items()
    ]
    return sorted(rates, key=lambda r: r.win_rate, reverse=True)


def best_and_worst_categories(
    rates: Sequence[CategoryWinRate],
) -> Tuple[Optional[CategoryWinRate], Optional[CategoryWinRate]]:
    """Best and weakest of the top categories; no best unless some category has a win above 0%."""
    top = list(rates)[:INSIGHT_TOP_CATEGORIES]
    if not top:
        return None, None
    best = top[0] if top[0].win_rate > 0 else None
    worst = min(top, key=lambda r: r.win_rate)
    if worst is best:
        worst = None
    return best, worst


def build_insight_summary(records: Sequence[DisputeRecord], now: Moment, months: int) -> InsightSummary:
    records = list(records)
    won = sum(1 for r in records if r.status == "won")
    lost = sum(1 for r in records if r.status == "lost")

    due_soon = overdue = 0
    for record in records:
        if record.sla_deadline is None or not is_open(record):
            continue
        days = days_until(record.sla_deadline, now)
        if days < 0:
            overdue += 1
        elif days <= SLA_DUE_SOON_DAYS:
            due_soon += 1

    not_fought = [r for r in records if r.fought_decision == "not_fought"]
    fraud = sum(1 for r in records if r.reason_category == FRAUD_REASON_CATEGORY)

    best, worst = best_and_worst_categories(category_win_rates(records))

    buckets = aggregate_by_month(records, now, months)
    delta = None
    if len(buckets) >= 2:
        delta = round((buckets[-1].win_rate or 0.0) - (buckets[-2].win_rate or 0.0), 1)

    logger.debug("Insight summary over %d records: %d due soon, %d overdue", len(records), due_soon, overdue)
    return InsightSummary(
        total_disputes=len(records),
        won=won,
        lost=lost,
        win_rate=round(won / (won + lost) * 100, 1) if won + lost else None,
        sla_due_soon=due_soon,
        sla_overdue=overdue,
        fraud_pct=round(fraud / len(records) * 100, 1) if records else 0.0,
        not_fought_count=len(not_fought),
        not_fought_amount_usd=round(sum(r.amount_usd for r in not_fought), 2),
        best_category=best,
        worst_category=worst,
        win_rate_delta_pp=delta,
    )
