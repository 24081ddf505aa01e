"""Per-MID chargeback ratios against the card-network monitoring thresholds.

Transaction volumes are not part of the dispute record; they come from a
side table supplied by the caller. Without a volume the ratio is ``None`` and
the tier is ``"unknown"``, never a 0% ratio.
"""

import csv
import io
from typing import Dict, Iterable, List, Mapping, Optional

from app.constants import DEFAULT_VAMP_NETWORK, MID_HEALTH_CSV_HEADERS, VAMP_THRESHOLDS
from app.schemas import DisputeRecord, MidRiskClassification, MidRiskRow, MidRiskSummary, MidVolumeIn

RISK_TIERS = ("healthy", "standard", "excessive", "unknown")


def thresholds_for(network: Optional[str]) -> Dict[str, float]:
    # Anything that is not Mastercard is held to the Visa thresholds.
    key = (network or "").strip().lower()
    return VAMP_THRESHOLDS.get(key, VAMP_THRESHOLDS[DEFAULT_VAMP_NETWORK])


def tier_for_ratio(ratio: Optional[float], network: Optional[str]) -> str:
    if ratio is None:
        return "unknown"
    limits = thresholds_for(network)
    if ratio >= limits["excessive"]:
        return "excessive"
    if ratio >= limits["standard"]:
        return "standard"
    return "healthy"


def _ratio(numerator: float, denominator: Optional[float]) -> Optional[float]:
    return numerator / denominator if denominator else None


def classify_mid_risk(mid: str, network: Optional[str], cb_count: int, txn_count: Optional[int]) -> MidRiskClassification:
    ratio = _ratio(cb_count, txn_count)
    return MidRiskClassification(mid=mid, network=network, ratio=ratio, tier=tier_for_ratio(ratio, network))


def _is_fraud(record: DisputeRecord) -> bool:
    return "fraud" in (record.reason_category or "").lower()


def build_mid_rows(records: Iterable[DisputeRecord], volumes: Mapping[str, MidVolumeIn]) -> List[MidRiskRow]:
    totals: Dict[str, dict] = {}
    for record in records:
        mid = record.merchant_id or "Unknown"
        row = totals.setdefault(mid, {
            "alias": record.merchant_alias or mid,
            "processor": record.processor or "—",
            "network": record.card_network or "—",
            "cb_count": 0,
            "cb_amount_usd": 0.0,
            "fraud_cb_count": 0,
        })
        row["cb_count"] += 1
        row["cb_amount_usd"] += record.chargeback_amount_usd or 0.0
        if _is_fraud(record):
            row["fraud_cb_count"] += 1

    rows = []
    for mid, row in totals.items():
        volume = volumes.get(mid)
        txn_count = (volume.transaction_count or None) if volume else None
        txn_amount = (volume.transaction_amount_usd or None) if volume else None
        classification = classify_mid_risk(mid, row["network"], row["cb_count"], txn_count)
        rows.append(MidRiskRow(
            mid=mid,
            alias=row["alias"],
            processor=row["processor"],
            network=row["network"],
            cb_count=row["cb_count"],
            cb_amount_usd=round(row["cb_amount_usd"], 2),
            fraud_cb_count=row["fraud_cb_count"],
            txn_count=txn_count,
            txn_amount_usd=txn_amount,
            cb_count_ratio=classification.ratio,
            cb_amount_ratio=_ratio(row["cb_amount_usd"], txn_amount),
            fraud_ratio=_ratio(row["fraud_cb_count"], txn_count),
            tier=classification.tier,
        ))
    return rows


def sort_mid_rows(rows: Iterable[MidRiskRow], sort_by: str = "cb_count_ratio", descending: bool = True) -> List[MidRiskRow]:
    """Sort by a numeric column; rows where it is unknown always go last."""
    rows = list(rows)
    known = [r for r in rows if getattr(r, sort_by) is not None]
    unknown = [r for r in rows if getattr(r, sort_by) is None]
    return sorted(known, key=lambda r: getattr(r, sort_by), reverse=descending) + unknown


def summarize_mid_rows(rows: Iterable[MidRiskRow]) -> MidRiskSummary:
    counts = {tier: 0 for tier in RISK_TIERS}
    total = 0
    for row in rows:
        total += 1
        counts[row.tier] += 1
    return MidRiskSummary(total=total, **counts)


def _pct(ratio: Optional[float]) -> str:
    return "" if ratio is None else f"{ratio * 100:.4f}"


def _cell(value) -> str:
    return "" if value is None else str(value)


def mid_rows_to_csv(rows: Iterable[MidRiskRow]) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(MID_HEALTH_CSV_HEADERS)
    for r in rows:
        writer.writerow([
            r.mid, r.alias, r.processor, r.network, _cell(r.txn_count), _cell(r.txn_amount_usd),
            r.cb_count, r.cb_amount_usd, _pct(r.cb_count_ratio), _pct(r.cb_amount_ratio),
            r.fraud_cb_count, r.cb_amount_usd, r.tier,
        ])
    return buffer.getvalue()
