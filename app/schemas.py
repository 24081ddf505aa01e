from datetime import date, datetime
from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import List, Optional

from app.constants import KNOWN_STATUSES


class DisputeRecord(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: Optional[str] = None
    status: str = "new"
    fought_decision: Optional[str] = None
    chargeback_amount: float = Field(default=0.0, ge=0)
    chargeback_amount_usd: Optional[float] = Field(default=None, ge=0)
    chargeback_date: Optional[date] = None
    created_date: Optional[date] = None
    sla_deadline: Optional[date] = None
    reason_code: Optional[str] = None
    reason_category: Optional[str] = None
    card_network: Optional[str] = None
    card_type: Optional[str] = None
    case_type: Optional[str] = None
    merchant_id: Optional[str] = None
    merchant_alias: Optional[str] = None
    processor: Optional[str] = None
    missing_evidence: Optional[str] = None

    @field_validator("status", mode="before")
    @classmethod
    def _coerce_status(cls, value):
        if value is None:
            return "new"
        status = str(value).strip().lower()
        return status if status in KNOWN_STATUSES else "other"

    @field_validator("chargeback_amount", mode="before")
    @classmethod
    def _amount_default(cls, value):
        return 0.0 if value is None else value

    @field_validator("chargeback_date", "created_date", "sla_deadline", mode="before")
    @classmethod
    def _lenient_date(cls, value):
        # Unparsable dates are dropped instead of failing the whole record.
        if value is None or isinstance(value, date):
            return value.date() if isinstance(value, datetime) else value
        if isinstance(value, str):
            try:
                return date.fromisoformat(value.strip()[:10])
            except ValueError:
                return None
        return None

    @field_validator("missing_evidence", mode="before")
    @classmethod
    def _yes_no(cls, value):
        if isinstance(value, bool):
            return "Yes" if value else "No"
        return value

    @property
    def amount_usd(self) -> float:
        if self.chargeback_amount_usd is not None:
            return self.chargeback_amount_usd
        return self.chargeback_amount or 0.0

    @property
    def effective_date(self) -> Optional[date]:
        return self.chargeback_date or self.created_date


class DisputeIntakeResult(BaseModel):
    inserted: int
    ids: List[str]


class MidVolumeIn(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    mid: str
    transaction_count: Optional[int] = Field(default=None, ge=0)
    transaction_amount_usd: Optional[float] = Field(default=None, ge=0)


class MonthBucket(BaseModel):
    year: int
    month: int
    label: str
    count: int = 0
    won: int = 0
    lost: int = 0
    amount_sum: float = 0.0

    @property
    def decided(self) -> int:
        return self.won + self.lost

    @property
    def win_rate(self) -> Optional[float]:
        if self.decided == 0:
            return None
        return round(self.won / self.decided * 100, 1)


class MonthBucketOut(BaseModel):
    label: str
    year: int
    month: int
    count: int
    won: int
    lost: int
    amount_sum: float
    win_rate: Optional[float] = None
    volume_delta_pct: Optional[float] = None


class RiskFactor(BaseModel):
    name: str
    points: int
    detail: str


class RiskAssessment(BaseModel):
    case_id: Optional[str] = None
    score: int
    tier: str
    factors: List[RiskFactor]


class ForecastPoint(BaseModel):
    label: str
    pessimistic_volume: int
    base_volume: int
    optimistic_volume: int
    pessimistic_win_rate: float
    base_win_rate: float
    optimistic_win_rate: float


class TimelinePoint(BaseModel):
    label: str
    actual_volume: Optional[int] = None
    actual_win_rate: Optional[float] = None
    pessimistic_volume: Optional[int] = None
    base_volume: Optional[int] = None
    optimistic_volume: Optional[int] = None
    pessimistic_win_rate: Optional[float] = None
    base_win_rate: Optional[float] = None
    optimistic_win_rate: Optional[float] = None


class TrendResult(BaseModel):
    category: str
    recent_avg: float
    baseline_avg: float
    pct_change: float
    direction: str


class VolumeMomentum(BaseModel):
    smoothed: List[float]
    direction: str


class AnomalyEvent(BaseModel):
    month: str
    metric: str
    value: float
    mean: float
    kind: str


class MidRiskClassification(BaseModel):
    mid: str
    network: Optional[str] = None
    ratio: Optional[float] = None
    tier: str


class MidRiskRow(BaseModel):
    mid: str
    alias: str
    processor: str
    network: str
    cb_count: int
    cb_amount_usd: float
    fraud_cb_count: int
    txn_count: Optional[int] = None
    txn_amount_usd: Optional[float] = None
    cb_count_ratio: Optional[float] = None
    cb_amount_ratio: Optional[float] = None
    fraud_ratio: Optional[float] = None
    tier: str


class MidRiskSummary(BaseModel):
    total: int
    healthy: int
    standard: int
    excessive: int
    unknown: int


class WinRateBreakdown(BaseModel):
    dimension: str
    segment_value: str
    total: int
    won: int
    lost: int
    open: int
    win_rate: Optional[float] = None


class CategoryWinRate(BaseModel):
    category: str
    win_rate: int
    total: int


class InsightSummary(BaseModel):
    total_disputes: int
    won: int
    lost: int
    win_rate: Optional[float] = None
    sla_due_soon: int
    sla_overdue: int
    fraud_pct: float
    not_fought_count: int
    not_fought_amount_usd: float
    best_category: Optional[CategoryWinRate] = None
    worst_category: Optional[CategoryWinRate] = None
    win_rate_delta_pp: Optional[float] = None


class Alert(BaseModel):
    alert_type: str
    severity: str
    description: str
    entity_id: Optional[str] = None
    entity_name: Optional[str] = None
    metric_value: Optional[float] = None
