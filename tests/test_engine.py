import itertools
from datetime import date, datetime, timedelta

import pytest

from app.config import get_settings
from app.engine.aggregator import aggregate_by_category, aggregate_by_month, by_reason_category, month_over_month_delta
from app.engine.calendar import days_until, month_window
from app.engine.forecaster import (
    LinearTrend,
    combined_timeline,
    exponential_smoothing,
    forecast_scenarios,
    scenario_point,
)
from app.engine.insights import best_and_worst_categories, build_insight_summary
from app.engine.risk_scorer import risk_tier, score_dispute, score_open_disputes
from app.engine.trends import anomaly_events, detect_anomalies, detect_emerging_trends, volume_momentum
from app.engine.vamp import build_mid_rows, classify_mid_risk, mid_rows_to_csv, summarize_mid_rows
from app.schemas import CategoryWinRate, DisputeRecord, MidVolumeIn, MonthBucket

NOW = datetime(2025, 6, 15, 12, 0, 0)


def _record(**values):
    values.setdefault("status", "in_progress")
    return DisputeRecord(**values)


def _bucket(month, count, won=0, lost=0):
    return MonthBucket(year=2025, month=month, label=f"M{month}", count=count, won=won, lost=lost)


# --- DisputeRecord ---

def test_record_tolerates_bad_values():
    record = DisputeRecord(
        status="Escalated",
        chargeback_date="not-a-date",
        created_date="2025-03-04T10:00:00.000Z",
        sla_deadline=12345,
        missing_evidence=True,
    )
    assert record.status == "other"
    assert record.chargeback_date is None
    assert record.created_date == date(2025, 3, 4)
    assert record.effective_date == date(2025, 3, 4)
    assert record.sla_deadline is None
    assert record.missing_evidence == "Yes"


def test_record_prefers_usd_amount():
    assert _record(chargeback_amount=100, chargeback_amount_usd=120).amount_usd == 120
    assert _record(chargeback_amount=100).amount_usd == 100


# --- Aggregator ---

def test_month_window_crosses_year_boundary():
    assert month_window(date(2025, 2, 10), 4) == [(2024, 11), (2024, 12), (2025, 1), (2025, 2)]


@pytest.mark.parametrize("records", [[], [_record(chargeback_date=date(2025, 6, 1))]])
def test_aggregate_by_month_is_fixed_length(records):
    buckets = aggregate_by_month(records, NOW, 6)
    assert len(buckets) == 6
    assert [b.label for b in buckets] == ["Jan-25", "Feb-25", "Mar-25", "Apr-25", "May-25", "Jun-25"]
    assert sum(b.count for b in buckets) == len(records)


def test_aggregate_by_month_counts_and_fallback_dates():
    records = [
        _record(status="won", chargeback_date=date(2025, 5, 2), chargeback_amount=100),
        _record(status="lost", created_date=date(2025, 5, 20), chargeback_amount=50, chargeback_amount_usd=60),
        _record(status="new", chargeback_date=date(2025, 6, 1), created_date=date(2025, 3, 1)),
        _record(status="won"),
        _record(status="won", chargeback_date=date(2023, 1, 1)),
    ]
    buckets = aggregate_by_month(records, NOW, 3)
    may, june = buckets[1], buckets[2]
    assert (may.count, may.won, may.lost, may.amount_sum) == (2, 1, 1, 160)
    assert may.win_rate == 50.0
    assert june.count == 1
    assert june.win_rate is None
    assert buckets[0].count == 0


def test_aggregate_by_month_empty_window():
    assert aggregate_by_month([_record(chargeback_date=date(2025, 6, 1))], NOW, 0) == []


def test_aggregate_by_category_aligned_series():
    records = [
        _record(reason_category="Fraudulent Transaction", chargeback_date=date(2025, 6, 3)),
        _record(reason_category="Fraudulent Transaction", chargeback_date=date(2025, 4, 3)),
        _record(chargeback_date=date(2025, 5, 3)),
        _record(reason_category="Not as Described"),
    ]
    series = aggregate_by_category(records, by_reason_category, NOW, 3)
    assert series == {"Fraudulent Transaction": [1, 0, 1], "Other": [0, 1, 0]}


def test_month_over_month_delta():
    assert month_over_month_delta(15, 10) == 50.0
    assert month_over_month_delta(5, 0) is None


# --- Risk scorer ---

@pytest.mark.parametrize("score,tier", [
    (100, "Critical"), (75, "Critical"), (74, "High"), (50, "High"),
    (49, "Medium"), (25, "Medium"), (24, "Low"), (0, "Low"),
])
def test_risk_tier_boundaries(score, tier):
    assert risk_tier(score) == tier


def test_score_is_bounded_for_all_factor_combinations():
    amounts = [0, 1000, 1000.01, 5000, 5000.01]
    deadlines = [None, NOW.date() - timedelta(days=1), NOW.date() + timedelta(days=2), NOW.date() + timedelta(days=6), NOW.date() + timedelta(days=30)]
    categories = [None, "Fraudulent Transaction"]
    case_types = [None, "First Chargeback", "Pre-Arbitration", "arbitration"]
    evidence = [None, "Yes", "No"]
    for amount, deadline, category, case_type, missing in itertools.product(amounts, deadlines, categories, case_types, evidence):
        record = _record(
            chargeback_amount_usd=amount,
            sla_deadline=deadline,
            reason_category=category,
            case_type=case_type,
            missing_evidence=missing,
        )
        assert 0 <= score_dispute(record, NOW).score <= 100


def test_score_all_factors_capped_at_100():
    record = _record(
        id="case-1",
        chargeback_amount_usd=9000,
        sla_deadline=NOW.date() - timedelta(days=3),
        reason_category="Fraudulent Transaction",
        case_type="Pre-Arbitration",
        missing_evidence="Yes",
    )
    assessment = score_dispute(record, NOW)
    assert assessment.case_id == "case-1"
    assert assessment.score == 100
    assert assessment.tier == "Critical"
    assert sum(f.points for f in assessment.factors) == 115


def test_score_amount_factor_uses_usd_when_present():
    deadline = NOW.date() + timedelta(days=30)
    assert score_dispute(_record(chargeback_amount=6000, chargeback_amount_usd=900, sla_deadline=deadline), NOW).score == 0
    assert score_dispute(_record(chargeback_amount=6000, sla_deadline=deadline), NOW).score == 30
    assert score_dispute(_record(chargeback_amount=5000, sla_deadline=deadline), NOW).score == 15


def test_score_sla_factor():
    today = NOW.date()
    assert score_dispute(_record(), NOW).score == 10
    assert score_dispute(_record(sla_deadline=today - timedelta(days=1)), NOW).score == 35
    assert score_dispute(_record(sla_deadline=today), NOW).score == 25
    assert score_dispute(_record(sla_deadline=today + timedelta(days=3)), NOW).score == 25
    assert score_dispute(_record(sla_deadline=today + timedelta(days=4)), NOW).score == 10
    assert score_dispute(_record(sla_deadline=today + timedelta(days=7)), NOW).score == 10
    assert score_dispute(_record(sla_deadline=today + timedelta(days=8)), NOW).score == 0


def test_score_is_monotonic_in_amount_and_sla():
    base = {"reason_category": "Not as Described", "sla_deadline": NOW.date() + timedelta(days=10)}
    low = score_dispute(_record(chargeback_amount_usd=900, **base), NOW).score
    high = score_dispute(_record(chargeback_amount_usd=1500, **base), NOW).score
    assert high >= low

    overdue = score_dispute(_record(chargeback_amount_usd=900, reason_category="Not as Described", sla_deadline=NOW.date() - timedelta(days=1)), NOW).score
    assert overdue >= low


def test_days_until_rounds_up():
    assert days_until(date(2025, 6, 15), NOW) == 0
    assert days_until(date(2025, 6, 16), NOW) == 1
    assert days_until(date(2025, 6, 14), NOW) == -1


def test_score_open_disputes_skips_closed():
    records = [
        _record(id="a", status="won"),
        _record(id="b", status="lost"),
        _record(id="c", status="not_fought"),
        _record(id="d", status="new", chargeback_amount_usd=9000),
        _record(id="e", status="something-else"),
    ]
    assessments = score_open_disputes(records, NOW)
    assert [a.case_id for a in assessments] == ["d", "e"]


# --- Forecaster ---

def test_linear_trend_single_point_is_flat():
    trend = LinearTrend.fit([7])
    assert trend.slope == 0
    assert trend.predict(0) == 7
    assert trend.predict(42) == 7


def test_linear_trend_empty_series():
    assert LinearTrend.fit([]).predict(5) == 0


def test_linear_trend_fit_and_predict():
    trend = LinearTrend.fit([10, 12, 14, 16, 18, 20])
    assert trend.slope == pytest.approx(2.0)
    assert trend.intercept == pytest.approx(10.0)
    assert trend.predict(6) == 22


def test_linear_trend_never_negative():
    assert LinearTrend.fit([10, 5, 0]).predict(5) == 0


def test_exponential_smoothing():
    assert exponential_smoothing([10, 20, 20]) == pytest.approx([10, 14, 16.4])
    assert exponential_smoothing([]) == []


def test_scenario_constants():
    point = scenario_point("Jul-25", 22, 50.0)
    assert (point.pessimistic_volume, point.base_volume, point.optimistic_volume) == (26, 22, 20)
    assert (point.pessimistic_win_rate, point.base_win_rate, point.optimistic_win_rate) == (42.0, 50.0, 55.0)


def test_scenario_rounds_half_up():
    assert scenario_point("x", 5, 50.0).optimistic_volume == 5


def test_scenario_win_rate_clamped():
    high = scenario_point("x", 1, 98.0)
    assert high.optimistic_win_rate == 100
    low = scenario_point("x", 1, 3.0)
    assert low.pessimistic_win_rate == 0


def test_forecast_scenarios_labels_and_values():
    buckets = [_bucket(m, 8 + 2 * m, won=1, lost=1) for m in range(1, 7)]
    forecast = forecast_scenarios(buckets, 3, NOW)
    assert [p.label for p in forecast] == ["Jul-25", "Aug-25", "Sep-25"]
    assert [p.base_volume for p in forecast] == [22, 24, 26]
    for point in forecast:
        assert point.base_win_rate == 50.0
        assert point.pessimistic_volume >= point.base_volume >= point.optimistic_volume
        assert point.pessimistic_win_rate <= point.base_win_rate <= point.optimistic_win_rate


def test_forecast_fits_undecided_months_as_zero_win_rate():
    buckets = [_bucket(5, 4, won=1, lost=1), _bucket(6, 4)]
    forecast = forecast_scenarios(buckets, 1, NOW)
    assert forecast[0].base_win_rate == 0

    timeline = combined_timeline(buckets, forecast)
    assert timeline[0].actual_win_rate == 50.0
    assert timeline[1].actual_win_rate is None


def test_forecast_empty_history():
    forecast = forecast_scenarios([], 2, NOW)
    assert len(forecast) == 2
    assert all(p.base_volume == 0 and p.pessimistic_volume == 0 for p in forecast)


def test_combined_timeline_shape():
    buckets = [_bucket(m, m) for m in range(1, 4)]
    timeline = combined_timeline(buckets, forecast_scenarios(buckets, 2, NOW))
    assert len(timeline) == 5
    assert all(p.base_volume is None for p in timeline[:3])
    assert all(p.actual_volume is None and p.base_volume is not None for p in timeline[3:])


# --- Trend / anomaly detection ---

def test_emerging_trend_rising():
    results = detect_emerging_trends({"Fraud": [10, 10, 10, 10, 20, 20]})
    assert len(results) == 1
    assert results[0].recent_avg == 20
    assert results[0].baseline_avg == 10
    assert results[0].pct_change == 100.0
    assert results[0].direction == "rising"


def test_emerging_trend_below_threshold_not_reported():
    assert detect_emerging_trends({"Fraud": [10, 10, 10, 10, 11, 9]}) == []


def test_emerging_trend_falling_and_short_series():
    results = detect_emerging_trends({
        "Falling": [20, 20, 20, 20, 10, 10],
        "Short": [1, 1, 50],
        "NoBaseline": [0, 0, 0, 0, 5, 5],
    })
    assert [r.category for r in results] == ["Falling"]
    assert results[0].direction == "falling"
    assert results[0].pct_change == -50.0


def test_emerging_trends_sorted_and_capped():
    series = {f"cat-{i}": [10, 10, 10, 10, 10 + 2 * i, 10 + 2 * i] for i in range(1, 9)}
    results = detect_emerging_trends(series)
    assert len(results) == 5
    assert [r.category for r in results] == ["cat-8", "cat-7", "cat-6", "cat-5", "cat-4"]


def test_detect_anomalies():
    flags = detect_anomalies([1] * 11 + [20])
    assert flags == [False] * 11 + [True]
    assert detect_anomalies([1, 50]) == [False, False]
    assert detect_anomalies([4, 4, 4, 4]) == [False] * 4


def test_anomaly_events_most_recent_first():
    buckets = [_bucket(m, 1) for m in range(1, 12)] + [_bucket(12, 30)]
    events = anomaly_events(buckets)
    volume_events = [e for e in events if e.metric == "Dispute Volume"]
    assert len(volume_events) == 1
    assert volume_events[0].month == "M12"
    assert volume_events[0].kind == "spike"


def test_volume_momentum():
    assert volume_momentum([0, 10]).direction == "rising"
    assert volume_momentum([10, 0]).direction == "falling"
    assert volume_momentum([5]).direction == "flat"


# --- VAMP ---

def test_classify_mid_risk_without_volume():
    result = classify_mid_risk("M1", "Visa", 5, None)
    assert result.ratio is None
    assert result.tier == "unknown"
    assert classify_mid_risk("M1", "Visa", 5, 0).tier == "unknown"


def test_classify_mid_risk_visa_standard_boundary():
    result = classify_mid_risk("M1", "Visa", 90, 10000)
    assert result.ratio == 0.009
    assert result.tier == "standard"
    assert classify_mid_risk("M1", "Visa", 89, 10000).tier == "healthy"
    assert classify_mid_risk("M1", "Visa", 180, 10000).tier == "excessive"


def test_classify_mid_risk_mastercard_excessive_boundary():
    result = classify_mid_risk("M1", "Mastercard", 150, 10000)
    assert result.ratio == 0.015
    assert result.tier == "excessive"
    assert classify_mid_risk("M1", "mastercard", 100, 10000).tier == "standard"
    assert classify_mid_risk("M1", "Mastercard", 99, 10000).tier == "healthy"


def test_classify_mid_risk_unknown_network_uses_visa_thresholds():
    assert classify_mid_risk("M1", "Amex", 150, 10000).tier == "standard"
    assert classify_mid_risk("M1", None, 90, 10000).tier == "standard"


def test_build_mid_rows_and_csv():
    records = [
        _record(merchant_id="M1", merchant_alias="Shop One", card_network="Visa", processor="Stripe",
                chargeback_amount_usd=100, reason_category="Fraudulent Transaction"),
        _record(merchant_id="M1", chargeback_amount_usd=50, reason_category="Not as Described"),
        _record(chargeback_amount=75),
    ]
    volumes = {"M1": MidVolumeIn(mid="M1", transaction_count=100, transaction_amount_usd=1000)}
    rows = {r.mid: r for r in build_mid_rows(records, volumes)}

    shop = rows["M1"]
    assert (shop.alias, shop.processor, shop.network) == ("Shop One", "Stripe", "Visa")
    assert (shop.cb_count, shop.cb_amount_usd, shop.fraud_cb_count) == (2, 150, 1)
    assert shop.cb_count_ratio == 0.02
    assert shop.cb_amount_ratio == 0.15
    assert shop.fraud_ratio == 0.01
    assert shop.tier == "excessive"

    unknown = rows["Unknown"]
    assert (unknown.alias, unknown.processor, unknown.network) == ("Unknown", "—", "—")
    assert unknown.cb_amount_usd == 0
    assert unknown.cb_count_ratio is None
    assert unknown.tier == "unknown"

    summary = summarize_mid_rows(rows.values())
    assert (summary.total, summary.excessive, summary.unknown) == (2, 1, 1)

    lines = mid_rows_to_csv([shop, unknown]).splitlines()
    assert lines[0].startswith("MID,Merchant Alias,Processor,Card Network,Transactions (Count)")
    assert lines[0].endswith("Fraud CBs (Count),CB Amt USD,VAMP Risk Level")
    assert lines[1] == "M1,Shop One,Stripe,Visa,100,1000.0,2,150.0,2.0000,15.0000,1,150.0,excessive"
    assert lines[2] == "Unknown,Unknown,—,—,,,1,0.0,,,0,0.0,unknown"


# --- Caps ---

@pytest.fixture
def small_caps(monkeypatch):
    monkeypatch.setenv("DISPUTES_MAX_CATEGORIES", "2")
    get_settings.cache_clear()
    yield get_settings()
    get_settings.cache_clear()


def test_month_window_is_clamped():
    cap = get_settings().max_window_months
    window = month_window(NOW, 1000)
    assert len(window) == cap
    assert window[-1] == (2025, 6)


def test_forecast_horizon_is_clamped():
    buckets = [_bucket(m, m) for m in range(1, 7)]
    assert len(forecast_scenarios(buckets, 1000, NOW)) == get_settings().max_horizon_months


def test_aggregate_by_category_keeps_largest(small_caps):
    assert small_caps.max_categories == 2
    records = (
        [_record(reason_category="Big", chargeback_date=date(2025, 6, 1))] * 3
        + [_record(reason_category="Medium", chargeback_date=date(2025, 5, 1))] * 2
        + [_record(reason_category="Small", chargeback_date=date(2025, 4, 1))]
    )
    series = aggregate_by_category(records, by_reason_category, NOW, 3)
    assert series == {"Big": [0, 0, 3], "Medium": [0, 2, 0]}


# --- Forecast fit input ---

def test_win_rate_fit_uses_unrounded_ratio():
    # 16.67% then 33.33%: the exact line reaches 50.0, the display-rounded one only 49.9
    buckets = [_bucket(5, 6, won=1, lost=5), _bucket(6, 3, won=1, lost=2)]
    assert forecast_scenarios(buckets, 1, NOW)[0].base_win_rate == 50.0


# --- Insights ---

def test_no_best_category_when_nothing_won():
    records = [
        _record(status="lost", reason_category="A", chargeback_date=date(2025, 6, 1)),
        _record(status="lost", reason_category="B", chargeback_date=date(2025, 6, 2)),
    ]
    summary = build_insight_summary(records, NOW, 6)
    assert summary.best_category is None
    assert summary.worst_category.category == "A"
    assert summary.worst_category.win_rate == 0


def test_single_category_is_not_also_the_worst():
    best, worst = best_and_worst_categories([CategoryWinRate(category="A", win_rate=60, total=5)])
    assert best.category == "A"
    assert worst is None


def test_best_and_worst_only_from_top_categories():
    rates = [CategoryWinRate(category=f"c{i}", win_rate=90 - i * 10, total=1) for i in range(10)]
    best, worst = best_and_worst_categories(rates)
    assert best.category == "c0"
    assert worst.category == "c7"
    assert best_and_worst_categories([]) == (None, None)
