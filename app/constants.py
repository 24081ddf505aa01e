CLOSED_STATUSES = {"won", "lost", "not_fought"}
KNOWN_STATUSES = {"new", "in_progress", "submitted", "awaiting_decision"} | CLOSED_STATUSES
FRAUD_REASON_CATEGORY = "Fraudulent Transaction"
ESCALATED_CASE_TYPES = {"pre-arbitration", "arbitration"}
MONTH_ABBREVIATIONS = ["Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]

# Risk score weights
HIGH_AMOUNT_THRESHOLD_USD = 5000.0
MEDIUM_AMOUNT_THRESHOLD_USD = 1000.0
HIGH_AMOUNT_POINTS = 30
MEDIUM_AMOUNT_POINTS = 15
SLA_OVERDUE_POINTS = 35
SLA_CRITICAL_POINTS = 25
SLA_WARNING_POINTS = 10
SLA_UNKNOWN_POINTS = 10
SLA_CRITICAL_DAYS = 3
SLA_WARNING_DAYS = 7
FRAUD_CATEGORY_POINTS = 15
ESCALATED_CASE_POINTS = 20
MISSING_EVIDENCE_POINTS = 15
MAX_RISK_SCORE = 100

# Lower bound of each tier, highest first
RISK_TIERS = [(75, "Critical"), (50, "High"), (25, "Medium"), (0, "Low")]

# Forecasting
SMOOTHING_ALPHA = 0.4
PESSIMISTIC_VOLUME_MULTIPLIER = 1.20
OPTIMISTIC_VOLUME_MULTIPLIER = 0.90
PESSIMISTIC_WIN_RATE_OFFSET = -8.0
OPTIMISTIC_WIN_RATE_OFFSET = 5.0

# Trend / anomaly detection
TREND_RECENT_WINDOW = 2
TREND_MIN_POINTS = 4
TREND_PCT_THRESHOLD = 15.0
TREND_TOP_N = 5
ANOMALY_Z_THRESHOLD = 1.8
ANOMALY_MIN_POINTS = 3
INSIGHT_TOP_CATEGORIES = 8
SLA_DUE_SOON_DAYS = 5

# VAMP chargeback-count ratio thresholds (Visa VAMP effective Apr 2025, Mastercard ECM)
VAMP_THRESHOLDS = {
    "visa": {"standard": 0.009, "excessive": 0.018},
    "mastercard": {"standard": 0.010, "excessive": 0.015},
}
DEFAULT_VAMP_NETWORK = "visa"

MID_HEALTH_CSV_HEADERS = [
    "MID", "Merchant Alias", "Processor", "Card Network", "Transactions (Count)",
    "Transactions ($)", "Chargebacks (Count)", "Chargebacks ($)", "CB Count Ratio (%)",
    "CB Amount Ratio (%)", "Fraud CBs (Count)", "CB Amt USD", "VAMP Risk Level",
]
