import uuid
import random
from datetime import date, timedelta
from faker import Faker
from sqlalchemy.orm import Session
from app.engine.calendar import shift_month
from app.models import Dispute, MidVolume

fake = Faker()

NETWORKS = ["Visa", "Mastercard", "Amex", "Discover"]
NETWORK_WEIGHTS = [0.55, 0.30, 0.10, 0.05]
CARD_TYPES = ["Credit", "Debit", "Prepaid"]
PROCESSORS = ["Stripe", "Adyen", "Worldpay", "Checkout.com"]
CASE_TYPES = ["First Chargeback", "Second Chargeback", "Pre-Arbitration", "Arbitration", "Retrieval Request"]
CASE_TYPE_WEIGHTS = [0.70, 0.10, 0.10, 0.04, 0.06]

REASON_CODES = {
    "10.4": "Fraudulent Transaction",
    "4837": "Fraudulent Transaction",
    "13.1": "Product/Service Not Received",
    "13.3": "Not as Described",
    "12.6": "Processing Error",
    "13.2": "Cancelled Recurring",
}
REASON_CODE_WEIGHTS = [0.22, 0.10, 0.28, 0.20, 0.10, 0.10]

OPEN_STATUSES = ["new", "in_progress", "submitted", "awaiting_decision"]
CLOSED_STATUS_WEIGHTS = {"won": 0.45, "lost": 0.40, "not_fought": 0.15}

HISTORY_MONTHS = 12


def _random_day(year: int, month: int, today: date) -> date:
    start = date(year, month, 1)
    next_year, next_month = shift_month(year, month, 1)
    end = min(date(next_year, next_month, 1) - timedelta(days=1), today)
    return start + timedelta(days=random.randint(0, max(0, (end - start).days)))


def run_seed(db: Session) -> dict:
    db.query(Dispute).delete()
    db.query(MidVolume).delete()
    db.commit()

    merchants = _create_merchants()
    disputes = _create_disputes(db, merchants)
    volumes = _create_volumes(db, merchants, disputes)

    return {
        "merchants": len(merchants),
        "disputes": len(disputes),
        "mid_volumes": len(volumes),
    }


def _create_merchants() -> list[dict]:
    merchants = []
    for i in range(8):
        merchants.append({
            "merchant_id": f"MID{random.randint(10**8, 10**9 - 1)}",
            "merchant_alias": f"{fake.company()} {['US', 'UK', 'EU'][i % 3]}",
            "processor": random.choice(PROCESSORS),
            "card_network": random.choices(NETWORKS, NETWORK_WEIGHTS)[0],
            # A couple of merchants with a rising dispute trend
            "growth": 1.15 if i < 2 else 1.0,
        })
    return merchants


def _create_disputes(db: Session, merchants: list[dict]) -> list[Dispute]:
    today = date.today()
    disputes = []
    codes = list(REASON_CODES.keys())

    for offset in range(HISTORY_MONTHS - 1, -1, -1):
        year, month = shift_month(today.year, today.month, -offset)
        age = HISTORY_MONTHS - 1 - offset
        for merchant in merchants:
            volume = int(random.randint(3, 8) * merchant["growth"] ** age)
            for _ in range(volume):
                cb_date = _random_day(year, month, today)
                code = random.choices(codes, REASON_CODE_WEIGHTS)[0]
                # Older disputes have had time to be decided
                if (today - cb_date).days > 45:
                    status = random.choices(list(CLOSED_STATUS_WEIGHTS), list(CLOSED_STATUS_WEIGHTS.values()))[0]
                else:
                    status = random.choice(OPEN_STATUSES)
                amount = round(random.lognormvariate(6.0, 1.1), 2)
                disputes.append(Dispute(
                    id=str(uuid.uuid4()),
                    status=status,
                    fought_decision="not_fought" if status == "not_fought" else ("fought" if status in ("won", "lost") else None),
                    chargeback_amount=amount,
                    chargeback_amount_usd=amount,
                    chargeback_date=cb_date,
                    created_date=cb_date + timedelta(days=random.randint(0, 2)),
                    sla_deadline=cb_date + timedelta(days=random.choice([20, 30, 45])) if random.random() > 0.1 else None,
                    reason_code=code,
                    reason_category=REASON_CODES[code],
                    card_network=merchant["card_network"],
                    card_type=random.choice(CARD_TYPES),
                    case_type=random.choices(CASE_TYPES, CASE_TYPE_WEIGHTS)[0],
                    merchant_id=merchant["merchant_id"],
                    merchant_alias=merchant["merchant_alias"],
                    processor=merchant["processor"],
                    missing_evidence="Yes" if random.random() < 0.3 else "No",
                ))

    db.add_all(disputes)
    db.commit()
    return disputes


def _create_volumes(db: Session, merchants: list[dict], disputes: list[Dispute]) -> list[MidVolume]:
    counts: dict[str, int] = {}
    for d in disputes:
        counts[d.merchant_id] = counts.get(d.merchant_id, 0) + 1

    volumes = []
    # The last merchant is left without volume so its ratio stays unknown
    for merchant in merchants[:-1]:
        target_ratio = random.uniform(0.004, 0.025)
        txn_count = max(1, int(counts.get(merchant["merchant_id"], 0) / target_ratio))
        volumes.append(MidVolume(
            mid=merchant["merchant_id"],
            transaction_count=txn_count,
            transaction_amount_usd=round(txn_count * random.uniform(60, 180), 2),
        ))

    db.add_all(volumes)
    db.commit()
    return volumes
