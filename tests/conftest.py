import os

os.environ.setdefault("DISPUTES_DATABASE_URL", "sqlite://")

import pytest
from datetime import date, timedelta
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.database import Base, get_db
from app.main import app
from app.models import Dispute, MidVolume

TEST_DATABASE_URL = "sqlite://"
AS_OF = date(2025, 6, 15)

engine = create_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def override_get_db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def db_session():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    yield db
    db.close()


@pytest.fixture
def client(db_session):
    app.dependency_overrides[get_db] = override_get_db
    _seed_test_data(db_session)
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


def _dispute(id, **values):
    defaults = {
        "status": "new",
        "chargeback_amount": 100.0,
        "chargeback_amount_usd": 100.0,
        "card_type": "Credit",
        "case_type": "First Chargeback",
        "missing_evidence": "No",
    }
    defaults.update(values)
    return Dispute(id=id, **defaults)


def _seed_test_data(db):
    visa = {"merchant_id": "MID-VISA-1", "merchant_alias": "Visa Shop", "card_network": "Visa", "processor": "Stripe"}
    mastercard = {"merchant_id": "MID-MC-1", "merchant_alias": "MC Shop", "card_network": "Mastercard", "processor": "Adyen"}
    no_volume = {"merchant_id": "MID-NOVOL", "merchant_alias": "No Volume Shop", "card_network": "Visa", "processor": "Stripe"}

    disputes = []

    # Jan-Jun 2025: two "Not as Described" per month on the Visa MID, one won and one lost
    for month in range(1, 7):
        for outcome in ("won", "lost"):
            disputes.append(_dispute(
                f"hist-nad-{month}-{outcome}",
                status=outcome,
                fought_decision="fought",
                chargeback_date=date(2025, month, 10),
                created_date=date(2025, month, 11),
                reason_code="13.3",
                reason_category="Not as Described",
                **visa,
            ))

    # Fraud: one per month Jan-Apr on the Visa MID, then four per month in May and Jun on the Mastercard MID
    for month in range(1, 5):
        disputes.append(_dispute(
            f"hist-fraud-{month}",
            status="lost",
            fought_decision="fought",
            chargeback_date=date(2025, month, 12),
            reason_code="10.4",
            reason_category="Fraudulent Transaction",
            **visa,
        ))
    for month in (5, 6):
        for i in range(4):
            disputes.append(_dispute(
                f"hist-fraud-mc-{month}-{i}",
                status="lost",
                fought_decision="fought",
                chargeback_date=date(2025, month, 3 + i),
                reason_code="4837",
                reason_category="Fraudulent Transaction",
                **mastercard,
            ))

    # Open disputes
    disputes.append(_dispute(
        "d-critical",
        status="in_progress",
        chargeback_amount=7000.0,
        chargeback_amount_usd=7500.0,
        chargeback_date=date(2025, 6, 1),
        sla_deadline=AS_OF - timedelta(days=2),
        reason_code="4837",
        reason_category="Fraudulent Transaction",
        case_type="Arbitration",
        missing_evidence="Yes",
        **mastercard,
    ))
    disputes.append(_dispute(
        "d-medium",
        status="new",
        chargeback_amount=2000.0,
        chargeback_amount_usd=None,
        chargeback_date=date(2025, 6, 2),
        sla_deadline=AS_OF + timedelta(days=5),
        reason_code="13.3",
        reason_category="Not as Described",
        **visa,
    ))
    disputes.append(_dispute(
        "d-low",
        status="submitted",
        chargeback_date=date(2025, 6, 3),
        sla_deadline=AS_OF + timedelta(days=20),
        reason_code="12.6",
        reason_category="Processing Error",
        **visa,
    ))
    disputes.append(_dispute(
        "d-due-soon",
        status="awaiting_decision",
        chargeback_amount=300.0,
        chargeback_amount_usd=300.0,
        chargeback_date=date(2025, 6, 4),
        sla_deadline=AS_OF + timedelta(days=2),
        reason_code="13.1",
        reason_category="Product/Service Not Received",
        **no_volume,
    ))

    # No usable date at all: counted per MID, never bucketed by month
    disputes.append(_dispute(
        "d-undated",
        status="won",
        fought_decision="fought",
        reason_code="13.2",
        reason_category="Cancelled Recurring",
        **no_volume,
    ))

    db.add_all(disputes)
    db.add_all([
        MidVolume(mid="MID-VISA-1", transaction_count=2000, transaction_amount_usd=200000.0),
        MidVolume(mid="MID-MC-1", transaction_count=600, transaction_amount_usd=60000.0),
    ])
    db.commit()
