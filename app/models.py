from sqlalchemy import Column, String, Float, Integer, Date, Index
from app.database import Base


class Dispute(Base):
    __tablename__ = "disputes"

    id = Column(String, primary_key=True)
    status = Column(String, nullable=False, default="new")
    fought_decision = Column(String, nullable=True)
    chargeback_amount = Column(Float, nullable=False, default=0.0)
    chargeback_amount_usd = Column(Float, nullable=True)
    chargeback_date = Column(Date, nullable=True)
    created_date = Column(Date, nullable=True)
    sla_deadline = Column(Date, nullable=True)
    reason_code = Column(String, nullable=True)
    reason_category = Column(String, nullable=True)
    card_network = Column(String, nullable=True)
    card_type = Column(String, nullable=True)
    case_type = Column(String, nullable=True)
    merchant_id = Column(String, nullable=True)
    merchant_alias = Column(String, nullable=True)
    processor = Column(String, nullable=True)
    missing_evidence = Column(String, nullable=True)

    __table_args__ = (
        Index("ix_disputes_status", "status"),
        Index("ix_disputes_chargeback_date", "chargeback_date"),
        Index("ix_disputes_reason_category", "reason_category"),
        Index("ix_disputes_merchant_id", "merchant_id"),
    )


class MidVolume(Base):
    __tablename__ = "mid_volumes"

    mid = Column(String, primary_key=True)
    transaction_count = Column(Integer, nullable=True)
    transaction_amount_usd = Column(Float, nullable=True)
