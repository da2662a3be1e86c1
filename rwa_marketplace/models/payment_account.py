"""Native currency accounts backing the payment attached to a purchase."""

import uuid
from datetime import datetime, timezone

from sqlalchemy import CheckConstraint, Column, DateTime, Numeric, String

from rwa_marketplace.database import Base


def utcnow():
    return datetime.now(timezone.utc)


class PaymentAccount(Base):
    __tablename__ = "payment_accounts"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    holder = Column(String(128), unique=True, nullable=False)
    balance = Column(Numeric(24, 6), nullable=False, default=0)
    total_deposited = Column(Numeric(24, 6), nullable=False, default=0)
    total_received = Column(Numeric(24, 6), nullable=False, default=0)
    total_spent = Column(Numeric(24, 6), nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    __table_args__ = (
        CheckConstraint("balance >= 0", name="ck_payment_balance_nonneg"),
    )
