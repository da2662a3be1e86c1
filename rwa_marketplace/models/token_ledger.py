"""Multi-token ledger models: per-class supply, per-holder balances, operator approvals."""

import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    BigInteger,
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    String,
    UniqueConstraint,
)

from rwa_marketplace.database import Base

# Token ids, balances and supplies live in signed 64-bit columns.
MAX_TOKEN_VALUE = 2**63 - 1


def utcnow():
    return datetime.now(timezone.utc)


class TokenClass(Base):
    """Created on first mint of a token id; supply is the sum of live balances."""

    __tablename__ = "token_classes"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    contract_address = Column(String(42), ForeignKey("token_contracts.address"), nullable=False)
    token_id = Column(BigInteger, nullable=False)
    total_supply = Column(BigInteger, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    __table_args__ = (
        UniqueConstraint("contract_address", "token_id", name="uq_token_class"),
        CheckConstraint("total_supply >= 0", name="ck_token_supply_nonneg"),
    )


class TokenBalance(Base):
    """Holder balance record keyed by (contract, token id, holder)."""

    __tablename__ = "token_balances"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    contract_address = Column(String(42), ForeignKey("token_contracts.address"), nullable=False)
    token_id = Column(BigInteger, nullable=False)
    holder = Column(String(128), nullable=False)
    amount = Column(BigInteger, nullable=False, default=0)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    __table_args__ = (
        UniqueConstraint("contract_address", "token_id", "holder", name="uq_token_balance"),
        CheckConstraint("amount >= 0", name="ck_token_balance_nonneg"),
        Index("idx_balance_holder", "holder"),
    )


class OperatorApproval(Base):
    __tablename__ = "operator_approvals"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    contract_address = Column(String(42), ForeignKey("token_contracts.address"), nullable=False)
    holder = Column(String(128), nullable=False)
    operator = Column(String(128), nullable=False)
    approved = Column(Boolean, nullable=False, default=False)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    __table_args__ = (
        UniqueConstraint("contract_address", "holder", "operator", name="uq_operator_approval"),
    )
