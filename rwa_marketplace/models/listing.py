import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    BigInteger,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Numeric,
    String,
    UniqueConstraint,
)

from rwa_marketplace.database import Base


def utcnow():
    return datetime.now(timezone.utc)


class Listing(Base):
    __tablename__ = "listings"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    token_contract = Column(String(42), ForeignKey("token_contracts.address"), nullable=False)
    token_id = Column(BigInteger, nullable=False)
    seller = Column(String(128), nullable=False)
    price = Column(Numeric(24, 6), nullable=False)  # native currency, up to 6 decimal places
    amount = Column(BigInteger, nullable=False, default=1)  # units delivered per purchase
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    __table_args__ = (
        UniqueConstraint("token_contract", "token_id", name="uq_listing_key"),
        CheckConstraint("price > 0", name="ck_listing_price_pos"),
        CheckConstraint("amount > 0", name="ck_listing_amount_pos"),
        Index("idx_listing_seller", "seller"),
    )
