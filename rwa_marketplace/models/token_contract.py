from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, DateTime, Index, String, Text

from rwa_marketplace.database import Base


def utcnow():
    return datetime.now(timezone.utc)


class TokenContract(Base):
    """One deployed multi-token contract: admin owner, pause flag and metadata base."""

    __tablename__ = "token_contracts"

    address = Column(String(42), primary_key=True)  # 0x + 40 hex
    name = Column(String(255), nullable=False)
    symbol = Column(String(32), nullable=False)
    owner = Column(String(128), nullable=False)  # Administrative Owner
    paused = Column(Boolean, nullable=False, default=False)
    base_uri = Column(Text, nullable=False, default="")
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    __table_args__ = (
        Index("idx_contract_owner", "owner"),
    )
