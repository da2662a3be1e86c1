import uuid
from datetime import datetime, timezone

from sqlalchemy import BigInteger, Column, DateTime, Index, Numeric, String, Text

from rwa_marketplace.database import Base


def utcnow():
    return datetime.now(timezone.utc)


class LedgerEvent(Base):
    """Immutable, append-only audit trail. Every emitted event = one row."""

    __tablename__ = "ledger_events"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    event_type = Column(
        String(40), nullable=False
    )  # asset_minted, asset_burned, transfer_single, transfer_batch, item_listed, item_bought, ...
    contract_address = Column(String(42), nullable=True)
    operator = Column(String(128), nullable=True)  # caller that triggered the event
    from_address = Column(String(128), nullable=True)
    to_address = Column(String(128), nullable=True)
    token_id = Column(BigInteger, nullable=True)
    amount = Column(BigInteger, nullable=True)
    price = Column(Numeric(24, 6), nullable=True)
    payload_json = Column(Text, default="{}")
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    __table_args__ = (
        Index("idx_event_type", "event_type"),
        Index("idx_event_contract", "contract_address"),
        Index("idx_event_from", "from_address"),
        Index("idx_event_to", "to_address"),
        Index("idx_event_created", "created_at"),
    )
