"""Ledger events: staged in the caller's transaction, published after commit.

Every mutating operation runs through :func:`operation`, which wraps the
serialised transaction from :mod:`rwa_marketplace.core.execution`.  Events
are written as ``LedgerEvent`` rows inside that transaction (so the audit
trail and the state change commit or roll back together) and are only
counted in metrics and pushed to live-feed subscribers once the commit
succeeded.
"""

from __future__ import annotations

import json
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from decimal import Decimal

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from rwa_marketplace.core import metrics
from rwa_marketplace.core.execution import atomic
from rwa_marketplace.core.live_feed import ledger_feed
from rwa_marketplace.models.ledger_event import LedgerEvent

logger = logging.getLogger(__name__)


def emit(
    db: AsyncSession,
    event_type: str,
    *,
    contract_address: str | None = None,
    operator: str | None = None,
    from_address: str | None = None,
    to_address: str | None = None,
    token_id: int | None = None,
    amount: int | None = None,
    price: Decimal | None = None,
    payload: dict | None = None,
) -> LedgerEvent:
    """Stage an event row in the current transaction."""
    event = LedgerEvent(
        event_type=event_type,
        contract_address=contract_address,
        operator=operator,
        from_address=from_address,
        to_address=to_address,
        token_id=token_id,
        amount=amount,
        price=price,
        payload_json=json.dumps(payload or {}, default=str),
    )
    db.add(event)
    return event


def event_to_dict(event: LedgerEvent) -> dict:
    return {
        "id": event.id,
        "event_type": event.event_type,
        "contract_address": event.contract_address,
        "operator": event.operator,
        "from_address": event.from_address,
        "to_address": event.to_address,
        "token_id": event.token_id,
        "amount": event.amount,
        "price": str(event.price) if event.price is not None else None,
        "payload": json.loads(event.payload_json or "{}"),
        "created_at": event.created_at.isoformat() if event.created_at else None,
    }


def publish(events: list[LedgerEvent]) -> None:
    """Count committed events and fan them out to live-feed subscribers."""
    for event in events:
        metrics.record_event(event.event_type)
        ledger_feed.schedule(event.event_type, event_to_dict(event))


@asynccontextmanager
async def operation(db: AsyncSession, tx_type: str) -> AsyncIterator[list[LedgerEvent]]:
    """Run one serialised, all-or-nothing operation and collect its events.

    Usage::

        async with operation(db, "mint") as events:
            ...
            events.append(emit(db, "asset_minted", ...))
    """
    events: list[LedgerEvent] = []
    try:
        async with atomic(db):
            yield events
    except Exception:
        metrics.record_transaction(tx_type, "failed")
        raise
    metrics.record_transaction(tx_type, "success")
    publish(events)


async def get_history(
    db: AsyncSession,
    contract_address: str | None = None,
    holder: str | None = None,
    page: int = 1,
    page_size: int = 20,
) -> tuple[list[dict], int]:
    """Return paginated events, newest first, optionally scoped to a contract and/or holder.

    Returns:
        Tuple of (list of event dicts, total count).
    """
    conditions = []
    if contract_address is not None:
        conditions.append(LedgerEvent.contract_address == contract_address)
    if holder is not None:
        conditions.append(
            or_(
                LedgerEvent.from_address == holder,
                LedgerEvent.to_address == holder,
                LedgerEvent.operator == holder,
            )
        )

    count_stmt = select(func.count(LedgerEvent.id)).where(*conditions)
    total = (await db.execute(count_stmt)).scalar() or 0

    stmt = (
        select(LedgerEvent)
        .where(*conditions)
        .order_by(LedgerEvent.created_at.desc())
        .offset((page - 1) * page_size)
        .limit(page_size)
    )
    result = await db.execute(stmt)
    return [event_to_dict(e) for e in result.scalars().all()], total
