"""Marketplace-wide counts for the health endpoint and the business gauges."""

from __future__ import annotations

import logging

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from rwa_marketplace.core import metrics
from rwa_marketplace.models.ledger_event import LedgerEvent
from rwa_marketplace.models.listing import Listing
from rwa_marketplace.models.token_contract import TokenContract
from rwa_marketplace.models.token_ledger import TokenBalance

logger = logging.getLogger(__name__)


async def marketplace_counts(db: AsyncSession) -> dict[str, int]:
    contracts = (await db.execute(select(func.count(TokenContract.address)))).scalar() or 0
    listings = (await db.execute(select(func.count(Listing.id)))).scalar() or 0
    events = (await db.execute(select(func.count(LedgerEvent.id)))).scalar() or 0
    holders = (
        await db.execute(
            select(func.count(func.distinct(TokenBalance.holder))).where(TokenBalance.amount > 0)
        )
    ).scalar() or 0
    return {
        "contracts": contracts,
        "listings": listings,
        "events": events,
        "holders": holders,
    }


async def refresh_business_metrics(db: AsyncSession) -> dict[str, int]:
    """Recount and push the totals into the Prometheus gauges. Returns the counts."""
    counts = await marketplace_counts(db)
    metrics.set_business_gauges(
        contracts=counts["contracts"],
        active_listings=counts["listings"],
        holders=counts["holders"],
    )
    logger.debug(
        "Business gauges refreshed: %d contracts, %d listings, %d holders",
        counts["contracts"], counts["listings"], counts["holders"],
    )
    return counts
