"""Listing registry: at most one active listing per (token contract, token id)."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from rwa_marketplace.config import settings
from rwa_marketplace.core.addresses import normalize_address
from rwa_marketplace.core.exceptions import (
    InsufficientBalanceError,
    InvalidAmountError,
    InvalidPriceError,
    ListingAlreadyExistsError,
    ListingNotFoundError,
    UnauthorizedCallerError,
)
from rwa_marketplace.models.listing import Listing
from rwa_marketplace.services import access_service, ledger_service
from rwa_marketplace.services.event_service import emit, operation
from rwa_marketplace.services.payment_service import to_decimal

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ListingRecord:
    """Read-side view of a listing. The empty record has price 0 and no seller."""

    token_contract: str
    token_id: int
    price: Decimal
    seller: str
    amount: int
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def exists(self) -> bool:
        return bool(self.seller)

    @classmethod
    def empty(cls, token_contract: str, token_id: int) -> "ListingRecord":
        return cls(token_contract=token_contract, token_id=token_id, price=Decimal("0"), seller="", amount=0)

    @classmethod
    def from_row(cls, row: Listing) -> "ListingRecord":
        return cls(
            token_contract=row.token_contract,
            token_id=int(row.token_id),
            price=to_decimal(row.price),
            seller=row.seller,
            amount=int(row.amount),
            created_at=row.created_at,
            updated_at=row.updated_at,
        )


def _check_price(price) -> Decimal:
    if isinstance(price, bool):
        raise InvalidPriceError(price)
    try:
        price_d = to_decimal(price)
    except InvalidAmountError:
        raise InvalidPriceError(price)
    if price_d <= 0:
        raise InvalidPriceError(price)
    return price_d


async def find_listing(db: AsyncSession, token_contract: str, token_id: int) -> Listing | None:
    result = await db.execute(
        select(Listing).where(
            Listing.token_contract == normalize_address(token_contract),
            Listing.token_id == token_id,
        )
    )
    return result.scalar_one_or_none()


async def _require_listing(db: AsyncSession, token_contract: str, token_id: int) -> Listing:
    listing = await find_listing(db, token_contract, token_id)
    if listing is None:
        raise ListingNotFoundError(token_contract, token_id)
    return listing


async def list_item(
    db: AsyncSession,
    token_contract: str,
    caller: str,
    token_id: int,
    price: float | Decimal | str,
    amount: int = 1,
    *,
    relist_policy: str | None = None,
) -> ListingRecord:
    """List ``amount`` units of ``token_id`` at ``price``; the caller becomes the seller.

    An existing listing for the same key is overwritten (``relist_policy``
    "overwrite") or rejected with ``ListingAlreadyExistsError`` ("reject").
    No tokens move; the seller must hold ``amount`` units now and again at
    settlement time.
    """
    caller = normalize_address(caller)
    token_id = ledger_service.check_token_id(token_id)
    price_d = _check_price(price)
    amount = ledger_service.check_amount(amount)
    policy = relist_policy or settings.relist_policy

    async with operation(db, "list_item") as events:
        contract = await access_service.get_contract(db, token_contract, lock=True)
        held = await ledger_service.balance_of(db, contract.address, caller, token_id)
        if held < amount:
            raise InsufficientBalanceError(caller, held, amount)

        listing = await find_listing(db, contract.address, token_id)
        if listing is not None and policy == "reject":
            raise ListingAlreadyExistsError(contract.address, token_id)

        previous_seller = None
        if listing is None:
            listing = Listing(token_contract=contract.address, token_id=token_id)
            db.add(listing)
        else:
            previous_seller = listing.seller
            listing.updated_at = datetime.now(timezone.utc)
        listing.seller = caller
        listing.price = price_d
        listing.amount = amount

        events.append(emit(
            db,
            "item_listed",
            contract_address=contract.address,
            operator=caller,
            from_address=caller,
            token_id=token_id,
            amount=amount,
            price=price_d,
            payload={"replaced_seller": previous_seller} if previous_seller else None,
        ))
        await db.flush()
        record = ListingRecord.from_row(listing)

    logger.info(
        "Listed %s of token %s on %s at %s by %s%s",
        amount, token_id, contract.address, price_d, caller,
        " (overwrote existing listing)" if previous_seller else "",
    )
    return record


async def update_listing(
    db: AsyncSession,
    token_contract: str,
    caller: str,
    token_id: int,
    new_price: float | Decimal | str,
) -> ListingRecord:
    """Change the price of the caller's listing. Seller and amount stay the same."""
    caller = normalize_address(caller)
    token_id = ledger_service.check_token_id(token_id)
    price_d = _check_price(new_price)

    async with operation(db, "update_listing") as events:
        listing = await _require_listing(db, token_contract, token_id)
        if listing.seller != caller:
            raise UnauthorizedCallerError("Not the listing seller")
        listing.price = price_d
        listing.updated_at = datetime.now(timezone.utc)
        events.append(emit(
            db,
            "listing_updated",
            contract_address=listing.token_contract,
            operator=caller,
            from_address=caller,
            token_id=token_id,
            amount=listing.amount,
            price=price_d,
        ))
        await db.flush()
        record = ListingRecord.from_row(listing)

    logger.info("Listing %s/%s repriced to %s", record.token_contract, token_id, price_d)
    return record


async def cancel_listing(
    db: AsyncSession, token_contract: str, caller: str, token_id: int
) -> ListingRecord:
    """Remove the caller's listing. Returns the record as it was before removal."""
    caller = normalize_address(caller)
    token_id = ledger_service.check_token_id(token_id)

    async with operation(db, "cancel_listing") as events:
        listing = await _require_listing(db, token_contract, token_id)
        if listing.seller != caller:
            raise UnauthorizedCallerError("Not the listing seller")
        record = ListingRecord.from_row(listing)
        await db.delete(listing)
        events.append(emit(
            db,
            "listing_cancelled",
            contract_address=record.token_contract,
            operator=caller,
            from_address=caller,
            token_id=token_id,
            amount=record.amount,
            price=record.price,
        ))

    logger.info("Listing %s/%s cancelled by %s", record.token_contract, token_id, caller)
    return record


async def get_listing(db: AsyncSession, token_contract: str, token_id: int) -> ListingRecord:
    """Current listing for the key, or the empty record. Never raises for well-formed input."""
    token_contract = normalize_address(token_contract)
    if not ledger_service.storable_token_id(token_id):
        return ListingRecord.empty(token_contract, token_id)
    listing = await find_listing(db, token_contract, token_id)
    if listing is None:
        return ListingRecord.empty(token_contract, token_id)
    return ListingRecord.from_row(listing)


async def list_listings(
    db: AsyncSession,
    token_contract: str | None = None,
    seller: str | None = None,
    page: int = 1,
    page_size: int = 20,
) -> tuple[list[ListingRecord], int]:
    """List active listings with optional filters, newest first."""
    query = select(Listing)
    count_query = select(func.count(Listing.id))

    if token_contract:
        cond = Listing.token_contract == normalize_address(token_contract)
        query = query.where(cond)
        count_query = count_query.where(cond)
    if seller:
        cond = Listing.seller == normalize_address(seller)
        query = query.where(cond)
        count_query = count_query.where(cond)

    total = (await db.execute(count_query)).scalar() or 0

    query = query.order_by(Listing.created_at.desc())
    query = query.offset((page - 1) * page_size).limit(page_size)
    result = await db.execute(query)
    return [ListingRecord.from_row(row) for row in result.scalars().all()], total
