"""Tests for purchase settlement: the atomic payment-for-tokens exchange."""

from decimal import Decimal

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from rwa_marketplace.core.exceptions import (
    ContractPausedError,
    InsufficientBalanceError,
    InsufficientPaymentError,
    InvalidAmountError,
    ListingNotFoundError,
    UnauthorizedCallerError,
)
from rwa_marketplace.services import (
    access_service,
    event_service,
    ledger_service,
    listing_service,
    payment_service,
    settlement_service,
)


async def _snapshot(db, market):
    return {
        "seller_units": await ledger_service.balance_of(db, market["contract"], market["seller"], 1),
        "buyer_units": await ledger_service.balance_of(db, market["contract"], market["buyer"], 1),
        "seller_funds": await payment_service.get_balance(db, market["seller"]),
        "buyer_funds": await payment_service.get_balance(db, market["buyer"]),
        "listing": await listing_service.get_listing(db, market["contract"], 1),
    }


# ---------------------------------------------------------------------------
# Happy path
# ---------------------------------------------------------------------------

async def test_buy_exchanges_payment_for_tokens(db: AsyncSession, market):
    await listing_service.list_item(db, market["contract"], market["seller"], 1, 10)

    receipt = await settlement_service.buy_item(db, market["contract"], market["buyer"], 1, 10)

    assert receipt["seller"] == market["seller"]
    assert receipt["amount"] == 1
    after = await _snapshot(db, market)
    assert after["seller_units"] == 9
    assert after["buyer_units"] == 1
    assert after["seller_funds"] == Decimal("10")
    assert after["buyer_funds"] == Decimal("90")
    assert after["listing"].exists is False


async def test_buy_multi_unit_listing(db: AsyncSession, market):
    await listing_service.list_item(db, market["contract"], market["seller"], 1, 5, amount=4)

    await settlement_service.buy_item(db, market["contract"], market["buyer"], 1, 5)

    assert await ledger_service.balance_of(db, market["contract"], market["buyer"], 1) == 4
    assert await ledger_service.balance_of(db, market["contract"], market["seller"], 1) == 6


async def test_overpayment_forwarded_to_seller(db: AsyncSession, market):
    await listing_service.list_item(db, market["contract"], market["seller"], 1, 10)

    receipt = await settlement_service.buy_item(db, market["contract"], market["buyer"], 1, 15)

    assert receipt["payment"] == Decimal("15")
    assert await payment_service.get_balance(db, market["seller"]) == Decimal("15")
    assert await payment_service.get_balance(db, market["buyer"]) == Decimal("85")


async def test_buy_preserves_supply(db: AsyncSession, market):
    await listing_service.list_item(db, market["contract"], market["seller"], 1, 1)
    await settlement_service.buy_item(db, market["contract"], market["buyer"], 1, 1)
    assert await ledger_service.total_supply(db, market["contract"], 1) == 10


async def test_buy_emits_transfer_and_purchase_events(db: AsyncSession, market):
    await listing_service.list_item(db, market["contract"], market["seller"], 1, 1)
    await settlement_service.buy_item(db, market["contract"], market["buyer"], 1, 1)

    events, _ = await event_service.get_history(db, holder=market["buyer"])
    types = [e["event_type"] for e in events]
    assert "item_bought" in types
    assert "transfer_single" in types


async def test_relisting_after_purchase(db: AsyncSession, market):
    await listing_service.list_item(db, market["contract"], market["seller"], 1, 1)
    await settlement_service.buy_item(db, market["contract"], market["buyer"], 1, 1)

    record = await listing_service.list_item(db, market["contract"], market["buyer"], 1, 2)
    assert record.seller == market["buyer"]


# ---------------------------------------------------------------------------
# Failures leave everything untouched
# ---------------------------------------------------------------------------

async def test_buy_missing_listing(db: AsyncSession, market):
    with pytest.raises(ListingNotFoundError):
        await settlement_service.buy_item(db, market["contract"], market["buyer"], 1, 10)


async def test_underpayment_rejected(db: AsyncSession, market):
    await listing_service.list_item(db, market["contract"], market["seller"], 1, 10)
    before = await _snapshot(db, market)

    with pytest.raises(InsufficientPaymentError):
        await settlement_service.buy_item(db, market["contract"], market["buyer"], 1, "9.999999")

    assert await _snapshot(db, market) == before


@pytest.mark.parametrize("payment", ["NaN", "Infinity", float("nan"), Decimal("-Infinity")])
async def test_non_finite_payment_rejected(db: AsyncSession, market, payment):
    await listing_service.list_item(db, market["contract"], market["seller"], 1, 10)
    before = await _snapshot(db, market)

    with pytest.raises(InvalidAmountError):
        await settlement_service.buy_item(db, market["contract"], market["buyer"], 1, payment)

    assert await _snapshot(db, market) == before


async def test_seller_cannot_buy_own_listing(db: AsyncSession, market):
    await listing_service.list_item(db, market["contract"], market["seller"], 1, 1)
    await payment_service.deposit(db, market["seller"], 5)

    with pytest.raises(UnauthorizedCallerError):
        await settlement_service.buy_item(db, market["contract"], market["seller"], 1, 1)


async def test_seller_drained_after_listing(db: AsyncSession, market, addr):
    await listing_service.list_item(db, market["contract"], market["seller"], 1, 10, amount=5)
    await ledger_service.transfer(db, market["contract"], market["seller"], market["seller"], addr(), 1, 8)
    before = await _snapshot(db, market)

    with pytest.raises(InsufficientBalanceError):
        await settlement_service.buy_item(db, market["contract"], market["buyer"], 1, 10)

    after = await _snapshot(db, market)
    assert after == before
    assert after["buyer_funds"] == Decimal("100")
    assert after["listing"].exists is True


async def test_buyer_without_funds(db: AsyncSession, market, addr):
    await listing_service.list_item(db, market["contract"], market["seller"], 1, 10)
    poor = addr()

    with pytest.raises(InsufficientBalanceError):
        await settlement_service.buy_item(db, market["contract"], poor, 1, 10)

    assert await ledger_service.balance_of(db, market["contract"], market["seller"], 1) == 10
    assert (await listing_service.get_listing(db, market["contract"], 1)).exists is True


async def test_buy_while_paused_rejected(db: AsyncSession, market):
    await listing_service.list_item(db, market["contract"], market["seller"], 1, 10)
    await access_service.pause(db, market["contract"], market["owner"])
    before = await _snapshot(db, market)

    with pytest.raises(ContractPausedError):
        await settlement_service.buy_item(db, market["contract"], market["buyer"], 1, 10)

    assert await _snapshot(db, market) == before


async def test_failed_purchase_records_no_events(db: AsyncSession, market):
    await listing_service.list_item(db, market["contract"], market["seller"], 1, 10)

    with pytest.raises(InsufficientPaymentError):
        await settlement_service.buy_item(db, market["contract"], market["buyer"], 1, 1)

    events, _ = await event_service.get_history(db, holder=market["buyer"])
    assert all(e["event_type"] != "item_bought" for e in events)
