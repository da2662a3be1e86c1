"""Tests for native payment accounts."""

from decimal import Decimal

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from rwa_marketplace.core.exceptions import InvalidAmountError
from rwa_marketplace.services import payment_service


def test_to_decimal_quantises():
    assert payment_service.to_decimal(1.1234567) == Decimal("1.123457")
    assert payment_service.to_decimal("2") == Decimal("2.000000")


def test_to_decimal_rejects_garbage():
    with pytest.raises(InvalidAmountError):
        payment_service.to_decimal("not-a-number")


@pytest.mark.parametrize("value", ["NaN", "-Infinity", float("inf"), Decimal("sNaN")])
def test_to_decimal_rejects_non_finite(value):
    with pytest.raises(InvalidAmountError, match="finite"):
        payment_service.to_decimal(value)


async def test_balance_for_unknown_holder_is_zero(db: AsyncSession, addr):
    assert await payment_service.get_balance(db, addr()) == Decimal("0")


async def test_deposit_accumulates(db: AsyncSession, addr):
    holder = addr()
    await payment_service.deposit(db, holder, 10)
    new_balance = await payment_service.deposit(db, holder, "2.5")

    assert new_balance == Decimal("12.5")
    summary = await payment_service.get_account_summary(db, holder)
    assert summary["total_deposited"] == Decimal("12.5")
    assert summary["total_spent"] == Decimal("0")


@pytest.mark.parametrize("amount", [0, -1, "-0.5", "NaN"])
async def test_deposit_rejects_non_positive(db: AsyncSession, addr, amount):
    with pytest.raises(InvalidAmountError):
        await payment_service.deposit(db, addr(), amount)
