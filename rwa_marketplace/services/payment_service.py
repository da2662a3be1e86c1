"""Native currency accounts: the funds a buyer attaches to a purchase.

Amounts are ``Decimal`` quantised to 6 places, the same precision the
listing price column stores.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from rwa_marketplace.config import settings
from rwa_marketplace.core.addresses import normalize_address
from rwa_marketplace.core.exceptions import InsufficientBalanceError, InvalidAmountError
from rwa_marketplace.models.payment_account import PaymentAccount
from rwa_marketplace.services.event_service import emit, operation

logger = logging.getLogger(__name__)

_is_sqlite: bool = settings.database_url.startswith("sqlite")
_QUANT = Decimal("0.000001")


def to_decimal(value: float | int | str | Decimal) -> Decimal:
    """Coerce a value to Decimal with 6 decimal places. NaN and infinities are rejected."""
    try:
        value_d = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise InvalidAmountError(value, "Amount must be a number")
    if not value_d.is_finite():
        raise InvalidAmountError(value, "Amount must be finite")
    try:
        return value_d.quantize(_QUANT, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        raise InvalidAmountError(value, "Amount is out of range")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


async def _get_account(
    db: AsyncSession, holder: str, *, lock: bool = False
) -> PaymentAccount | None:
    stmt = select(PaymentAccount).where(PaymentAccount.holder == holder)
    if lock and not _is_sqlite:
        stmt = stmt.with_for_update()
    result = await db.execute(stmt)
    return result.scalar_one_or_none()


async def _get_or_create_account(db: AsyncSession, holder: str) -> PaymentAccount:
    account = await _get_account(db, holder, lock=True)
    if account is None:
        account = PaymentAccount(
            holder=holder,
            balance=Decimal("0"),
            total_deposited=Decimal("0"),
            total_received=Decimal("0"),
            total_spent=Decimal("0"),
        )
        db.add(account)
    return account


async def get_balance(db: AsyncSession, holder: str) -> Decimal:
    """Native balance of ``holder``; 0 when the holder has no account yet."""
    account = await _get_account(db, normalize_address(holder))
    if account is None:
        return Decimal("0")
    return to_decimal(account.balance)


async def get_account_summary(db: AsyncSession, holder: str) -> dict:
    holder = normalize_address(holder)
    account = await _get_account(db, holder)
    if account is None:
        zero = Decimal("0")
        return {"holder": holder, "balance": zero, "total_deposited": zero, "total_received": zero, "total_spent": zero}
    return {
        "holder": holder,
        "balance": to_decimal(account.balance),
        "total_deposited": to_decimal(account.total_deposited),
        "total_received": to_decimal(account.total_received),
        "total_spent": to_decimal(account.total_spent),
    }


async def deposit(db: AsyncSession, holder: str, amount: float | Decimal | str) -> Decimal:
    """Credit native funds to ``holder``. Returns the new balance."""
    holder = normalize_address(holder)
    amount_d = to_decimal(amount)
    if amount_d <= 0:
        raise InvalidAmountError(amount)

    async with operation(db, "deposit") as events:
        account = await _get_or_create_account(db, holder)
        account.balance = to_decimal(account.balance or 0) + amount_d
        account.total_deposited = to_decimal(account.total_deposited or 0) + amount_d
        account.updated_at = _utcnow()
        new_balance = account.balance
        events.append(emit(db, "funds_deposited", operator=holder, to_address=holder, price=amount_d))

    logger.info("Deposit: +%s to %s (balance=%s)", amount_d, holder, new_balance)
    return new_balance


async def move(db: AsyncSession, from_holder: str, to_holder: str, amount: Decimal) -> None:
    """Move native funds. The caller must hold the operation lock (see settlement)."""
    amount_d = to_decimal(amount)
    sender = await _get_account(db, from_holder, lock=True)
    available = to_decimal(sender.balance) if sender is not None else Decimal("0")
    if available < amount_d:
        raise InsufficientBalanceError(from_holder, available, amount_d)

    receiver = await _get_or_create_account(db, to_holder)

    sender.balance = available - amount_d
    sender.total_spent = to_decimal(sender.total_spent or 0) + amount_d
    sender.updated_at = _utcnow()

    receiver.balance = to_decimal(receiver.balance or 0) + amount_d
    receiver.total_received = to_decimal(receiver.total_received or 0) + amount_d
    receiver.updated_at = _utcnow()
