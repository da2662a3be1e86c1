"""Multi-token asset ledger: per-class balances and supply for each deployed contract.

Every token movement (mint, burn, transfer and their batch forms) updates
``token_balances`` and ``token_classes`` together and appends a
``LedgerEvent`` in the same transaction.

Key design decisions:
- **Conservation**: mint credits a holder and raises supply by the same
  amount, burn does the reverse, transfer moves units between two holders.
  The sum of all balances of a class therefore always equals its supply.
- **No negative balances**: debits check the balance before writing and the
  table carries a ``CHECK (amount >= 0)`` constraint as a backstop.
- **All-or-nothing**: each public call runs inside
  :func:`rwa_marketplace.services.event_service.operation`, i.e. under the
  global serialisation lock and one DB transaction; a failing entry in a
  batch rolls back the entries applied before it.
"""

from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from rwa_marketplace.core.addresses import normalize_address
from rwa_marketplace.core.exceptions import (
    InsufficientBalanceError,
    InvalidAddressError,
    InvalidAmountError,
    InvalidTokenIdError,
    LengthMismatchError,
    UnauthorizedCallerError,
)
from rwa_marketplace.models.ledger_event import LedgerEvent
from rwa_marketplace.models.token_contract import TokenContract
from rwa_marketplace.models.token_ledger import MAX_TOKEN_VALUE, OperatorApproval, TokenBalance, TokenClass
from rwa_marketplace.services import access_service
from rwa_marketplace.services.event_service import emit, operation

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Validation helpers
# ---------------------------------------------------------------------------

def check_amount(amount) -> int:
    if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
        raise InvalidAmountError(amount)
    if amount > MAX_TOKEN_VALUE:
        raise InvalidAmountError(amount, f"Amount must not exceed {MAX_TOKEN_VALUE}")
    return amount


def check_token_id(token_id) -> int:
    if isinstance(token_id, bool) or not isinstance(token_id, int) or token_id < 0:
        raise InvalidTokenIdError(token_id)
    if token_id > MAX_TOKEN_VALUE:
        raise InvalidTokenIdError(token_id, f"Token id must not exceed {MAX_TOKEN_VALUE}")
    return token_id


def storable_token_id(token_id) -> bool:
    """Type-check ``token_id`` for a read; False when no class can exist under it."""
    if isinstance(token_id, bool) or not isinstance(token_id, int) or token_id < 0:
        raise InvalidTokenIdError(token_id)
    return token_id <= MAX_TOKEN_VALUE


def _check_sum(current: int, delta: int) -> int:
    total = current + delta
    if total > MAX_TOKEN_VALUE:
        raise InvalidAmountError(delta, f"Amount would push the total past {MAX_TOKEN_VALUE}")
    return total


def _check_batch(token_ids: list[int], amounts: list[int]) -> list[tuple[int, int]]:
    if len(token_ids) != len(amounts):
        raise LengthMismatchError(len(token_ids), len(amounts))
    if not token_ids:
        raise InvalidAmountError("empty batch")
    return [(check_token_id(t), check_amount(a)) for t, a in zip(token_ids, amounts)]


# ---------------------------------------------------------------------------
# Row helpers (private; callers hold the operation lock)
# ---------------------------------------------------------------------------

async def _balance_row(
    db: AsyncSession, contract_address: str, token_id: int, holder: str
) -> TokenBalance | None:
    result = await db.execute(
        select(TokenBalance).where(
            TokenBalance.contract_address == contract_address,
            TokenBalance.token_id == token_id,
            TokenBalance.holder == holder,
        )
    )
    return result.scalar_one_or_none()


async def _class_row(db: AsyncSession, contract_address: str, token_id: int) -> TokenClass | None:
    result = await db.execute(
        select(TokenClass).where(
            TokenClass.contract_address == contract_address,
            TokenClass.token_id == token_id,
        )
    )
    return result.scalar_one_or_none()


async def _credit(db: AsyncSession, contract_address: str, token_id: int, holder: str, amount: int) -> int:
    row = await _balance_row(db, contract_address, token_id, holder)
    if row is None:
        row = TokenBalance(
            contract_address=contract_address, token_id=token_id, holder=holder, amount=0
        )
        db.add(row)
    row.amount = _check_sum(row.amount or 0, amount)
    return row.amount


async def _debit(db: AsyncSession, contract_address: str, token_id: int, holder: str, amount: int) -> int:
    row = await _balance_row(db, contract_address, token_id, holder)
    available = row.amount if row is not None else 0
    if available < amount:
        raise InsufficientBalanceError(holder, available, amount)
    row.amount = available - amount
    return row.amount


async def _adjust_supply(db: AsyncSession, contract_address: str, token_id: int, delta: int) -> int:
    row = await _class_row(db, contract_address, token_id)
    if row is None:
        row = TokenClass(contract_address=contract_address, token_id=token_id, total_supply=0)
        db.add(row)
    row.total_supply = _check_sum(row.total_supply or 0, delta)
    return row.total_supply


async def _is_operator(db: AsyncSession, contract_address: str, holder: str, operator: str) -> bool:
    result = await db.execute(
        select(OperatorApproval.approved).where(
            OperatorApproval.contract_address == contract_address,
            OperatorApproval.holder == holder,
            OperatorApproval.operator == operator,
        )
    )
    return bool(result.scalar_one_or_none())


async def move(
    db: AsyncSession,
    contract: TokenContract,
    from_address: str,
    to_address: str,
    token_id: int,
    amount: int,
) -> None:
    """Move units between holders after the caller checked authorization.

    Enforces the pause flag and the balance; used by :func:`transfer` and by
    purchase settlement, both of which already hold the operation lock.
    """
    access_service.require_active(contract)
    await _debit(db, contract.address, token_id, from_address, amount)
    await _credit(db, contract.address, token_id, to_address, amount)


async def _require_transfer_rights(
    db: AsyncSession, contract: TokenContract, caller: str, from_address: str
) -> None:
    if caller == from_address:
        return
    if not await _is_operator(db, contract.address, from_address, caller):
        raise UnauthorizedCallerError("Caller is not the holder or an approved operator")


# ---------------------------------------------------------------------------
# Public API: mutations
# ---------------------------------------------------------------------------

async def mint(
    db: AsyncSession,
    contract_address: str,
    caller: str,
    to: str,
    token_id: int,
    amount: int,
) -> LedgerEvent:
    """Mint ``amount`` units of ``token_id`` to ``to``. Owner only.

    Raises:
        UnauthorizedCallerError: caller is not the contract owner.
        InvalidAmountError: amount is not a positive integer.
        ContractPausedError: the contract is paused.
    """
    caller = normalize_address(caller)
    to = normalize_address(to)
    token_id = check_token_id(token_id)
    amount = check_amount(amount)

    async with operation(db, "mint") as events:
        contract = await access_service.get_contract(db, contract_address, lock=True)
        access_service.require_owner(contract, caller)
        access_service.require_active(contract)

        await _credit(db, contract.address, token_id, to, amount)
        supply = await _adjust_supply(db, contract.address, token_id, amount)
        event = emit(
            db,
            "asset_minted",
            contract_address=contract.address,
            operator=caller,
            to_address=to,
            token_id=token_id,
            amount=amount,
        )
        events.append(event)

    logger.info(
        "Mint %s: +%s of token %s to %s on %s (supply=%s)",
        event.id, amount, token_id, to, contract.address, supply,
    )
    return event


async def mint_batch(
    db: AsyncSession,
    contract_address: str,
    caller: str,
    to: str,
    token_ids: list[int],
    amounts: list[int],
) -> list[LedgerEvent]:
    """Mint several token classes to ``to`` at once. Either every entry applies or none does."""
    caller = normalize_address(caller)
    to = normalize_address(to)
    entries = _check_batch(token_ids, amounts)

    async with operation(db, "mint_batch") as events:
        contract = await access_service.get_contract(db, contract_address, lock=True)
        access_service.require_owner(contract, caller)
        access_service.require_active(contract)

        for token_id, amount in entries:
            await _credit(db, contract.address, token_id, to, amount)
            await _adjust_supply(db, contract.address, token_id, amount)
            events.append(emit(
                db,
                "asset_minted",
                contract_address=contract.address,
                operator=caller,
                to_address=to,
                token_id=token_id,
                amount=amount,
            ))

    logger.info("Batch mint of %d classes to %s on %s", len(entries), to, contract.address)
    return events


async def burn(
    db: AsyncSession,
    contract_address: str,
    caller: str,
    owner: str,
    token_id: int,
    amount: int,
) -> LedgerEvent:
    """Burn the caller's own units. Only the holder may burn (not the admin owner)."""
    caller = normalize_address(caller)
    owner = normalize_address(owner)
    token_id = check_token_id(token_id)
    amount = check_amount(amount)

    async with operation(db, "burn") as events:
        contract = await access_service.get_contract(db, contract_address, lock=True)
        if caller != owner:
            raise UnauthorizedCallerError("Caller is not token owner")
        access_service.require_active(contract)

        await _debit(db, contract.address, token_id, owner, amount)
        supply = await _adjust_supply(db, contract.address, token_id, -amount)
        event = emit(
            db,
            "asset_burned",
            contract_address=contract.address,
            operator=caller,
            from_address=owner,
            token_id=token_id,
            amount=amount,
        )
        events.append(event)

    logger.info(
        "Burn %s: -%s of token %s from %s on %s (supply=%s)",
        event.id, amount, token_id, owner, contract.address, supply,
    )
    return event


async def burn_batch(
    db: AsyncSession,
    contract_address: str,
    caller: str,
    owner: str,
    token_ids: list[int],
    amounts: list[int],
) -> list[LedgerEvent]:
    caller = normalize_address(caller)
    owner = normalize_address(owner)
    entries = _check_batch(token_ids, amounts)

    async with operation(db, "burn_batch") as events:
        contract = await access_service.get_contract(db, contract_address, lock=True)
        if caller != owner:
            raise UnauthorizedCallerError("Caller is not token owner")
        access_service.require_active(contract)

        for token_id, amount in entries:
            await _debit(db, contract.address, token_id, owner, amount)
            await _adjust_supply(db, contract.address, token_id, -amount)
            events.append(emit(
                db,
                "asset_burned",
                contract_address=contract.address,
                operator=caller,
                from_address=owner,
                token_id=token_id,
                amount=amount,
            ))

    logger.info("Batch burn of %d classes from %s on %s", len(entries), owner, contract.address)
    return events


async def transfer(
    db: AsyncSession,
    contract_address: str,
    caller: str,
    from_address: str,
    to_address: str,
    token_id: int,
    amount: int,
    memo: str = "",
) -> LedgerEvent:
    """Move ``amount`` units of ``token_id`` from ``from_address`` to ``to_address``.

    Steps:
        1. Caller must be the holder or an approved operator.
        2. The contract must not be paused.
        3. The holder's balance must cover ``amount``.
        4. Debit holder, credit recipient, write a ``transfer_single`` event.
    """
    caller = normalize_address(caller)
    from_address = normalize_address(from_address)
    to_address = normalize_address(to_address)
    token_id = check_token_id(token_id)
    amount = check_amount(amount)

    async with operation(db, "transfer") as events:
        contract = await access_service.get_contract(db, contract_address, lock=True)
        await _require_transfer_rights(db, contract, caller, from_address)
        await move(db, contract, from_address, to_address, token_id, amount)
        event = emit(
            db,
            "transfer_single",
            contract_address=contract.address,
            operator=caller,
            from_address=from_address,
            to_address=to_address,
            token_id=token_id,
            amount=amount,
            payload={"memo": memo} if memo else None,
        )
        events.append(event)

    logger.info(
        "Transfer %s: %s of token %s from %s -> %s on %s",
        event.id, amount, token_id, from_address, to_address, contract.address,
    )
    return event


async def transfer_batch(
    db: AsyncSession,
    contract_address: str,
    caller: str,
    from_address: str,
    to_address: str,
    token_ids: list[int],
    amounts: list[int],
    memo: str = "",
) -> LedgerEvent:
    """Batch form of :func:`transfer`; one ``transfer_batch`` event for the whole batch."""
    caller = normalize_address(caller)
    from_address = normalize_address(from_address)
    to_address = normalize_address(to_address)
    entries = _check_batch(token_ids, amounts)

    async with operation(db, "transfer_batch") as events:
        contract = await access_service.get_contract(db, contract_address, lock=True)
        await _require_transfer_rights(db, contract, caller, from_address)
        for token_id, amount in entries:
            await move(db, contract, from_address, to_address, token_id, amount)
        event = emit(
            db,
            "transfer_batch",
            contract_address=contract.address,
            operator=caller,
            from_address=from_address,
            to_address=to_address,
            payload={
                "token_ids": [t for t, _ in entries],
                "amounts": [a for _, a in entries],
                "memo": memo,
            },
        )
        events.append(event)

    logger.info(
        "Batch transfer %s: %d classes from %s -> %s on %s",
        event.id, len(entries), from_address, to_address, contract.address,
    )
    return event


async def set_approval_for_all(
    db: AsyncSession,
    contract_address: str,
    caller: str,
    operator: str,
    approved: bool,
) -> LedgerEvent:
    """Grant or revoke ``operator``'s right to transfer all of the caller's units."""
    caller = normalize_address(caller)
    operator = normalize_address(operator)
    if caller == operator:
        raise InvalidAddressError(operator, "cannot set approval status for self")

    async with operation(db, "approval") as events:
        contract = await access_service.get_contract(db, contract_address, lock=True)
        result = await db.execute(
            select(OperatorApproval).where(
                OperatorApproval.contract_address == contract.address,
                OperatorApproval.holder == caller,
                OperatorApproval.operator == operator,
            )
        )
        row = result.scalar_one_or_none()
        if row is None:
            row = OperatorApproval(contract_address=contract.address, holder=caller, operator=operator)
            db.add(row)
        row.approved = bool(approved)
        event = emit(
            db,
            "approval_for_all",
            contract_address=contract.address,
            operator=operator,
            from_address=caller,
            payload={"approved": bool(approved)},
        )
        events.append(event)

    return event


# ---------------------------------------------------------------------------
# Public API: reads
# ---------------------------------------------------------------------------

async def balance_of(db: AsyncSession, contract_address: str, holder: str, token_id: int) -> int:
    """Balance of ``holder`` for ``token_id``; 0 for unknown holders, classes or contracts."""
    holder = normalize_address(holder)
    if not storable_token_id(token_id):
        return 0
    row = await _balance_row(db, normalize_address(contract_address), token_id, holder)
    return int(row.amount) if row is not None else 0


async def balance_of_batch(
    db: AsyncSession, contract_address: str, holders: list[str], token_ids: list[int]
) -> list[int]:
    if len(holders) != len(token_ids):
        raise LengthMismatchError(len(holders), len(token_ids))
    return [await balance_of(db, contract_address, h, t) for h, t in zip(holders, token_ids)]


async def total_supply(db: AsyncSession, contract_address: str, token_id: int) -> int:
    if not storable_token_id(token_id):
        return 0
    row = await _class_row(db, normalize_address(contract_address), token_id)
    return int(row.total_supply) if row is not None else 0


async def exists(db: AsyncSession, contract_address: str, token_id: int) -> bool:
    return await total_supply(db, contract_address, token_id) > 0


async def is_approved_for_all(
    db: AsyncSession, contract_address: str, holder: str, operator: str
) -> bool:
    return await _is_operator(
        db, normalize_address(contract_address), normalize_address(holder), normalize_address(operator)
    )


async def holders_of(db: AsyncSession, contract_address: str, token_id: int) -> dict[str, int]:
    """All non-zero balances of a class, keyed by holder."""
    if not storable_token_id(token_id):
        return {}
    result = await db.execute(
        select(TokenBalance.holder, TokenBalance.amount).where(
            TokenBalance.contract_address == normalize_address(contract_address),
            TokenBalance.token_id == token_id,
            TokenBalance.amount > 0,
        )
    )
    return {holder: int(amount) for holder, amount in result.all()}
