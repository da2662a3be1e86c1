"""Access & lifecycle guard: deployment, administrative owner and the pause switch.

The guard never keeps ambient state. Each check takes the ``TokenContract``
row it is asked about, so callers pass the pause flag and the owner
explicitly into every precondition.
"""

from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from rwa_marketplace.config import settings
from rwa_marketplace.core.addresses import generate_contract_address, normalize_address
from rwa_marketplace.core.exceptions import (
    ContractNotFoundError,
    ContractNotPausedError,
    ContractPausedError,
    UnauthorizedCallerError,
)
from rwa_marketplace.models.token_contract import TokenContract
from rwa_marketplace.services.event_service import emit, operation

logger = logging.getLogger(__name__)

_is_sqlite: bool = settings.database_url.startswith("sqlite")


# ---------------------------------------------------------------------------
# Precondition checks
# ---------------------------------------------------------------------------

def require_owner(contract: TokenContract, caller: str) -> None:
    if caller != contract.owner:
        raise UnauthorizedCallerError("Caller is not the contract owner")


def require_active(contract: TokenContract) -> None:
    if contract.paused:
        raise ContractPausedError(contract.address)


# ---------------------------------------------------------------------------
# Lookup
# ---------------------------------------------------------------------------

async def find_contract(
    db: AsyncSession, address: str, *, lock: bool = False
) -> TokenContract | None:
    """Fetch a contract by address, or None. ``lock`` adds FOR UPDATE on PostgreSQL."""
    stmt = select(TokenContract).where(TokenContract.address == normalize_address(address))
    if lock and not _is_sqlite:
        stmt = stmt.with_for_update()
    result = await db.execute(stmt)
    return result.scalar_one_or_none()


async def get_contract(db: AsyncSession, address: str, *, lock: bool = False) -> TokenContract:
    """Get a contract by address or raise 404."""
    contract = await find_contract(db, address, lock=lock)
    if contract is None:
        raise ContractNotFoundError(address)
    return contract


# ---------------------------------------------------------------------------
# Lifecycle
# ---------------------------------------------------------------------------

async def deploy_contract(
    db: AsyncSession,
    owner: str,
    name: str | None = None,
    symbol: str | None = None,
    base_uri: str | None = None,
) -> TokenContract:
    """Deploy a new multi-token contract owned by ``owner`` in the Active state."""
    owner = normalize_address(owner)
    async with operation(db, "deploy") as events:
        contract = TokenContract(
            address=generate_contract_address(),
            name=name or settings.default_token_name,
            symbol=symbol or settings.default_token_symbol,
            owner=owner,
            paused=False,
            base_uri=settings.default_base_uri if base_uri is None else base_uri,
        )
        db.add(contract)
        events.append(emit(
            db,
            "contract_deployed",
            contract_address=contract.address,
            operator=owner,
            to_address=owner,
            payload={"name": contract.name, "symbol": contract.symbol, "base_uri": contract.base_uri},
        ))

    logger.info("Deployed contract %s (%s) owned by %s", contract.address, contract.symbol, owner)
    return contract


async def pause(db: AsyncSession, address: str, caller: str) -> TokenContract:
    """Active -> Paused. Owner only."""
    caller = normalize_address(caller)
    async with operation(db, "pause") as events:
        contract = await get_contract(db, address, lock=True)
        require_owner(contract, caller)
        require_active(contract)
        contract.paused = True
        events.append(emit(db, "paused", contract_address=contract.address, operator=caller))

    logger.info("Contract %s paused by %s", contract.address, caller)
    return contract


async def unpause(db: AsyncSession, address: str, caller: str) -> TokenContract:
    """Paused -> Active. Owner only."""
    caller = normalize_address(caller)
    async with operation(db, "unpause") as events:
        contract = await get_contract(db, address, lock=True)
        require_owner(contract, caller)
        if not contract.paused:
            raise ContractNotPausedError(contract.address)
        contract.paused = False
        events.append(emit(db, "unpaused", contract_address=contract.address, operator=caller))

    logger.info("Contract %s unpaused by %s", contract.address, caller)
    return contract


async def transfer_ownership(
    db: AsyncSession, address: str, caller: str, new_owner: str
) -> TokenContract:
    caller = normalize_address(caller)
    new_owner = normalize_address(new_owner)
    async with operation(db, "transfer_ownership") as events:
        contract = await get_contract(db, address, lock=True)
        require_owner(contract, caller)
        previous = contract.owner
        contract.owner = new_owner
        events.append(emit(
            db,
            "ownership_transferred",
            contract_address=contract.address,
            operator=caller,
            from_address=previous,
            to_address=new_owner,
        ))

    logger.info("Ownership of %s: %s -> %s", contract.address, previous, new_owner)
    return contract
