"""Per-token metadata URIs derived from a contract's base URI."""

from __future__ import annotations

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from rwa_marketplace.core.addresses import normalize_address
from rwa_marketplace.core.exceptions import InvalidTokenIdError
from rwa_marketplace.models.token_contract import TokenContract
from rwa_marketplace.services import access_service
from rwa_marketplace.services.event_service import emit, operation

logger = logging.getLogger(__name__)


def resolve_uri(base_uri: str, token_id: int) -> str:
    return f"{base_uri}/{token_id}"


async def base_uri(db: AsyncSession, contract_address: str) -> str:
    contract = await access_service.get_contract(db, contract_address)
    return contract.base_uri


async def uri(db: AsyncSession, contract_address: str, token_id: int) -> str:
    """``baseURI + "/" + tokenId`` for the contract's current base."""
    if isinstance(token_id, bool) or not isinstance(token_id, int) or token_id < 0:
        raise InvalidTokenIdError(token_id)
    contract = await access_service.get_contract(db, contract_address)
    return resolve_uri(contract.base_uri, token_id)


async def set_base_uri(
    db: AsyncSession, contract_address: str, caller: str, new_uri: str
) -> TokenContract:
    """Replace the base URI. Owner only; allowed while paused; applies to every later ``uri`` call."""
    caller = normalize_address(caller)
    async with operation(db, "set_base_uri") as events:
        contract = await access_service.get_contract(db, contract_address, lock=True)
        access_service.require_owner(contract, caller)
        previous = contract.base_uri
        contract.base_uri = new_uri
        events.append(emit(
            db,
            "base_uri_updated",
            contract_address=contract.address,
            operator=caller,
            payload={"previous": previous, "base_uri": new_uri},
        ))

    logger.info("Base URI of %s: %s -> %s", contract.address, previous, new_uri)
    return contract
