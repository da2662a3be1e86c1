"""Purchase settlement: exchange a buyer's payment for a listing's tokens.

Steps (one serialised transaction):
    1. Load the listing (``ListingNotFoundError`` when absent).
    2. Check the attached payment covers the price and the buyer can fund it.
    3. Check the contract is active and the seller still holds the listed units.
    4. Move the payment buyer -> seller, the units seller -> buyer, delete the listing.

Every check in steps 1-3 runs before the first write, and the whole
operation commits or rolls back as one unit, so a buyer is never charged for
units the seller no longer holds and a failed purchase leaves the listing in
place.  The full attached payment is forwarded to the seller; nothing is
refunded.
"""

from __future__ import annotations

import logging
from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from rwa_marketplace.core.addresses import normalize_address
from rwa_marketplace.core.exceptions import (
    InsufficientBalanceError,
    InsufficientPaymentError,
    InvalidAmountError,
    ListingNotFoundError,
    UnauthorizedCallerError,
)
from rwa_marketplace.services import access_service, ledger_service, payment_service
from rwa_marketplace.services.event_service import emit, operation
from rwa_marketplace.services.listing_service import find_listing

logger = logging.getLogger(__name__)


async def buy_item(
    db: AsyncSession,
    token_contract: str,
    buyer: str,
    token_id: int,
    payment: float | Decimal | str,
) -> dict:
    """Buy the listing for ``(token_contract, token_id)`` with ``payment`` attached.

    Returns:
        dict with keys: buyer, seller, token_contract, token_id, amount,
        price, payment, event_id.

    Raises:
        ListingNotFoundError: no listing for the key.
        InsufficientPaymentError: ``payment`` is below the listing price.
        UnauthorizedCallerError: the buyer is the seller.
        ContractPausedError: the token contract is paused.
        InsufficientBalanceError: the seller no longer holds the listed
            units, or the buyer's account cannot fund ``payment``.
    """
    buyer = normalize_address(buyer)
    token_id = ledger_service.check_token_id(token_id)
    payment_d = payment_service.to_decimal(payment)
    if payment_d < 0:
        raise InvalidAmountError(payment)

    async with operation(db, "buy_item") as events:
        contract = await access_service.get_contract(db, token_contract, lock=True)
        listing = await find_listing(db, contract.address, token_id)
        if listing is None:
            raise ListingNotFoundError(contract.address, token_id)

        seller = listing.seller
        price = payment_service.to_decimal(listing.price)
        amount = int(listing.amount)

        if payment_d < price:
            raise InsufficientPaymentError(price, payment_d)
        if buyer == seller:
            raise UnauthorizedCallerError("Seller cannot buy their own listing")

        # Everything that can fail is checked before the first write.
        access_service.require_active(contract)
        seller_units = await ledger_service.balance_of(db, contract.address, seller, token_id)
        if seller_units < amount:
            raise InsufficientBalanceError(seller, seller_units, amount)
        buyer_funds = await payment_service.get_balance(db, buyer)
        if buyer_funds < payment_d:
            raise InsufficientBalanceError(buyer, buyer_funds, payment_d)

        await payment_service.move(db, buyer, seller, payment_d)
        await ledger_service.move(db, contract, seller, buyer, token_id, amount)
        await db.delete(listing)

        events.append(emit(
            db,
            "transfer_single",
            contract_address=contract.address,
            operator=buyer,
            from_address=seller,
            to_address=buyer,
            token_id=token_id,
            amount=amount,
            payload={"memo": "marketplace purchase"},
        ))
        bought = emit(
            db,
            "item_bought",
            contract_address=contract.address,
            operator=buyer,
            from_address=seller,
            to_address=buyer,
            token_id=token_id,
            amount=amount,
            price=price,
            payload={"payment": str(payment_d)},
        )
        events.append(bought)

    logger.info(
        "Purchase %s: %s bought %s of token %s on %s from %s for %s (paid %s)",
        bought.id, buyer, amount, token_id, contract.address, seller, price, payment_d,
    )
    return {
        "buyer": buyer,
        "seller": seller,
        "token_contract": contract.address,
        "token_id": token_id,
        "amount": amount,
        "price": price,
        "payment": payment_d,
        "event_id": bought.id,
    }
