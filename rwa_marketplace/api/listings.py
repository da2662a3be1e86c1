from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from rwa_marketplace.core.auth import get_current_address
from rwa_marketplace.database import get_db
from rwa_marketplace.schemas.listing import (
    BuyRequest,
    ListingCreateRequest,
    ListingListResponse,
    ListingResponse,
    ListingUpdateRequest,
    PurchaseResponse,
)
from rwa_marketplace.services import listing_service, settlement_service
from rwa_marketplace.services.listing_service import ListingRecord

router = APIRouter(prefix="/listings", tags=["listings"])


def _listing_to_response(record: ListingRecord) -> ListingResponse:
    return ListingResponse(
        token_contract=record.token_contract,
        token_id=record.token_id,
        price=float(record.price),
        seller=record.seller,
        amount=record.amount,
        exists=record.exists,
        created_at=record.created_at,
        updated_at=record.updated_at,
    )


@router.post("", response_model=ListingResponse, status_code=201)
async def create_listing(
    req: ListingCreateRequest,
    db: AsyncSession = Depends(get_db),
    current_address: str = Depends(get_current_address),
):
    record = await listing_service.list_item(
        db, req.token_contract, current_address, req.token_id, req.price, req.amount
    )
    return _listing_to_response(record)


@router.get("", response_model=ListingListResponse)
async def list_listings(
    token_contract: str | None = None,
    seller: str | None = None,
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
):
    records, total = await listing_service.list_listings(db, token_contract, seller, page, page_size)
    return ListingListResponse(
        total=total,
        page=page,
        page_size=page_size,
        results=[_listing_to_response(r) for r in records],
    )


@router.get("/{token_contract}/{token_id}", response_model=ListingResponse)
async def get_listing(token_contract: str, token_id: int, db: AsyncSession = Depends(get_db)):
    record = await listing_service.get_listing(db, token_contract, token_id)
    return _listing_to_response(record)


@router.put("/{token_contract}/{token_id}", response_model=ListingResponse)
async def update_listing(
    token_contract: str,
    token_id: int,
    req: ListingUpdateRequest,
    db: AsyncSession = Depends(get_db),
    current_address: str = Depends(get_current_address),
):
    record = await listing_service.update_listing(
        db, token_contract, current_address, token_id, req.price
    )
    return _listing_to_response(record)


@router.delete("/{token_contract}/{token_id}", status_code=204)
async def cancel_listing(
    token_contract: str,
    token_id: int,
    db: AsyncSession = Depends(get_db),
    current_address: str = Depends(get_current_address),
):
    await listing_service.cancel_listing(db, token_contract, current_address, token_id)


@router.post("/{token_contract}/{token_id}/buy", response_model=PurchaseResponse)
async def buy_listing(
    token_contract: str,
    token_id: int,
    req: BuyRequest,
    db: AsyncSession = Depends(get_db),
    current_address: str = Depends(get_current_address),
):
    result = await settlement_service.buy_item(
        db, token_contract, current_address, token_id, req.payment
    )
    return PurchaseResponse(
        **{**result, "price": float(result["price"]), "payment": float(result["payment"])}
    )
