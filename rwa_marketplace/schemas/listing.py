from datetime import datetime

from pydantic import BaseModel, Field

from rwa_marketplace.models.token_ledger import MAX_TOKEN_VALUE


class ListingCreateRequest(BaseModel):
    token_contract: str = Field(..., min_length=1, max_length=42)
    token_id: int = Field(..., ge=0, le=MAX_TOKEN_VALUE)
    price: float = Field(..., gt=0, allow_inf_nan=False)
    amount: int = Field(default=1, gt=0, le=MAX_TOKEN_VALUE)


class ListingUpdateRequest(BaseModel):
    price: float = Field(..., gt=0, allow_inf_nan=False)


class BuyRequest(BaseModel):
    payment: float = Field(..., ge=0, allow_inf_nan=False)


class ListingResponse(BaseModel):
    token_contract: str
    token_id: int
    price: float
    seller: str
    amount: int
    exists: bool
    created_at: datetime | None = None
    updated_at: datetime | None = None


class ListingListResponse(BaseModel):
    total: int
    page: int
    page_size: int
    results: list[ListingResponse]


class PurchaseResponse(BaseModel):
    buyer: str
    seller: str
    token_contract: str
    token_id: int
    amount: int
    price: float
    payment: float
    event_id: str
