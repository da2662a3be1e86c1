from typing import Annotated

from pydantic import BaseModel, Field

from rwa_marketplace.models.token_ledger import MAX_TOKEN_VALUE

TokenId = Annotated[int, Field(ge=0, le=MAX_TOKEN_VALUE)]
TokenAmount = Annotated[int, Field(gt=0, le=MAX_TOKEN_VALUE)]


class MintRequest(BaseModel):
    to: str = Field(..., min_length=1, max_length=128)
    token_id: int = Field(..., ge=0, le=MAX_TOKEN_VALUE)
    amount: int = Field(..., gt=0, le=MAX_TOKEN_VALUE)


class MintBatchRequest(BaseModel):
    to: str = Field(..., min_length=1, max_length=128)
    token_ids: list[TokenId] = Field(..., min_length=1)
    amounts: list[TokenAmount] = Field(..., min_length=1)


class BurnRequest(BaseModel):
    owner: str | None = None  # defaults to the caller
    token_id: int = Field(..., ge=0, le=MAX_TOKEN_VALUE)
    amount: int = Field(..., gt=0, le=MAX_TOKEN_VALUE)


class TransferRequest(BaseModel):
    from_address: str | None = None  # defaults to the caller
    to: str = Field(..., min_length=1, max_length=128)
    token_id: int = Field(..., ge=0, le=MAX_TOKEN_VALUE)
    amount: int = Field(..., gt=0, le=MAX_TOKEN_VALUE)
    memo: str = ""


class TransferBatchRequest(BaseModel):
    from_address: str | None = None
    to: str = Field(..., min_length=1, max_length=128)
    token_ids: list[TokenId] = Field(..., min_length=1)
    amounts: list[TokenAmount] = Field(..., min_length=1)
    memo: str = ""


class ApprovalRequest(BaseModel):
    operator: str = Field(..., min_length=1, max_length=128)
    approved: bool


class BalanceResponse(BaseModel):
    contract_address: str
    holder: str
    token_id: int
    balance: int


class SupplyResponse(BaseModel):
    contract_address: str
    token_id: int
    total_supply: int


class LedgerEventResponse(BaseModel):
    id: str
    event_type: str
    contract_address: str | None = None
    operator: str | None = None
    from_address: str | None = None
    to_address: str | None = None
    token_id: int | None = None
    amount: int | None = None
    price: str | None = None
    payload: dict = {}
    created_at: str | None = None


class EventListResponse(BaseModel):
    total: int
    page: int
    page_size: int
    results: list[LedgerEventResponse]
