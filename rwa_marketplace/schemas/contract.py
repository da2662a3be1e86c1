from datetime import datetime

from pydantic import BaseModel, Field


class ContractDeployRequest(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=255)
    symbol: str | None = Field(default=None, min_length=1, max_length=32)
    base_uri: str | None = None


class ContractResponse(BaseModel):
    address: str
    name: str
    symbol: str
    owner: str
    paused: bool
    base_uri: str
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class OwnershipTransferRequest(BaseModel):
    new_owner: str = Field(..., min_length=1, max_length=128)


class BaseURIUpdateRequest(BaseModel):
    base_uri: str = Field(..., min_length=1)


class URIResponse(BaseModel):
    token_id: int
    uri: str
