from pydantic import BaseModel, Field


class DepositRequest(BaseModel):
    amount: float = Field(..., gt=0)


class WalletBalanceResponse(BaseModel):
    holder: str
    balance: float
    total_deposited: float
    total_received: float
    total_spent: float
