"""Payment-asset wallet: test faucet deposits and balance reads."""

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from rwa_marketplace.config import settings
from rwa_marketplace.core.auth import get_current_address
from rwa_marketplace.database import get_db
from rwa_marketplace.schemas.wallet import DepositRequest, WalletBalanceResponse
from rwa_marketplace.services import payment_service

router = APIRouter(prefix="/wallet", tags=["wallet"])


@router.get("/balance", response_model=WalletBalanceResponse)
async def get_balance(
    db: AsyncSession = Depends(get_db),
    current_address: str = Depends(get_current_address),
):
    return await payment_service.get_account_summary(db, current_address)


@router.post("/deposit", response_model=WalletBalanceResponse)
async def deposit(
    req: DepositRequest,
    db: AsyncSession = Depends(get_db),
    current_address: str = Depends(get_current_address),
):
    """Credit payment asset to the caller. Only available while the faucet is enabled."""
    if not settings.faucet_enabled:
        raise HTTPException(status_code=403, detail="Deposit faucet is disabled")
    await payment_service.deposit(db, current_address, req.amount)
    return await payment_service.get_account_summary(db, current_address)
