from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from rwa_marketplace.core.addresses import normalize_address
from rwa_marketplace.core.auth import get_current_address
from rwa_marketplace.database import get_db
from rwa_marketplace.schemas.token import (
    ApprovalRequest,
    BalanceResponse,
    BurnRequest,
    EventListResponse,
    LedgerEventResponse,
    MintBatchRequest,
    MintRequest,
    SupplyResponse,
    TransferBatchRequest,
    TransferRequest,
)
from rwa_marketplace.services import access_service, event_service, ledger_service
from rwa_marketplace.services.event_service import event_to_dict

router = APIRouter(prefix="/contracts/{address}", tags=["tokens"])


@router.post("/mint", response_model=LedgerEventResponse, status_code=201)
async def mint(
    address: str,
    req: MintRequest,
    db: AsyncSession = Depends(get_db),
    current_address: str = Depends(get_current_address),
):
    event = await ledger_service.mint(db, address, current_address, req.to, req.token_id, req.amount)
    return event_to_dict(event)


@router.post("/mint-batch", response_model=list[LedgerEventResponse], status_code=201)
async def mint_batch(
    address: str,
    req: MintBatchRequest,
    db: AsyncSession = Depends(get_db),
    current_address: str = Depends(get_current_address),
):
    events = await ledger_service.mint_batch(
        db, address, current_address, req.to, req.token_ids, req.amounts
    )
    return [event_to_dict(e) for e in events]


@router.post("/burn", response_model=LedgerEventResponse)
async def burn(
    address: str,
    req: BurnRequest,
    db: AsyncSession = Depends(get_db),
    current_address: str = Depends(get_current_address),
):
    owner = req.owner or current_address
    event = await ledger_service.burn(db, address, current_address, owner, req.token_id, req.amount)
    return event_to_dict(event)


@router.post("/transfer", response_model=LedgerEventResponse)
async def transfer(
    address: str,
    req: TransferRequest,
    db: AsyncSession = Depends(get_db),
    current_address: str = Depends(get_current_address),
):
    event = await ledger_service.transfer(
        db,
        address,
        current_address,
        req.from_address or current_address,
        req.to,
        req.token_id,
        req.amount,
        memo=req.memo,
    )
    return event_to_dict(event)


@router.post("/transfer-batch", response_model=LedgerEventResponse)
async def transfer_batch(
    address: str,
    req: TransferBatchRequest,
    db: AsyncSession = Depends(get_db),
    current_address: str = Depends(get_current_address),
):
    event = await ledger_service.transfer_batch(
        db,
        address,
        current_address,
        req.from_address or current_address,
        req.to,
        req.token_ids,
        req.amounts,
        memo=req.memo,
    )
    return event_to_dict(event)


@router.post("/approvals", response_model=LedgerEventResponse)
async def set_approval_for_all(
    address: str,
    req: ApprovalRequest,
    db: AsyncSession = Depends(get_db),
    current_address: str = Depends(get_current_address),
):
    event = await ledger_service.set_approval_for_all(
        db, address, current_address, req.operator, req.approved
    )
    return event_to_dict(event)


@router.get("/balances/{holder}/{token_id}", response_model=BalanceResponse)
async def balance_of(address: str, holder: str, token_id: int, db: AsyncSession = Depends(get_db)):
    balance = await ledger_service.balance_of(db, address, holder, token_id)
    return BalanceResponse(
        contract_address=normalize_address(address),
        holder=normalize_address(holder),
        token_id=token_id,
        balance=balance,
    )


@router.get("/supply/{token_id}", response_model=SupplyResponse)
async def total_supply(address: str, token_id: int, db: AsyncSession = Depends(get_db)):
    supply = await ledger_service.total_supply(db, address, token_id)
    return SupplyResponse(contract_address=normalize_address(address), token_id=token_id, total_supply=supply)


@router.get("/events", response_model=EventListResponse)
async def events(
    address: str,
    holder: str | None = Query(None),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
):
    contract = await access_service.get_contract(db, address)
    items, total = await event_service.get_history(
        db,
        contract.address,
        holder=normalize_address(holder) if holder else None,
        page=page,
        page_size=page_size,
    )
    return EventListResponse(total=total, page=page, page_size=page_size, results=items)
