from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from rwa_marketplace.core.auth import get_current_address
from rwa_marketplace.database import get_db
from rwa_marketplace.schemas.contract import (
    BaseURIUpdateRequest,
    ContractDeployRequest,
    ContractResponse,
    OwnershipTransferRequest,
    URIResponse,
)
from rwa_marketplace.services import access_service, metadata_service

router = APIRouter(prefix="/contracts", tags=["contracts"])


@router.post("", response_model=ContractResponse, status_code=201)
async def deploy_contract(
    req: ContractDeployRequest,
    db: AsyncSession = Depends(get_db),
    current_address: str = Depends(get_current_address),
):
    return await access_service.deploy_contract(
        db, current_address, name=req.name, symbol=req.symbol, base_uri=req.base_uri
    )


@router.get("/{address}", response_model=ContractResponse)
async def get_contract(address: str, db: AsyncSession = Depends(get_db)):
    return await access_service.get_contract(db, address)


@router.post("/{address}/pause", response_model=ContractResponse)
async def pause(
    address: str,
    db: AsyncSession = Depends(get_db),
    current_address: str = Depends(get_current_address),
):
    return await access_service.pause(db, address, current_address)


@router.post("/{address}/unpause", response_model=ContractResponse)
async def unpause(
    address: str,
    db: AsyncSession = Depends(get_db),
    current_address: str = Depends(get_current_address),
):
    return await access_service.unpause(db, address, current_address)


@router.post("/{address}/ownership", response_model=ContractResponse)
async def transfer_ownership(
    address: str,
    req: OwnershipTransferRequest,
    db: AsyncSession = Depends(get_db),
    current_address: str = Depends(get_current_address),
):
    return await access_service.transfer_ownership(db, address, current_address, req.new_owner)


@router.put("/{address}/base-uri", response_model=ContractResponse)
async def set_base_uri(
    address: str,
    req: BaseURIUpdateRequest,
    db: AsyncSession = Depends(get_db),
    current_address: str = Depends(get_current_address),
):
    return await metadata_service.set_base_uri(db, address, current_address, req.base_uri)


@router.get("/{address}/uri/{token_id}", response_model=URIResponse)
async def token_uri(address: str, token_id: int, db: AsyncSession = Depends(get_db)):
    return URIResponse(token_id=token_id, uri=await metadata_service.uri(db, address, token_id))
