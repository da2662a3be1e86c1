from fastapi import APIRouter, Depends
from fastapi.responses import Response

from rwa_marketplace.core.auth import get_current_address
from rwa_marketplace.schemas.ipfs import IPFSUploadRequest, IPFSUploadResponse
from rwa_marketplace.services.ipfs_service import IPFSService, get_ipfs_service

router = APIRouter(prefix="/ipfs", tags=["ipfs"])


@router.post("/upload", response_model=IPFSUploadResponse, status_code=201)
async def upload(
    req: IPFSUploadRequest,
    ipfs: IPFSService = Depends(get_ipfs_service),
    current_address: str = Depends(get_current_address),
):
    cid = await ipfs.upload_file(req.content, req.file_name)
    return IPFSUploadResponse(cid=cid, gateway_url=ipfs.gateway_url_for(cid))


@router.post("/upload-json", response_model=IPFSUploadResponse, status_code=201)
async def upload_json(
    metadata: dict,
    ipfs: IPFSService = Depends(get_ipfs_service),
    current_address: str = Depends(get_current_address),
):
    cid = await ipfs.upload_json(metadata)
    return IPFSUploadResponse(cid=cid, gateway_url=ipfs.gateway_url_for(cid))


@router.get("/json/{cid}")
async def get_json(cid: str, ipfs: IPFSService = Depends(get_ipfs_service)):
    return await ipfs.get_json(cid)


@router.get("/{cid}")
async def get_file(cid: str, ipfs: IPFSService = Depends(get_ipfs_service)):
    content = await ipfs.get_file(cid)
    return Response(content=content, media_type="application/octet-stream")
