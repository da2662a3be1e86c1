from pydantic import BaseModel, Field


class IPFSUploadRequest(BaseModel):
    content: str = Field(..., min_length=1)
    file_name: str | None = None


class IPFSUploadResponse(BaseModel):
    success: bool = True
    cid: str
    gateway_url: str
