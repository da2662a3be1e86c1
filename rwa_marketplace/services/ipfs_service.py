"""Content-addressed storage through a Kubo (go-ipfs) RPC endpoint.

Metadata JSON and asset documents live in IPFS; the ledger only stores URIs
pointing at them.  Every call is counted in ``ipfs_operations_total``.
"""

from __future__ import annotations

import json
import logging
from typing import Any

import httpx

from rwa_marketplace.config import settings
from rwa_marketplace.core import metrics
from rwa_marketplace.core.exceptions import IPFSError

logger = logging.getLogger(__name__)


class IPFSService:
    def __init__(
        self,
        api_url: str,
        gateway_url: str,
        timeout_seconds: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.api_url = api_url.rstrip("/")
        self.gateway_url = gateway_url.rstrip("/")
        self.timeout_seconds = timeout_seconds
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.api_url,
            timeout=self.timeout_seconds,
            transport=self._transport,
        )

    async def _rpc(self, operation: str, path: str, **kwargs: Any) -> httpx.Response:
        try:
            async with self._client() as client:
                response = await client.post(path, **kwargs)
                response.raise_for_status()
        except httpx.HTTPError as exc:
            metrics.record_ipfs_operation(operation, "error")
            logger.warning("IPFS %s failed: %s", operation, exc)
            raise IPFSError(f"IPFS {operation} failed: {exc}") from exc
        metrics.record_ipfs_operation(operation, "success")
        return response

    async def upload_file(self, content: bytes | str, file_name: str | None = None) -> str:
        """Add and pin content. Returns its CID."""
        if isinstance(content, str):
            content = content.encode("utf-8")
        response = await self._rpc(
            "upload",
            "/api/v0/add",
            params={"pin": "true", "wrap-with-directory": "false"},
            files={"file": (file_name or "file", content)},
        )
        try:
            cid = response.json()["Hash"]
        except (ValueError, KeyError) as exc:
            raise IPFSError("IPFS add returned no CID") from exc
        logger.info("Uploaded %d bytes to IPFS as %s", len(content), cid)
        return cid

    async def upload_json(self, data: Any) -> str:
        return await self.upload_file(json.dumps(data, indent=2), "metadata.json")

    async def get_file(self, cid: str) -> bytes:
        response = await self._rpc("get", "/api/v0/cat", params={"arg": cid})
        return response.content

    async def get_json(self, cid: str) -> Any:
        content = await self.get_file(cid)
        try:
            return json.loads(content.decode("utf-8"))
        except (UnicodeDecodeError, ValueError) as exc:
            raise IPFSError(f"Content {cid} is not valid JSON") from exc

    async def pin(self, cid: str) -> None:
        await self._rpc("pin", "/api/v0/pin/add", params={"arg": cid})

    async def unpin(self, cid: str) -> None:
        await self._rpc("unpin", "/api/v0/pin/rm", params={"arg": cid})

    def gateway_url_for(self, cid: str) -> str:
        return f"{self.gateway_url}/ipfs/{cid}"


# Singleton client configuration
_ipfs: IPFSService | None = None


def get_ipfs_service() -> IPFSService:
    """Get or create the global IPFS client (FastAPI dependency)."""
    global _ipfs
    if _ipfs is None:
        _ipfs = IPFSService(
            api_url=settings.ipfs_api_url,
            gateway_url=settings.ipfs_gateway_url,
            timeout_seconds=settings.ipfs_timeout_seconds,
        )
    return _ipfs
