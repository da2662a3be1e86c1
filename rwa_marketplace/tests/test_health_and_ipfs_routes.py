"""Route tests for health probes, the root endpoint and the IPFS proxy."""

import httpx
import pytest

from rwa_marketplace.main import app
from rwa_marketplace.services.ipfs_service import IPFSService, get_ipfs_service


async def test_health_counts(client, make_wallet, auth_header):
    _, token = make_wallet()
    await client.post("/api/v1/contracts", headers=auth_header(token), json={})

    response = await client.get("/api/v1/health")

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert data["contracts_count"] == 1
    assert data["listings_count"] == 0
    assert data["events_count"] == 1
    assert data["holders_count"] == 0


async def test_readiness(client):
    response = await client.get("/api/v1/health/ready")
    assert response.status_code == 200
    assert response.json() == {"status": "ready", "database": "connected"}


async def test_root(client):
    response = await client.get("/")
    assert response.status_code == 200
    assert response.json()["name"] == "RWA Marketplace"
    assert response.headers["X-Content-Type-Options"] == "nosniff"
    assert response.headers["X-Frame-Options"] == "DENY"
    assert response.headers["Referrer-Policy"] == "strict-origin-when-cross-origin"
    assert response.headers["Strict-Transport-Security"].startswith("max-age=31536000")
    assert "camera=()" in response.headers["Permissions-Policy"]


# ---------------------------------------------------------------------------
# IPFS proxy (mocked Kubo node)
# ---------------------------------------------------------------------------

@pytest.fixture
def fake_ipfs():
    store: dict[str, bytes] = {}

    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/api/v0/add":
            cid = f"Qm{len(store):04d}"
            store[cid] = request.read()
            return httpx.Response(200, json={"Hash": cid})
        if request.url.path == "/api/v0/cat":
            cid = request.url.params["arg"]
            if cid not in store:
                return httpx.Response(500, json={"Message": "merkledag: not found"})
            return httpx.Response(200, content=store[cid])
        return httpx.Response(404)

    service = IPFSService(
        api_url="http://ipfs.test:5001",
        gateway_url="https://gateway.test",
        transport=httpx.MockTransport(handler),
    )
    app.dependency_overrides[get_ipfs_service] = lambda: service
    yield store
    app.dependency_overrides.pop(get_ipfs_service, None)


async def test_ipfs_upload(client, make_wallet, auth_header, fake_ipfs):
    _, token = make_wallet()

    response = await client.post(
        "/api/v1/ipfs/upload",
        headers=auth_header(token),
        json={"content": "deed scan", "file_name": "deed.txt"},
    )

    assert response.status_code == 201
    data = response.json()
    assert data["success"] is True
    assert data["gateway_url"] == f"https://gateway.test/ipfs/{data['cid']}"


async def test_ipfs_upload_requires_auth(client, fake_ipfs):
    response = await client.post("/api/v1/ipfs/upload", json={"content": "x"})
    assert response.status_code == 401


async def test_ipfs_fetch_missing_cid(client, fake_ipfs):
    response = await client.get("/api/v1/ipfs/QmMissing")
    assert response.status_code == 502


async def test_ipfs_fetch_file(client, fake_ipfs):
    fake_ipfs["QmKnown"] = b"raw bytes"

    response = await client.get("/api/v1/ipfs/QmKnown")

    assert response.status_code == 200
    assert response.content == b"raw bytes"


async def test_ipfs_fetch_json(client, fake_ipfs):
    fake_ipfs["QmMeta"] = b'{"name": "Lot 7"}'

    response = await client.get("/api/v1/ipfs/json/QmMeta")

    assert response.json() == {"name": "Lot 7"}
