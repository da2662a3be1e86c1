"""Tests for Prometheus metrics: business counters and the /metrics endpoint."""

from sqlalchemy.ext.asyncio import AsyncSession

from rwa_marketplace.core.exceptions import UnauthorizedCallerError
from rwa_marketplace.core.live_feed import ledger_feed
from rwa_marketplace.core.metrics import REGISTRY
from rwa_marketplace.services import ledger_service, listing_service, stats_service


def _sample(name: str, labels: dict) -> float:
    return REGISTRY.get_sample_value(name, labels) or 0.0


async def test_successful_mint_counted(db: AsyncSession, deploy, addr):
    owner = addr()
    contract = (await deploy(owner)).address
    tx_before = _sample("rwa_transactions_total", {"type": "mint", "status": "success"})
    ev_before = _sample("rwa_ledger_events_total", {"event_type": "asset_minted"})

    await ledger_service.mint(db, contract, owner, owner, 1, 1)

    assert _sample("rwa_transactions_total", {"type": "mint", "status": "success"}) == tx_before + 1
    assert _sample("rwa_ledger_events_total", {"event_type": "asset_minted"}) == ev_before + 1


async def test_failed_mint_counted_without_events(db: AsyncSession, deploy, addr):
    owner = addr()
    contract = (await deploy(owner)).address
    failed_before = _sample("rwa_transactions_total", {"type": "mint", "status": "failed"})
    ev_before = _sample("rwa_ledger_events_total", {"event_type": "asset_minted"})

    try:
        await ledger_service.mint(db, contract, addr(), owner, 1, 1)
    except UnauthorizedCallerError:
        pass

    assert _sample("rwa_transactions_total", {"type": "mint", "status": "failed"}) == failed_before + 1
    assert _sample("rwa_ledger_events_total", {"event_type": "asset_minted"}) == ev_before


async def test_metrics_endpoint_exposes_collectors(client):
    await client.get("/api/v1/health")
    response = await client.get("/metrics")
    await ledger_feed.drain()

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/plain")
    body = response.text
    assert "http_requests_total" in body
    assert "rwa_transactions_total" in body
    assert 'method="GET"' in body
    assert "python_info" in body
    assert "rwa_active_listings" in body


async def test_business_gauges_track_marketplace(db: AsyncSession, market, addr):
    await listing_service.list_item(db, market["contract"], market["seller"], 1, 5)

    counts = await stats_service.refresh_business_metrics(db)

    assert counts["contracts"] == 1
    assert counts["listings"] == 1
    assert counts["holders"] == 1
    assert _sample("rwa_contracts_deployed", {}) == 1
    assert _sample("rwa_active_listings", {}) == 1
    assert _sample("rwa_token_holders", {}) == 1

    await ledger_service.transfer(db, market["contract"], market["seller"], market["seller"], addr(), 1, 3)
    await listing_service.cancel_listing(db, market["contract"], market["seller"], 1)
    await stats_service.refresh_business_metrics(db)

    assert _sample("rwa_active_listings", {}) == 0
    assert _sample("rwa_token_holders", {}) == 2


async def test_health_check_refreshes_gauges(client, make_wallet, auth_header):
    _, token = make_wallet()
    for _ in range(2):
        await client.post("/api/v1/contracts", headers=auth_header(token), json={})

    response = await client.get("/api/v1/health")

    assert response.status_code == 200
    assert _sample("rwa_contracts_deployed", {}) == 2
    assert _sample("rwa_active_listings", {}) == 0
