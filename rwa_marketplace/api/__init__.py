"""API router registry used by the app factory.

This keeps route module imports and inclusion order in one place so
`rwa_marketplace.main` stays focused on startup wiring.
"""

from __future__ import annotations

from fastapi import APIRouter

from . import contracts, health, ipfs, listings, tokens, wallet

API_PREFIX = "/api/v1"

API_ROUTERS: tuple[APIRouter, ...] = (
    health.router,
    contracts.router,
    tokens.router,
    listings.router,
    wallet.router,
    ipfs.router,
)

__all__ = ["API_PREFIX", "API_ROUTERS"]
