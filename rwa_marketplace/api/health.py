import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from rwa_marketplace.database import get_db
from rwa_marketplace.schemas.common import HealthResponse
from rwa_marketplace.services import stats_service

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])

_VERSION = "0.1.0"


@router.get("/health", response_model=HealthResponse)
async def health_check(db: AsyncSession = Depends(get_db)):
    counts = await stats_service.refresh_business_metrics(db)

    return HealthResponse(
        status="healthy",
        version=_VERSION,
        contracts_count=counts["contracts"],
        listings_count=counts["listings"],
        events_count=counts["events"],
        holders_count=counts["holders"],
    )


@router.get("/health/ready")
async def readiness_check(db: AsyncSession = Depends(get_db)):
    """Readiness probe: verifies DB connectivity."""
    try:
        await db.execute(text("SELECT 1"))
        return {"status": "ready", "database": "connected"}
    except Exception:
        logger.exception("Readiness check failed: database unreachable")
        return JSONResponse(
            status_code=503,
            content={"status": "not_ready", "database": "unavailable"},
        )
