import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Query, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from rwa_marketplace.core.live_feed import ledger_feed
from rwa_marketplace.database import init_db
from rwa_marketplace.models import *  # noqa: F403

APP_VERSION = "0.1.0"
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    # Startup: create tables
    await init_db()
    from rwa_marketplace.config import settings
    from rwa_marketplace.database import async_session

    # Keep the business gauges current between health checks
    async def _metrics_loop() -> None:
        from rwa_marketplace.services import stats_service

        while True:
            try:
                async with async_session() as db:
                    await stats_service.refresh_business_metrics(db)
            except Exception:
                logger.exception("Background task error")
            await asyncio.sleep(settings.metrics_refresh_seconds)

    metrics_task = asyncio.create_task(_metrics_loop()) if settings.metrics_enabled else None
    logger.info("RWA marketplace %s started", APP_VERSION)

    yield

    # Shutdown: cancel background tasks and dispose connection pool
    if metrics_task is not None:
        metrics_task.cancel()
        await asyncio.gather(metrics_task, return_exceptions=True)
    await ledger_feed.drain()

    from rwa_marketplace.database import dispose_engine

    await dispose_engine()


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        response: Response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"
        response.headers["Permissions-Policy"] = (
            "camera=(), microphone=(), geolocation=(), payment=(), usb=()"
        )
        return response


def create_app() -> FastAPI:
    app = FastAPI(
        title="RWA Marketplace",
        description="Tokenized real-world assets: multi-token ledger, listings and atomic purchases",
        version=APP_VERSION,
        lifespan=lifespan,
    )

    # CORS configurable via CORS_ORIGINS env var
    from rwa_marketplace.config import settings

    allowed_origins = [o.strip() for o in settings.cors_origins.split(",") if o.strip()]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Request metrics
    if settings.metrics_enabled:
        from rwa_marketplace.core.metrics import PrometheusMiddleware

        app.add_middleware(PrometheusMiddleware)

    # Security headers
    app.add_middleware(SecurityHeadersMiddleware)

    # Register REST routers
    from rwa_marketplace.api import API_PREFIX, API_ROUTERS

    for router in API_ROUTERS:
        app.include_router(router, prefix=API_PREFIX)

    if settings.metrics_enabled:
        @app.get("/metrics", include_in_schema=False)
        async def metrics() -> Response:
            from rwa_marketplace.core.metrics import metrics_response

            return metrics_response()

    # WebSocket for live feed (JWT-authenticated)
    @app.websocket("/ws/feed")
    async def live_feed(ws: WebSocket, token: str | None = Query(default=None)) -> None:
        from rwa_marketplace.core.auth import decode_token
        from rwa_marketplace.core.exceptions import UnauthorizedError

        if not token:
            await ws.close(code=4001, reason="Missing token query parameter")
            return
        try:
            decode_token(token)
        except UnauthorizedError:
            await ws.close(code=4003, reason="Invalid or expired token")
            return

        if not await ledger_feed.subscribe(ws):
            return
        try:
            while True:
                # Keep connection alive, receive pings
                await ws.receive_text()
        except WebSocketDisconnect:
            ledger_feed.unsubscribe(ws)

    @app.get("/")
    async def root() -> dict[str, str]:
        return {
            "name": "RWA Marketplace",
            "version": APP_VERSION,
            "docs": "/docs",
            "health": f"{API_PREFIX}/health",
            "metrics": "/metrics",
        }

    return app


app = create_app()
