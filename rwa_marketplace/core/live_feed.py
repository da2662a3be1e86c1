"""Live ledger feed: WebSocket subscribers and post-commit event delivery.

Committed ledger events are handed to :data:`ledger_feed` by
``event_service.publish``.  Delivery runs as a background task on the
current loop so a slow subscriber never holds up the request that produced
the event; failed sends drop the subscriber.
"""

from __future__ import annotations

import asyncio
import json
import logging
from datetime import datetime, timezone

from fastapi import WebSocket

logger = logging.getLogger(__name__)


class LedgerFeed:
    MAX_SUBSCRIBERS = 1000

    def __init__(self) -> None:
        self.subscribers: set[WebSocket] = set()
        self._deliveries: set[asyncio.Task[int]] = set()

    async def subscribe(self, ws: WebSocket) -> bool:
        if len(self.subscribers) >= self.MAX_SUBSCRIBERS:
            await ws.close(code=4029, reason="Too many connections")
            return False
        self.subscribers.add(ws)
        await ws.accept()
        return True

    def unsubscribe(self, ws: WebSocket) -> None:
        self.subscribers.discard(ws)

    async def broadcast(self, event_type: str, data: dict) -> int:
        """Send one event to every subscriber. Returns how many received it."""
        message = json.dumps(
            {
                "type": event_type,
                "timestamp": datetime.now(timezone.utc).isoformat(),
                "data": data,
            },
            default=str,
        )
        dead: list[WebSocket] = []
        for ws in list(self.subscribers):
            try:
                await ws.send_text(message)
            except Exception:
                dead.append(ws)
        for ws in dead:
            self.subscribers.discard(ws)
        if dead:
            logger.info("Dropped %d unreachable feed subscribers", len(dead))
        return len(self.subscribers)

    def schedule(self, event_type: str, data: dict) -> asyncio.Task[int] | None:
        """Queue delivery of a committed event; None when there is nothing to deliver to."""
        if not self.subscribers:
            return None
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("No running loop; %s not delivered to the live feed", event_type)
            return None
        task = loop.create_task(self.broadcast(event_type, data), name=f"feed:{event_type}")
        self._deliveries.add(task)
        task.add_done_callback(self._delivery_done)
        return task

    def _delivery_done(self, task: asyncio.Task[int]) -> None:
        self._deliveries.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("Live feed delivery %s failed", task.get_name(), exc_info=exc)

    async def drain(self, timeout_seconds: float = 1.0) -> None:
        """Wait for queued deliveries; cancel whatever is still running after the timeout."""
        pending = {task for task in self._deliveries if not task.done()}
        if not pending:
            return
        _, still_pending = await asyncio.wait(pending, timeout=timeout_seconds)
        for task in still_pending:
            task.cancel()
        if still_pending:
            await asyncio.gather(*still_pending, return_exceptions=True)


ledger_feed = LedgerFeed()
