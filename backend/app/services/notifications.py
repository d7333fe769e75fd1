"""Real-time notification fan-out over WebSockets.

Delivery is fire-and-forget: one send attempt per connection, a connection
that fails is dropped, and ``publish`` never raises into the caller.
"""

import asyncio
import logging
from typing import Any, Protocol

from fastapi import WebSocket

logger = logging.getLogger(__name__)

SALE_CREATED = "sale-created"
PRODUCT_CREATED = "product-created"
PRODUCT_UPDATED = "product-updated"
LOW_STOCK_ALERT = "low-stock-alert"


class Broadcaster(Protocol):
    async def publish(self, event: str, payload: dict[str, Any]) -> None: ...


async def publish_safely(broadcaster: Broadcaster, event: str, payload: dict[str, Any]) -> None:
    """Publish without letting a delivery failure reach the caller."""
    try:
        await broadcaster.publish(event, payload)
    except Exception:
        logger.exception("Failed to publish '%s' notification", event)


class ConnectionManager:
    """Tracks connected clients and broadcasts events to all of them."""

    def __init__(self) -> None:
        self._connections: set[WebSocket] = set()

    @property
    def connection_count(self) -> int:
        return len(self._connections)

    async def connect(self, websocket: WebSocket) -> None:
        await websocket.accept()
        self._connections.add(websocket)
        logger.info("Client connected (%d total)", len(self._connections))

    def disconnect(self, websocket: WebSocket) -> None:
        self._connections.discard(websocket)
        logger.info("Client disconnected (%d total)", len(self._connections))

    async def publish(self, event: str, payload: dict[str, Any]) -> None:
        message = {"event": event, "data": payload}
        targets = list(self._connections)
        if not targets:
            return

        results = await asyncio.gather(
            *(ws.send_json(message) for ws in targets), return_exceptions=True
        )
        for ws, result in zip(targets, results):
            if isinstance(result, Exception):
                logger.warning("Dropping client after failed '%s' delivery: %s", event, result)
                self._connections.discard(ws)
