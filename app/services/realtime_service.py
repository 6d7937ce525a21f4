"""
Realtime Notification Service
Keeps the open /ws connections and fans entity change events out to all of them
"""

import itertools
import json
import logging
from datetime import datetime, timezone
from typing import Any, Optional

from fastapi import WebSocket

logger = logging.getLogger(__name__)

# table name -> message type prefix
ENTITY_EVENT_PREFIX = {
    "clients": "CLIENT",
    "vehicles": "VEHICLE",
    "services": "SERVICE",
    "budgets": "BUDGET",
}

# table name -> key used in the message payload ({"service": {...}} / {"serviceId": 7})
ENTITY_DATA_KEY = {
    "clients": "client",
    "vehicles": "vehicle",
    "services": "service",
    "budgets": "budget",
}


def utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


def build_change_message(table: str, action: str, record: Optional[dict] = None, record_id: Optional[int] = None) -> dict:
    """
    Build a change event such as SERVICE_CREATED.

    Created/updated events carry the full record; deleted events only carry
    the id, e.g. {"type": "SERVICE_DELETED", "data": {"serviceId": 7}}.
    """
    prefix = ENTITY_EVENT_PREFIX[table]
    key = ENTITY_DATA_KEY[table]
    if action == "DELETED":
        data = {f"{key}Id": record_id}
    else:
        data = {key: record}
    return {"type": f"{prefix}_{action}", "data": data, "timestamp": utc_timestamp()}


class ConnectionManager:
    """Tracks connected WebSocket clients by a numeric id and broadcasts to them"""

    def __init__(self):
        self.active_connections: dict[int, WebSocket] = {}
        self._ids = itertools.count(1)

    async def connect(self, websocket: WebSocket) -> int:
        await websocket.accept()
        client_id = next(self._ids)
        self.active_connections[client_id] = websocket
        logger.info(f"🔌 WebSocket client {client_id} connected ({len(self.active_connections)} open)")

        await websocket.send_json(
            {
                "type": "CONNECTION_ESTABLISHED",
                "message": "WebSocket connection established",
                "clientId": client_id,
                "timestamp": utc_timestamp(),
            }
        )
        return client_id

    def disconnect(self, client_id: int) -> None:
        if self.active_connections.pop(client_id, None) is not None:
            logger.info(f"🔌 WebSocket client {client_id} disconnected ({len(self.active_connections)} open)")

    async def broadcast(self, message: dict) -> int:
        """Send a message to every open connection; returns how many received it"""
        text = json.dumps(message, default=str)
        delivered = 0
        for client_id, websocket in list(self.active_connections.items()):
            try:
                await websocket.send_text(text)
                delivered += 1
            except Exception as e:
                logger.warning(f"⚠️ Dropping WebSocket client {client_id} after send failure: {e}")
                self.disconnect(client_id)
        logger.debug(f"📣 Broadcast {message.get('type')} to {delivered} client(s)")
        return delivered

    async def notify_change(self, table: str, action: str, record: Optional[dict] = None, record_id: Optional[int] = None) -> int:
        return await self.broadcast(build_change_message(table, action, record=record, record_id=record_id))

    async def handle_incoming(self, client_id: int, raw: str) -> None:
        """React to a frame sent by a client (test pings, relayed notifications, echo)"""
        websocket = self.active_connections.get(client_id)
        try:
            data: Any = json.loads(raw)
            if not isinstance(data, dict):
                raise ValueError("frame must be a JSON object")
        except ValueError as e:
            logger.warning(f"⚠️ Invalid WebSocket frame from client {client_id}: {e}")
            if websocket:
                await websocket.send_json({"type": "error", "message": "Invalid message", "timestamp": utc_timestamp()})
            return

        if data.get("type") == "notification" and data.get("broadcast") is True:
            relayed = {k: v for k, v in data.items() if k != "broadcast"}
            await self.broadcast(relayed)
            return

        if data.get("type") == "test":
            await self.broadcast(
                {
                    "type": "notification",
                    "title": "Test notification",
                    "message": data.get("message") or "This is a test notification from the server",
                    "notificationType": "info",
                    "timestamp": utc_timestamp(),
                }
            )
            return

        if websocket:
            await websocket.send_json(
                {
                    "type": "response",
                    "message": "Message received by the server",
                    "received": data,
                    "timestamp": utc_timestamp(),
                }
            )


# Global manager instance
manager = ConnectionManager()


def get_connection_manager() -> ConnectionManager:
    """Dependency injection for the connection manager"""
    return manager
