import logging

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect

from ..services.realtime_service import ConnectionManager, get_connection_manager

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Realtime"])


@router.websocket("/ws")
async def websocket_endpoint(
    websocket: WebSocket,
    manager: ConnectionManager = Depends(get_connection_manager),
):
    """
    Push channel for entity change events.

    The server pushes CLIENT_/VEHICLE_/SERVICE_/BUDGET_ CREATED|UPDATED|DELETED
    messages; clients may send test or echo frames.
    """
    client_id = await manager.connect(websocket)
    try:
        while True:
            raw = await websocket.receive_text()
            await manager.handle_incoming(client_id, raw)
    except WebSocketDisconnect as e:
        logger.info(f"WebSocket client {client_id} closed the connection (code {e.code})")
    finally:
        manager.disconnect(client_id)
