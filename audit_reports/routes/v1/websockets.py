from fastapi import APIRouter, WebSocket, WebSocketDisconnect
from audit_reports.core.websockets.manager import manager
import logging

logger = logging.getLogger(__name__)
router = APIRouter()

@router.websocket("/{room_id}")
async def websocket_endpoint(websocket: WebSocket, room_id: str):
    """
    Report status updates.
    room_id is an inspection id, or "reports" for every report.
    """
    await manager.connect(websocket, room_id)
    try:
        while True:
            # Clients only listen; incoming text keeps the socket alive
            data = await websocket.receive_text()
            logger.debug(f"Received from {room_id}: {data}")
    except WebSocketDisconnect:
        manager.disconnect(websocket, room_id)
    except Exception as e:
        logger.error(f"WebSocket error in room {room_id}: {type(e).__name__}: {e}")
        manager.disconnect(websocket, room_id)
