import json
from typing import Any, Dict, List
from fastapi import WebSocket
import logging

logger = logging.getLogger(__name__)

# Room every report status change is also sent to
REPORTS_ROOM = "reports"


class ConnectionManager:
    def __init__(self):
        # Map room_id -> List[WebSocket]
        self.active_connections: Dict[str, List[WebSocket]] = {}

    async def connect(self, websocket: WebSocket, room_id: str):
        await websocket.accept()
        if room_id not in self.active_connections:
            self.active_connections[room_id] = []
        self.active_connections[room_id].append(websocket)
        logger.info(f"WebSocket connected: {room_id}. Total in room: {len(self.active_connections[room_id])}")

    def disconnect(self, websocket: WebSocket, room_id: str):
        if room_id in self.active_connections:
            if websocket in self.active_connections[room_id]:
                self.active_connections[room_id].remove(websocket)
                if not self.active_connections[room_id]:
                    del self.active_connections[room_id]
            logger.info(f"WebSocket disconnected: {room_id}")

    async def broadcast(self, message: str, room_id: str):
        # Copy: a failing socket may disconnect while we iterate
        for connection in list(self.active_connections.get(room_id, [])):
            try:
                await connection.send_text(message)
            except Exception as e:
                logger.error(f"Error broadcasting to {room_id}: {e}")

    async def notify_report(self, report_id: Any, inspection_id: Any, status: str, error: str = None):
        """Push a report status change to the inspection's room and the shared reports room."""
        message = json.dumps({
            "type": "report_status",
            "report_id": str(report_id),
            "inspection_id": str(inspection_id),
            "status": status,
            "error": error,
        })
        for room_id in (str(inspection_id), REPORTS_ROOM):
            await self.broadcast(message, room_id)

manager = ConnectionManager()
