from fastapi import APIRouter, WebSocket, WebSocketDisconnect
from structlog import get_logger

from app.services.realtime import manager

logger = get_logger()
router = APIRouter(tags=["realtime"])


@router.websocket("/ws")
async def realtime_endpoint(websocket: WebSocket):
    """Clients send {"action": "join" | "leave", "room": ...}; room events are pushed back."""
    await manager.connect(websocket)
    try:
        while True:
            message = await websocket.receive_json()
            action = message.get("action") if isinstance(message, dict) else None
            room = message.get("room") if isinstance(message, dict) else None
            if not isinstance(room, str) or not room:
                await websocket.send_json({"event": "error", "data": {"error": "room is required"}})
                continue
            if action == "join":
                manager.join(websocket, room)
                await websocket.send_json({"event": "joined", "room": room, "data": {}})
            elif action == "leave":
                manager.leave(websocket, room)
                await websocket.send_json({"event": "left", "room": room, "data": {}})
            else:
                await websocket.send_json({"event": "error", "room": room, "data": {"error": "Unknown action"}})
    except WebSocketDisconnect:
        logger.info("Socket disconnected")
    finally:
        manager.disconnect(websocket)
