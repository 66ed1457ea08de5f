import asyncio
from typing import Dict, List, Set

from fastapi import WebSocket
from fastapi.encoders import jsonable_encoder
from structlog import get_logger

logger = get_logger()


def chat_room(room_id: int) -> str:
    return f"chat_{room_id}"


def user_room(user_id: int) -> str:
    return f"user_{user_id}"


class ConnectionManager:
    """Room-keyed fan-out over WebSocket connections."""

    def __init__(self):
        self.rooms: Dict[str, List[WebSocket]] = {}
        self.pending: Set[asyncio.Task] = set()

    async def connect(self, websocket: WebSocket) -> None:
        await websocket.accept()

    def join(self, websocket: WebSocket, room: str) -> None:
        members = self.rooms.setdefault(room, [])
        if websocket not in members:
            members.append(websocket)
        logger.info("Socket joined room", room=room, members=len(members))

    def leave(self, websocket: WebSocket, room: str) -> None:
        members = self.rooms.get(room)
        if not members:
            return
        self.rooms[room] = [ws for ws in members if ws is not websocket]
        if not self.rooms[room]:
            del self.rooms[room]

    def disconnect(self, websocket: WebSocket) -> None:
        for room in list(self.rooms):
            self.leave(websocket, room)

    async def broadcast(self, room: str, event: str, data: dict) -> int:
        """Send to every socket in the room; returns how many received it.

        Sockets that fail to receive are dropped from all rooms.
        """
        members = list(self.rooms.get(room, []))
        message = jsonable_encoder({"event": event, "room": room, "data": data})
        delivered = 0
        for ws in members:
            try:
                await ws.send_json(message)
                delivered += 1
            except Exception as e:
                logger.warning("Failed to send to socket", room=room, room_event=event, error=str(e))
                self.disconnect(ws)
        logger.debug("Broadcast", room=room, room_event=event, delivered=delivered)
        return delivered

    async def publish(self, room: str, event: str, data: dict) -> None:
        """Schedule a broadcast and return at once; delivery never blocks or fails the caller."""
        task = asyncio.create_task(self.broadcast(room, event, data))
        self.pending.add(task)
        task.add_done_callback(self._delivered)

    def _delivered(self, task: asyncio.Task) -> None:
        self.pending.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.warning("Realtime publish failed", error=str(error))

    async def drain(self) -> None:
        """Wait for every scheduled broadcast to finish."""
        if self.pending:
            await asyncio.gather(*list(self.pending), return_exceptions=True)


manager = ConnectionManager()
