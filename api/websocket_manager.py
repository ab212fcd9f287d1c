"""
WebSocket connections grouped by game.
"""
import asyncio
from typing import Any, Dict, Optional, Set

from fastapi import WebSocket

from .logging_config import get_logger

logger = get_logger("websocket_manager")


class ConnectionManager:
    """Tracks which sockets watch which game and fans out messages."""

    def __init__(self):
        self.active_connections: Dict[str, Set[WebSocket]] = {}
        self.connection_games: Dict[WebSocket, str] = {}
        self._lock = asyncio.Lock()

    async def connect(self, websocket: WebSocket, game_id: str):
        await websocket.accept()
        async with self._lock:
            self.active_connections.setdefault(game_id, set()).add(websocket)
            self.connection_games[websocket] = game_id

    async def disconnect(self, websocket: WebSocket):
        async with self._lock:
            game_id = self.connection_games.pop(websocket, None)
            if game_id is None:
                return
            sockets = self.active_connections.get(game_id)
            if sockets is not None:
                sockets.discard(websocket)
                if not sockets:
                    del self.active_connections[game_id]

    async def send_personal_message(self, message: Dict[str, Any], websocket: WebSocket):
        try:
            await websocket.send_json(message)
        except Exception as e:
            logger.warning("websocket_send_failed", error=str(e))
            await self.disconnect(websocket)

    async def send_error(self, websocket: WebSocket, message: str, kind: Optional[str] = None):
        """Errors go to the socket that caused them, never to the whole game."""
        await self.send_personal_message({"type": "error", "message": message, "kind": kind}, websocket)

    async def broadcast_to_game(self, game_id: str, message: Dict[str, Any]):
        async with self._lock:
            connections = list(self.active_connections.get(game_id, ()))

        disconnected = []
        for connection in connections:
            try:
                await connection.send_json(message)
            except Exception as e:
                logger.warning("websocket_broadcast_failed", game_id=game_id, error=str(e))
                disconnected.append(connection)

        for connection in disconnected:
            await self.disconnect(connection)

    def get_connection_count(self, game_id: str) -> int:
        return len(self.active_connections.get(game_id, ()))


# Global connection manager instance
connection_manager = ConnectionManager()
