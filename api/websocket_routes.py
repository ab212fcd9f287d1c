"""
WebSocket routes for real-time game communication.
"""
from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from engine import GameError

from .game_service import GameNotFoundError, GameService
from .logging_config import activity_logger, get_logger
from .monitoring import websocket_connections

logger = get_logger("websocket")

router = APIRouter()


async def _send_state(service: GameService, websocket: WebSocket, game_id: str) -> bool:
    """Send the current view and make sure a waiting bot seat is being played."""
    try:
        view = service.get_game_view(game_id)
    except GameNotFoundError as e:
        await service.connections.send_error(websocket, str(e), "game_not_found")
        return False
    await service.connections.send_personal_message({"type": "game_state", "data": view}, websocket)
    service.ensure_bot_loop(game_id)
    return True


@router.websocket("/ws/game/{game_id}")
async def websocket_game_endpoint(websocket: WebSocket, game_id: str):
    """Push state updates for one game and accept actions from its players."""
    service: GameService = websocket.app.state.game_service
    connections = service.connections

    await connections.connect(websocket, game_id)
    websocket_connections.labels(game_id=game_id).inc()
    logger.info("websocket_connected", game_id=game_id, connections=connections.get_connection_count(game_id))
    activity_logger.log_websocket_event("connected", game_id)

    try:
        if not await _send_state(service, websocket, game_id):
            return

        while True:
            data = await websocket.receive_json()
            message_type = data.get("type") if isinstance(data, dict) else None

            if message_type == "ping":
                await connections.send_personal_message({"type": "pong"}, websocket)

            elif message_type == "get_state":
                await _send_state(service, websocket, game_id)

            elif message_type == "action":
                action = data.get("action")
                if not isinstance(action, dict):
                    await connections.send_error(websocket, "Action must be a JSON object", "invalid_action")
                    continue
                try:
                    # Success is broadcast to every socket of the game, this one included
                    await service.submit_action(game_id, action)
                except GameError as e:
                    await connections.send_error(websocket, e.message, e.kind)
                except GameNotFoundError as e:
                    await connections.send_error(websocket, str(e), "game_not_found")

            else:
                await connections.send_error(websocket, f"Unknown message type: {message_type}", "unknown_message")

    except WebSocketDisconnect:
        logger.info("websocket_disconnected", game_id=game_id)
        activity_logger.log_websocket_event("disconnected", game_id)
    finally:
        await connections.disconnect(websocket)
        websocket_connections.labels(game_id=game_id).dec()
