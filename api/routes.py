"""API routes for the settlers game."""
from typing import Any, Dict, List, Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel, Field

from .game_service import GameNotFoundError, GameService

router = APIRouter()


def get_game_service(request: Request) -> GameService:
    return request.app.state.game_service


# Request/Response models
class BotSeatRequest(BaseModel):
    """A bot seat to add when creating a game."""
    level: Literal["amateur", "intermediate", "difficult"]


class CreateGameRequest(BaseModel):
    """Request to open a new game lobby."""
    player_name: str = Field(min_length=1, max_length=40)
    bots: List[BotSeatRequest] = Field(default_factory=list)


class JoinGameRequest(BaseModel):
    player_name: str = Field(min_length=1, max_length=40)


class SeatResponse(BaseModel):
    player_id: str
    name: str
    color: str
    is_bot: bool
    bot_level: Optional[str] = None


class LobbyResponse(BaseModel):
    """Seats of a waiting game and the caller's own seat."""
    game_id: str
    player_id: str
    players: List[SeatResponse]


class GameSummary(BaseModel):
    game_id: str
    status: str
    created_at: Optional[str] = None
    players: List[str]


class ActRequest(BaseModel):
    """Request to perform an action."""
    player_id: str
    action: Dict[str, Any]  # Serialized GameAction, {"type", "payload"}


class ActResponse(BaseModel):
    new_state: Dict[str, Any]


class LeaveRequest(BaseModel):
    player_id: str


class LeaveResponse(BaseModel):
    game_id: str
    deleted: bool


class ResultEntry(BaseModel):
    player_id: str
    player_name: str
    rank: int
    victory_points: int
    points: int


class StepLog(BaseModel):
    step_idx: int
    player_id: Optional[str] = None
    action: Dict[str, Any]
    state_after: Dict[str, Any]
    dice_roll: Optional[int] = None
    timestamp: Optional[str] = None


class ReplayResponse(BaseModel):
    """Logged steps of a game, for replays."""
    game_id: str
    steps: List[StepLog]


def _not_found(e: GameNotFoundError) -> HTTPException:
    return HTTPException(status_code=404, detail=str(e))


@router.post("/games", response_model=LobbyResponse)
async def create_game(request: CreateGameRequest, service: GameService = Depends(get_game_service)):
    """Open a lobby with the creator's seat and the requested bots."""
    return service.create_lobby(request.player_name, [bot.level for bot in request.bots])


@router.get("/games", response_model=List[GameSummary])
async def list_games(status: Optional[str] = None, service: GameService = Depends(get_game_service)):
    return service.list_games(status)


@router.get("/games/{game_id}")
async def get_game(game_id: str, service: GameService = Depends(get_game_service)):
    """Lobby seats while waiting, the full game state once started."""
    try:
        return service.get_game_view(game_id)
    except GameNotFoundError as e:
        raise _not_found(e)


@router.post("/games/{game_id}/join", response_model=LobbyResponse)
async def join_game(game_id: str, request: JoinGameRequest, service: GameService = Depends(get_game_service)):
    try:
        return service.join_lobby(game_id, request.player_name)
    except GameNotFoundError as e:
        raise _not_found(e)


@router.post("/games/{game_id}/start")
async def start_game(game_id: str, service: GameService = Depends(get_game_service)):
    try:
        state = await service.start_game(game_id)
    except GameNotFoundError as e:
        raise _not_found(e)
    return {"game_id": game_id, "state": state}


@router.post("/games/{game_id}/actions", response_model=ActResponse)
async def act(game_id: str, request: ActRequest, service: GameService = Depends(get_game_service)):
    """Apply one action for the given seat and return the new state."""
    try:
        new_state = await service.submit_action(game_id, request.action, player_id=request.player_id)
    except GameNotFoundError as e:
        raise _not_found(e)
    return ActResponse(new_state=new_state)


@router.post("/games/{game_id}/leave", response_model=LeaveResponse)
async def leave_game(game_id: str, request: LeaveRequest, service: GameService = Depends(get_game_service)):
    try:
        return await service.leave_game(game_id, request.player_id)
    except GameNotFoundError as e:
        raise _not_found(e)


@router.get("/games/{game_id}/results", response_model=List[ResultEntry])
async def get_results(game_id: str, service: GameService = Depends(get_game_service)):
    try:
        return service.get_results(game_id)
    except GameNotFoundError as e:
        raise _not_found(e)


@router.get("/games/{game_id}/replay", response_model=ReplayResponse)
async def get_replay(game_id: str, service: GameService = Depends(get_game_service)):
    """Get the sequence of logged steps for a game."""
    try:
        steps = service.get_steps(game_id)
    except GameNotFoundError as e:
        raise _not_found(e)
    return ReplayResponse(game_id=game_id, steps=steps)


@router.delete("/games/{game_id}")
async def delete_game(game_id: str, service: GameService = Depends(get_game_service)):
    try:
        await service.delete_game(game_id)
    except GameNotFoundError as e:
        raise _not_found(e)
    return {"game_id": game_id, "deleted": True}
