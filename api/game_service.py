"""
Game orchestration: lobby seats, action processing, persistence, broadcasts
and the bot scheduling loop.

Every state change for a game goes through `_apply`, which runs the engine
under the game's lock, logs the step, and broadcasts the new state. Bot turns
are driven by one asyncio task per game that re-enters the same path.
"""
import asyncio
import json
import random
import uuid
from typing import Any, Dict, List, Optional

from bots import create_bot_player, generate_bot_action, get_player_color, is_bot_controlled
from bots.bot_factory import ABANDONED_SEAT_LEVEL
from engine import (
    ActionType,
    GameAction,
    GameError,
    GameState,
    InvalidActionError,
    Player,
    deserialize_action,
    final_standings,
    serialize_action,
    serialize_game_state,
)
from engine.engine import PHASE_FINISHED
from game_engine import MAX_PLAYERS, MIN_PLAYERS, GameManager

from . import database as db
from .logging_config import activity_logger, get_logger
from .monitoring import active_games, bot_actions_total, track_game_action
from .websocket_manager import ConnectionManager

logger = get_logger("game_service")


class GameNotFoundError(LookupError):
    """No game with this ID exists."""

    def __init__(self, game_id: str):
        super().__init__(f"Game {game_id} not found")
        self.game_id = game_id


def _seat(player_id: str, name: str, color: str, is_bot: bool = False, bot_level: Optional[str] = None) -> Dict[str, Any]:
    return {
        "player_id": player_id,
        "name": name,
        "color": color,
        "is_bot": is_bot,
        "bot_level": bot_level,
    }


class GameService:
    """Owns the running games of one process."""

    def __init__(
        self,
        manager: GameManager,
        connections: ConnectionManager,
        bot_delay_seconds: float = 1.0,
        max_bot_actions: int = 500,
        rng: Optional[random.Random] = None,
    ):
        self.manager = manager
        self.connections = connections
        self.bot_delay_seconds = bot_delay_seconds
        self.max_bot_actions = max_bot_actions
        self.rng = rng or random.Random()
        self._bot_tasks: Dict[str, asyncio.Task] = {}

    # Lobby

    def _require_row(self, game_id: str):
        row = db.get_game(game_id)
        if row is None:
            raise GameNotFoundError(game_id)
        return row

    def _seats(self, row) -> List[Dict[str, Any]]:
        metadata = json.loads(row["metadata"]) if row["metadata"] else {}
        return metadata.get("seats", [])

    def create_lobby(self, player_name: str, bot_levels: List[str]) -> Dict[str, Any]:
        """Open a waiting game with the creator's seat and any bot seats."""
        if 1 + len(bot_levels) > MAX_PLAYERS:
            raise InvalidActionError(f"A game holds at most {MAX_PLAYERS} players")

        game_id = str(uuid.uuid4())
        creator_id = str(uuid.uuid4())
        seats = [_seat(creator_id, player_name, get_player_color(0))]
        for level in bot_levels:
            try:
                bot = create_bot_player(level, len(seats))
            except ValueError as e:
                raise InvalidActionError(str(e))
            seats.append(_seat(bot.id, bot.name, bot.color, True, bot.bot_level))

        db.create_game(game_id, {"seats": seats, "creator_id": creator_id})
        activity_logger.log_lobby_event("created", game_id, {"seats": len(seats)})
        logger.info("game_created", game_id=game_id, seats=len(seats))
        return {"game_id": game_id, "player_id": creator_id, "players": seats}

    def join_lobby(self, game_id: str, player_name: str) -> Dict[str, Any]:
        with self.manager.lock_for(game_id):
            row = self._require_row(game_id)
            if row["status"] != db.GAME_STATUS_WAITING:
                raise InvalidActionError("Game has already started")
            seats = self._seats(row)
            if len(seats) >= MAX_PLAYERS:
                raise InvalidActionError("Game is full")

            player_id = str(uuid.uuid4())
            seats.append(_seat(player_id, player_name, get_player_color(len(seats))))
            metadata = json.loads(row["metadata"])
            metadata["seats"] = seats
            db.update_game_metadata(game_id, metadata)

        activity_logger.log_lobby_event("joined", game_id, {"player_id": player_id})
        return {"game_id": game_id, "player_id": player_id, "players": seats}

    async def start_game(self, game_id: str) -> Dict[str, Any]:
        """Turn a waiting lobby into a running game."""
        with self.manager.lock_for(game_id):
            row = self._require_row(game_id)
            if row["status"] != db.GAME_STATUS_WAITING:
                raise InvalidActionError("Game has already started")
            seats = self._seats(row)
            if not MIN_PLAYERS <= len(seats) <= MAX_PLAYERS:
                raise InvalidActionError(f"Game must have {MIN_PLAYERS}-{MAX_PLAYERS} players")

            players = [
                Player(
                    id=seat["player_id"],
                    name=seat["name"],
                    color=seat["color"],
                    is_bot=seat["is_bot"],
                    bot_level=seat["bot_level"],
                )
                for seat in seats
            ]
            game = self.manager.create_game(game_id, players)
            db.update_game_status(game_id, db.GAME_STATUS_IN_PROGRESS)

        active_games.inc()
        state_json = serialize_game_state(game.get_state())
        logger.info("game_started", game_id=game_id, players=len(players))
        await self._broadcast_state(game_id, state_json)
        self.ensure_bot_loop(game_id)
        return state_json

    def list_games(self, status: Optional[str] = None) -> List[Dict[str, Any]]:
        return [
            {
                "game_id": row["id"],
                "status": row["status"],
                "created_at": row["created_at"],
                "players": [seat["name"] for seat in self._seats(row)],
            }
            for row in db.list_games(status)
        ]

    def get_game_view(self, game_id: str) -> Dict[str, Any]:
        """The lobby while waiting, the live state afterwards."""
        row = self._require_row(game_id)
        view = {"game_id": game_id, "status": row["status"]}
        if row["status"] == db.GAME_STATUS_WAITING:
            view["players"] = self._seats(row)
            return view
        view["state"] = self.get_state_json(game_id)
        return view

    def get_state_json(self, game_id: str) -> Optional[Dict[str, Any]]:
        state = self.manager.get_state(game_id)
        return serialize_game_state(state) if state else None

    def get_results(self, game_id: str) -> List[Dict[str, Any]]:
        row = self._require_row(game_id)
        if row["status"] != db.GAME_STATUS_FINISHED:
            raise InvalidActionError("Game is not finished")
        return [
            {
                "player_id": r["player_id"],
                "player_name": r["player_name"],
                "rank": r["rank"],
                "victory_points": r["victory_points"],
                "points": r["points"],
            }
            for r in db.get_game_results(game_id)
        ]

    def get_steps(self, game_id: str) -> List[Dict[str, Any]]:
        """The game's action log, oldest first."""
        self._require_row(game_id)
        return [
            {
                "step_idx": row["step_idx"],
                "player_id": row["player_id"],
                "action": json.loads(row["action_json"]),
                "state_after": json.loads(row["state_after_json"]),
                "dice_roll": row["dice_roll"],
                "timestamp": row["timestamp"],
            }
            for row in db.get_steps(game_id)
        ]

    # Actions

    async def submit_action(self, game_id: str, action_data: Dict[str, Any], player_id: Optional[str] = None) -> Dict[str, Any]:
        """Apply a client action and wake the bots if their turn comes up."""
        row = self._require_row(game_id)
        if row["status"] == db.GAME_STATUS_WAITING:
            raise InvalidActionError("Game has not started")

        action = deserialize_action(action_data, player_id=player_id)
        try:
            return await self._apply(game_id, action)
        finally:
            # A rejected action still wakes a bot seat whose loop has stopped
            self.ensure_bot_loop(game_id)

    async def _apply(self, game_id: str, action: GameAction) -> Dict[str, Any]:
        try:
            state = self.manager.process_action(game_id, action)
        except KeyError:
            raise GameNotFoundError(game_id)
        except GameError as e:
            track_game_action(action.type.value, "rejected")
            activity_logger.log_game_action(game_id, action.player_id, action.type.value, "rejected", {"kind": e.kind})
            logger.info("action_rejected", game_id=game_id, action=action.type.value, kind=e.kind, error=e.message)
            raise

        track_game_action(action.type.value, "applied")
        state_json = serialize_game_state(state)
        dice = state.dice_roll.value if action.type == ActionType.ROLL_DICE and state.dice_roll else None
        step_idx = db.add_step(game_id, action.player_id, serialize_action(action), state_json, dice)
        activity_logger.log_game_action(game_id, action.player_id, action.type.value)
        logger.debug("action_applied", game_id=game_id, step_idx=step_idx, action=action.type.value)

        if state.phase == PHASE_FINISHED:
            self._finish_game(game_id, state)
        await self._broadcast_state(game_id, state_json)
        return state_json

    def _finish_game(self, game_id: str, state: GameState) -> None:
        standings = [(p.id, p.name, p.victory_points) for p in final_standings(state)]
        db.save_game_results(game_id, standings)
        db.update_game_status(game_id, db.GAME_STATUS_FINISHED)
        active_games.dec()
        logger.info("game_finished", game_id=game_id, winner_id=state.winner_id, turns=state.turn_number)

    async def _broadcast_state(self, game_id: str, state_json: Dict[str, Any]) -> None:
        await self.connections.broadcast_to_game(game_id, {"type": "game_state_update", "data": state_json})

    # Leaving and deleting

    async def leave_game(self, game_id: str, player_id: str) -> Dict[str, Any]:
        """Free a lobby seat, or hand an in-progress seat to a bot.

        The game is deleted once no active human is left in it.
        """
        row = self._require_row(game_id)
        if row["status"] == db.GAME_STATUS_WAITING:
            with self.manager.lock_for(game_id):
                seats = self._seats(row)
                remaining = [s for s in seats if s["player_id"] != player_id]
                if len(remaining) == len(seats):
                    raise InvalidActionError(f"Player {player_id} is not in this game")
                metadata = json.loads(row["metadata"])
                metadata["seats"] = remaining
                db.update_game_metadata(game_id, metadata)
            humans_left = any(not s["is_bot"] for s in remaining)
        elif row["status"] == db.GAME_STATUS_IN_PROGRESS:
            try:
                state = self.manager.set_player_active(game_id, player_id, False)
            except ValueError as e:
                raise InvalidActionError(str(e))
            except KeyError:
                raise GameNotFoundError(game_id)
            humans_left = any(not is_bot_controlled(p) for p in state.players)
            if humans_left:
                await self._broadcast_state(game_id, serialize_game_state(state))
        else:
            raise InvalidActionError("Game is finished")

        activity_logger.log_lobby_event("left", game_id, {"player_id": player_id})
        if not humans_left:
            await self.delete_game(game_id)
            return {"game_id": game_id, "deleted": True}
        self.ensure_bot_loop(game_id)
        return {"game_id": game_id, "deleted": False}

    async def delete_game(self, game_id: str) -> None:
        row = self._require_row(game_id)
        self.cancel_bot_loop(game_id)
        self.manager.evict(game_id)
        db.delete_game(game_id)
        if row["status"] == db.GAME_STATUS_IN_PROGRESS:
            active_games.dec()
        logger.info("game_deleted", game_id=game_id)
        await self.connections.broadcast_to_game(game_id, {"type": "game_deleted", "game_id": game_id})

    # Bot scheduling

    def ensure_bot_loop(self, game_id: str) -> None:
        """Start the game's bot loop if a bot is to move and none is running."""
        task = self._bot_tasks.get(game_id)
        if task is not None and not task.done():
            return
        game = self.manager.get_game(game_id)
        if game is None or not game.is_bot_turn():
            return
        self._bot_tasks[game_id] = asyncio.create_task(self.run_bot_loop(game_id))

    def bot_task(self, game_id: str) -> Optional[asyncio.Task]:
        return self._bot_tasks.get(game_id)

    def cancel_bot_loop(self, game_id: str) -> None:
        task = self._bot_tasks.pop(game_id, None)
        if task is not None and task is not asyncio.current_task() and not task.done():
            task.cancel()

    def resume_bot_loops(self) -> int:
        """Restart bot loops for stored games waiting on a bot seat, e.g. after a restart."""
        started = 0
        for row in db.list_games(db.GAME_STATUS_IN_PROGRESS):
            self.ensure_bot_loop(row["id"])
            if self.bot_task(row["id"]) is not None:
                started += 1
        if started:
            logger.info("bot_loops_resumed", games=started)
        return started

    def cancel_all_bot_loops(self) -> None:
        for game_id in list(self._bot_tasks):
            self.cancel_bot_loop(game_id)

    async def run_bot_loop(self, game_id: str) -> int:
        """Play bot turns until a human is to move. Returns the number of bot actions."""
        taken = 0
        reason = "action_cap"
        try:
            while taken < self.max_bot_actions:
                await asyncio.sleep(self.bot_delay_seconds)
                if db.get_game(game_id) is None:
                    reason = "deleted"
                    break
                game = self.manager.get_game(game_id)
                if game is None or game.is_finished():
                    reason = "finished"
                    break
                if not game.is_bot_turn():
                    reason = "human_turn"
                    break

                state = game.get_state()
                seat = state.current_player()
                action = generate_bot_action(state, rng=self.rng)
                if action is None:
                    reason = "no_action"
                    break
                try:
                    await self._apply(game_id, action)
                except GameError as e:
                    logger.warning("bot_action_failed", game_id=game_id, player_id=seat.id, kind=e.kind, error=e.message)
                    reason = "action_failed"
                    break
                except GameNotFoundError:
                    reason = "deleted"
                    break

                level = seat.bot_level if seat.is_bot else ABANDONED_SEAT_LEVEL
                bot_actions_total.labels(level=level).inc()
                logger.debug("bot_action", game_id=game_id, player_id=seat.id, action=action.type.value)
                taken += 1
        finally:
            if self._bot_tasks.get(game_id) is asyncio.current_task():
                del self._bot_tasks[game_id]
        logger.info("bot_loop_stopped", game_id=game_id, reason=reason, actions=taken)
        return taken
