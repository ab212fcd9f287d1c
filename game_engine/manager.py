"""
Registry of running games.

The in-memory map is a cache: a game missing from it is reloaded from the
store, so a restarted process picks up where the last one stopped.
"""
import random
import threading
from typing import Dict, List, Optional, Protocol, Sequence, Tuple

from engine import DevelopmentCardDeck, GameAction, GameState, Player
from .game import Game


class GameStore(Protocol):
    """Persistence used by the manager."""

    def load_game(self, game_id: str) -> Optional[Tuple[GameState, List[str]]]:
        ...

    def save_game(self, game_id: str, state: GameState, deck_cards: List[str]) -> None:
        ...


class GameManager:
    """Owns running Game instances and serializes actions per game."""

    def __init__(self, store: GameStore):
        self.store = store
        self._games: Dict[str, Game] = {}
        self._locks: Dict[str, threading.RLock] = {}
        self._registry_lock = threading.Lock()

    def lock_for(self, game_id: str) -> threading.RLock:
        """The lock every mutation of one game runs under."""
        with self._registry_lock:
            lock = self._locks.get(game_id)
            if lock is None:
                lock = self._locks[game_id] = threading.RLock()
            return lock

    def create_game(
        self,
        game_id: str,
        players: Sequence[Player],
        rng: Optional[random.Random] = None,
    ) -> Game:
        game = Game.create(game_id, players, rng=rng)
        with self.lock_for(game_id):
            self.store.save_game(game_id, game.get_state(), game.deck_cards())
            with self._registry_lock:
                self._games[game_id] = game
        return game

    def get_game(self, game_id: str) -> Optional[Game]:
        """Cached game, or the stored one loaded into the cache."""
        with self._registry_lock:
            game = self._games.get(game_id)
        if game is not None:
            return game

        loaded = self.store.load_game(game_id)
        if loaded is None:
            return None
        state, cards = loaded
        game = Game(state, DevelopmentCardDeck(cards=cards))
        with self._registry_lock:
            # Another thread may have loaded it first
            return self._games.setdefault(game_id, game)

    def get_state(self, game_id: str) -> Optional[GameState]:
        game = self.get_game(game_id)
        return game.get_state() if game else None

    def process_action(self, game_id: str, action: GameAction) -> GameState:
        """Apply an action under the game's lock and persist the result."""
        with self.lock_for(game_id):
            game = self.get_game(game_id)
            if game is None:
                raise KeyError(game_id)
            state = game.process_action(action)
            self._persist(game_id, game, state)
            return state

    def set_player_active(self, game_id: str, player_id: str, active: bool) -> GameState:
        with self.lock_for(game_id):
            game = self.get_game(game_id)
            if game is None:
                raise KeyError(game_id)
            game.set_player_active(player_id, active)
            state = game.get_state()
            self._persist(game_id, game, state)
            return state

    def _persist(self, game_id: str, game: Game, state: GameState) -> None:
        """Save the game; on failure drop the cached copy so the store stays authoritative."""
        try:
            self.store.save_game(game_id, state, game.deck_cards())
        except Exception:
            self.evict(game_id)
            raise

    def evict(self, game_id: str) -> None:
        """Drop a game from memory. The stored copy and the game's lock are kept."""
        with self._registry_lock:
            self._games.pop(game_id, None)

    def active_game_ids(self) -> List[str]:
        with self._registry_lock:
            return list(self._games)
