"""
Tests for Game and the GameManager registry.
"""
import random

import pytest

from engine import ActionType, GameAction, NotYourTurnError, PlaceSettlementPayload
from game_engine import Game, GameManager
from helpers import CENTER_RING, make_players


class MemoryStore:
    """In-memory stand-in for the database store."""

    def __init__(self):
        self.saved = {}
        self.saves = 0

    def load_game(self, game_id):
        return self.saved.get(game_id)

    def save_game(self, game_id, state, deck_cards):
        self.saved[game_id] = (state, list(deck_cards))
        self.saves += 1


def _settle(player_id):
    return GameAction(
        type=ActionType.PLACE_SETTLEMENT,
        player_id=player_id,
        payload=PlaceSettlementPayload(coordinate=CENTER_RING[0]),
    )


def test_create_enforces_player_bounds():
    with pytest.raises(ValueError):
        Game.create("g", make_players(1))
    with pytest.raises(ValueError):
        Game.create("g", make_players(9))
    game = Game.create("g", make_players(8), rng=random.Random(0))
    assert len(game.get_state().board.tiles) == 37


def test_new_game_starts_in_setup():
    players = make_players(4)
    players[0].resources = {rt: 5 for rt in players[0].resources}
    game = Game.create("g", players, rng=random.Random(0))
    state = game.get_state()

    assert state.phase == "setup"
    assert state.current_player_index == 0
    assert state.development_cards_remaining == 25
    assert sum(state.players[0].resources.values()) == 0
    assert len(game.deck_cards()) == 25


def test_get_state_returns_a_snapshot():
    game = Game.create("g", make_players(2), rng=random.Random(0))
    snapshot = game.get_state()
    snapshot.players[0].victory_points = 99
    snapshot.board.tiles[0].has_robber = True
    assert game.get_state().players[0].victory_points == 0


def test_bot_turn_detection():
    players = make_players(2)
    players[1].is_bot = True
    players[1].bot_level = "amateur"
    game = Game.create("g", players, rng=random.Random(0))
    assert not game.is_bot_turn()
    game.set_player_active(players[0].id, False)
    assert game.is_bot_turn()


def test_manager_persists_every_action():
    store = MemoryStore()
    manager = GameManager(store)
    manager.create_game("g1", make_players(3), rng=random.Random(0))
    assert store.saves == 1

    state = manager.process_action("g1", _settle("player_0"))

    assert state.players[0].victory_points == 1
    assert store.saves == 2
    assert store.saved["g1"][0].players[0].victory_points == 1


def test_rejected_action_is_not_persisted():
    store = MemoryStore()
    manager = GameManager(store)
    manager.create_game("g1", make_players(3), rng=random.Random(0))

    with pytest.raises(NotYourTurnError):
        manager.process_action("g1", _settle("player_1"))
    assert store.saves == 1
    assert manager.get_state("g1").players[1].victory_points == 0


def test_evicted_game_reloads_from_store():
    """Memory is only a cache; the store is the source of truth."""
    store = MemoryStore()
    manager = GameManager(store)
    manager.create_game("g1", make_players(2), rng=random.Random(0))
    manager.process_action("g1", _settle("player_0"))
    cards = store.saved["g1"][1]

    manager.evict("g1")
    assert "g1" not in manager.active_game_ids()

    reloaded = manager.get_game("g1")
    assert reloaded.get_state().players[0].victory_points == 1
    assert reloaded.deck_cards() == cards

    fresh_manager = GameManager(store)
    assert fresh_manager.get_state("g1").players[0].settlements_built == 1


def test_unknown_game():
    manager = GameManager(MemoryStore())
    assert manager.get_game("missing") is None
    with pytest.raises(KeyError):
        manager.process_action("missing", _settle("player_0"))


def test_lock_is_per_game():
    manager = GameManager(MemoryStore())
    assert manager.lock_for("a") is manager.lock_for("a")
    assert manager.lock_for("a") is not manager.lock_for("b")


class FailingSaveStore(MemoryStore):
    """Accepts the first save, then fails every later one."""

    def save_game(self, game_id, state, deck_cards):
        if self.saves:
            raise OSError("disk full")
        super().save_game(game_id, state, deck_cards)


def test_failed_save_leaves_no_state_ahead_of_the_store():
    store = FailingSaveStore()
    manager = GameManager(store)
    manager.create_game("g1", make_players(2), rng=random.Random(0))

    with pytest.raises(OSError):
        manager.process_action("g1", _settle("player_0"))

    assert "g1" not in manager.active_game_ids()
    state = manager.get_state("g1")
    assert state.setup_settlements_placed == 0
    assert state.players[0].settlements_built == 0
    assert store.saved["g1"][0].setup_settlements_placed == 0


def test_evict_keeps_the_game_lock():
    manager = GameManager(MemoryStore())
    manager.create_game("g1", make_players(2), rng=random.Random(0))
    lock = manager.lock_for("g1")
    with lock:
        manager.evict("g1")
    assert manager.lock_for("g1") is lock
