"""
Tests for GameService: lobbies, action flow, leaving, results and the bot loop.

The service is driven directly with asyncio.run and no bot delay.
"""
import asyncio
import random

import pytest

from api import database as db
from api.database import DatabaseGameStore
from api.game_service import GameNotFoundError, GameService
from api.websocket_manager import ConnectionManager
from engine import InvalidActionError, NotYourTurnError
from game_engine import GameManager
from helpers import CENTER_RING, make_playing_state


def make_service(max_bot_actions=500, seed=0):
    return GameService(
        GameManager(DatabaseGameStore()),
        ConnectionManager(),
        bot_delay_seconds=0,
        max_bot_actions=max_bot_actions,
        rng=random.Random(seed),
    )


def _coord(c):
    return {"q": c.q, "r": c.r}


def settle_action(coordinate):
    return {"type": "place_settlement", "payload": {"coordinate": _coord(coordinate)}}


def road_action(a, b):
    return {"type": "place_road", "payload": {"from": _coord(a), "to": _coord(b)}}


def test_lobby_seats():
    service = make_service()
    lobby = service.create_lobby("Alice", ["amateur", "difficult"])

    assert [s["name"] for s in lobby["players"]][0] == "Alice"
    assert [s["is_bot"] for s in lobby["players"]] == [False, True, True]
    assert lobby["players"][2]["bot_level"] == "difficult"
    assert len({s["color"] for s in lobby["players"]}) == 3

    joined = service.join_lobby(lobby["game_id"], "Bob")
    assert len(joined["players"]) == 4
    assert joined["player_id"] != lobby["player_id"]

    view = service.get_game_view(lobby["game_id"])
    assert view["status"] == "waiting"
    assert len(view["players"]) == 4


def test_lobby_limits():
    service = make_service()
    with pytest.raises(InvalidActionError):
        service.create_lobby("Alice", ["amateur"] * 8)
    with pytest.raises(InvalidActionError):
        service.create_lobby("Alice", ["grandmaster"])

    lobby = service.create_lobby("Alice", ["amateur"] * 7)
    with pytest.raises(InvalidActionError):
        service.join_lobby(lobby["game_id"], "Bob")

    with pytest.raises(GameNotFoundError):
        service.join_lobby("missing", "Bob")


def test_start_requires_two_seats():
    service = make_service()
    lobby = service.create_lobby("Alice", [])
    with pytest.raises(InvalidActionError):
        asyncio.run(service.start_game(lobby["game_id"]))


def test_start_and_play_setup_actions():
    async def scenario():
        service = make_service()
        lobby = service.create_lobby("Alice", [])
        game_id = lobby["game_id"]
        bob = service.join_lobby(game_id, "Bob")["player_id"]
        alice = lobby["player_id"]

        state = await service.start_game(game_id)
        assert state["phase"] == "setup"
        assert [p["id"] for p in state["players"]] == [alice, bob]
        assert service.list_games("in_progress")[0]["game_id"] == game_id

        with pytest.raises(InvalidActionError):
            await service.start_game(game_id)
        with pytest.raises(NotYourTurnError):
            await service.submit_action(game_id, settle_action(CENTER_RING[3]), player_id=bob)

        state = await service.submit_action(game_id, settle_action(CENTER_RING[0]), player_id=alice)
        assert state["players"][0]["victory_points"] == 1
        await service.submit_action(game_id, road_action(CENTER_RING[0], CENTER_RING[1]), player_id=alice)
        state = await service.submit_action(game_id, {"type": "end_turn"}, player_id=alice)
        assert state["current_player_index"] == 1

        assert db.get_step_count(game_id) == 3
        return service, game_id

    service, game_id = asyncio.run(scenario())
    assert service.get_state_json(game_id)["current_player_index"] == 1


def test_actions_on_waiting_or_missing_games_are_rejected():
    async def scenario():
        service = make_service()
        lobby = service.create_lobby("Alice", ["amateur"])
        with pytest.raises(InvalidActionError):
            await service.submit_action(lobby["game_id"], {"type": "roll_dice"}, player_id=lobby["player_id"])
        with pytest.raises(GameNotFoundError):
            await service.submit_action("missing", {"type": "roll_dice"}, player_id="p")

    asyncio.run(scenario())


def test_bot_loop_plays_until_a_human_is_up():
    """After the human's first setup turn the bots snake through theirs."""
    async def scenario():
        service = make_service()
        lobby = service.create_lobby("Alice", ["amateur", "intermediate"])
        game_id = lobby["game_id"]
        alice = lobby["player_id"]
        await service.start_game(game_id)
        assert service.bot_task(game_id) is None

        await service.submit_action(game_id, settle_action(CENTER_RING[0]), player_id=alice)
        await service.submit_action(game_id, road_action(CENTER_RING[0], CENTER_RING[1]), player_id=alice)
        await service.submit_action(game_id, {"type": "end_turn"}, player_id=alice)

        task = service.bot_task(game_id)
        assert task is not None
        taken = await task
        return service, game_id, taken

    service, game_id, taken = asyncio.run(scenario())
    state = service.manager.get_state(game_id)

    # Seats 1, 2, 2, 1 each place a settlement and a road and end the turn
    assert taken == 12
    assert state.phase == "setup"
    assert state.setup_round == 2
    assert state.current_player_index == 0
    assert all(p.settlements_built == 2 for p in state.players[1:])
    assert db.get_step_count(game_id) == 3 + taken


def test_bot_loop_respects_the_action_cap():
    async def scenario():
        service = make_service(max_bot_actions=4)
        lobby = service.create_lobby("Alice", ["difficult"])
        game_id = lobby["game_id"]
        bob = service.join_lobby(game_id, "Bob")["player_id"]
        await service.start_game(game_id)
        service.manager.set_player_active(game_id, lobby["player_id"], False)
        service.manager.set_player_active(game_id, bob, False)
        return await service.run_bot_loop(game_id)

    assert asyncio.run(scenario()) == 4


def test_leaving_a_running_game_hands_the_seat_to_a_bot():
    async def scenario():
        service = make_service()
        lobby = service.create_lobby("Alice", [])
        game_id = lobby["game_id"]
        bob = service.join_lobby(game_id, "Bob")["player_id"]
        await service.start_game(game_id)

        result = await service.leave_game(game_id, lobby["player_id"])
        assert result == {"game_id": game_id, "deleted": False}
        state = service.manager.get_state(game_id)
        assert state.players[0].is_active is False

        # Alice's abandoned seat is up first, so the loop runs until Bob's turn
        task = service.bot_task(game_id)
        assert task is not None
        await task
        assert service.manager.get_state(game_id).current_player().id == bob

        result = await service.leave_game(game_id, bob)
        assert result["deleted"] is True

    asyncio.run(scenario())
    assert db.list_games() == []


def test_leaving_a_lobby_frees_the_seat():
    async def scenario():
        service = make_service()
        lobby = service.create_lobby("Alice", ["amateur"])
        game_id = lobby["game_id"]
        bob = service.join_lobby(game_id, "Bob")["player_id"]

        result = await service.leave_game(game_id, bob)
        assert result["deleted"] is False
        assert len(service.get_game_view(game_id)["players"]) == 2

        with pytest.raises(InvalidActionError):
            await service.leave_game(game_id, bob)

        result = await service.leave_game(game_id, lobby["player_id"])
        assert result["deleted"] is True
        with pytest.raises(GameNotFoundError):
            service.get_game_view(game_id)

    asyncio.run(scenario())


def test_finished_game_records_ranked_results():
    """A game is resumed from the store, won on END_TURN and scored."""
    game_id = "stored_game"
    state = make_playing_state(3)
    state.game_id = game_id
    state.players[0].victory_points = 10
    state.players[1].victory_points = 4
    state.players[2].victory_points = 7
    db.create_game(game_id, {"seats": []}, status=db.GAME_STATUS_IN_PROGRESS)
    DatabaseGameStore().save_game(game_id, state, [])

    service = make_service()
    with pytest.raises(InvalidActionError):
        service.get_results(game_id)

    final = asyncio.run(service.submit_action(game_id, {"type": "end_turn"}, player_id="player_0"))

    assert final["phase"] == "finished"
    assert final["winner_id"] == "player_0"
    assert db.get_game(game_id)["status"] == db.GAME_STATUS_FINISHED

    results = service.get_results(game_id)
    assert [r["player_id"] for r in results] == ["player_0", "player_2", "player_1"]
    assert [r["rank"] for r in results] == [1, 2, 3]
    assert [r["points"] for r in results] == [50, 30, 20]

    with pytest.raises(InvalidActionError):
        asyncio.run(service.leave_game(game_id, "player_1"))


def test_delete_game():
    async def scenario():
        service = make_service()
        lobby = service.create_lobby("Alice", ["amateur"])
        await service.start_game(lobby["game_id"])
        await service.delete_game(lobby["game_id"])
        assert lobby["game_id"] not in service.manager.active_game_ids()
        with pytest.raises(GameNotFoundError):
            await service.delete_game(lobby["game_id"])

    asyncio.run(scenario())


async def _stall_on_bot_seat():
    """Play the human's first setup turn, then drop the bot loop as a crash would."""
    service = make_service()
    lobby = service.create_lobby("Alice", ["amateur"])
    game_id = lobby["game_id"]
    alice = lobby["player_id"]
    await service.start_game(game_id)
    await service.submit_action(game_id, settle_action(CENTER_RING[0]), player_id=alice)
    await service.submit_action(game_id, road_action(CENTER_RING[0], CENTER_RING[1]), player_id=alice)
    await service.submit_action(game_id, {"type": "end_turn"}, player_id=alice)
    service.cancel_all_bot_loops()
    return game_id, alice


def test_restarted_service_resumes_bot_seats():
    async def scenario():
        game_id, _ = await _stall_on_bot_seat()

        restarted = make_service()
        assert restarted.manager.get_state(game_id).current_player_index == 1
        assert restarted.resume_bot_loops() == 1
        taken = await restarted.bot_task(game_id)
        return restarted, game_id, taken

    service, game_id, taken = asyncio.run(scenario())

    # The bot plays both of its setup turns, then hands back to Alice
    assert taken == 6
    state = service.manager.get_state(game_id)
    assert state.current_player_index == 0
    assert state.players[1].settlements_built == 2


def test_rejected_action_wakes_a_stalled_bot_seat():
    async def scenario():
        game_id, alice = await _stall_on_bot_seat()

        restarted = make_service()
        with pytest.raises(NotYourTurnError):
            await restarted.submit_action(game_id, {"type": "end_turn"}, player_id=alice)
        task = restarted.bot_task(game_id)
        assert task is not None
        return await task

    assert asyncio.run(scenario()) == 6


def test_step_log():
    async def scenario():
        service = make_service()
        lobby = service.create_lobby("Alice", [])
        game_id = lobby["game_id"]
        service.join_lobby(game_id, "Bob")
        await service.start_game(game_id)
        await service.submit_action(game_id, settle_action(CENTER_RING[0]), player_id=lobby["player_id"])
        await service.submit_action(game_id, road_action(CENTER_RING[0], CENTER_RING[1]), player_id=lobby["player_id"])
        return service, game_id

    service, game_id = asyncio.run(scenario())
    steps = service.get_steps(game_id)

    assert [s["step_idx"] for s in steps] == [0, 1]
    assert [s["action"]["type"] for s in steps] == ["place_settlement", "place_road"]
    assert steps[1]["state_after"]["players"][0]["buildings"]["roads"] == 1
    with pytest.raises(GameNotFoundError):
        service.get_steps("missing")
