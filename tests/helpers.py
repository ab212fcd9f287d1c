"""
Builders shared by the engine and bot tests.
"""
import random
from typing import Iterable, List, Optional

from engine import (
    BoardGenerator,
    DevelopmentCardDeck,
    DiceRoll,
    GameRules,
    GameState,
    HexCoordinate,
    Player,
    ResourceType,
    Road,
)
from engine.engine import CITY, PHASE_PLAYING, SETTLEMENT
from engine.resources import collect_from_bank

# Corners of the centre tile, walking around it
CENTER_RING = [
    HexCoordinate(1, 0),
    HexCoordinate(1, -1),
    HexCoordinate(0, -1),
    HexCoordinate(-1, 0),
    HexCoordinate(-1, 1),
    HexCoordinate(0, 1),
]


def make_players(count: int) -> List[Player]:
    return [Player(id=f"player_{i}", name=f"Player {i}") for i in range(count)]


def make_state(player_count: int = 4, seed: int = 0) -> GameState:
    """A fresh setup-phase state on a seeded board."""
    return GameState(
        game_id="test_game",
        players=make_players(player_count),
        board=BoardGenerator(random.Random(seed)).generate(player_count),
    )


def make_playing_state(player_count: int = 4, seed: int = 0, rolled: bool = True) -> GameState:
    """A state past setup, with seat 0 to act and (optionally) dice already rolled."""
    state = make_state(player_count, seed)
    state.phase = PHASE_PLAYING
    state.current_player_index = 0
    if rolled:
        state.dice_roll = DiceRoll(value=8, player_id=state.players[0].id)
    return state


def fixed_dice(values: Iterable[int]):
    """Dice roller returning the given values in order."""
    iterator = iter(values)
    return lambda: next(iterator)


def make_rules(seed: int = 0, dice: Optional[Iterable[int]] = None, deck_cards: Optional[List[str]] = None) -> GameRules:
    rng = random.Random(seed)
    deck = DevelopmentCardDeck(cards=deck_cards, rng=rng)
    return GameRules(deck, rng=rng, dice_roller=fixed_dice(dice) if dice is not None else None)


def give(state: GameState, player: Player, **amounts: int) -> None:
    """Hand resources to a player out of the bank, e.g. give(state, p, wood=2)."""
    collect_from_bank(state, player, {ResourceType(name): n for name, n in amounts.items()})


def place_building(state: GameState, coordinate: HexCoordinate, player: Player, building_type: str = SETTLEMENT) -> None:
    """Put a building on the board directly, keeping counters and points in step."""
    intersection = state.board.intersection_at(coordinate)
    intersection.owner = player.id
    intersection.building_type = building_type
    if building_type == CITY:
        player.cities_built += 1
        player.victory_points += 2
    else:
        player.settlements_built += 1
        player.victory_points += 1


def add_road(state: GameState, a: HexCoordinate, b: HexCoordinate, player: Player) -> None:
    state.board.roads.append(Road(id=len(state.board.roads), from_coordinate=a, to_coordinate=b, owner=player.id))
    player.roads_built += 1


def resource_totals(state: GameState) -> dict:
    """Per resource: everything held by players plus the bank."""
    return {
        rt: state.bank[rt] + sum(p.resources[rt] for p in state.players)
        for rt in ResourceType
    }
