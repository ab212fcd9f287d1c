"""
Resource bookkeeping: affordability, transfers between players and the bank,
dice-driven production and the robber.
"""
import random
from typing import Dict, List, Mapping, Optional

from .engine import CITY, GameState, Player, ResourceType
from .geometry import HexCoordinate, adjacent_tile_centers, tile_corners

ROBBER_DISCARD_THRESHOLD = 7


def total_resources(player: Player) -> int:
    return sum(player.resources.values())


def can_afford(player: Player, cost: Mapping[ResourceType, int]) -> bool:
    """True if the player holds at least `cost` of every resource listed."""
    return all(player.resources.get(rt, 0) >= amount for rt, amount in cost.items())


def deduct_resources(player: Player, cost: Mapping[ResourceType, int]) -> None:
    """Subtract resources. Callers check can_afford first."""
    for rt, amount in cost.items():
        player.resources[rt] = player.resources.get(rt, 0) - amount


def add_resources(player: Player, resources: Mapping[ResourceType, int]) -> None:
    for rt, amount in resources.items():
        player.resources[rt] = player.resources.get(rt, 0) + amount


def bank_can_supply(state: GameState, resources: Mapping[ResourceType, int]) -> bool:
    return all(state.bank.get(rt, 0) >= amount for rt, amount in resources.items())


def pay_to_bank(state: GameState, player: Player, cost: Mapping[ResourceType, int]) -> None:
    """Move resources from a player into the bank."""
    deduct_resources(player, cost)
    for rt, amount in cost.items():
        state.bank[rt] = state.bank.get(rt, 0) + amount


def collect_from_bank(state: GameState, player: Player, resources: Mapping[ResourceType, int]) -> None:
    """Move resources from the bank to a player. Callers check bank_can_supply first."""
    for rt, amount in resources.items():
        state.bank[rt] -= amount
    add_resources(player, resources)


def distribute_resources(state: GameState, dice_value: int) -> Dict[str, Dict[ResourceType, int]]:
    """Pay out production for a dice roll.

    Every tile showing `dice_value` without the robber pays 1 of its resource to
    each adjacent settlement and 2 to each adjacent city. If the bank cannot cover
    every claim on a resource, a lone claimant gets what is left and several
    claimants get nothing of it.

    Returns the amounts credited, keyed by player ID.
    """
    if dice_value == 7:
        return {}

    by_coordinate = {i.coordinate: i for i in state.board.intersections}
    claims: Dict[ResourceType, Dict[str, int]] = {}
    for tile in state.board.tiles:
        if tile.number_token != dice_value or tile.has_robber or tile.resource is None:
            continue
        for corner in tile_corners(tile.coordinate):
            intersection = by_coordinate.get(corner)
            if intersection is None or intersection.owner is None:
                continue
            amount = 2 if intersection.building_type == CITY else 1
            per_player = claims.setdefault(tile.resource, {})
            per_player[intersection.owner] = per_player.get(intersection.owner, 0) + amount

    credited: Dict[str, Dict[ResourceType, int]] = {}
    for resource, per_player in claims.items():
        available = state.bank.get(resource, 0)
        if sum(per_player.values()) > available:
            if len(per_player) != 1:
                continue
            per_player = {owner: available for owner in per_player}
        for owner, amount in per_player.items():
            if amount <= 0:
                continue
            player = state.get_player(owner)
            collect_from_bank(state, player, {resource: amount})
            credited.setdefault(owner, {})[resource] = amount
    return credited


def grant_initial_resources(state: GameState, player: Player, coordinate: HexCoordinate) -> Dict[ResourceType, int]:
    """Credit one unit per producing tile around a setup settlement."""
    granted: Dict[ResourceType, int] = {}
    for center in adjacent_tile_centers(coordinate):
        tile = state.board.tile_at(center)
        if tile is None or tile.resource is None:
            continue
        if state.bank.get(tile.resource, 0) - granted.get(tile.resource, 0) <= 0:
            continue
        granted[tile.resource] = granted.get(tile.resource, 0) + 1
    collect_from_bank(state, player, granted)
    return granted


def move_robber(state: GameState, tile_id: int) -> None:
    for tile in state.board.tiles:
        tile.has_robber = tile.id == tile_id


def _resource_pool(player: Player) -> List[ResourceType]:
    return [rt for rt in ResourceType for _ in range(player.resources.get(rt, 0))]


def handle_robber(
    state: GameState,
    target_player_id: str,
    robber_tile_id: int,
    rng: Optional[random.Random] = None,
) -> Optional[ResourceType]:
    """Discard, move the robber, then steal one unit from the target.

    A target holding more than 7 resources first loses half of them (rounded
    down), chosen uniformly at random; discarded cards go back to the bank.
    The stolen resource is removed from the target and returned; the caller
    credits it to whoever moved the robber.
    """
    rng = rng or random.Random()
    target = state.get_player(target_player_id)

    total = total_resources(target)
    if total > ROBBER_DISCARD_THRESHOLD:
        discarded: Dict[ResourceType, int] = {}
        for rt in rng.sample(_resource_pool(target), total // 2):
            discarded[rt] = discarded.get(rt, 0) + 1
        pay_to_bank(state, target, discarded)

    move_robber(state, robber_tile_id)

    pool = _resource_pool(target)
    if not pool:
        return None
    stolen = rng.choice(pool)
    target.resources[stolen] -= 1
    return stolen
