"""
Placement rules for settlements, cities and roads.

Validation never mutates its inputs, so bots and the rules engine can ask the
same question any number of times.
"""
from dataclasses import dataclass
from typing import List, Optional

from .engine import (
    CITY,
    Intersection,
    MAX_CITIES,
    MAX_ROADS,
    MAX_SETTLEMENTS,
    Player,
    Road,
    SETTLEMENT,
)
from .geometry import HexCoordinate, hex_distance

# Rejection reasons
NO_INTERSECTION = "no intersection"
OCCUPIED = "occupied"
TOO_CLOSE = "too close"
UNCONNECTED = "unconnected"
NOT_ADJACENT = "not adjacent"
ALREADY_EXISTS = "already exists"
NO_BUILDING = "no building"
NOT_OWNER = "not owner"
ALREADY_CITY = "already a city"
NOT_AT_SETUP_SETTLEMENT = "not at setup settlement"


@dataclass(frozen=True)
class ValidationResult:
    valid: bool
    reason: Optional[str] = None

    def __bool__(self) -> bool:
        return self.valid


VALID = ValidationResult(True)


def _find(intersections: List[Intersection], coordinate: HexCoordinate) -> Optional[Intersection]:
    return next((i for i in intersections if i.coordinate == coordinate), None)


def can_place_settlement(
    coordinate: HexCoordinate,
    player_id: str,
    intersections: List[Intersection],
    roads: List[Road],
    is_setup_phase: bool,
) -> ValidationResult:
    intersection = _find(intersections, coordinate)
    if intersection is None:
        return ValidationResult(False, NO_INTERSECTION)
    if intersection.owner is not None:
        return ValidationResult(False, OCCUPIED)

    # Distance rule applies to every owner
    for other in intersections:
        if other.owner is not None and hex_distance(other.coordinate, coordinate) <= 1:
            return ValidationResult(False, TOO_CLOSE)

    if not is_setup_phase:
        if not any(road.owner == player_id and road.touches(coordinate) for road in roads):
            return ValidationResult(False, UNCONNECTED)
    return VALID


def can_upgrade_to_city(
    coordinate: HexCoordinate,
    player_id: str,
    intersections: List[Intersection],
) -> ValidationResult:
    intersection = _find(intersections, coordinate)
    if intersection is None:
        return ValidationResult(False, NO_INTERSECTION)
    if intersection.owner is None:
        return ValidationResult(False, NO_BUILDING)
    if intersection.owner != player_id:
        return ValidationResult(False, NOT_OWNER)
    if intersection.building_type == CITY:
        return ValidationResult(False, ALREADY_CITY)
    return VALID


def can_place_road(
    from_coordinate: HexCoordinate,
    to_coordinate: HexCoordinate,
    player_id: str,
    intersections: List[Intersection],
    roads: List[Road],
    is_setup_phase: bool,
    anchor: Optional[HexCoordinate] = None,
) -> ValidationResult:
    """Check a road between two intersections.

    `anchor`, when given, is an intersection the road must start or end at;
    the setup phase uses it to tie each setup road to the settlement placed
    on the same turn.
    """
    start = _find(intersections, from_coordinate)
    end = _find(intersections, to_coordinate)
    if start is None or end is None:
        return ValidationResult(False, NO_INTERSECTION)
    if hex_distance(from_coordinate, to_coordinate) != 1:
        return ValidationResult(False, NOT_ADJACENT)
    if any(road.connects(from_coordinate, to_coordinate) for road in roads):
        return ValidationResult(False, ALREADY_EXISTS)
    if anchor is not None and anchor not in (from_coordinate, to_coordinate):
        return ValidationResult(False, NOT_AT_SETUP_SETTLEMENT)

    if not is_setup_phase:
        connected = start.owner == player_id or end.owner == player_id
        if not connected:
            connected = any(
                road.owner == player_id
                and (road.touches(from_coordinate) or road.touches(to_coordinate))
                for road in roads
            )
        if not connected:
            return ValidationResult(False, UNCONNECTED)
    return VALID


def has_piece_available(player: Player, building_type: str) -> bool:
    """Whether the player still has a settlement, city or road piece left."""
    if building_type == SETTLEMENT:
        return player.settlements_built < MAX_SETTLEMENTS
    if building_type == CITY:
        return player.cities_built < MAX_CITIES
    return player.roads_built < MAX_ROADS
