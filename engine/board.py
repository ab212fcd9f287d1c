"""
Board generation: tile layout, terrain and number tokens, intersections and ports.
"""
import math
import random
from itertools import cycle, islice
from typing import Dict, List, Optional, Tuple

from .engine import Board, Intersection, Port, ResourceType, Terrain, Tile
from .geometry import (
    HexCoordinate,
    adjacent_tile_centers,
    neighbor_corners,
    tile_center,
    tile_corners,
)

# Tiles per row, top to bottom
BOARD_LAYOUTS: Dict[int, Tuple[int, ...]] = {
    19: (3, 4, 5, 4, 3),
    24: (4, 5, 6, 5, 4),
    37: (4, 5, 6, 7, 6, 5, 4),
}

TERRAIN_COUNTS: Dict[int, Dict[Terrain, int]] = {
    19: {
        Terrain.FOREST: 4,
        Terrain.HILLS: 3,
        Terrain.PASTURE: 4,
        Terrain.FIELDS: 4,
        Terrain.MOUNTAINS: 3,
        Terrain.DESERT: 1,
    },
    24: {
        Terrain.FOREST: 5,
        Terrain.HILLS: 4,
        Terrain.PASTURE: 5,
        Terrain.FIELDS: 5,
        Terrain.MOUNTAINS: 4,
        Terrain.DESERT: 1,
    },
    37: {
        Terrain.FOREST: 8,
        Terrain.HILLS: 7,
        Terrain.PASTURE: 7,
        Terrain.FIELDS: 8,
        Terrain.MOUNTAINS: 6,
        Terrain.DESERT: 1,
    },
}

NUMBER_TOKENS = (2, 3, 3, 4, 4, 5, 5, 6, 6, 8, 8, 9, 9, 10, 10, 11, 11, 12)

# 4 generic 3:1 ports and one 2:1 port per resource
PORTS: Tuple[Port, ...] = tuple(
    [Port(resource=None, ratio=3)] * 4 + [Port(resource=rt, ratio=2) for rt in ResourceType]
)


def board_size_for_players(player_count: int) -> int:
    """Number of hexes for a player count: 2-4 -> 19, 5-6 -> 24, 7-8 -> 37."""
    if 2 <= player_count <= 4:
        return 19
    if 5 <= player_count <= 6:
        return 24
    if 7 <= player_count <= 8:
        return 37
    raise ValueError(f"Game must have 2-8 players, got {player_count}")


def layout_coordinates(size: int) -> List[HexCoordinate]:
    """Tile centres for a board shape, row by row, left to right."""
    rows = BOARD_LAYOUTS[size]
    middle = len(rows) // 2
    coordinates = []
    for row_index, count in enumerate(rows):
        r = row_index - middle
        # Every row is centred on the same column
        q_start = -((count + r) // 2)
        for q in range(q_start, q_start + count):
            coordinates.append(tile_center(q, r))
    return coordinates


def number_tokens_for(tile_count: int) -> List[int]:
    """Cycle the base token set until every producing tile has one."""
    return list(islice(cycle(NUMBER_TOKENS), tile_count))


class BoardGenerator:
    """Builds a fresh board for a player count."""

    def __init__(self, rng: Optional[random.Random] = None):
        self.rng = rng or random.Random()

    def generate(self, player_count: int) -> Board:
        size = board_size_for_players(player_count)
        tiles = self._create_tiles(size)
        intersections = self._create_intersections(tiles)
        self._place_ports(tiles, intersections)
        return Board(tiles=tiles, intersections=intersections, roads=[])

    def _create_tiles(self, size: int) -> List[Tile]:
        terrains = [
            terrain
            for terrain, count in TERRAIN_COUNTS[size].items()
            for _ in range(count)
        ]
        self.rng.shuffle(terrains)

        producing = sum(1 for t in terrains if t != Terrain.DESERT)
        tokens = number_tokens_for(producing)
        self.rng.shuffle(tokens)
        token_iter = iter(tokens)

        tiles = []
        for tile_id, (coordinate, terrain) in enumerate(zip(layout_coordinates(size), terrains)):
            if terrain == Terrain.DESERT:
                tiles.append(Tile(id=tile_id, coordinate=coordinate, terrain=terrain, has_robber=True))
            else:
                tiles.append(Tile(
                    id=tile_id,
                    coordinate=coordinate,
                    terrain=terrain,
                    number_token=next(token_iter),
                ))
        return tiles

    def _create_intersections(self, tiles: List[Tile]) -> List[Intersection]:
        # Corners are shared by up to three tiles; dedupe by coordinate key
        by_key: Dict[str, Intersection] = {}
        for tile in tiles:
            for corner in tile_corners(tile.coordinate):
                if corner.key not in by_key:
                    by_key[corner.key] = Intersection(id=len(by_key), coordinate=corner)
        return list(by_key.values())

    def _place_ports(self, tiles: List[Tile], intersections: List[Intersection]) -> None:
        coast = coastal_edges(tiles, intersections)
        if not coast:
            return
        port_types = list(PORTS)
        self.rng.shuffle(port_types)

        step = len(coast) / len(port_types)
        offset = self.rng.randrange(len(coast))
        by_coordinate = {i.coordinate: i for i in intersections}
        for index, port in enumerate(port_types):
            a, b = coast[int(offset + index * step) % len(coast)]
            by_coordinate[a].port = port
            by_coordinate[b].port = port


def coastal_edges(
    tiles: List[Tile],
    intersections: List[Intersection],
) -> List[Tuple[HexCoordinate, HexCoordinate]]:
    """Edges bordering exactly one tile, ordered around the board."""
    centers = {t.coordinate for t in tiles}
    corners = {i.coordinate for i in intersections}

    edges = []
    for intersection in intersections:
        a = intersection.coordinate
        for b in neighbor_corners(a, corners):
            if b <= a:
                continue
            shared = set(adjacent_tile_centers(a)) & set(adjacent_tile_centers(b)) & centers
            if len(shared) == 1:
                edges.append((a, b))

    cx = sum(_pixel(c)[0] for c in centers) / len(centers)
    cy = sum(_pixel(c)[1] for c in centers) / len(centers)

    def angle(edge: Tuple[HexCoordinate, HexCoordinate]) -> float:
        (ax, ay), (bx, by) = _pixel(edge[0]), _pixel(edge[1])
        return math.atan2((ay + by) / 2 - cy, (ax + bx) / 2 - cx)

    return sorted(edges, key=angle)


def _pixel(coordinate: HexCoordinate) -> Tuple[float, float]:
    return coordinate.q + coordinate.r / 2, coordinate.r * math.sqrt(3) / 2
