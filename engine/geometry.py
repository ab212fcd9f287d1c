"""
Hex-grid geometry for the board.

Tiles and intersections live on one shared axial lattice. A tile laid out at
axial (q, r) is centred on lattice point (2q + r, r - q), which places the
centres of neighbouring tiles at distance 2 and leaves the points at distance 1
around each centre free for the tile's six corners. Because of that, one offset
set serves every adjacency question:

    tile corner            = centre + offset
    tiles of a corner      = corner - offset   (kept when it is a tile centre)
    neighbours of a corner = corner + offset   (kept when it is a corner)
"""
from dataclasses import dataclass
from typing import Iterable, List, Set, Tuple


@dataclass(frozen=True, order=True)
class HexCoordinate:
    """Axial coordinate on the board lattice. Equality is value equality."""
    q: int
    r: int

    @property
    def key(self) -> str:
        return f"{self.q},{self.r}"

    def __add__(self, other: Tuple[int, int]) -> 'HexCoordinate':
        return HexCoordinate(self.q + other[0], self.r + other[1])

    def __sub__(self, other: Tuple[int, int]) -> 'HexCoordinate':
        return HexCoordinate(self.q - other[0], self.r - other[1])

    @classmethod
    def from_key(cls, key: str) -> 'HexCoordinate':
        q, r = key.split(",")
        return cls(int(q), int(r))


# The six unit axial directions, clockwise starting east.
CORNER_OFFSETS: Tuple[Tuple[int, int], ...] = (
    (1, 0),
    (1, -1),
    (0, -1),
    (-1, 0),
    (-1, 1),
    (0, 1),
)


def hex_distance(a: HexCoordinate, b: HexCoordinate) -> int:
    """Axial distance: (|dq| + |dq + dr| + |dr|) / 2."""
    dq = a.q - b.q
    dr = a.r - b.r
    return (abs(dq) + abs(dq + dr) + abs(dr)) // 2


def tile_center(layout_q: int, layout_r: int) -> HexCoordinate:
    """Map a tile's layout position onto the shared lattice."""
    return HexCoordinate(2 * layout_q + layout_r, layout_r - layout_q)


def is_tile_center(coordinate: HexCoordinate) -> bool:
    return (coordinate.q - coordinate.r) % 3 == 0


def tile_corners(center: HexCoordinate) -> List[HexCoordinate]:
    """The six intersection coordinates around a tile, in offset order."""
    return [center + offset for offset in CORNER_OFFSETS]


def adjacent_tile_centers(corner: HexCoordinate) -> List[HexCoordinate]:
    """The (up to three) tile centres touching an intersection coordinate."""
    candidates = (corner - offset for offset in CORNER_OFFSETS)
    return [c for c in candidates if is_tile_center(c)]


def neighbor_corners(corner: HexCoordinate, existing: Iterable[HexCoordinate]) -> List[HexCoordinate]:
    """Intersections one edge away from `corner` that exist on the board."""
    existing_set: Set[HexCoordinate] = existing if isinstance(existing, set) else set(existing)
    neighbors = []
    for offset in CORNER_OFFSETS:
        candidate = corner + offset
        if not is_tile_center(candidate) and candidate in existing_set:
            neighbors.append(candidate)
    return neighbors


def edge_key(a: HexCoordinate, b: HexCoordinate) -> Tuple[HexCoordinate, HexCoordinate]:
    """Order-independent key for the edge between two intersections."""
    return (a, b) if a <= b else (b, a)
