"""
Tests for the shared tile/intersection lattice.
"""
from engine.geometry import (
    HexCoordinate,
    adjacent_tile_centers,
    edge_key,
    hex_distance,
    is_tile_center,
    neighbor_corners,
    tile_center,
    tile_corners,
)


def test_hex_distance():
    """Axial distance is symmetric and zero only for equal coordinates."""
    a = HexCoordinate(0, 0)
    assert hex_distance(a, a) == 0
    assert hex_distance(a, HexCoordinate(1, 0)) == 1
    assert hex_distance(a, HexCoordinate(1, -1)) == 1
    assert hex_distance(a, HexCoordinate(2, -1)) == 2
    assert hex_distance(HexCoordinate(3, -2), HexCoordinate(-1, 1)) == hex_distance(
        HexCoordinate(-1, 1), HexCoordinate(3, -2)
    )


def test_coordinate_key_round_trip():
    coordinate = HexCoordinate(-2, 3)
    assert coordinate.key == "-2,3"
    assert HexCoordinate.from_key(coordinate.key) == coordinate


def test_neighbouring_tile_centres_are_two_apart():
    """Tiles next to each other in the layout sit at distance 2 on the lattice."""
    origin = tile_center(0, 0)
    for dq, dr in [(1, 0), (1, -1), (0, -1), (-1, 0), (-1, 1), (0, 1)]:
        assert hex_distance(origin, tile_center(dq, dr)) == 2
        assert is_tile_center(tile_center(dq, dr))


def test_tile_corners_are_not_centres():
    corners = tile_corners(HexCoordinate(0, 0))
    assert len(set(corners)) == 6
    assert not any(is_tile_center(c) for c in corners)
    assert all(hex_distance(c, HexCoordinate(0, 0)) == 1 for c in corners)


def test_corner_touches_three_tiles():
    corner = HexCoordinate(1, 0)
    centers = adjacent_tile_centers(corner)
    assert len(centers) == 3
    assert HexCoordinate(0, 0) in centers
    for center in centers:
        assert corner in tile_corners(center)


def test_neighbor_corners_follow_tile_edges():
    """Each interior intersection has exactly three neighbours, all at distance 1."""
    corner = HexCoordinate(1, 0)
    existing = set()
    for center in adjacent_tile_centers(corner):
        existing.update(tile_corners(center))
    neighbors = neighbor_corners(corner, existing)
    assert len(neighbors) == 3
    assert all(hex_distance(corner, n) == 1 for n in neighbors)


def test_edge_key_ignores_direction():
    a, b = HexCoordinate(1, 0), HexCoordinate(1, -1)
    assert edge_key(a, b) == edge_key(b, a)
