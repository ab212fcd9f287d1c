"""
Game data model for the settlers rules engine.
No I/O, no globals - plain dataclasses and constants.
"""
from enum import Enum
from typing import Dict, List, Optional, Union
from dataclasses import dataclass, field

from .geometry import HexCoordinate


class ResourceType(Enum):
    """Resource types in the game, in tie-breaking order."""
    WOOD = "wood"
    BRICK = "brick"
    SHEEP = "sheep"
    WHEAT = "wheat"
    ORE = "ore"


class Terrain(Enum):
    """Terrain of a hex tile."""
    FOREST = "forest"
    HILLS = "hills"
    PASTURE = "pasture"
    FIELDS = "fields"
    MOUNTAINS = "mountains"
    DESERT = "desert"


TERRAIN_RESOURCES: Dict[Terrain, Optional[ResourceType]] = {
    Terrain.FOREST: ResourceType.WOOD,
    Terrain.HILLS: ResourceType.BRICK,
    Terrain.PASTURE: ResourceType.SHEEP,
    Terrain.FIELDS: ResourceType.WHEAT,
    Terrain.MOUNTAINS: ResourceType.ORE,
    Terrain.DESERT: None,
}

# Building costs
ROAD_COST = {ResourceType.WOOD: 1, ResourceType.BRICK: 1}
SETTLEMENT_COST = {
    ResourceType.WOOD: 1,
    ResourceType.BRICK: 1,
    ResourceType.SHEEP: 1,
    ResourceType.WHEAT: 1,
}
CITY_COST = {ResourceType.WHEAT: 2, ResourceType.ORE: 3}
DEVELOPMENT_CARD_COST = {
    ResourceType.SHEEP: 1,
    ResourceType.WHEAT: 1,
    ResourceType.ORE: 1,
}

# Pieces each player owns
MAX_SETTLEMENTS = 5
MAX_CITIES = 4
MAX_ROADS = 15

BANK_RESOURCE_COUNT = 19
VICTORY_POINTS_TO_WIN = 10
LONGEST_ROAD_MIN_LENGTH = 5
LARGEST_ARMY_MIN_KNIGHTS = 3
BONUS_VICTORY_POINTS = 2

# Development card kinds
KNIGHT = "knight"
VICTORY_POINT = "victory_point"
ROAD_BUILDING = "road_building"
YEAR_OF_PLENTY = "year_of_plenty"
MONOPOLY = "monopoly"
DEVELOPMENT_CARD_TYPES = (KNIGHT, VICTORY_POINT, ROAD_BUILDING, YEAR_OF_PLENTY, MONOPOLY)

SETTLEMENT = "settlement"
CITY = "city"

PHASE_SETUP = "setup"
PHASE_PLAYING = "playing"
PHASE_FINISHED = "finished"

BOT_LEVELS = ("amateur", "intermediate", "difficult")


def empty_resources() -> Dict[ResourceType, int]:
    return {rt: 0 for rt in ResourceType}


def full_bank() -> Dict[ResourceType, int]:
    return {rt: BANK_RESOURCE_COUNT for rt in ResourceType}


@dataclass(frozen=True)
class Port:
    """Trade port on a coastal intersection. resource None means a generic 3:1 port."""
    resource: Optional[ResourceType]
    ratio: int


@dataclass
class Tile:
    """A hex tile. Only has_robber changes after generation."""
    id: int
    coordinate: HexCoordinate
    terrain: Terrain
    number_token: Optional[int] = None  # None for desert
    has_robber: bool = False

    @property
    def resource(self) -> Optional[ResourceType]:
        return TERRAIN_RESOURCES[self.terrain]


@dataclass
class Intersection:
    """An intersection (tile corner) where settlements and cities are built."""
    id: int
    coordinate: HexCoordinate
    owner: Optional[str] = None  # Player ID
    building_type: Optional[str] = None  # "settlement" or "city"
    port: Optional[Port] = None


@dataclass
class Road:
    """A road between two intersections at distance 1."""
    id: int
    from_coordinate: HexCoordinate
    to_coordinate: HexCoordinate
    owner: str

    def touches(self, coordinate: HexCoordinate) -> bool:
        return self.from_coordinate == coordinate or self.to_coordinate == coordinate

    def connects(self, a: HexCoordinate, b: HexCoordinate) -> bool:
        return {self.from_coordinate, self.to_coordinate} == {a, b}


@dataclass
class Board:
    """Tiles, intersections and roads of one game."""
    tiles: List[Tile] = field(default_factory=list)
    intersections: List[Intersection] = field(default_factory=list)
    roads: List[Road] = field(default_factory=list)

    def tile_by_id(self, tile_id: int) -> Optional[Tile]:
        return next((t for t in self.tiles if t.id == tile_id), None)

    def tile_at(self, coordinate: HexCoordinate) -> Optional[Tile]:
        return next((t for t in self.tiles if t.coordinate == coordinate), None)

    def intersection_at(self, coordinate: HexCoordinate) -> Optional[Intersection]:
        return next((i for i in self.intersections if i.coordinate == coordinate), None)

    def robber_tile(self) -> Optional[Tile]:
        return next((t for t in self.tiles if t.has_robber), None)


@dataclass(frozen=True)
class DiceRoll:
    value: int
    player_id: str


@dataclass
class Player:
    """Represents a player in the game."""
    id: str
    name: str
    color: str = "#FF0000"
    resources: Dict[ResourceType, int] = field(default_factory=empty_resources)
    development_cards: List[str] = field(default_factory=list)
    played_development_cards: List[str] = field(default_factory=list)
    settlements_built: int = 0
    cities_built: int = 0
    roads_built: int = 0
    victory_points: int = 0
    longest_road: bool = False
    largest_army: bool = False
    is_active: bool = True
    is_bot: bool = False
    bot_level: Optional[str] = None  # "amateur", "intermediate" or "difficult"

    @property
    def knights_played(self) -> int:
        return self.played_development_cards.count(KNIGHT)


@dataclass
class GameState:
    """Authoritative state of one game. Mutated only by the rules engine."""
    game_id: str
    players: List[Player]
    current_player_index: int = 0
    board: Board = field(default_factory=Board)
    dice_roll: Optional[DiceRoll] = None
    phase: str = PHASE_SETUP  # "setup", "playing", "finished"
    turn_number: int = 1
    bank: Dict[ResourceType, int] = field(default_factory=full_bank)
    setup_round: int = 1  # 1 = seat order, 2 = reverse seat order
    setup_settlements_placed: int = 0
    setup_last_settlement: Optional[HexCoordinate] = None  # Road anchor during setup
    robber_pending: bool = False  # A 7 was rolled and the robber has not moved yet
    pending_free_roads: int = 0  # Roads left from a Road Building card
    development_cards_remaining: int = 25  # Mirrors the deck size
    winner_id: Optional[str] = None

    def current_player(self) -> Player:
        return self.players[self.current_player_index]

    def get_player(self, player_id: str) -> Optional[Player]:
        return next((p for p in self.players if p.id == player_id), None)


class ActionType(Enum):
    """Actions a player can submit."""
    PLACE_SETTLEMENT = "place_settlement"
    PLACE_CITY = "place_city"
    PLACE_ROAD = "place_road"
    ROLL_DICE = "roll_dice"
    TRADE = "trade"
    PLAY_DEVELOPMENT_CARD = "play_development_card"
    BUY_DEVELOPMENT_CARD = "buy_development_card"
    MOVE_ROBBER = "move_robber"
    END_TURN = "end_turn"


@dataclass(frozen=True)
class PlaceSettlementPayload:
    """Payload for PLACE_SETTLEMENT."""
    coordinate: HexCoordinate


@dataclass(frozen=True)
class PlaceCityPayload:
    """Payload for PLACE_CITY."""
    coordinate: HexCoordinate


@dataclass(frozen=True)
class PlaceRoadPayload:
    """Payload for PLACE_ROAD."""
    from_coordinate: HexCoordinate
    to_coordinate: HexCoordinate


@dataclass(frozen=True)
class MoveRobberPayload:
    """Payload for MOVE_ROBBER."""
    tile_id: int
    target_player_id: Optional[str] = None


@dataclass(frozen=True)
class TradePayload:
    """Payload for TRADE. No target means a trade with the bank."""
    give: Dict[ResourceType, int]
    receive: Dict[ResourceType, int]
    target_player_id: Optional[str] = None


@dataclass(frozen=True)
class PlayDevelopmentCardPayload:
    """Payload for PLAY_DEVELOPMENT_CARD."""
    card_type: str
    # Knight: where the robber goes and who gets robbed
    tile_id: Optional[int] = None
    target_player_id: Optional[str] = None
    # Year of plenty: 2 resources total
    resources: Optional[Dict[ResourceType, int]] = None
    # Monopoly: resource taken from every other player
    resource_type: Optional[ResourceType] = None


ActionPayload = Union[
    PlaceSettlementPayload,
    PlaceCityPayload,
    PlaceRoadPayload,
    MoveRobberPayload,
    TradePayload,
    PlayDevelopmentCardPayload,
]


@dataclass(frozen=True)
class GameAction:
    """One action submitted by a player (human or bot)."""
    type: ActionType
    player_id: str
    payload: Optional[ActionPayload] = None
