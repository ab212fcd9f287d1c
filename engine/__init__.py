"""
Pure rules engine for the settlers game.
No web framework dependencies - pure Python game logic.
"""
from .board import BoardGenerator, board_size_for_players
from .deck import DevelopmentCardDeck
from .engine import (
    ActionPayload,
    ActionType,
    Board,
    DiceRoll,
    GameAction,
    GameState,
    Intersection,
    MoveRobberPayload,
    PlaceCityPayload,
    PlaceRoadPayload,
    PlaceSettlementPayload,
    PlayDevelopmentCardPayload,
    Player,
    Port,
    ResourceType,
    Road,
    Terrain,
    Tile,
    TradePayload,
)
from .errors import (
    CardNotHeldError,
    DeckExhaustedError,
    GameError,
    InsufficientResourcesError,
    InvalidActionError,
    InvalidPlacementError,
    NotYourTurnError,
    PlayerNotFoundError,
    TargetNotFoundError,
    UnknownActionError,
)
from .geometry import HexCoordinate, hex_distance
from .rules import GameRules, final_standings, longest_road_length, trade_ratio
from .serialization import (
    deserialize_action,
    deserialize_game_state,
    serialize_action,
    serialize_game_state,
)

__all__ = [
    "ActionPayload",
    "ActionType",
    "Board",
    "BoardGenerator",
    "CardNotHeldError",
    "DeckExhaustedError",
    "DevelopmentCardDeck",
    "DiceRoll",
    "GameAction",
    "GameError",
    "GameRules",
    "GameState",
    "HexCoordinate",
    "InsufficientResourcesError",
    "Intersection",
    "InvalidActionError",
    "InvalidPlacementError",
    "MoveRobberPayload",
    "NotYourTurnError",
    "PlaceCityPayload",
    "PlaceRoadPayload",
    "PlaceSettlementPayload",
    "PlayDevelopmentCardPayload",
    "Player",
    "PlayerNotFoundError",
    "Port",
    "ResourceType",
    "Road",
    "TargetNotFoundError",
    "Terrain",
    "Tile",
    "TradePayload",
    "UnknownActionError",
    "board_size_for_players",
    "deserialize_action",
    "deserialize_game_state",
    "final_standings",
    "hex_distance",
    "longest_road_length",
    "serialize_action",
    "serialize_game_state",
    "trade_ratio",
]
