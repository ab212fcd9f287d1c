"""
Conversion between engine objects and JSON-compatible dictionaries.
"""
from typing import Any, Dict, Mapping, Optional

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
    empty_resources,
)
from .errors import InvalidActionError, UnknownActionError
from .geometry import HexCoordinate


def serialize_coordinate(coordinate: Optional[HexCoordinate]) -> Optional[Dict[str, int]]:
    if coordinate is None:
        return None
    return {"q": coordinate.q, "r": coordinate.r}


def deserialize_coordinate(data: Optional[Mapping[str, Any]]) -> Optional[HexCoordinate]:
    if data is None:
        return None
    return HexCoordinate(int(data["q"]), int(data["r"]))


def serialize_resources(resources: Mapping[ResourceType, int]) -> Dict[str, int]:
    return {rt.value: count for rt, count in resources.items()}


def deserialize_resources(data: Optional[Mapping[str, int]]) -> Dict[ResourceType, int]:
    if not data:
        return {}
    return {ResourceType(rt): count for rt, count in data.items()}


def _serialize_port(port: Optional[Port]) -> Optional[Dict[str, Any]]:
    if port is None:
        return None
    return {
        "type": port.resource.value if port.resource else "generic",
        "ratio": port.ratio,
    }


def _deserialize_port(data: Optional[Mapping[str, Any]]) -> Optional[Port]:
    if data is None:
        return None
    resource = None if data["type"] == "generic" else ResourceType(data["type"])
    return Port(resource=resource, ratio=data["ratio"])


def serialize_player(player: Player) -> Dict[str, Any]:
    return {
        "id": player.id,
        "name": player.name,
        "color": player.color,
        "resources": serialize_resources(player.resources),
        "development_cards": list(player.development_cards),
        "played_development_cards": list(player.played_development_cards),
        "buildings": {
            "settlements": player.settlements_built,
            "cities": player.cities_built,
            "roads": player.roads_built,
        },
        "victory_points": player.victory_points,
        "longest_road": player.longest_road,
        "largest_army": player.largest_army,
        "is_active": player.is_active,
        "is_bot": player.is_bot,
        "bot_level": player.bot_level,
    }


def deserialize_player(data: Mapping[str, Any]) -> Player:
    resources = empty_resources()
    resources.update(deserialize_resources(data.get("resources")))
    buildings = data.get("buildings", {})
    return Player(
        id=data["id"],
        name=data["name"],
        color=data.get("color", "#FF0000"),
        resources=resources,
        development_cards=list(data.get("development_cards", [])),
        played_development_cards=list(data.get("played_development_cards", [])),
        settlements_built=buildings.get("settlements", 0),
        cities_built=buildings.get("cities", 0),
        roads_built=buildings.get("roads", 0),
        victory_points=data.get("victory_points", 0),
        longest_road=data.get("longest_road", False),
        largest_army=data.get("largest_army", False),
        is_active=data.get("is_active", True),
        is_bot=data.get("is_bot", False),
        bot_level=data.get("bot_level"),
    )


def serialize_board(board: Board) -> Dict[str, Any]:
    return {
        "tiles": [
            {
                "id": t.id,
                "coordinate": serialize_coordinate(t.coordinate),
                "terrain": t.terrain.value,
                "resource": t.resource.value if t.resource else None,
                "number_token": t.number_token,
                "has_robber": t.has_robber,
            }
            for t in board.tiles
        ],
        "intersections": [
            {
                "id": i.id,
                "coordinate": serialize_coordinate(i.coordinate),
                "building": {"type": i.building_type, "owner_id": i.owner} if i.owner else None,
                "port": _serialize_port(i.port),
            }
            for i in board.intersections
        ],
        "roads": [
            {
                "id": r.id,
                "from": serialize_coordinate(r.from_coordinate),
                "to": serialize_coordinate(r.to_coordinate),
                "owner_id": r.owner,
            }
            for r in board.roads
        ],
    }


def deserialize_board(data: Mapping[str, Any]) -> Board:
    tiles = [
        Tile(
            id=t["id"],
            coordinate=deserialize_coordinate(t["coordinate"]),
            terrain=Terrain(t["terrain"]),
            number_token=t.get("number_token"),
            has_robber=t.get("has_robber", False),
        )
        for t in data.get("tiles", [])
    ]
    intersections = []
    for i in data.get("intersections", []):
        building = i.get("building")
        intersections.append(Intersection(
            id=i["id"],
            coordinate=deserialize_coordinate(i["coordinate"]),
            owner=building["owner_id"] if building else None,
            building_type=building["type"] if building else None,
            port=_deserialize_port(i.get("port")),
        ))
    roads = [
        Road(
            id=r["id"],
            from_coordinate=deserialize_coordinate(r["from"]),
            to_coordinate=deserialize_coordinate(r["to"]),
            owner=r["owner_id"],
        )
        for r in data.get("roads", [])
    ]
    return Board(tiles=tiles, intersections=intersections, roads=roads)


def serialize_game_state(state: GameState) -> Dict[str, Any]:
    """Serialize a GameState to a JSON-compatible dictionary."""
    return {
        "game_id": state.game_id,
        "players": [serialize_player(p) for p in state.players],
        "current_player_index": state.current_player_index,
        "board": serialize_board(state.board),
        "dice_roll": (
            {"value": state.dice_roll.value, "player_id": state.dice_roll.player_id}
            if state.dice_roll else None
        ),
        "phase": state.phase,
        "turn_number": state.turn_number,
        "bank": serialize_resources(state.bank),
        "setup_round": state.setup_round,
        "setup_settlements_placed": state.setup_settlements_placed,
        "setup_last_settlement": serialize_coordinate(state.setup_last_settlement),
        "robber_pending": state.robber_pending,
        "pending_free_roads": state.pending_free_roads,
        "development_cards_remaining": state.development_cards_remaining,
        "winner_id": state.winner_id,
    }


def deserialize_game_state(data: Mapping[str, Any]) -> GameState:
    """Deserialize a dictionary produced by serialize_game_state."""
    dice = data.get("dice_roll")
    state = GameState(
        game_id=data["game_id"],
        players=[deserialize_player(p) for p in data["players"]],
        current_player_index=data.get("current_player_index", 0),
        board=deserialize_board(data.get("board", {})),
        dice_roll=DiceRoll(value=dice["value"], player_id=dice["player_id"]) if dice else None,
        phase=data.get("phase", "setup"),
        turn_number=data.get("turn_number", 1),
        setup_round=data.get("setup_round", 1),
        setup_settlements_placed=data.get("setup_settlements_placed", 0),
        setup_last_settlement=deserialize_coordinate(data.get("setup_last_settlement")),
        robber_pending=data.get("robber_pending", False),
        pending_free_roads=data.get("pending_free_roads", 0),
        development_cards_remaining=data.get("development_cards_remaining", 25),
        winner_id=data.get("winner_id"),
    )
    if "bank" in data:
        state.bank = deserialize_resources(data["bank"])
    return state


def serialize_action_payload(payload: Optional[ActionPayload]) -> Optional[Dict[str, Any]]:
    """Serialize an action payload to its wire shape."""
    if payload is None:
        return None
    if isinstance(payload, (PlaceSettlementPayload, PlaceCityPayload)):
        return {"coordinate": serialize_coordinate(payload.coordinate)}
    elif isinstance(payload, PlaceRoadPayload):
        return {
            "from": serialize_coordinate(payload.from_coordinate),
            "to": serialize_coordinate(payload.to_coordinate),
        }
    elif isinstance(payload, MoveRobberPayload):
        return {"tile_id": payload.tile_id, "target_player_id": payload.target_player_id}
    elif isinstance(payload, TradePayload):
        return {
            "give": serialize_resources(payload.give),
            "receive": serialize_resources(payload.receive),
            "target_player_id": payload.target_player_id,
        }
    elif isinstance(payload, PlayDevelopmentCardPayload):
        data: Dict[str, Any] = {}
        if payload.tile_id is not None:
            data["tile_id"] = payload.tile_id
        if payload.target_player_id is not None:
            data["target_player_id"] = payload.target_player_id
        if payload.resources is not None:
            data["resources"] = serialize_resources(payload.resources)
        if payload.resource_type is not None:
            data["resource_type"] = payload.resource_type.value
        return {"card_type": payload.card_type, "data": data or None}
    else:
        raise ValueError(f"Unknown payload type: {type(payload)}")


def _deserialize_payload(action_type: ActionType, data: Optional[Mapping[str, Any]]) -> Optional[ActionPayload]:
    if action_type in (ActionType.ROLL_DICE, ActionType.BUY_DEVELOPMENT_CARD, ActionType.END_TURN):
        return None
    if data is None:
        raise InvalidActionError(f"{action_type.value} requires a payload")

    if action_type == ActionType.PLACE_SETTLEMENT:
        return PlaceSettlementPayload(coordinate=deserialize_coordinate(data["coordinate"]))
    elif action_type == ActionType.PLACE_CITY:
        return PlaceCityPayload(coordinate=deserialize_coordinate(data["coordinate"]))
    elif action_type == ActionType.PLACE_ROAD:
        return PlaceRoadPayload(
            from_coordinate=deserialize_coordinate(data["from"]),
            to_coordinate=deserialize_coordinate(data["to"]),
        )
    elif action_type == ActionType.MOVE_ROBBER:
        return MoveRobberPayload(
            tile_id=int(data["tile_id"]),
            target_player_id=data.get("target_player_id"),
        )
    elif action_type == ActionType.TRADE:
        return TradePayload(
            give=deserialize_resources(data.get("give")),
            receive=deserialize_resources(data.get("receive")),
            target_player_id=data.get("target_player_id"),
        )
    else:
        card_data = data.get("data") or {}
        resource_type = card_data.get("resource_type")
        tile_id = card_data.get("tile_id")
        return PlayDevelopmentCardPayload(
            card_type=data["card_type"],
            tile_id=int(tile_id) if tile_id is not None else None,
            target_player_id=card_data.get("target_player_id"),
            resources=deserialize_resources(card_data["resources"]) if "resources" in card_data else None,
            resource_type=ResourceType(resource_type) if resource_type else None,
        )


def serialize_action(action: GameAction) -> Dict[str, Any]:
    """Serialize a GameAction to a dictionary."""
    return {
        "type": action.type.value,
        "player_id": action.player_id,
        "payload": serialize_action_payload(action.payload),
    }


def deserialize_action(data: Mapping[str, Any], player_id: Optional[str] = None) -> GameAction:
    """Build a GameAction from its wire shape.

    `player_id` overrides the one in the message; transports pass the
    authenticated seat here.
    """
    try:
        action_type = ActionType(data.get("type"))
    except ValueError:
        raise UnknownActionError(f"Unknown action: {data.get('type')}")

    try:
        payload = _deserialize_payload(action_type, data.get("payload"))
    except (KeyError, TypeError, ValueError) as e:
        if isinstance(e, InvalidActionError):
            raise
        raise InvalidActionError(f"Malformed {action_type.value} payload: {e}")

    acting = player_id or data.get("player_id")
    if not acting:
        raise InvalidActionError("Action requires a player_id")
    return GameAction(type=action_type, player_id=acting, payload=payload)
