"""
Base class for bot players.

A bot looks at a read-only game state and proposes at most one action per
call. It asks the same validator and resource checks the rules engine uses,
so every proposal is one the engine accepts.
"""
import random
from abc import ABC, abstractmethod
from typing import Dict, List, Optional

from engine import (
    ActionType,
    GameAction,
    GameState,
    MoveRobberPayload,
    PlaceCityPayload,
    PlaceRoadPayload,
    PlaceSettlementPayload,
    Player,
    Tile,
)
from engine.engine import (
    CITY,
    CITY_COST,
    DEVELOPMENT_CARD_COST,
    PHASE_PLAYING,
    PHASE_SETUP,
    ROAD_COST,
    SETTLEMENT,
    SETTLEMENT_COST,
)
from engine.geometry import hex_distance, tile_corners
from engine.resources import can_afford, total_resources
from engine.validator import (
    can_place_road,
    can_place_settlement,
    can_upgrade_to_city,
    has_piece_available,
)


class BaseBot(ABC):
    """
    Base class for all bot levels.

    Subclasses define the normal-turn priority list and how the robber is
    placed; setup, dice and turn-order handling are shared.
    """
    level: str = ""

    def __init__(self, player_id: str, rng: Optional[random.Random] = None):
        """
        Args:
            player_id: The ID of the player this bot controls
            rng: Random source for choices that are random by design
        """
        self.player_id = player_id
        self.rng = rng or random.Random()

    def choose_action(self, state: GameState) -> Optional[GameAction]:
        """Pick the next action, or None when there is nothing to do."""
        if state.phase not in (PHASE_SETUP, PHASE_PLAYING):
            return None
        player = state.get_player(self.player_id)
        if player is None or state.current_player().id != self.player_id:
            return None

        if state.phase == PHASE_SETUP:
            return self._setup_action(state, player)
        if state.robber_pending:
            return self.choose_robber_move(state, player)
        if state.pending_free_roads > 0:
            road = self.try_place_road(state, player)
            if road is not None:
                return road
        if state.dice_roll is None:
            return self._action(ActionType.ROLL_DICE)
        return self.choose_turn_action(state, player)

    @abstractmethod
    def choose_turn_action(self, state: GameState, player: Player) -> GameAction:
        """Pick an action after the dice are rolled and the robber is settled."""
        pass

    @abstractmethod
    def choose_robber_move(self, state: GameState, player: Player) -> Optional[GameAction]:
        """Pick where the robber goes after a 7."""
        pass

    def _action(self, action_type: ActionType, payload=None) -> GameAction:
        return GameAction(type=action_type, player_id=self.player_id, payload=payload)

    def end_turn(self) -> GameAction:
        return self._action(ActionType.END_TURN)

    def _setup_action(self, state: GameState, player: Player) -> Optional[GameAction]:
        if player.settlements_built < state.setup_round:
            return self.try_place_settlement(state, player)
        if player.roads_built < state.setup_round:
            return self.try_place_road(state, player)
        return self.end_turn()

    # Placement scans, first valid candidate in board order

    def try_place_settlement(self, state: GameState, player: Player) -> Optional[GameAction]:
        setup = state.phase == PHASE_SETUP
        if not setup:
            if not has_piece_available(player, SETTLEMENT) or not can_afford(player, SETTLEMENT_COST):
                return None
        board = state.board
        for intersection in board.intersections:
            if can_place_settlement(intersection.coordinate, player.id, board.intersections, board.roads, setup):
                return self._action(
                    ActionType.PLACE_SETTLEMENT,
                    PlaceSettlementPayload(coordinate=intersection.coordinate),
                )
        return None

    def try_place_city(self, state: GameState, player: Player) -> Optional[GameAction]:
        if not has_piece_available(player, CITY) or not can_afford(player, CITY_COST):
            return None
        board = state.board
        for intersection in board.intersections:
            if intersection.owner != player.id:
                continue
            if can_upgrade_to_city(intersection.coordinate, player.id, board.intersections):
                return self._action(
                    ActionType.PLACE_CITY,
                    PlaceCityPayload(coordinate=intersection.coordinate),
                )
        return None

    def try_place_road(self, state: GameState, player: Player) -> Optional[GameAction]:
        setup = state.phase == PHASE_SETUP
        free = not setup and state.pending_free_roads > 0
        if not has_piece_available(player, "road"):
            return None
        if not setup and not free and not can_afford(player, ROAD_COST):
            return None

        anchor = state.setup_last_settlement if setup else None
        board = state.board
        intersections = board.intersections
        for index, start in enumerate(intersections):
            for end in intersections[index + 1:]:
                if hex_distance(start.coordinate, end.coordinate) != 1:
                    continue
                result = can_place_road(
                    start.coordinate,
                    end.coordinate,
                    player.id,
                    intersections,
                    board.roads,
                    setup,
                    anchor=anchor,
                )
                if result:
                    return self._action(
                        ActionType.PLACE_ROAD,
                        PlaceRoadPayload(from_coordinate=start.coordinate, to_coordinate=end.coordinate),
                    )
        return None

    def try_buy_development_card(self, state: GameState, player: Player) -> Optional[GameAction]:
        if state.development_cards_remaining <= 0 or not can_afford(player, DEVELOPMENT_CARD_COST):
            return None
        return self._action(ActionType.BUY_DEVELOPMENT_CARD)

    # Robber helpers

    def movable_robber_tiles(self, state: GameState) -> List[Tile]:
        return [t for t in state.board.tiles if not t.has_robber]

    def opponent_exposure(self, state: GameState, tile: Tile) -> int:
        """Opponent buildings around a tile: settlement 1, city 2."""
        owners: Dict = {i.coordinate: i for i in state.board.intersections}
        exposure = 0
        for corner in tile_corners(tile.coordinate):
            intersection = owners.get(corner)
            if intersection is None or intersection.owner in (None, self.player_id):
                continue
            exposure += 2 if intersection.building_type == CITY else 1
        return exposure

    def most_exposed_tile(self, state: GameState) -> Optional[Tile]:
        """Movable tile hurting opponents most; the first one wins ties."""
        best_tile = None
        best_exposure = -1
        for tile in self.movable_robber_tiles(state):
            exposure = self.opponent_exposure(state, tile)
            if exposure > best_exposure:
                best_tile, best_exposure = tile, exposure
        return best_tile

    def richest_opponent(self, state: GameState) -> Optional[Player]:
        opponents = [p for p in state.players if p.id != self.player_id]
        if not opponents:
            return None
        return max(opponents, key=total_resources)

    def robber_action(self, tile: Optional[Tile], target: Optional[Player] = None) -> Optional[GameAction]:
        if tile is None:
            return None
        return self._action(
            ActionType.MOVE_ROBBER,
            MoveRobberPayload(tile_id=tile.id, target_player_id=target.id if target else None),
        )
