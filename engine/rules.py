"""
Rules engine: validates one GameAction against a GameState and applies it.

process_action works on a deep copy of the state it is given and returns the
copy. Every handler checks all of its preconditions before the first
mutation, so a rejected action leaves both the caller's state and the deck
untouched.
"""
import copy
import random
from typing import Callable, Dict, List, Mapping, Optional, Set, Tuple

from .deck import DevelopmentCardDeck
from .engine import (
    ActionPayload,
    ActionType,
    BONUS_VICTORY_POINTS,
    CITY,
    CITY_COST,
    DEVELOPMENT_CARD_COST,
    DEVELOPMENT_CARD_TYPES,
    DiceRoll,
    GameAction,
    GameState,
    KNIGHT,
    LARGEST_ARMY_MIN_KNIGHTS,
    LONGEST_ROAD_MIN_LENGTH,
    MAX_ROADS,
    MONOPOLY,
    MoveRobberPayload,
    PHASE_FINISHED,
    PHASE_PLAYING,
    PHASE_SETUP,
    PlaceCityPayload,
    PlaceRoadPayload,
    PlaceSettlementPayload,
    PlayDevelopmentCardPayload,
    Player,
    ROAD_BUILDING,
    ROAD_COST,
    ResourceType,
    Road,
    SETTLEMENT,
    SETTLEMENT_COST,
    TradePayload,
    VICTORY_POINT,
    VICTORY_POINTS_TO_WIN,
    YEAR_OF_PLENTY,
)
from .errors import (
    CardNotHeldError,
    DeckExhaustedError,
    InsufficientResourcesError,
    InvalidActionError,
    InvalidPlacementError,
    NotYourTurnError,
    PlayerNotFoundError,
    TargetNotFoundError,
    UnknownActionError,
)
from .geometry import HexCoordinate, edge_key
from .resources import (
    bank_can_supply,
    can_afford,
    collect_from_bank,
    distribute_resources,
    grant_initial_resources,
    handle_robber,
    move_robber,
    pay_to_bank,
)
from .validator import (
    can_place_road,
    can_place_settlement,
    can_upgrade_to_city,
    has_piece_available,
)

DEFAULT_TRADE_RATIO = 4
YEAR_OF_PLENTY_UNITS = 2
FREE_ROADS_PER_CARD = 2


class GameRules:
    """State machine for one game: setup -> playing -> finished."""

    def __init__(
        self,
        deck: DevelopmentCardDeck,
        rng: Optional[random.Random] = None,
        dice_roller: Optional[Callable[[], int]] = None,
    ):
        """
        Args:
            deck: The game's development card deck, drawn from on purchase
            rng: Random source for dice, discards and thefts
            dice_roller: Override for the two-dice roll (returns 2-12)
        """
        self.deck = deck
        self.rng = rng or random.Random()
        self.dice_roller = dice_roller or self._roll_two_dice

    def _roll_two_dice(self) -> int:
        return self.rng.randint(1, 6) + self.rng.randint(1, 6)

    def process_action(self, state: GameState, action: GameAction) -> GameState:
        """Apply one action and return the resulting state.

        Raises a GameError subclass, without touching `state`, when the action
        is not allowed.
        """
        if state.get_player(action.player_id) is None:
            raise PlayerNotFoundError(f"Player {action.player_id} not found")
        current = state.current_player()
        if action.player_id != current.id:
            raise NotYourTurnError(f"It is {current.name}'s turn")
        if state.phase == PHASE_FINISHED:
            raise InvalidActionError("The game is finished")

        new_state = copy.deepcopy(state)
        player = new_state.current_player()
        payload = action.payload

        if action.type == ActionType.ROLL_DICE:
            self._handle_roll_dice(new_state, player)
        elif action.type == ActionType.PLACE_SETTLEMENT:
            self._handle_place_settlement(new_state, player, payload)
        elif action.type == ActionType.PLACE_CITY:
            self._handle_place_city(new_state, player, payload)
        elif action.type == ActionType.PLACE_ROAD:
            self._handle_place_road(new_state, player, payload)
        elif action.type == ActionType.BUY_DEVELOPMENT_CARD:
            self._handle_buy_development_card(new_state, player)
        elif action.type == ActionType.PLAY_DEVELOPMENT_CARD:
            self._handle_play_development_card(new_state, player, payload)
        elif action.type == ActionType.MOVE_ROBBER:
            self._handle_move_robber(new_state, player, payload)
        elif action.type == ActionType.TRADE:
            self._handle_trade(new_state, player, payload)
        elif action.type == ActionType.END_TURN:
            self._handle_end_turn(new_state, player)
        else:
            raise UnknownActionError(f"Unknown action: {action.type}")

        return new_state

    # Turn-step checks

    def _require_payload(self, payload: Optional[ActionPayload], expected: type, action_name: str):
        if not isinstance(payload, expected):
            raise InvalidActionError(f"{action_name} requires {expected.__name__}")
        return payload

    def _require_playing(self, state: GameState, what: str) -> None:
        if state.phase != PHASE_PLAYING:
            raise InvalidActionError(f"Cannot {what} during {state.phase}")

    def _require_ready_to_act(self, state: GameState) -> None:
        """Normal-phase actions need a dice roll and a settled robber."""
        if state.dice_roll is None:
            raise InvalidActionError("Roll the dice first")
        if state.robber_pending:
            raise InvalidActionError("Move the robber first")

    def _require_affordable(self, player: Player, cost: Mapping[ResourceType, int], what: str) -> None:
        if not can_afford(player, cost):
            raise InsufficientResourcesError(f"Insufficient resources to {what}")

    # Handlers

    def _handle_roll_dice(self, state: GameState, player: Player) -> None:
        self._require_playing(state, "roll the dice")
        if state.dice_roll is not None:
            raise InvalidActionError("Dice already rolled this turn")

        value = self.dice_roller()
        state.dice_roll = DiceRoll(value=value, player_id=player.id)
        if value == 7:
            state.robber_pending = True
        else:
            distribute_resources(state, value)

    def _handle_place_settlement(self, state: GameState, player: Player, payload: Optional[ActionPayload]) -> None:
        payload = self._require_payload(payload, PlaceSettlementPayload, "PLACE_SETTLEMENT")
        setup = state.phase == PHASE_SETUP
        if not setup:
            self._require_ready_to_act(state)

        board = state.board
        result = can_place_settlement(payload.coordinate, player.id, board.intersections, board.roads, setup)
        if not result:
            raise InvalidPlacementError(result.reason)

        if setup:
            if player.settlements_built >= state.setup_round:
                raise InvalidActionError("Settlement already placed this setup turn")
        else:
            if not has_piece_available(player, SETTLEMENT):
                raise InvalidActionError("No settlements left")
            self._require_affordable(player, SETTLEMENT_COST, "build a settlement")
            pay_to_bank(state, player, SETTLEMENT_COST)

        intersection = board.intersection_at(payload.coordinate)
        intersection.owner = player.id
        intersection.building_type = SETTLEMENT
        player.settlements_built += 1
        player.victory_points += 1

        if setup:
            state.setup_settlements_placed += 1
            state.setup_last_settlement = payload.coordinate
            if state.setup_round == 2:
                grant_initial_resources(state, player, payload.coordinate)

        # A new settlement can split an opponent's road
        self._update_longest_road(state)

    def _handle_place_city(self, state: GameState, player: Player, payload: Optional[ActionPayload]) -> None:
        payload = self._require_payload(payload, PlaceCityPayload, "PLACE_CITY")
        self._require_playing(state, "build a city")
        self._require_ready_to_act(state)

        result = can_upgrade_to_city(payload.coordinate, player.id, state.board.intersections)
        if not result:
            raise InvalidPlacementError(result.reason)
        if not has_piece_available(player, CITY):
            raise InvalidActionError("No cities left")
        self._require_affordable(player, CITY_COST, "build a city")

        pay_to_bank(state, player, CITY_COST)
        state.board.intersection_at(payload.coordinate).building_type = CITY
        player.settlements_built -= 1
        player.cities_built += 1
        player.victory_points += 1

    def _handle_place_road(self, state: GameState, player: Player, payload: Optional[ActionPayload]) -> None:
        payload = self._require_payload(payload, PlaceRoadPayload, "PLACE_ROAD")
        setup = state.phase == PHASE_SETUP
        free = not setup and state.pending_free_roads > 0

        anchor = None
        if setup:
            if player.settlements_built < state.setup_round:
                raise InvalidActionError("Place your setup settlement before its road")
            anchor = state.setup_last_settlement
        elif not free:
            self._require_ready_to_act(state)

        board = state.board
        result = can_place_road(
            payload.from_coordinate,
            payload.to_coordinate,
            player.id,
            board.intersections,
            board.roads,
            setup,
            anchor=anchor,
        )
        if not result:
            raise InvalidPlacementError(result.reason)

        if setup and player.roads_built >= state.setup_round:
            raise InvalidActionError("Road already placed this setup turn")
        if not has_piece_available(player, "road"):
            raise InvalidActionError("No roads left")
        if not setup and not free:
            self._require_affordable(player, ROAD_COST, "build a road")

        if free:
            state.pending_free_roads -= 1
        elif not setup:
            pay_to_bank(state, player, ROAD_COST)
        board.roads.append(Road(
            id=len(board.roads),
            from_coordinate=payload.from_coordinate,
            to_coordinate=payload.to_coordinate,
            owner=player.id,
        ))
        player.roads_built += 1

        self._update_longest_road(state)

    def _handle_buy_development_card(self, state: GameState, player: Player) -> None:
        self._require_playing(state, "buy a development card")
        self._require_ready_to_act(state)
        self._require_affordable(player, DEVELOPMENT_CARD_COST, "buy a development card")
        if self.deck.remaining_count() == 0:
            raise DeckExhaustedError("No development cards left")

        pay_to_bank(state, player, DEVELOPMENT_CARD_COST)
        card = self.deck.draw()
        player.development_cards.append(card)
        state.development_cards_remaining = self.deck.remaining_count()
        # Victory point cards count as soon as they are bought
        if card == VICTORY_POINT:
            player.victory_points += 1

    def _handle_play_development_card(self, state: GameState, player: Player, payload: Optional[ActionPayload]) -> None:
        payload = self._require_payload(payload, PlayDevelopmentCardPayload, "PLAY_DEVELOPMENT_CARD")
        self._require_playing(state, "play a development card")

        card = payload.card_type
        if card not in DEVELOPMENT_CARD_TYPES:
            raise InvalidActionError(f"Unknown development card: {card}")
        if card not in player.development_cards:
            raise CardNotHeldError(f"Player does not hold a {card} card")
        if card == VICTORY_POINT:
            raise InvalidActionError("Victory point cards count when bought and cannot be played")
        if state.robber_pending and card != KNIGHT:
            raise InvalidActionError("Move the robber first")

        year_of_plenty: Dict[ResourceType, int] = {}
        if card == KNIGHT:
            if payload.target_player_id is not None and payload.tile_id is None:
                raise InvalidActionError("A knight needs a tile to rob from")
            if payload.tile_id is not None:
                self._check_robber_move(state, player, payload.tile_id, payload.target_player_id)
        elif card == YEAR_OF_PLENTY:
            year_of_plenty = _clean_amounts(payload.resources or {})
            if sum(year_of_plenty.values()) != YEAR_OF_PLENTY_UNITS:
                raise InvalidActionError(f"Year of plenty takes exactly {YEAR_OF_PLENTY_UNITS} resources")
            if not bank_can_supply(state, year_of_plenty):
                raise InvalidActionError("The bank cannot supply those resources")
        elif card == MONOPOLY:
            if not isinstance(payload.resource_type, ResourceType):
                raise InvalidActionError("Monopoly needs a resource type")
        elif card == ROAD_BUILDING:
            if not has_piece_available(player, "road"):
                raise InvalidActionError("No roads left")

        player.development_cards.remove(card)
        player.played_development_cards.append(card)

        if card == KNIGHT:
            if payload.tile_id is not None:
                self._move_robber(state, player, payload.tile_id, payload.target_player_id)
            self._update_largest_army(state)
        elif card == ROAD_BUILDING:
            state.pending_free_roads = min(FREE_ROADS_PER_CARD, MAX_ROADS - player.roads_built)
        elif card == YEAR_OF_PLENTY:
            collect_from_bank(state, player, year_of_plenty)
        elif card == MONOPOLY:
            resource = payload.resource_type
            for other in state.players:
                if other.id == player.id:
                    continue
                player.resources[resource] += other.resources[resource]
                other.resources[resource] = 0

    def _handle_move_robber(self, state: GameState, player: Player, payload: Optional[ActionPayload]) -> None:
        payload = self._require_payload(payload, MoveRobberPayload, "MOVE_ROBBER")
        self._require_playing(state, "move the robber")
        if not state.robber_pending:
            raise InvalidActionError("The robber can only be moved after rolling a 7")

        self._check_robber_move(state, player, payload.tile_id, payload.target_player_id)
        self._move_robber(state, player, payload.tile_id, payload.target_player_id)

    def _check_robber_move(self, state: GameState, player: Player, tile_id: int, target_player_id: Optional[str]) -> None:
        tile = state.board.tile_by_id(tile_id)
        if tile is None:
            raise TargetNotFoundError(f"Tile {tile_id} not found")
        if tile.has_robber:
            raise InvalidActionError("The robber is already on this tile")
        if target_player_id is not None:
            target = state.get_player(target_player_id)
            if target is None:
                raise TargetNotFoundError(f"Player {target_player_id} not found")
            if target.id == player.id:
                raise InvalidActionError("Cannot rob yourself")

    def _move_robber(self, state: GameState, player: Player, tile_id: int, target_player_id: Optional[str]) -> None:
        if target_player_id is not None:
            stolen = handle_robber(state, target_player_id, tile_id, self.rng)
            if stolen is not None:
                player.resources[stolen] += 1
        else:
            move_robber(state, tile_id)
        state.robber_pending = False

    def _handle_trade(self, state: GameState, player: Player, payload: Optional[ActionPayload]) -> None:
        payload = self._require_payload(payload, TradePayload, "TRADE")
        self._require_playing(state, "trade")
        self._require_ready_to_act(state)

        give = _clean_amounts(payload.give)
        receive = _clean_amounts(payload.receive)
        if not give or not receive:
            raise InvalidActionError("A trade needs resources on both sides")
        if not can_afford(player, give):
            raise InsufficientResourcesError("Insufficient resources to offer this trade")

        if payload.target_player_id is not None:
            other = state.get_player(payload.target_player_id)
            if other is None:
                raise TargetNotFoundError(f"Player {payload.target_player_id} not found")
            if other.id == player.id:
                raise InvalidActionError("Cannot trade with yourself")
            if not can_afford(other, receive):
                raise InsufficientResourcesError(f"{other.name} does not hold the requested resources")
            for rt, amount in give.items():
                player.resources[rt] -= amount
                other.resources[rt] += amount
            for rt, amount in receive.items():
                other.resources[rt] -= amount
                player.resources[rt] += amount
            return

        if set(give) & set(receive):
            raise InvalidActionError("Cannot trade a resource for itself")
        units = 0
        for rt, amount in give.items():
            ratio = trade_ratio(state, player.id, rt)
            if amount % ratio:
                raise InvalidActionError(f"{rt.value} must be traded in multiples of {ratio}")
            units += amount // ratio
        if sum(receive.values()) != units:
            raise InvalidActionError(f"This offer buys exactly {units} resources from the bank")
        if not bank_can_supply(state, receive):
            raise InvalidActionError("The bank cannot supply those resources")

        pay_to_bank(state, player, give)
        collect_from_bank(state, player, receive)

    def _handle_end_turn(self, state: GameState, player: Player) -> None:
        if state.phase == PHASE_SETUP:
            if player.settlements_built < state.setup_round or player.roads_built < state.setup_round:
                raise InvalidActionError("Place your setup settlement and road before ending the turn")
            self._advance_setup(state)
            return

        self._require_ready_to_act(state)
        state.dice_roll = None
        state.pending_free_roads = 0
        state.current_player_index = (state.current_player_index + 1) % len(state.players)
        state.turn_number += 1
        self._check_winner(state)

    def _advance_setup(self, state: GameState) -> None:
        """Snake order: seats 0..n-1, then n-1..0, then play starts at seat 0."""
        seats = len(state.players)
        completed = state.setup_settlements_placed
        state.turn_number += 1
        if completed < seats:
            state.current_player_index += 1
        elif completed == seats:
            # Last seat goes again to open the second round
            state.setup_round = 2
        elif completed < 2 * seats:
            state.current_player_index -= 1
        else:
            state.phase = PHASE_PLAYING
            state.current_player_index = 0
            state.setup_last_settlement = None

    # Bonuses and scoring

    def _update_longest_road(self, state: GameState) -> None:
        lengths = {p.id: longest_road_length(state, p.id) for p in state.players}
        _reassign_bonus(state, lengths, "longest_road", LONGEST_ROAD_MIN_LENGTH)

    def _update_largest_army(self, state: GameState) -> None:
        knights = {p.id: p.knights_played for p in state.players}
        _reassign_bonus(state, knights, "largest_army", LARGEST_ARMY_MIN_KNIGHTS)

    def _check_winner(self, state: GameState) -> None:
        if any(p.victory_points >= VICTORY_POINTS_TO_WIN for p in state.players):
            state.phase = PHASE_FINISHED
            state.winner_id = final_standings(state)[0].id


def _clean_amounts(amounts: Mapping[ResourceType, int]) -> Dict[ResourceType, int]:
    """Drop zero entries; reject negative or non-integer amounts."""
    cleaned = {}
    for rt, amount in amounts.items():
        if not isinstance(rt, ResourceType) or not isinstance(amount, int) or amount < 0:
            raise InvalidActionError(f"Invalid resource amount: {rt}={amount}")
        if amount:
            cleaned[rt] = amount
    return cleaned


def _reassign_bonus(state: GameState, scores: Dict[str, int], flag: str, minimum: int) -> None:
    """Give a 2-point bonus to the unique leader; a tied holder keeps it."""
    best = max(scores.values(), default=0)
    holder = next((p for p in state.players if getattr(p, flag)), None)
    if holder is not None and best >= minimum and scores[holder.id] == best:
        return

    leaders = [p for p in state.players if scores[p.id] == best]
    new_holder = leaders[0] if best >= minimum and len(leaders) == 1 else None
    if holder is not None:
        setattr(holder, flag, False)
        holder.victory_points -= BONUS_VICTORY_POINTS
    if new_holder is not None:
        setattr(new_holder, flag, True)
        new_holder.victory_points += BONUS_VICTORY_POINTS


def longest_road_length(state: GameState, player_id: str) -> int:
    """Length in edges of the player's longest road.

    Roads may end at an opponent's building but not continue through it.
    """
    road_graph: Dict[HexCoordinate, List[HexCoordinate]] = {}
    for road in state.board.roads:
        if road.owner != player_id:
            continue
        road_graph.setdefault(road.from_coordinate, []).append(road.to_coordinate)
        road_graph.setdefault(road.to_coordinate, []).append(road.from_coordinate)
    if not road_graph:
        return 0

    owners = {i.coordinate: i.owner for i in state.board.intersections}

    def dfs_path_length(node: HexCoordinate, visited_edges: Set[Tuple[HexCoordinate, HexCoordinate]]) -> int:
        max_path = 0
        for neighbor in road_graph[node]:
            key = edge_key(node, neighbor)
            if key in visited_edges:
                continue
            owner = owners.get(neighbor)
            if owner is not None and owner != player_id:
                path_len = 1
            else:
                visited_edges.add(key)
                path_len = 1 + dfs_path_length(neighbor, visited_edges)
                visited_edges.remove(key)
            max_path = max(max_path, path_len)
        return max_path

    return max(dfs_path_length(start, set()) for start in road_graph)


def trade_ratio(state: GameState, player_id: str, resource: ResourceType) -> int:
    """Best bank rate for a resource: 2 with its port, 3 with a generic port, else 4."""
    ratio = DEFAULT_TRADE_RATIO
    for intersection in state.board.intersections:
        if intersection.owner != player_id or intersection.port is None:
            continue
        if intersection.port.resource is None:
            ratio = min(ratio, intersection.port.ratio)
        elif intersection.port.resource == resource:
            ratio = min(ratio, intersection.port.ratio)
    return ratio


def final_standings(state: GameState) -> List[Player]:
    """Players by victory points, highest first; seat order breaks ties."""
    return sorted(state.players, key=lambda p: -p.victory_points)


def victory_points_from_holdings(player: Player) -> int:
    """Victory points recomputed from buildings, cards and bonuses."""
    return (
        player.settlements_built
        + 2 * player.cities_built
        + player.development_cards.count(VICTORY_POINT)
        + BONUS_VICTORY_POINTS * (int(player.longest_road) + int(player.largest_army))
    )
