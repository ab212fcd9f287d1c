"""
Difficult bot: plays development cards and robs the richest opponent.
"""
from typing import Optional

from engine import ActionType, GameAction, GameState, PlayDevelopmentCardPayload, Player, ResourceType
from engine.engine import KNIGHT, LARGEST_ARMY_MIN_KNIGHTS, MONOPOLY
from engine.resources import total_resources
from .base_bot import BaseBot

MONOPOLY_RESOURCE_THRESHOLD = 3


class DifficultBot(BaseBot):
    """
    Priority: play a useful development card, city, settlement, road,
    buy a development card, end turn.
    """
    level = "difficult"

    def choose_turn_action(self, state: GameState, player: Player) -> GameAction:
        return (
            self.try_play_development_card(state, player)
            or self.try_place_city(state, player)
            or self.try_place_settlement(state, player)
            or self.try_place_road(state, player)
            or self.try_buy_development_card(state, player)
            or self.end_turn()
        )

    def choose_robber_move(self, state: GameState, player: Player) -> Optional[GameAction]:
        return self.robber_action(self.most_exposed_tile(state), self.richest_opponent(state))

    def try_play_development_card(self, state: GameState, player: Player) -> Optional[GameAction]:
        # Knights until the army bonus threshold is reached
        if KNIGHT in player.development_cards and player.knights_played < LARGEST_ARMY_MIN_KNIGHTS:
            tile = self.most_exposed_tile(state)
            if tile is not None:
                target = self.richest_opponent(state)
                return self._action(
                    ActionType.PLAY_DEVELOPMENT_CARD,
                    PlayDevelopmentCardPayload(
                        card_type=KNIGHT,
                        tile_id=tile.id,
                        target_player_id=target.id if target else None,
                    ),
                )

        if MONOPOLY in player.development_cards and total_resources(player) < MONOPOLY_RESOURCE_THRESHOLD:
            # min() keeps the first of equal counts, so ties follow enum order
            scarcest = min(ResourceType, key=lambda rt: player.resources.get(rt, 0))
            return self._action(
                ActionType.PLAY_DEVELOPMENT_CARD,
                PlayDevelopmentCardPayload(card_type=MONOPOLY, resource_type=scarcest),
            )
        return None
