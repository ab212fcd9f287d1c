"""
Intermediate bot: adds cities and development card purchases.
"""
from typing import Optional

from engine import GameAction, GameState, Player
from .base_bot import BaseBot


class IntermediateBot(BaseBot):
    """
    Priority: settlement, city, road, buy a development card, end turn.
    The robber goes where opponents have the most buildings.
    """
    level = "intermediate"

    def choose_turn_action(self, state: GameState, player: Player) -> GameAction:
        return (
            self.try_place_settlement(state, player)
            or self.try_place_city(state, player)
            or self.try_place_road(state, player)
            or self.try_buy_development_card(state, player)
            or self.end_turn()
        )

    def choose_robber_move(self, state: GameState, player: Player) -> Optional[GameAction]:
        return self.robber_action(self.most_exposed_tile(state))
