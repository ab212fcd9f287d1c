"""
Amateur bot: builds settlements and roads, never cities or cards.
"""
from typing import Optional

from engine import GameAction, GameState, Player
from .base_bot import BaseBot


class AmateurBot(BaseBot):
    """Settlement, then road, then end turn. Robber goes to a random tile."""
    level = "amateur"

    def choose_turn_action(self, state: GameState, player: Player) -> GameAction:
        return (
            self.try_place_settlement(state, player)
            or self.try_place_road(state, player)
            or self.end_turn()
        )

    def choose_robber_move(self, state: GameState, player: Player) -> Optional[GameAction]:
        tiles = self.movable_robber_tiles(state)
        if not tiles:
            return None
        return self.robber_action(self.rng.choice(tiles))
