"""
Game hosting: one Game per running match and the GameManager registry.
This module contains no web framework dependencies.
"""

from game_engine.game import MAX_PLAYERS, MIN_PLAYERS, Game
from game_engine.manager import GameManager, GameStore

__all__ = ["Game", "GameManager", "GameStore", "MAX_PLAYERS", "MIN_PLAYERS"]
