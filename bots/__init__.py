"""
Bot players for the settlers game.
"""
from .base_bot import BaseBot
from .amateur_bot import AmateurBot
from .intermediate_bot import IntermediateBot
from .difficult_bot import DifficultBot
from .bot_factory import create_bot_player, generate_bot_action, get_bot, get_player_color, is_bot_controlled

__all__ = [
    'BaseBot',
    'AmateurBot',
    'IntermediateBot',
    'DifficultBot',
    'create_bot_player',
    'generate_bot_action',
    'get_bot',
    'get_player_color',
    'is_bot_controlled',
]
