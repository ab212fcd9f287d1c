"""
Bot seats: names, colors and the policy that plays each seat.
"""
import random
import uuid
from typing import Dict, Optional, Type

from engine import GameAction, GameState, Player
from engine.engine import BOT_LEVELS
from .amateur_bot import AmateurBot
from .base_bot import BaseBot
from .difficult_bot import DifficultBot
from .intermediate_bot import IntermediateBot

PLAYER_COLORS = [
    "#FF6B6B",  # red
    "#4ECDC4",  # cyan
    "#45B7D1",  # blue
    "#FFA07A",  # salmon
    "#98D8C8",  # mint
    "#F7DC6F",  # yellow
    "#BB8FCE",  # purple
    "#85C1E2",  # light blue
]

BOT_NAMES: Dict[str, list] = {
    "amateur": ["Bot Amateur 1", "Bot Amateur 2", "Bot Amateur 3"],
    "intermediate": ["Bot Intermediate 1", "Bot Intermediate 2", "Bot Intermediate 3"],
    "difficult": ["Bot Difficult 1", "Bot Difficult 2", "Bot Difficult 3"],
}

BOT_CLASSES: Dict[str, Type[BaseBot]] = {
    "amateur": AmateurBot,
    "intermediate": IntermediateBot,
    "difficult": DifficultBot,
}

# Seats whose human left are played by this level
ABANDONED_SEAT_LEVEL = "amateur"


def get_player_color(seat_index: int) -> str:
    return PLAYER_COLORS[seat_index % len(PLAYER_COLORS)]


def create_bot_player(level: str, seat_index: int) -> Player:
    """Create a bot seat for a level."""
    if level not in BOT_LEVELS:
        raise ValueError(f"Unknown bot level: {level}")
    names = BOT_NAMES[level]
    return Player(
        id=str(uuid.uuid4()),
        name=names[seat_index % len(names)],
        color=get_player_color(seat_index),
        is_bot=True,
        bot_level=level,
    )


def is_bot_controlled(player: Player) -> bool:
    """Bots play their own seats and the seats of players who left."""
    return player.is_bot or not player.is_active


def get_bot(player: Player, rng: Optional[random.Random] = None) -> Optional[BaseBot]:
    if not is_bot_controlled(player):
        return None
    level = player.bot_level if player.is_bot else ABANDONED_SEAT_LEVEL
    return BOT_CLASSES[level](player.id, rng=rng)


def generate_bot_action(state: GameState, rng: Optional[random.Random] = None) -> Optional[GameAction]:
    """Action for the current seat if a bot controls it."""
    bot = get_bot(state.current_player(), rng=rng)
    if bot is None:
        return None
    return bot.choose_action(state)
