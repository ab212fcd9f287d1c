"""
Exceptions raised by the rules engine.

Every error subclasses ValueError so existing callers that catch ValueError
keep working; `kind` is a stable identifier for clients and tests.
"""
from typing import Optional


class GameError(ValueError):
    """Base class for rejected game actions."""
    kind = "game_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotYourTurnError(GameError):
    kind = "not_your_turn"


class InvalidPlacementError(GameError):
    """A settlement, city or road failed placement validation."""
    kind = "invalid_placement"

    def __init__(self, reason: str, message: Optional[str] = None):
        super().__init__(message or f"Invalid placement: {reason}")
        self.reason = reason


class InsufficientResourcesError(GameError):
    kind = "insufficient_resources"


class UnknownActionError(GameError):
    kind = "unknown_action"


class PlayerNotFoundError(GameError):
    kind = "player_not_found"


class TargetNotFoundError(GameError):
    """A referenced target (player or tile) does not exist in the game."""
    kind = "target_not_found"


class DeckExhaustedError(GameError):
    kind = "deck_exhausted"


class CardNotHeldError(GameError):
    kind = "card_not_held"


class InvalidActionError(GameError):
    """The action is well-formed but not allowed in the current game step."""
    kind = "invalid_action"
