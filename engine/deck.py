"""
Development card deck.
"""
import random
from typing import List, Optional

from .engine import KNIGHT, MONOPOLY, ROAD_BUILDING, VICTORY_POINT, YEAR_OF_PLENTY

DECK_COMPOSITION = {
    KNIGHT: 14,
    VICTORY_POINT: 5,
    ROAD_BUILDING: 2,
    YEAR_OF_PLENTY: 2,
    MONOPOLY: 2,
}


class DevelopmentCardDeck:
    """A finite, shuffled stack of development cards. Never refilled."""

    def __init__(self, cards: Optional[List[str]] = None, rng: Optional[random.Random] = None):
        """
        Args:
            cards: Remaining draw pile to resume from (top of the stack last).
                When omitted a full 25-card deck is built and shuffled.
            rng: Random source used for the shuffle.
        """
        if cards is not None:
            self._cards = list(cards)
        else:
            self._cards = [card for card, count in DECK_COMPOSITION.items() for _ in range(count)]
            (rng or random.Random()).shuffle(self._cards)

    def draw(self) -> Optional[str]:
        """Pop the top card, or None once the deck is empty."""
        if not self._cards:
            return None
        return self._cards.pop()

    def remaining_count(self) -> int:
        return len(self._cards)

    def to_list(self) -> List[str]:
        """Remaining cards in draw order, for persistence."""
        return list(self._cards)
