"""
One running game: the rules engine, its deck and the live state.
No web framework dependencies - pure Python game logic.
"""
import copy
import random
from typing import Callable, List, Optional, Sequence

from bots import is_bot_controlled
from engine import (
    BoardGenerator,
    DevelopmentCardDeck,
    GameAction,
    GameRules,
    GameState,
    Player,
)
from engine.engine import PHASE_FINISHED, empty_resources

MIN_PLAYERS = 2
MAX_PLAYERS = 8


class Game:
    """Main game engine class."""

    def __init__(
        self,
        state: GameState,
        deck: DevelopmentCardDeck,
        rng: Optional[random.Random] = None,
        dice_roller: Optional[Callable[[], int]] = None,
    ):
        self.rng = rng or random.Random()
        self.deck = deck
        self.rules = GameRules(deck, rng=self.rng, dice_roller=dice_roller)
        self._state = state

    @classmethod
    def create(
        cls,
        game_id: str,
        players: Sequence[Player],
        rng: Optional[random.Random] = None,
        dice_roller: Optional[Callable[[], int]] = None,
    ) -> "Game":
        """Start a new game in the setup phase with a fresh board and deck."""
        if len(players) < MIN_PLAYERS or len(players) > MAX_PLAYERS:
            raise ValueError(f"Game must have {MIN_PLAYERS}-{MAX_PLAYERS} players")
        rng = rng or random.Random()

        seats = []
        for player in players:
            seat = copy.deepcopy(player)
            seat.resources = empty_resources()
            seats.append(seat)

        deck = DevelopmentCardDeck(rng=rng)
        state = GameState(
            game_id=game_id,
            players=seats,
            board=BoardGenerator(rng).generate(len(seats)),
            development_cards_remaining=deck.remaining_count(),
        )
        return cls(state, deck, rng=rng, dice_roller=dice_roller)

    @property
    def game_id(self) -> str:
        return self._state.game_id

    def get_state(self) -> GameState:
        """Snapshot of the current state; changes to it do not affect the game."""
        return copy.deepcopy(self._state)

    def process_action(self, action: GameAction) -> GameState:
        """Apply one action. A rejected action raises and leaves the game as it was."""
        self._state = self.rules.process_action(self._state, action)
        return self.get_state()

    def deck_cards(self) -> List[str]:
        return self.deck.to_list()

    def current_player(self) -> Player:
        return self._state.current_player()

    def is_finished(self) -> bool:
        return self._state.phase == PHASE_FINISHED

    def is_bot_turn(self) -> bool:
        return not self.is_finished() and is_bot_controlled(self._state.current_player())

    def set_player_active(self, player_id: str, active: bool) -> None:
        """Mark a seat as abandoned (played by a bot) or reclaimed."""
        player = self._state.get_player(player_id)
        if player is None:
            raise ValueError(f"Player {player_id} not found")
        player.is_active = active
