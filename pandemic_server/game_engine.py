"""
Abstract game engine interface.

The session store and the server know nothing about game-specific rules —
they route lobby changes and player actions through these methods and
broadcast the results.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field


@dataclass
class ActionResult:
    """Returned by apply_action to tell the caller what happened."""
    new_state: dict
    # If non-empty, broadcast a log/message to all players
    log: list[str] = field(default_factory=list)
    # If the game is over after this action
    game_over: bool = False


class GameEngine(ABC):
    """
    Pure-logic game engine. No networking, no rendering — just rules.

    State is always a plain dict (JSON-serializable) so it can be stored,
    sent over the wire, and snapshotted for reconnection. Every method that
    changes state returns a new dict and leaves its input untouched.
    """

    # Subclasses can override to restrict player counts.
    player_count_range: tuple[int, int] = (2, 4)

    @abstractmethod
    def create_state(self, game_id: str, host: dict, now: float) -> dict:
        """Create the lobby state for a new game with its host as first player."""
        ...

    @abstractmethod
    def add_player(self, state: dict, player: dict, now: float) -> dict:
        """Return the lobby state with one more player. Raises ValueError if refused."""
        ...

    @abstractmethod
    def start(self, state: dict, now: float) -> ActionResult:
        """Leave the lobby and set up the board. Raises ValueError if refused."""
        ...

    @abstractmethod
    def apply_action(self, state: dict, player_id: str, action: dict, now: float) -> ActionResult:
        """
        Validate and apply a player's action to the state.
        Raises ValueError if the action is invalid; the input state is unchanged.
        """
        ...

    @abstractmethod
    def get_player_view(self, state: dict, player_id: str) -> dict:
        """
        Return a filtered/redacted view of the state for one player.
        For fully-open-information games this can just return the full state.
        """
        ...

    @abstractmethod
    def get_valid_actions(self, state: dict, player_id: str) -> list[dict]:
        """
        Return the list of actions this player can currently take.
        Empty list means it's not their turn or they have no choices.
        """
        ...

    @abstractmethod
    def get_waiting_for(self, state: dict) -> list[str]:
        """Return list of player_ids who need to act before the game can proceed."""
        ...

    @abstractmethod
    def get_phase_info(self, state: dict) -> dict:
        """
        Return a summary of the current phase for display purposes.
        e.g. {"phase": "actions", "turn": 3, "description": "Alice: 2 actions left"}
        """
        ...
