"""
Rejection taxonomy for session and rules failures.

Every error is a ValueError so the transport reports it the same way it
reports any other invalid request: to the initiating player only.
"""


class GameError(ValueError):
    """Base class. `code` is the stable identifier sent to clients."""
    code = "game_error"
    default_message = "Invalid request"

    def __init__(self, message=None):
        super().__init__(message or self.default_message)


# ── Session Errors ───────────────────────────────────────────────────

class SessionNotFound(GameError):
    code = "session_not_found"
    default_message = "Game not found"


class SessionAlreadyExists(GameError):
    code = "session_already_exists"
    default_message = "Game already exists"


class SessionFull(GameError):
    code = "session_full"
    default_message = "Game is full"


class SessionAlreadyStarted(GameError):
    code = "session_already_started"
    default_message = "Game has already started"


class NotHost(GameError):
    code = "not_host"
    default_message = "Only the host can start the game"


class NotEnoughActors(GameError):
    code = "not_enough_actors"
    default_message = "Need at least 2 players to start the game"


# ── Turn Errors ──────────────────────────────────────────────────────

class ActorNotFound(GameError):
    code = "actor_not_found"
    default_message = "Player not found"


class GameNotStarted(GameError):
    code = "game_not_started"
    default_message = "Game not started"


class GameAlreadyOver(GameError):
    code = "game_already_over"
    default_message = "Game is over"


class NotYourTurn(GameError):
    code = "not_your_turn"
    default_message = "Not your turn"


class NoActionsRemaining(GameError):
    code = "no_actions_remaining"
    default_message = "No actions left"


class InvalidAction(GameError):
    code = "invalid_action"
    default_message = "Invalid action"


# ── Rule Errors ──────────────────────────────────────────────────────

class CitiesNotConnected(GameError):
    code = "cities_not_connected"
    default_message = "Cities are not connected"


class NoInfectionToTreat(GameError):
    code = "no_infection_to_treat"
    default_message = "No disease cubes to treat"


class StationAlreadyExists(GameError):
    code = "station_already_exists"
    default_message = "Research station already exists in this city"


class MissingRequiredCard(GameError):
    code = "missing_required_card"
    default_message = "A matching city card is required"


class NoResearchStationHere(GameError):
    code = "no_research_station_here"
    default_message = "Need a research station to discover a cure"


class AlreadyCured(GameError):
    code = "already_cured"
    default_message = "Disease already cured"
