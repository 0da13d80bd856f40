"""
Constants and state helpers for the outbreak game.

Roles, player creation, and the initial (lobby) session state.
"""

from pandemic_server.config import GameDefaults
from pandemic_server.pandemic.board import DISEASE_COLORS

# ── Roles ────────────────────────────────────────────────────────────

MEDIC = "Medic"
SCIENTIST = "Scientist"
RESEARCHER = "Researcher"
OPERATIONS_EXPERT = "Operations Expert"
DISPATCHER = "Dispatcher"
CONTINGENCY_PLANNER = "Contingency Planner"
QUARANTINE_SPECIALIST = "Quarantine Specialist"

ROLES = {
    MEDIC: {
        "color": "orange",
        "ability": "Removes all cubes of one color when treating a disease",
    },
    SCIENTIST: {
        "color": "white",
        "ability": "Only needs 4 cards to discover a cure",
    },
    RESEARCHER: {
        "color": "brown",
        "ability": "Can share knowledge more easily",
    },
    OPERATIONS_EXPERT: {
        "color": "green",
        "ability": "Can build research stations without city cards",
    },
    DISPATCHER: {
        "color": "pink",
        "ability": "Can move other players",
    },
    CONTINGENCY_PLANNER: {
        "color": "lightblue",
        "ability": "Can reuse event cards",
    },
    QUARANTINE_SPECIALIST: {
        "color": "darkgreen",
        "ability": "Prevents cube placement in their city and adjacent cities",
    },
}

DEFAULT_ROLE = MEDIC


# ── Player / State Creation ──────────────────────────────────────────

def create_player(player, location=GameDefaults.STARTING_LOCATION):
    """
    Build a player entry from a join request.

    `player` needs an "id"; "name", "role" and "cards" are optional.
    """
    player_id = player.get("id")
    if not player_id:
        raise ValueError("Player id is required")
    role = player.get("role") or DEFAULT_ROLE
    if role not in ROLES:
        raise ValueError(f"Unknown role: {role}")
    return {
        "id": player_id,
        "name": player.get("name") or player_id,
        "role": role,
        "location": location,
        "cards": list(player.get("cards") or []),
        "actions": GameDefaults.ACTIONS_PER_TURN,
    }


def starting_location(board):
    if board.has_city(GameDefaults.STARTING_LOCATION):
        return GameDefaults.STARTING_LOCATION
    return board.city_names[0]


def create_city_state(board):
    stations = set(GameDefaults.STARTING_STATIONS)
    return {
        name: {
            "color": color,
            "infections": {c: 0 for c in DISEASE_COLORS},
            "research_station": name in stations,
        }
        for name, color in board.city_colors.items()
    }


def create_initial_state(game_id, host, board, now):
    """Build the lobby state for a new session with its host as first player."""
    start = starting_location(board)
    host_player = create_player(host, start)
    track = list(GameDefaults.INFECTION_RATE_TRACK)
    return {
        "game": "pandemic",
        "game_id": game_id,
        "started": False,
        "game_over": False,
        "game_won": False,

        "players": [host_player],
        "player_ids": [host_player["id"]],
        "current_player": 0,
        "turn_number": 0,

        "cities": create_city_state(board),
        "diseases": {
            c: {"cured": False, "eradicated": False, "cubes": GameDefaults.CUBE_SUPPLY}
            for c in DISEASE_COLORS
        },
        "supply_exhausted": [],
        "outbreaks": 0,
        "max_outbreaks": GameDefaults.MAX_OUTBREAKS,
        "infection_rate": track[0],
        "infection_rate_track": track,
        "infection_rate_index": 0,
        "starting_location": start,
        "research_stations": [
            name for name in GameDefaults.STARTING_STATIONS if board.has_city(name)
        ],

        "last_update_time": now,
    }
