"""
Server and game configuration.

Values can be overridden from the environment where noted.
"""

import os


# ── Server ───────────────────────────────────────────────────────────

class ServerConfig:
    """WebSocket server configuration."""
    HOST = os.environ.get("PANDEMIC_HOST", "0.0.0.0")
    PORT = int(os.environ.get("PANDEMIC_PORT", "8765"))

    # Idle sessions are evicted after this many seconds without an update
    IDLE_TIMEOUT = float(os.environ.get("PANDEMIC_IDLE_TIMEOUT", 24 * 60 * 60))
    # How often the eviction sweep runs
    CLEANUP_INTERVAL = float(os.environ.get("PANDEMIC_CLEANUP_INTERVAL", 6 * 60 * 60))

    LOG_LEVEL = os.environ.get("PANDEMIC_LOG_LEVEL", "INFO")


# ── Game Defaults ────────────────────────────────────────────────────

class GameDefaults:
    """Rule constants for a new session."""

    MIN_PLAYERS = 2
    MAX_PLAYERS = 4
    ACTIONS_PER_TURN = 4

    STARTING_LOCATION = "Atlanta"
    STARTING_STATIONS = ("Atlanta",)

    MAX_OUTBREAKS = 8
    CUBE_SUPPLY = 24
    CUBE_CAP = 3

    INFECTION_RATE_TRACK = (2, 2, 2, 3, 3, 4, 4)

    # (cities, cubes per city) for the opening infection
    SEED_TIERS = ((3, 3), (3, 2), (3, 1))

    # Card rules are not enforced; these are reported only
    CARDS_FOR_CURE = 5
    SCIENTIST_CARDS_FOR_CURE = 4
