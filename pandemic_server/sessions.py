"""
Authoritative in-memory session store.

Maps a game id to one independent game state. Each session has its own lock
held for the whole validate → mutate → snapshot of a single intent, so two
intents for the same game never interleave while intents for different games
proceed in parallel. The store-wide lock only guards the id → entry mapping
and is never held while rules run.
"""

import logging
import threading
import time
from copy import deepcopy
from dataclasses import dataclass, field

from pandemic_server.config import ServerConfig
from pandemic_server.errors import NotHost, SessionAlreadyExists, SessionNotFound
from pandemic_server.game_engine import ActionResult, GameEngine

logger = logging.getLogger(__name__)


@dataclass
class Session:
    game_id: str
    state: dict
    lock: threading.RLock = field(default_factory=threading.RLock)
    # Set once the entry has been removed; late lock holders must not touch it
    closed: bool = False


class SessionStore:

    def __init__(self, engine: GameEngine, clock=time.time, idle_timeout=None):
        self.engine = engine
        self.clock = clock
        self.idle_timeout = ServerConfig.IDLE_TIMEOUT if idle_timeout is None else idle_timeout
        self._sessions: dict[str, Session] = {}
        self._lock = threading.Lock()

    def __contains__(self, game_id):
        with self._lock:
            return game_id in self._sessions

    def __len__(self):
        with self._lock:
            return len(self._sessions)

    # ── Lifecycle ────────────────────────────────────────────────────

    def create_session(self, game_id, initial_actor):
        """Create a lobby for `game_id`. A second create for the same id is refused."""
        state = self.engine.create_state(game_id, initial_actor, self.clock())
        with self._lock:
            if game_id in self._sessions:
                raise SessionAlreadyExists(f"Game {game_id} already exists")
            self._sessions[game_id] = Session(game_id=game_id, state=state)
        logger.info("Game created: %s", game_id)
        return deepcopy(state)

    def join_session(self, game_id, actor):
        with self._locked(game_id) as session:
            session.state = self.engine.add_player(session.state, actor, self.clock())
            logger.info("Player %s joined game: %s", actor.get("name") or actor.get("id"), game_id)
            return deepcopy(session.state)

    def start_session(self, game_id, requester_id=None) -> ActionResult:
        """Start the game. When `requester_id` is given it must be the host."""
        with self._locked(game_id) as session:
            host_id = session.state["player_ids"][0]
            if requester_id is not None and requester_id != host_id:
                raise NotHost()
            result = self.engine.start(session.state, self.clock())
            session.state = result.new_state
            logger.info("Game started: %s", game_id)
            return self._snapshot_result(result)

    def apply_action(self, game_id, actor_id, action) -> ActionResult:
        """Run one action to completion. Rejections leave the session untouched."""
        with self._locked(game_id) as session:
            result = self.engine.apply_action(session.state, actor_id, action, self.clock())
            session.state = result.new_state
            return self._snapshot_result(result)

    def reset_session(self, game_id):
        """Drop a session. Returns False if there was nothing to drop."""
        with self._lock:
            session = self._sessions.get(game_id)
        if session is None:
            return False
        with session.lock:
            removed = self._remove(session)
        if removed:
            logger.info("Game reset: %s", game_id)
        return removed

    def evict_idle(self, max_age=None):
        """Remove sessions idle for longer than `max_age` seconds. Returns how many."""
        max_age = self.idle_timeout if max_age is None else max_age
        with self._lock:
            candidates = list(self._sessions.values())

        evicted = 0
        for session in candidates:
            # Waits for any in-flight action, then re-checks idleness
            with session.lock:
                if self.clock() - session.state["last_update_time"] <= max_age:
                    continue
                if self._remove(session):
                    evicted += 1
                    logger.info("Evicted idle game: %s", session.game_id)
        return evicted

    # ── Queries ──────────────────────────────────────────────────────

    def get_snapshot(self, game_id):
        with self._lock:
            session = self._sessions.get(game_id)
        if session is None:
            return None
        with session.lock:
            if session.closed:
                return None
            return deepcopy(session.state)

    def get_valid_actions(self, game_id, actor_id):
        with self._locked(game_id) as session:
            return self.engine.get_valid_actions(session.state, actor_id)

    def get_phase_info(self, game_id):
        with self._locked(game_id) as session:
            return self.engine.get_phase_info(session.state)

    def get_waiting_for(self, game_id):
        with self._locked(game_id) as session:
            return self.engine.get_waiting_for(session.state)

    def get_player_view(self, game_id, actor_id):
        with self._locked(game_id) as session:
            return self.engine.get_player_view(session.state, actor_id)

    # ── Internals ────────────────────────────────────────────────────

    def _locked(self, game_id):
        with self._lock:
            session = self._sessions.get(game_id)
        if session is None:
            raise SessionNotFound(f"Game {game_id} not found")
        return _SessionGuard(session, game_id)

    def _remove(self, session):
        """Caller holds session.lock."""
        if session.closed:
            return False
        session.closed = True
        with self._lock:
            if self._sessions.get(session.game_id) is session:
                del self._sessions[session.game_id]
        return True

    def _snapshot_result(self, result):
        return ActionResult(
            new_state=deepcopy(result.new_state),
            log=list(result.log),
            game_over=result.game_over,
        )


class _SessionGuard:
    """Holds a session's lock and rejects sessions removed while we waited."""

    def __init__(self, session, game_id):
        self.session = session
        self.game_id = game_id

    def __enter__(self):
        self.session.lock.acquire()
        if self.session.closed:
            self.session.lock.release()
            raise SessionNotFound(f"Game {self.game_id} not found")
        return self.session

    def __exit__(self, exc_type, exc, tb):
        self.session.lock.release()
        return False
