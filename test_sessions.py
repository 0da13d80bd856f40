"""
Tests for the session store: lifecycle, isolation, snapshots, eviction,
and concurrent access.
"""

import threading

import pytest

from pandemic_server.errors import (
    NotHost, NotYourTurn, SessionAlreadyExists, SessionNotFound,
)
from pandemic_server.pandemic.engine import PandemicEngine
from pandemic_server.sessions import SessionStore


# ── Helpers ───────────────────────────────────────────────────────────

class ScriptedRandom:
    def __init__(self, picks):
        self.picks = list(picks)
        self.calls = 0

    def choice(self, seq):
        pick = self.picks[self.calls % len(self.picks)]
        self.calls += 1
        return pick


class FakeClock:
    def __init__(self, now=0.0):
        self.now = now

    def __call__(self):
        return self.now


SEED_PICKS = [
    "Tokyo", "Cairo", "Lima",
    "Paris", "Delhi", "Lagos",
    "Sydney", "Moscow", "Santiago",
]


def actor(pid, name, role="Researcher"):
    return {"id": pid, "name": name, "role": role}


def make_store(clock=None):
    engine = PandemicEngine(rng=ScriptedRandom(SEED_PICKS))
    return SessionStore(engine, clock=clock or FakeClock())


def started_session(store, game_id="G1"):
    store.create_session(game_id, actor("p1", "Alice"))
    store.join_session(game_id, actor("p2", "Bob"))
    store.start_session(game_id)


# ══════════════════════════════════════════════════════════════════════
# Lifecycle
# ══════════════════════════════════════════════════════════════════════

class TestLifecycle:

    def setup_method(self):
        self.store = make_store()

    def test_create_returns_lobby_snapshot(self):
        snapshot = self.store.create_session("G1", actor("p1", "Alice"))
        assert snapshot["game_id"] == "G1"
        assert snapshot["started"] is False
        assert [p["id"] for p in snapshot["players"]] == ["p1"]
        assert "G1" in self.store

    def test_recreate_refused(self):
        self.store.create_session("G1", actor("p1", "Alice"))
        self.store.join_session("G1", actor("p2", "Bob"))
        with pytest.raises(SessionAlreadyExists):
            self.store.create_session("G1", actor("p9", "Mallory"))
        assert len(self.store.get_snapshot("G1")["players"]) == 2

    def test_join_and_start(self):
        started_session(self.store)
        snapshot = self.store.get_snapshot("G1")
        assert snapshot["started"] is True
        assert snapshot["current_player"] == 0
        assert len(snapshot["players"]) == 2

    def test_only_host_starts(self):
        self.store.create_session("G1", actor("p1", "Alice"))
        self.store.join_session("G1", actor("p2", "Bob"))
        with pytest.raises(NotHost):
            self.store.start_session("G1", "p2")
        assert self.store.get_snapshot("G1")["started"] is False

        self.store.start_session("G1", "p1")
        assert self.store.get_snapshot("G1")["started"] is True

    def test_unknown_session(self):
        with pytest.raises(SessionNotFound):
            self.store.join_session("NOPE", actor("p2", "Bob"))
        with pytest.raises(SessionNotFound):
            self.store.start_session("NOPE")
        with pytest.raises(SessionNotFound):
            self.store.apply_action("NOPE", "p1", {"kind": "end_turn"})
        assert self.store.get_snapshot("NOPE") is None

    def test_apply_action(self):
        started_session(self.store)
        result = self.store.apply_action("G1", "p1", {"kind": "move", "location": "Chicago"})
        assert result.new_state["players"][0]["location"] == "Chicago"
        assert self.store.get_snapshot("G1")["players"][0]["location"] == "Chicago"
        assert result.log

    def test_rejected_action_leaves_snapshot_unchanged(self):
        started_session(self.store)
        before = self.store.get_snapshot("G1")
        with pytest.raises(NotYourTurn):
            self.store.apply_action("G1", "p2", {"kind": "end_turn"})
        assert self.store.get_snapshot("G1") == before

    def test_snapshot_is_a_copy(self):
        self.store.create_session("G1", actor("p1", "Alice"))
        snapshot = self.store.get_snapshot("G1")
        snapshot["players"].clear()
        assert len(self.store.get_snapshot("G1")["players"]) == 1

    def test_reset(self):
        started_session(self.store)
        assert self.store.reset_session("G1") is True
        assert self.store.get_snapshot("G1") is None
        assert self.store.reset_session("G1") is False

    def test_id_reusable_after_reset(self):
        self.store.create_session("G1", actor("p1", "Alice"))
        self.store.reset_session("G1")
        snapshot = self.store.create_session("G1", actor("p7", "Grace"))
        assert snapshot["player_ids"] == ["p7"]

    def test_views(self):
        started_session(self.store)
        assert self.store.get_waiting_for("G1") == ["p1"]
        assert self.store.get_phase_info("G1")["phase"] == "actions"
        assert {"kind": "end_turn"} in self.store.get_valid_actions("G1", "p1")
        assert self.store.get_player_view("G1", "p2")["game_id"] == "G1"


# ══════════════════════════════════════════════════════════════════════
# Isolation
# ══════════════════════════════════════════════════════════════════════

class TestIsolation:

    def test_sessions_do_not_share_state(self):
        store = make_store()
        started_session(store, "G1")
        started_session(store, "G2")

        store.apply_action("G1", "p1", {"kind": "discover_cure", "color": "red"})
        store.apply_action("G1", "p1", {"kind": "move", "location": "Miami"})

        other = store.get_snapshot("G2")
        assert other["players"][0]["location"] == "Atlanta"
        assert other["diseases"]["red"]["cured"] is False

    def test_same_actor_id_in_two_sessions(self):
        store = make_store()
        started_session(store, "G1")
        started_session(store, "G2")
        store.apply_action("G1", "p1", {"kind": "end_turn"})
        assert store.get_snapshot("G1")["current_player"] == 1
        assert store.get_snapshot("G2")["current_player"] == 0


# ══════════════════════════════════════════════════════════════════════
# Eviction
# ══════════════════════════════════════════════════════════════════════

class TestEviction:

    def test_only_idle_sessions_evicted(self):
        clock = FakeClock(0)
        store = make_store(clock)
        store.create_session("OLD", actor("p1", "Alice"))
        store.create_session("NEW", actor("p1", "Alice"))

        clock.now = 100
        store.join_session("NEW", actor("p2", "Bob"))

        clock.now = 120
        assert store.evict_idle(max_age=50) == 1
        assert "OLD" not in store
        assert "NEW" in store

    def test_default_timeout(self):
        clock = FakeClock(0)
        store = SessionStore(PandemicEngine(), clock=clock, idle_timeout=60)
        store.create_session("G1", actor("p1", "Alice"))
        clock.now = 60
        assert store.evict_idle() == 0
        clock.now = 61
        assert store.evict_idle() == 1
        assert len(store) == 0

    def test_evicted_session_not_found(self):
        clock = FakeClock(0)
        store = make_store(clock)
        started_session(store)
        clock.now = 10_000
        store.evict_idle(max_age=1)
        with pytest.raises(SessionNotFound):
            store.apply_action("G1", "p1", {"kind": "end_turn"})


# ══════════════════════════════════════════════════════════════════════
# Concurrency
# ══════════════════════════════════════════════════════════════════════

class TestConcurrency:

    def test_create_race_has_one_winner(self):
        store = make_store()
        barrier = threading.Barrier(8)
        outcomes = []
        outcomes_lock = threading.Lock()

        def create(i):
            barrier.wait()
            try:
                store.create_session("RACE", actor(f"p{i}", f"P{i}"))
                outcome = "won"
            except SessionAlreadyExists:
                outcome = "lost"
            with outcomes_lock:
                outcomes.append(outcome)

        threads = [threading.Thread(target=create, args=(i,)) for i in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert outcomes.count("won") == 1
        assert outcomes.count("lost") == 7
        assert len(store.get_snapshot("RACE")["players"]) == 1

    def test_parallel_sessions(self):
        store = make_store()
        game_ids = [f"G{i}" for i in range(6)]
        for game_id in game_ids:
            started_session(store, game_id)

        def play(game_id):
            for city in ("Chicago", "Atlanta", "Miami", "Atlanta"):
                store.apply_action(game_id, "p1", {"kind": "move", "location": city})

        threads = [threading.Thread(target=play, args=(g,)) for g in game_ids]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        for game_id in game_ids:
            snapshot = store.get_snapshot(game_id)
            assert snapshot["players"][0]["actions"] == 0
            assert snapshot["players"][0]["location"] == "Atlanta"


    def test_same_session_actions_serialised(self):
        store = make_store()
        started_session(store)
        colors = ["red", "blue", "yellow", "black"]
        cured = []
        rejected = []

        def cure(i):
            try:
                store.apply_action("G1", "p1", {"kind": "discover_cure", "color": colors[i % 4]})
                cured.append(colors[i % 4])
            except ValueError as e:
                rejected.append(e)

        threads = [threading.Thread(target=cure, args=(i,)) for i in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert sorted(cured) == sorted(colors)
        assert len(rejected) == 4
        snapshot = store.get_snapshot("G1")
        assert snapshot["players"][0]["actions"] == 0
        assert snapshot["game_won"] is True
