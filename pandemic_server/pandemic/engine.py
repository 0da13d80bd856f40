"""
Outbreak game — rules engine.

Implements the GameEngine interface as a pure state machine.
All state is a plain dict. No networking; the only side channel is the
injected random source used for infection draws.

Turn machine:
  lobby → player 0 acting → ... → player N-1 acting → player 0 ... → game over
Each acting player spends up to 4 actions, then ends the turn, which runs
the infection step.
"""

import logging
import random
from copy import deepcopy

from pandemic_server.config import GameDefaults
from pandemic_server.errors import (
    AlreadyCured, ActorNotFound, CitiesNotConnected, GameAlreadyOver,
    GameNotStarted, InvalidAction, MissingRequiredCard, NoActionsRemaining,
    NoInfectionToTreat, NoResearchStationHere, NotEnoughActors, NotYourTurn,
    SessionAlreadyStarted, SessionFull, StationAlreadyExists,
)
from pandemic_server.game_engine import GameEngine, ActionResult
from pandemic_server.pandemic.board import Board, DISEASE_COLORS
from pandemic_server.pandemic.ledger import (
    all_cured, mark_cured, mark_eradicated, remove_cubes,
)
from pandemic_server.pandemic.outbreaks import infect, quarantined_cities
from pandemic_server.pandemic.state import (
    MEDIC, OPERATIONS_EXPERT, QUARANTINE_SPECIALIST, SCIENTIST,
    create_initial_state, create_player,
)

logger = logging.getLogger(__name__)

MOVE = "move"
TREAT = "treat"
BUILD_STATION = "build_station"
DISCOVER_CURE = "discover_cure"
END_TURN = "end_turn"


class PermissiveCardRules:
    """
    Card rules are not implemented: curing never checks or spends cards.

    The cost a real deck would charge is still computed so clients can show it.
    """
    enforced = False

    def cure_cost(self, player):
        if player["role"] == SCIENTIST:
            return GameDefaults.SCIENTIST_CARDS_FOR_CURE
        return GameDefaults.CARDS_FOR_CURE

    def can_cure(self, player, color):
        return True


class PandemicEngine(GameEngine):

    player_count_range = (GameDefaults.MIN_PLAYERS, GameDefaults.MAX_PLAYERS)

    def __init__(self, board=None, rng=None, card_rules=None):
        self.board = board or Board.standard()
        # Anything with .choice(seq) works; tests pass a scripted source
        self.rng = rng or random.Random()
        self.card_rules = card_rules or PermissiveCardRules()
        self._handlers = {
            MOVE: self._do_move,
            TREAT: self._do_treat,
            BUILD_STATION: self._do_build_station,
            DISCOVER_CURE: self._do_discover_cure,
            END_TURN: self._do_end_turn,
        }

    # ── Lobby ─────────────────────────────────────────────────────────

    def create_state(self, game_id, host, now):
        return create_initial_state(game_id, host, self.board, now)

    def add_player(self, state, player, now):
        if state["started"]:
            raise SessionAlreadyStarted()
        if len(state["players"]) >= self.player_count_range[1]:
            raise SessionFull()
        if player.get("id") in state["player_ids"]:
            raise InvalidAction(f"Player {player['id']} already joined")

        state = deepcopy(state)
        new_player = create_player(player, state["starting_location"])
        state["players"].append(new_player)
        state["player_ids"].append(new_player["id"])
        state["last_update_time"] = now
        return state

    def start(self, state, now):
        if state["started"]:
            raise SessionAlreadyStarted()
        if len(state["players"]) < self.player_count_range[0]:
            raise NotEnoughActors()

        state = deepcopy(state)
        state["started"] = True
        state["current_player"] = 0
        state["turn_number"] = 1
        log = self._seed_infections(state)
        state["last_update_time"] = now
        if not self._check_loss(state, log):
            first = state["players"][0]["name"]
            log.append(f"Game started. {first} goes first.")
        return ActionResult(new_state=state, log=log, game_over=state["game_over"])

    def _seed_infections(self, state):
        """Opening infection: each tier draws distinct cities, tiers may overlap."""
        protected = quarantined_cities(state, self.board, QUARANTINE_SPECIALIST)
        log = []
        for count, cubes in GameDefaults.SEED_TIERS:
            for city in self._draw_distinct(count):
                color = self.board.color_of(city)
                if city in protected:
                    log.append(f"{city} drawn, but it is under quarantine")
                    continue
                infect(state, self.board, city, color, cubes, protected)
                log.append(f"{city} is infected with {cubes} {color} cube(s)")
        return log

    def _draw_distinct(self, count):
        names = self.board.city_names
        count = min(count, len(names))
        picked = []
        while len(picked) < count:
            city = self.rng.choice(names)
            if city not in picked:
                picked.append(city)
        return picked

    # ── Views ─────────────────────────────────────────────────────────

    def get_player_view(self, state, player_id):
        """Everything on the board is public."""
        return deepcopy(state)

    def get_valid_actions(self, state, player_id):
        if not state["started"] or state["game_over"]:
            return []
        try:
            player_idx = self._player_index(state, player_id)
        except ActorNotFound:
            return []
        if state["current_player"] != player_idx:
            return []

        actions = [{"kind": END_TURN}]
        player = state["players"][player_idx]
        if player["actions"] <= 0:
            return actions

        here = player["location"]
        city = state["cities"][here]
        for neighbor in sorted(self.board.neighbors_of(here)):
            actions.append({"kind": MOVE, "location": neighbor})
        for color in DISEASE_COLORS:
            if city["infections"][color] > 0:
                actions.append({"kind": TREAT, "color": color})
        if not city["research_station"] and self._may_build(player):
            actions.append({"kind": BUILD_STATION})
        if city["research_station"]:
            for color in DISEASE_COLORS:
                if not state["diseases"][color]["cured"]:
                    actions.append({"kind": DISCOVER_CURE, "color": color})
        return actions

    def get_waiting_for(self, state):
        if not state["started"] or state["game_over"]:
            return []
        return [state["player_ids"][state["current_player"]]]

    def get_phase_info(self, state):
        if not state["started"]:
            count = len(state["players"])
            return {
                "phase": "lobby",
                "turn": 0,
                "current_player": None,
                "description": f"Waiting to start ({count} player(s) joined)",
            }
        if state["game_over"]:
            outcome = "Diseases cured, you win!" if state["game_won"] else "Too many outbreaks, you lose."
            return {
                "phase": "game_over",
                "turn": state["turn_number"],
                "current_player": None,
                "description": outcome,
            }
        current = state["players"][state["current_player"]]
        return {
            "phase": "actions",
            "turn": state["turn_number"],
            "current_player": current["name"],
            "description": f"{current['name']}: {current['actions']} action(s) left",
        }

    # ── Action Dispatch ───────────────────────────────────────────────

    def apply_action(self, state, player_id, action, now):
        if not isinstance(action, dict):
            raise InvalidAction("Action must be an object")
        player_idx = self._player_index(state, player_id)
        if not state["started"]:
            raise GameNotStarted()
        if state["game_over"]:
            raise GameAlreadyOver()
        if state["current_player"] != player_idx:
            raise NotYourTurn()

        kind = action.get("kind")
        handler = self._handlers.get(kind) if isinstance(kind, str) else None
        if handler is None:
            raise InvalidAction(f"Unknown action kind: {kind}")
        if kind != END_TURN and state["players"][player_idx]["actions"] <= 0:
            raise NoActionsRemaining()

        state = deepcopy(state)
        log = handler(state, player_idx, action)
        state["last_update_time"] = now

        return ActionResult(new_state=state, log=log, game_over=state["game_over"])

    # ── Action Implementations ────────────────────────────────────────

    def _do_move(self, state, player_idx, action):
        player = state["players"][player_idx]
        destination = action.get("location")
        if not destination or not isinstance(destination, str):
            raise InvalidAction("Move requires a location")

        origin = player["location"]
        if destination == origin:
            return [f"{player['name']} stays in {origin}"]
        if not self.board.are_connected(origin, destination):
            raise CitiesNotConnected(
                f"Cannot move directly from {origin} to {destination}. Cities must be connected."
            )

        player["location"] = destination
        player["actions"] -= 1
        return [f"{player['name']} moves from {origin} to {destination}"]

    def _do_treat(self, state, player_idx, action):
        player = state["players"][player_idx]
        color = self._color(action)
        here = player["location"]
        count = state["cities"][here]["infections"][color]
        if count <= 0:
            raise NoInfectionToTreat(f"No {color} cubes to treat in {here}")

        cured = state["diseases"][color]["cured"]
        wanted = count if cured or player["role"] == MEDIC else 1
        removed = remove_cubes(state, here, color, wanted)
        player["actions"] -= 1

        log = [f"{player['name']} treats {removed} {color} cube(s) in {here}"]
        if cured and mark_eradicated(state, color):
            log.append(f"The {color} disease has been eradicated!")
        return log

    def _do_build_station(self, state, player_idx, action):
        player = state["players"][player_idx]
        here = player["location"]
        city = state["cities"][here]
        if city["research_station"]:
            raise StationAlreadyExists()
        if not self._may_build(player):
            raise MissingRequiredCard(f"The {here} city card is required to build here")

        city["research_station"] = True
        player["actions"] -= 1
        state["research_stations"].append(here)
        return [f"{player['name']} builds a research station in {here}"]

    def _do_discover_cure(self, state, player_idx, action):
        player = state["players"][player_idx]
        color = self._color(action)
        here = player["location"]
        if not state["cities"][here]["research_station"]:
            raise NoResearchStationHere()
        if state["diseases"][color]["cured"]:
            raise AlreadyCured(f"The {color} disease is already cured")
        if not self.card_rules.can_cure(player, color):
            raise MissingRequiredCard(f"Not enough {color} cards to cure")

        mark_cured(state, color)
        player["actions"] -= 1
        log = [f"{player['name']} discovers a cure for {color}"]
        if not self.card_rules.enforced:
            cost = self.card_rules.cure_cost(player)
            log.append(f"({cost} {color} cards would be required; card rules are not enforced)")

        if all_cured(state):
            state["game_won"] = True
            state["game_over"] = True
            logger.info("Game %s won", state["game_id"])
            log.append("All diseases cured. The team wins!")
        return log

    def _do_end_turn(self, state, player_idx, action):
        player = state["players"][player_idx]
        player["actions"] = GameDefaults.ACTIONS_PER_TURN
        self._advance_turn(state)

        log = [f"{player['name']} ends their turn"]
        log += self._infection_step(state)

        if not self._check_loss(state, log):
            nxt = state["players"][state["current_player"]]["name"]
            log.append(f"{nxt}'s turn")
        return log

    def _infection_step(self, state):
        """Draw `infection_rate` cities with repetition and add one cube to each."""
        protected = quarantined_cities(state, self.board, QUARANTINE_SPECIALIST)
        names = self.board.city_names
        log = []
        for _ in range(state["infection_rate"]):
            city = self.rng.choice(names)
            color = self.board.color_of(city)
            if state["diseases"][color]["eradicated"]:
                log.append(f"{city} drawn, but {color} is eradicated")
                continue
            if city in protected:
                log.append(f"{city} drawn, but it is under quarantine")
                continue
            outbreaks = infect(state, self.board, city, color, 1, protected)
            if outbreaks:
                log.append(f"{city} is infected: {outbreaks} outbreak(s) of {color}!")
            else:
                log.append(f"{city} is infected with 1 {color} cube")
        return log

    # ── Helpers ───────────────────────────────────────────────────────

    def _player_index(self, state, player_id):
        try:
            return state["player_ids"].index(player_id)
        except ValueError:
            raise ActorNotFound(f"Player {player_id} not in this game")

    def _color(self, action):
        color = action.get("color")
        if color not in DISEASE_COLORS:
            raise InvalidAction(f"Unknown disease color: {color}")
        return color

    def _may_build(self, player):
        return player["role"] == OPERATIONS_EXPERT or player["location"] in player["cards"]

    def _check_loss(self, state, log):
        """End the game once the outbreak counter reaches its maximum."""
        if state["outbreaks"] < state["max_outbreaks"]:
            return False
        state["game_over"] = True
        state["game_won"] = False
        logger.info("Game %s lost after %d outbreaks", state["game_id"], state["outbreaks"])
        log.append("Too many outbreaks. The team loses.")
        return True

    def _advance_turn(self, state):
        """Hand the turn to the next player in join order."""
        state["current_player"] = (state["current_player"] + 1) % len(state["players"])
        state["turn_number"] += 1
