"""
Disease ledger: cube counts per city, cube supply, cure and eradication flags.

All functions mutate the state dict they are given. Callers (the engine)
are responsible for working on a copy.
"""

from dataclasses import dataclass

from pandemic_server.config import GameDefaults


@dataclass
class Placement:
    """Result of adding cubes of one colour to one city."""
    absorbed: int = 0
    # Cubes that would have pushed the city over the cap
    overflow: int = 0

    @property
    def outbreak(self):
        return self.overflow > 0


def add_cubes(state, city, color, n=1):
    """
    Place up to n cubes, clamping the city at the cap.

    Absorbed cubes come out of the colour's supply. If the supply runs dry the
    remaining cubes are simply not placed and the colour is flagged in
    state["supply_exhausted"].
    """
    infections = state["cities"][city]["infections"]
    disease = state["diseases"][color]

    room = GameDefaults.CUBE_CAP - infections[color]
    wanted = min(n, room)
    absorbed = min(wanted, disease["cubes"])
    if absorbed < wanted and color not in state["supply_exhausted"]:
        state["supply_exhausted"].append(color)

    infections[color] += absorbed
    disease["cubes"] -= absorbed
    return Placement(absorbed=absorbed, overflow=max(0, n - room))


def remove_cubes(state, city, color, n=1):
    """Remove up to n cubes (floored at zero) and return them to the supply."""
    infections = state["cities"][city]["infections"]
    removed = min(n, infections[color])
    infections[color] -= removed
    state["diseases"][color]["cubes"] += removed
    return removed


def board_count(state, color):
    return sum(c["infections"][color] for c in state["cities"].values())


def mark_cured(state, color):
    state["diseases"][color]["cured"] = True


def mark_eradicated(state, color):
    """Eradicate a cured colour with no cubes left anywhere. Returns False otherwise."""
    disease = state["diseases"][color]
    if not disease["cured"] or board_count(state, color) > 0:
        return False
    disease["eradicated"] = True
    return True


def all_cured(state):
    return all(d["cured"] for d in state["diseases"].values())
