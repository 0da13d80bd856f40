"""
Infection placement and outbreak chain resolution.

Every path that adds cubes to the board goes through `infect`, so outbreaks
chain the same way whether they start from the opening seed or from the
end-of-turn infection step.
"""

import logging

from pandemic_server.pandemic.ledger import add_cubes

logger = logging.getLogger(__name__)


def infect(state, board, city, color, n=1, protected=frozenset()):
    """
    Add n cubes of `color` to `city`, resolving any outbreak it triggers.

    Cities in `protected` receive nothing. Eradicated colours are never
    placed. Returns the number of outbreaks that occurred.
    """
    if city in protected or state["diseases"][color]["eradicated"]:
        return 0
    placement = add_cubes(state, city, color, n)
    if not placement.outbreak:
        return 0
    return resolve_outbreak(state, board, city, color, set(), protected)


def resolve_outbreak(state, board, city, color, chain, protected=frozenset()):
    """
    Outbreak at `city`: bump the counter and spread one cube to each neighbour.

    `chain` holds every city that has already broken out during the current
    trigger. A neighbour in the chain still absorbs its cube but does not
    break out again, which bounds the recursion on cyclic maps.
    """
    chain.add(city)
    state["outbreaks"] = min(state["outbreaks"] + 1, state["max_outbreaks"])
    logger.debug("Outbreak of %s in %s (total %d)", color, city, state["outbreaks"])

    count = 1
    for neighbor in sorted(board.neighbors_of(city)):
        if neighbor in protected:
            continue
        placement = add_cubes(state, neighbor, color, 1)
        if placement.outbreak and neighbor not in chain:
            count += resolve_outbreak(state, board, neighbor, color, chain, protected)
    return count


def quarantined_cities(state, board, specialist_role):
    """Cities shielded by any player holding `specialist_role`."""
    shielded = set()
    for player in state["players"]:
        if player["role"] == specialist_role:
            shielded.add(player["location"])
            shielded |= board.neighbors_of(player["location"])
    return frozenset(shielded)
