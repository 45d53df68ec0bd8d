from __future__ import annotations

from typing import Sequence

from ..core.agent import Agent, AgentState
from ..core.rng import DeterministicRng
from ..utils.math2d import distance


def update_states(
    agents: Sequence[Agent],
    fight_radius: float,
    hiss_radius: float,
    rng: DeterministicRng,
) -> int:
    """Recompute every cat's state from the current pairwise distances.

    All cats start the pass calm. Pairs ``(i, j)`` with ``i < j`` are visited
    in index order: at or inside ``fight_radius`` both fight; inside
    ``hiss_radius`` both hiss with probability ``1 / d**2``. A later pair
    overwrites an earlier outcome for the same cat, so the last qualifying
    pair decides. Returns the number of pairs checked.
    """
    # TODO: decide whether the strongest outcome (fighting > hissing > calm) should win over the last pair.
    for agent in agents:
        agent.state = AgentState.CALM

    pair_checks = 0
    count = len(agents)
    for i in range(count):
        first = agents[i]
        for j in range(i + 1, count):
            second = agents[j]
            pair_checks += 1
            d = distance(first.position, second.position)
            if d <= fight_radius:
                first.state = AgentState.FIGHTING
                second.state = AgentState.FIGHTING
            elif d <= hiss_radius:
                if rng.next_float() < 1.0 / (d * d):
                    first.state = AgentState.HISSING
                    second.state = AgentState.HISSING
    return pair_checks
