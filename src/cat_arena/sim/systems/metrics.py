from __future__ import annotations

from typing import Sequence

from ..core.agent import Agent, AgentState
from ..types.metrics import TickMetrics


def count_states(agents: Sequence[Agent]) -> dict[AgentState, int]:
    counts = {state: 0 for state in AgentState}
    for agent in agents:
        counts[agent.state] += 1
    return counts


def create_metrics(
    tick: int,
    agents: Sequence[Agent],
    pair_checks: int,
    move_attempts: int,
    stalled_agents: Sequence[int],
    duration_ms: float,
) -> TickMetrics:
    counts = count_states(agents)
    return TickMetrics(
        tick=tick,
        population=len(agents),
        calm=counts[AgentState.CALM],
        hissing=counts[AgentState.HISSING],
        fighting=counts[AgentState.FIGHTING],
        pair_checks=pair_checks,
        move_attempts=move_attempts,
        stalled_agents=tuple(stalled_agents),
        tick_duration_ms=duration_ms,
    )
