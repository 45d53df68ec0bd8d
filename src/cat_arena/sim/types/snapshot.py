from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Tuple

from ..core.agent import AgentState
from .metrics import TickMetrics


@dataclass(frozen=True, slots=True)
class AgentSnapshot:
    index: int
    x: float
    y: float
    state: AgentState
    color: str


@dataclass(frozen=True, slots=True)
class SnapshotArena:
    width: float
    height: float
    agent_radius: float


@dataclass(frozen=True, slots=True)
class Snapshot:
    tick: int
    arena: SnapshotArena
    agents: Tuple[AgentSnapshot, ...]
    metrics: TickMetrics

    def to_payload(self) -> Dict[str, Any]:
        return {
            "tick": self.tick,
            "arena": {
                "width": self.arena.width,
                "height": self.arena.height,
                "agent_radius": self.arena.agent_radius,
            },
            "agents": [
                {
                    "index": agent.index,
                    "x": agent.x,
                    "y": agent.y,
                    "state": agent.state.value,
                    "color": agent.color,
                }
                for agent in self.agents
            ],
            "metrics": {
                "tick": self.metrics.tick,
                "population": self.metrics.population,
                "calm": self.metrics.calm,
                "hissing": self.metrics.hissing,
                "fighting": self.metrics.fighting,
                "pair_checks": self.metrics.pair_checks,
                "move_attempts": self.metrics.move_attempts,
                "stalled_agents": list(self.metrics.stalled_agents),
                "tick_duration_ms": self.metrics.tick_duration_ms,
            },
        }
