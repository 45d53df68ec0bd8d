from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple


@dataclass(frozen=True, slots=True)
class TickMetrics:
    tick: int
    population: int
    calm: int
    hissing: int
    fighting: int
    pair_checks: int
    move_attempts: int
    stalled_agents: Tuple[int, ...] = ()
    tick_duration_ms: float = 0.0
