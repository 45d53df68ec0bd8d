from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from ..core.agent import Agent
from ..core.errors import MovementStalled
from ..core.rng import DeterministicRng
from ..utils.math2d import _clamp_value, _distance_xy

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class MovementReport:
    attempts: int = 0
    stalled: List[MovementStalled] = field(default_factory=list)


def move_agents(
    agents: Sequence[Agent],
    width: float,
    height: float,
    radius: float,
    max_step: float,
    rng: DeterministicRng,
    max_attempts: Optional[int] = None,
) -> MovementReport:
    """Random-walk every cat once, in index order, without creating overlaps.

    Each candidate is clamped into the arena and rejected while it sits
    closer than ``2 * radius`` to any other cat. Positions are updated in
    place, so later cats test against the new positions of earlier ones.
    A cat that exhausts ``max_attempts`` keeps its position and is reported
    as stalled.
    """
    report = MovementReport()
    min_gap = 2 * radius
    low_x, high_x = radius, width - radius
    low_y, high_y = radius, height - radius

    for index, agent in enumerate(agents):
        position = agent.position
        attempts = 0
        while True:
            if max_attempts is not None and attempts >= max_attempts:
                stall = MovementStalled(index, attempts)
                logger.warning("%s; keeping position (%.2f, %.2f)", stall, position.x, position.y)
                report.stalled.append(stall)
                break
            step = rng.next_displacement(max_step)
            new_x = _clamp_value(position.x + step.x, low_x, high_x)
            new_y = _clamp_value(position.y + step.y, low_y, high_y)
            attempts += 1
            overlapping = False
            for other_index, other in enumerate(agents):
                if other_index == index:
                    continue
                if _distance_xy(new_x, new_y, other.position) < min_gap:
                    overlapping = True
                    break
            if not overlapping:
                position.update(new_x, new_y)
                break
        report.attempts += attempts

    return report
