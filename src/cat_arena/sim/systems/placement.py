from __future__ import annotations

import logging
import math
from typing import List, Optional

from pygame.math import Vector2

from ..core.errors import PlacementInfeasible
from ..core.rng import DeterministicRng
from ..utils.math2d import distance

logger = logging.getLogger(__name__)

# Densest packing of equal discs in the plane (hexagonal lattice).
_HEX_PACKING_DENSITY = math.pi / math.sqrt(12.0)


def check_capacity(count: int, width: float, height: float, radius: float) -> None:
    """Reject populations that cannot fit the arena before any sampling starts.

    Every cat covers a disc of ``radius`` that must lie inside the arena and
    no two discs may overlap, so the discs' total area cannot exceed the
    arena area times the hexagonal packing density.
    """
    if count <= 0 or radius <= 0:
        return
    if width < 2 * radius or height < 2 * radius:
        raise PlacementInfeasible(count, 0, radius, f"arena {width:g}x{height:g} is narrower than one cat")
    if count > 1 and count * math.pi * radius * radius > width * height * _HEX_PACKING_DENSITY:
        raise PlacementInfeasible(count, 0, radius, "population exceeds the densest packing of the arena")


def place_agents(
    count: int,
    width: float,
    height: float,
    radius: float,
    rng: DeterministicRng,
    max_attempts: Optional[int] = None,
) -> List[Vector2]:
    """Rejection-sample ``count`` non-overlapping positions inside the arena.

    Candidates are drawn uniformly from ``[radius, dim - radius]`` on each
    axis and accepted only when at least ``2 * radius`` away from every
    accepted position. ``max_attempts`` bounds the consecutive rejections for
    one cat; ``None`` retries forever.
    """
    check_capacity(count, width, height, radius)
    min_gap = 2 * radius
    positions: List[Vector2] = []
    total_attempts = 0
    attempts = 0
    while len(positions) < count:
        if max_attempts is not None and attempts >= max_attempts:
            raise PlacementInfeasible(
                count, len(positions), radius, f"no free spot after {attempts} attempts"
            )
        candidate = Vector2(
            rng.next_range(radius, width - radius),
            rng.next_range(radius, height - radius),
        )
        attempts += 1
        total_attempts += 1
        if all(distance(candidate, other) >= min_gap for other in positions):
            positions.append(candidate)
            attempts = 0
    logger.debug("placed %d cats in %d attempts", count, total_attempts)
    return positions
