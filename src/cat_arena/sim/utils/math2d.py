from __future__ import annotations

import math

from pygame.math import Vector2


def distance(first: Vector2, second: Vector2) -> float:
    dx = first.x - second.x
    dy = first.y - second.y
    return math.sqrt(dx * dx + dy * dy)


def _distance_xy(x: float, y: float, other: Vector2) -> float:
    dx = x - other.x
    dy = y - other.y
    return math.sqrt(dx * dx + dy * dy)


def _clamp_value(value: float, min_value: float, max_value: float) -> float:
    return max(min_value, min(max_value, value))
