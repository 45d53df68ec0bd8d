from __future__ import annotations


class SimulationError(Exception):
    """Base class for faults raised by the simulation core."""


class ConfigError(SimulationError, ValueError):
    """The configuration violates an arena, threshold or attempt-cap constraint."""


class PlacementInfeasible(SimulationError):
    """The requested population cannot be packed into the arena.

    Raised by the placement generator either up front, when the arena is
    geometrically too small, or after the attempt cap for a single cat is
    exhausted.
    """

    def __init__(self, requested: int, placed: int, radius: float, reason: str = "") -> None:
        self.requested = requested
        self.placed = placed
        self.radius = radius
        message = f"placed {placed} of {requested} cats at radius {radius:g}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class MovementStalled(SimulationError):
    """A cat found no free position within its attempt cap and kept its place.

    Never raised out of a tick; collected into the movement report instead.
    """

    def __init__(self, index: int, attempts: int) -> None:
        self.index = index
        self.attempts = attempts
        super().__init__(f"cat {index} stalled after {attempts} move attempts")
