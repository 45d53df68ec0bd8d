from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from pygame.math import Vector2


class AgentState(str, Enum):
    CALM = "Calm"
    HISSING = "Hissing"
    FIGHTING = "Fighting"


# Display colours consumed by renderers; the engine never reads them.
STATE_COLORS: dict[AgentState, str] = {
    AgentState.CALM: "#ffffff",
    AgentState.HISSING: "#808080",
    AgentState.FIGHTING: "#000000",
}


@dataclass(slots=True, eq=False)
class Agent:
    position: Vector2 = field(default_factory=Vector2)
    state: AgentState = AgentState.CALM
