from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import yaml

from .errors import ConfigError


@dataclass
class ArenaConfig:
    width: float = 500.0
    height: float = 500.0


@dataclass
class InteractionConfig:
    hiss_radius: float = 70.0
    fight_radius: float = 30.0


@dataclass
class MovementConfig:
    max_step: float = 10.0
    # None keeps retrying until a free spot turns up, which can hang when packed tight.
    max_attempts: Optional[int] = 1_000


@dataclass
class SimulationConfig:
    population: int = 50
    seed: int = 42
    tick_period_ms: int = 500
    agent_size: Optional[float] = None
    max_placement_attempts: Optional[int] = 10_000
    config_version: str = "v1"
    arena: ArenaConfig = field(default_factory=ArenaConfig)
    interaction: InteractionConfig = field(default_factory=InteractionConfig)
    movement: MovementConfig = field(default_factory=MovementConfig)

    @property
    def agent_radius(self) -> float:
        if self.agent_size is not None:
            return float(self.agent_size)
        if self.population <= 0:
            return 0.0
        return self.arena.width / self.population

    def validate(self) -> None:
        if self.arena.width <= 0 or self.arena.height <= 0:
            raise ConfigError(f"arena must have positive size, got {self.arena.width}x{self.arena.height}")
        if self.population < 0:
            raise ConfigError(f"population must be non-negative, got {self.population}")
        if self.agent_size is not None and self.agent_size < 0:
            raise ConfigError(f"agent_size must be non-negative, got {self.agent_size}")
        fight = self.interaction.fight_radius
        hiss = self.interaction.hiss_radius
        if fight < 0 or fight >= hiss:
            raise ConfigError(f"expected 0 <= fight_radius < hiss_radius, got {fight} and {hiss}")
        if self.movement.max_step < 0:
            raise ConfigError(f"max_step must be non-negative, got {self.movement.max_step}")
        for name, cap in (
            ("max_placement_attempts", self.max_placement_attempts),
            ("movement.max_attempts", self.movement.max_attempts),
        ):
            if cap is not None and cap <= 0:
                raise ConfigError(f"{name} must be positive or null, got {cap}")
        if self.tick_period_ms <= 0:
            raise ConfigError(f"tick_period_ms must be positive, got {self.tick_period_ms}")

    @staticmethod
    def from_yaml(path: Path) -> "SimulationConfig":
        data = yaml.safe_load(Path(path).read_text()) or {}
        return load_config(data)


@dataclass
class AppConfig:
    simulation: SimulationConfig = field(default_factory=SimulationConfig)
    broadcast_interval: int = 1


def load_config(raw: dict) -> SimulationConfig:
    if not isinstance(raw, dict):
        raise ConfigError(f"expected a mapping at the top level, got {type(raw).__name__}")
    sim_values = {k: v for k, v in raw.items() if k not in {"arena", "interaction", "movement"}}
    try:
        arena = ArenaConfig(**raw.get("arena", {}))
        interaction = InteractionConfig(**raw.get("interaction", {}))
        movement = MovementConfig(**raw.get("movement", {}))
        return SimulationConfig(arena=arena, interaction=interaction, movement=movement, **sim_values)
    except TypeError as exc:
        # Unknown keys surface as TypeError from the dataclass constructors.
        raise ConfigError(str(exc)) from exc
