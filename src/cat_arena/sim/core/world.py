from __future__ import annotations

import logging
from time import perf_counter
from typing import List, Optional, Sequence, Tuple

from pygame.math import Vector2

from .agent import STATE_COLORS, Agent, AgentState
from .config import SimulationConfig
from .errors import ConfigError, MovementStalled, PlacementInfeasible
from .rng import DeterministicRng
from ..systems import interaction, metrics as metrics_system, movement, placement
from ..types.metrics import TickMetrics
from ..types.snapshot import AgentSnapshot, Snapshot, SnapshotArena

logger = logging.getLogger(__name__)

_INTERACTION_RNG_SALT = 0x5EEDCA7F16E7C0DE


def _derive_stream_seed(seed: int, salt: int) -> int:
    return (int(seed) ^ int(salt)) & 0xFFFFFFFFFFFFFFFF


class World:
    """Owns the cats and advances them one tick at a time.

    Movement and hiss draws come from separate seeded streams so that the
    number of rejected move candidates never shifts the interaction draws.
    Callers outside the engine should read ``snapshot()``; the ``agents``
    view is for inspection and tests.
    """

    def __init__(self, config: SimulationConfig, positions: Optional[Sequence[Vector2]] = None):
        config.validate()
        if positions is not None and len(positions) != config.population:
            raise ConfigError(f"got {len(positions)} positions for a population of {config.population}")
        self._config = config
        self._radius = config.agent_radius
        self._rng = DeterministicRng(config.seed)
        self._interaction_rng = DeterministicRng(_derive_stream_seed(config.seed, _INTERACTION_RNG_SALT))
        self._initial_positions: Optional[Tuple[Vector2, ...]] = (
            tuple(Vector2(p) for p in positions) if positions is not None else None
        )
        self._agents: List[Agent] = []
        self._tick = 0
        self._metrics: TickMetrics | None = None
        self._stalls: List[MovementStalled] = []
        self._bootstrap_population()

    @property
    def config(self) -> SimulationConfig:
        return self._config

    @property
    def agents(self) -> Tuple[Agent, ...]:
        """Detached copies of the cats; changing them never touches the world."""
        return tuple(Agent(position=Vector2(agent.position), state=agent.state) for agent in self._agents)

    @property
    def agent_radius(self) -> float:
        return self._radius

    @property
    def tick_count(self) -> int:
        return self._tick

    @property
    def metrics(self) -> TickMetrics | None:
        return self._metrics

    @property
    def stalls(self) -> Tuple[MovementStalled, ...]:
        return tuple(self._stalls)

    def reset(self) -> None:
        self._agents.clear()
        self._rng.reset()
        self._interaction_rng.reset()
        self._tick = 0
        self._metrics = None
        self._stalls.clear()
        self._bootstrap_population()

    def tick(self) -> TickMetrics:
        start = perf_counter()
        report = self._movement_pass()
        pair_checks = self._interaction_pass()

        self._tick += 1
        self._stalls = list(report.stalled)
        duration_ms = (perf_counter() - start) * 1000.0
        self._metrics = metrics_system.create_metrics(
            self._tick,
            self._agents,
            pair_checks,
            report.attempts,
            [stall.index for stall in report.stalled],
            duration_ms,
        )
        logger.debug(
            "tick %d: %d fighting, %d hissing, %d move attempts, %d stalled",
            self._tick,
            self._metrics.fighting,
            self._metrics.hissing,
            report.attempts,
            len(report.stalled),
        )
        return self._metrics

    def snapshot(self) -> Snapshot:
        metrics = self._metrics if self._metrics is not None else self._snapshot_metrics_from_state()
        return Snapshot(
            tick=self._tick,
            arena=SnapshotArena(
                width=self._config.arena.width,
                height=self._config.arena.height,
                agent_radius=self._radius,
            ),
            agents=tuple(self._agent_snapshot(index, agent) for index, agent in enumerate(self._agents)),
            metrics=metrics,
        )

    def _movement_pass(self) -> movement.MovementReport:
        config = self._config
        return movement.move_agents(
            self._agents,
            config.arena.width,
            config.arena.height,
            self._radius,
            config.movement.max_step,
            self._rng,
            config.movement.max_attempts,
        )

    def _interaction_pass(self) -> int:
        return interaction.update_states(
            self._agents,
            self._config.interaction.fight_radius,
            self._config.interaction.hiss_radius,
            self._interaction_rng,
        )

    def _bootstrap_population(self) -> None:
        if self._initial_positions is not None:
            positions = [Vector2(p) for p in self._initial_positions]
        else:
            arena = self._config.arena
            population = self._config.population
            too_wide = 2 * self._radius > min(arena.width, arena.height)
            if self._config.agent_size is None and population > 0 and too_wide:
                raise PlacementInfeasible(
                    population,
                    0,
                    self._radius,
                    "radius derived as arena width / population is too large for the arena; "
                    "set agent_size to choose the cat radius explicitly",
                )
            positions = placement.place_agents(
                self._config.population,
                arena.width,
                arena.height,
                self._radius,
                self._rng,
                self._config.max_placement_attempts,
            )
        self._agents.extend(Agent(position=position, state=AgentState.CALM) for position in positions)
        logger.info(
            "world ready: %d cats, radius %.2f, arena %gx%g, seed %d",
            len(self._agents),
            self._radius,
            self._config.arena.width,
            self._config.arena.height,
            self._config.seed,
        )

    @staticmethod
    def _agent_snapshot(index: int, agent: Agent) -> AgentSnapshot:
        return AgentSnapshot(
            index=index,
            x=agent.position.x,
            y=agent.position.y,
            state=agent.state,
            color=STATE_COLORS[agent.state],
        )

    def _snapshot_metrics_from_state(self) -> TickMetrics:
        return metrics_system.create_metrics(self._tick, self._agents, 0, 0, (), 0.0)
