from __future__ import annotations

import argparse
import csv
import json
import logging
import math
import sys
from pathlib import Path
from typing import Optional

from ..sim.core.config import SimulationConfig
from ..sim.core.errors import SimulationError
from ..sim.core.world import World
from ..sim.types.metrics import TickMetrics
from ..sim.utils.math2d import distance

logger = logging.getLogger(__name__)


_BASIC_HEADER = [
    "tick",
    "population",
    "calm",
    "hissing",
    "fighting",
    "pair_checks",
    "move_attempts",
    "stalled",
    "tick_ms",
]

_DETAILED_HEADER = _BASIC_HEADER + [
    "calm_ratio",
    "hissing_ratio",
    "fighting_ratio",
    "move_attempts_per_agent",
    "tick_ms_per_agent",
    "min_pair_distance",
    "mean_nearest_distance",
]


def _format_basic_row(metrics: TickMetrics, tick_ms: float) -> list[object]:
    return [
        metrics.tick,
        metrics.population,
        metrics.calm,
        metrics.hissing,
        metrics.fighting,
        metrics.pair_checks,
        metrics.move_attempts,
        len(metrics.stalled_agents),
        f"{tick_ms:.3f}",
    ]


def _nearest_distances(world: World) -> list[float]:
    agents = world.agents
    nearest = [math.inf] * len(agents)
    for i in range(len(agents)):
        for j in range(i + 1, len(agents)):
            d = distance(agents[i].position, agents[j].position)
            if d < nearest[i]:
                nearest[i] = d
            if d < nearest[j]:
                nearest[j] = d
    return nearest


def _format_detailed_row(world: World, metrics: TickMetrics, tick_ms: float) -> list[object]:
    population = metrics.population
    if population <= 0:
        calm_ratio = 0.0
        hissing_ratio = 0.0
        fighting_ratio = 0.0
        move_attempts_per_agent = 0.0
        tick_ms_per_agent = 0.0
    else:
        calm_ratio = metrics.calm / population
        hissing_ratio = metrics.hissing / population
        fighting_ratio = metrics.fighting / population
        move_attempts_per_agent = metrics.move_attempts / population
        tick_ms_per_agent = tick_ms / population

    # A lone cat has no neighbours; report zeros rather than infinity.
    nearest = [d for d in _nearest_distances(world) if math.isfinite(d)]
    min_pair_distance = min(nearest) if nearest else 0.0
    mean_nearest_distance = sum(nearest) / len(nearest) if nearest else 0.0

    return _format_basic_row(metrics, tick_ms) + [
        f"{calm_ratio:.4f}",
        f"{hissing_ratio:.4f}",
        f"{fighting_ratio:.4f}",
        f"{move_attempts_per_agent:.4f}",
        f"{tick_ms_per_agent:.4f}",
        f"{min_pair_distance:.4f}",
        f"{mean_nearest_distance:.4f}",
    ]


def _percentile(sorted_values: list[float], percentile: float) -> float:
    if not sorted_values:
        return 0.0
    if len(sorted_values) == 1:
        return float(sorted_values[0])
    pos = (len(sorted_values) - 1) * percentile
    low = int(math.floor(pos))
    high = int(math.ceil(pos))
    if low == high:
        return float(sorted_values[low])
    weight = pos - low
    return float(sorted_values[low] + (sorted_values[high] - sorted_values[low]) * weight)


def _summary_stats(values: list[float]) -> dict[str, float]:
    if not values:
        return {"min": 0.0, "max": 0.0, "avg": 0.0, "p50": 0.0, "p90": 0.0, "p95": 0.0, "p99": 0.0}
    sorted_values = sorted(values)
    total = sum(values)
    count = len(values)
    return {
        "min": float(sorted_values[0]),
        "max": float(sorted_values[-1]),
        "avg": float(total / count),
        "p50": _percentile(sorted_values, 0.50),
        "p90": _percentile(sorted_values, 0.90),
        "p95": _percentile(sorted_values, 0.95),
        "p99": _percentile(sorted_values, 0.99),
    }


def run_headless(
    steps: int,
    seed: Optional[int],
    log_path: Optional[Path],
    deterministic_log: bool = False,
    log_format: str = "detailed",
    summary_path: Optional[Path] = None,
    summary_window: int = 5000,
    config_path: Optional[Path] = None,
) -> World:
    log_mode = log_format.lower().strip()
    if log_mode not in {"basic", "detailed"}:
        raise ValueError(f"Unknown log format: {log_format}")

    config = SimulationConfig.from_yaml(config_path) if config_path else SimulationConfig()
    if seed is not None:
        config.seed = seed
    world = World(config)

    writer = None
    csv_file = None
    if log_path:
        csv_file = Path(log_path).open("w", newline="")
        writer = csv.writer(csv_file)
        writer.writerow(_DETAILED_HEADER if log_mode == "detailed" else _BASIC_HEADER)

    tick_ms_series: list[float] = []
    fighting_series: list[int] = []
    hissing_series: list[int] = []
    move_attempts_series: list[int] = []
    total_stalls = 0
    max_tick_ms = (-1.0, -1)
    max_fighting = (-1, -1)
    max_move_attempts = (-1, -1)

    try:
        for _ in range(steps):
            metrics = world.tick()
            tick_ms = 0.0 if deterministic_log else metrics.tick_duration_ms
            total_stalls += len(metrics.stalled_agents)

            if summary_path:
                tick_ms_series.append(tick_ms)
                fighting_series.append(metrics.fighting)
                hissing_series.append(metrics.hissing)
                move_attempts_series.append(metrics.move_attempts)
                if tick_ms > max_tick_ms[0]:
                    max_tick_ms = (tick_ms, metrics.tick)
                if metrics.fighting > max_fighting[0]:
                    max_fighting = (metrics.fighting, metrics.tick)
                if metrics.move_attempts > max_move_attempts[0]:
                    max_move_attempts = (metrics.move_attempts, metrics.tick)

            if writer:
                if log_mode == "detailed":
                    writer.writerow(_format_detailed_row(world, metrics, tick_ms))
                else:
                    writer.writerow(_format_basic_row(metrics, tick_ms))
    finally:
        if csv_file:
            csv_file.close()

    logger.info("ran %d ticks with seed %d, %d stalled moves", steps, config.seed, total_stalls)

    if summary_path:
        window = max(1, int(summary_window))
        tail_slice = slice(max(0, len(tick_ms_series) - window), len(tick_ms_series))
        summary = {
            "steps": steps,
            "seed": config.seed,
            "log_format": log_mode,
            "deterministic_log": deterministic_log,
            "population": config.population,
            "tick_ms": _summary_stats(tick_ms_series),
            "fighting": _summary_stats([float(v) for v in fighting_series]),
            "hissing": _summary_stats([float(v) for v in hissing_series]),
            "move_attempts": _summary_stats([float(v) for v in move_attempts_series]),
            "stalled_moves": total_stalls,
            "peaks": {
                "tick_ms": {"value": float(max_tick_ms[0]), "tick": max_tick_ms[1]},
                "fighting": {"value": max_fighting[0], "tick": max_fighting[1]},
                "move_attempts": {"value": max_move_attempts[0], "tick": max_move_attempts[1]},
            },
            "tail_window": {
                "window": window,
                "tick_ms": _summary_stats(tick_ms_series[tail_slice]),
                "fighting": _summary_stats([float(v) for v in fighting_series[tail_slice]]),
                "hissing": _summary_stats([float(v) for v in hissing_series[tail_slice]]),
            },
        }
        Path(summary_path).write_text(json.dumps(summary, indent=2))

    return world


def main() -> None:
    parser = argparse.ArgumentParser(description="Headless cat arena simulation")
    parser.add_argument("--steps", type=int, default=600)
    parser.add_argument("--seed", type=int, default=None)
    parser.add_argument("--config", type=Path, default=None, help="YAML file with simulation settings")
    parser.add_argument("--log", type=Path, default=None, help="CSV file to write metrics")
    parser.add_argument(
        "--log-format",
        choices=["basic", "detailed"],
        default="detailed",
        help="CSV format to write when --log is provided (detailed adds ratios and spacing columns).",
    )
    parser.add_argument(
        "--summary",
        type=Path,
        default=None,
        help="Optional JSON file to write summary stats for the run.",
    )
    parser.add_argument(
        "--summary-window",
        type=int,
        default=5000,
        help="Tail window size (ticks) for summary stats.",
    )
    parser.add_argument(
        "--deterministic-log",
        action="store_true",
        help="Write deterministic CSV (tick_ms is forced to 0.000 so identical seeds match).",
    )
    parser.add_argument("--log-level", default="INFO", help="Python logging level")
    args = parser.parse_args()

    logging.basicConfig(level=args.log_level.upper(), format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    try:
        run_headless(
            args.steps,
            args.seed,
            args.log,
            deterministic_log=args.deterministic_log,
            log_format=args.log_format,
            summary_path=args.summary,
            summary_window=args.summary_window,
            config_path=args.config,
        )
    except SimulationError as exc:
        logger.error("simulation failed: %s", exc)
        sys.exit(1)


if __name__ == "__main__":
    main()
