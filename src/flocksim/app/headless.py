from __future__ import annotations

import argparse
import csv
import json
import logging
import math
from pathlib import Path
from time import perf_counter
from typing import Iterable, Optional, Sequence, Tuple

from pygame.math import Vector2

from ..sim.core.config import AppConfig, SimulationConfig, SimulationMode
from ..sim.core.world import DEFAULT_OBSTACLE_RADIUS, World
from ..sim.systems.clustering import cluster_sizes
from ..sim.types.metrics import SimulationStats

logger = logging.getLogger(__name__)

_BASIC_HEADER = [
    "tick",
    "population",
    "avg_speed",
    "avg_density",
    "clusters",
    "total_distance",
    "frame_rate",
    "tick_ms",
]

_DETAILED_HEADER = [
    "tick",
    "population",
    "avg_speed",
    "avg_density",
    "clusters",
    "total_distance",
    "frame_rate",
    "tick_ms",
    "mode",
    "obstacles",
    "min_speed",
    "max_speed",
    "avg_force",
    "max_force",
    "avg_energy",
    "largest_cluster",
    "avg_cluster_size",
    "singleton_clusters",
    "trail_points",
]


def _format_basic_row(tick: int, stats: SimulationStats, population: int, tick_ms: float) -> list[object]:
    return [
        tick,
        population,
        f"{stats.average_speed:.4f}",
        f"{stats.average_density:.4f}",
        stats.cluster_count,
        f"{stats.total_distance:.4f}",
        f"{stats.frame_rate:.2f}",
        f"{tick_ms:.3f}",
    ]


def _format_detailed_row(world: World, tick: int, stats: SimulationStats, tick_ms: float) -> list[object]:
    agents = world.agents()
    population = len(agents)
    if population <= 0:
        min_speed = 0.0
        max_speed = 0.0
        avg_force = 0.0
        max_force = 0.0
        avg_energy = 0.0
        largest_cluster = 0
        avg_cluster_size = 0.0
        singleton_clusters = 0
    else:
        speeds = [agent.velocity.length() for agent in agents]
        forces = [agent.acceleration.length() for agent in agents]
        min_speed = min(speeds)
        max_speed = max(speeds)
        avg_force = sum(forces) / population
        max_force = max(forces)
        avg_energy = sum(agent.energy for agent in agents) / population

        sizes = cluster_sizes([agent.position for agent in agents])
        largest_cluster = max(sizes)
        avg_cluster_size = population / len(sizes)
        singleton_clusters = sum(1 for size in sizes if size == 1)

    trail_points = sum(len(trail) for trail in world.trails().values())

    return _format_basic_row(tick, stats, population, tick_ms) + [
        world.config.mode.value,
        len(world.obstacles()),
        f"{min_speed:.4f}",
        f"{max_speed:.4f}",
        f"{avg_force:.6f}",
        f"{max_force:.6f}",
        f"{avg_energy:.4f}",
        largest_cluster,
        f"{avg_cluster_size:.4f}",
        singleton_clusters,
        trail_points,
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


def _load_simulation_config(config_path: Optional[Path]) -> Tuple[SimulationConfig, Optional[AppConfig]]:
    if config_path is None:
        return SimulationConfig(), None
    app_config = AppConfig.from_yaml(config_path)
    return app_config.simulation, app_config


def run_headless(
    steps: int,
    seed: Optional[int],
    log_path: Optional[Path],
    deterministic_log: bool = False,
    log_format: str = "detailed",
    summary_path: Optional[Path] = None,
    summary_window: int = 5000,
    config_path: Optional[Path] = None,
    width: Optional[float] = None,
    height: Optional[float] = None,
    mode: Optional[str] = None,
    stats_interval: Optional[int] = None,
    obstacles: Iterable[Sequence[float]] = (),
) -> None:
    log_mode = log_format.lower().strip()
    if log_mode not in {"basic", "detailed"}:
        raise ValueError(f"Unknown log format: {log_format}")

    config, app_config = _load_simulation_config(config_path)
    if seed is not None:
        config.seed = seed
    if mode is not None:
        config.mode = SimulationMode.coerce(mode)
    if width is None:
        width = app_config.world_width if app_config else 800.0
    if height is None:
        height = app_config.world_height if app_config else 600.0
    if stats_interval is None:
        stats_interval = app_config.stats_interval if app_config else 10
    interval = max(1, int(stats_interval))

    world = World(width, height, config)
    for obstacle in obstacles:
        x, y, *rest = obstacle
        world.add_obstacle(Vector2(x, y), rest[0] if rest else DEFAULT_OBSTACLE_RADIUS)

    writer = None
    csv_file = None
    if log_path:
        csv_file = Path(log_path).open("w", newline="")
        writer = csv.writer(csv_file)
        writer.writerow(_DETAILED_HEADER if log_mode == "detailed" else _BASIC_HEADER)

    tick_ms_series: list[float] = []
    speed_series: list[float] = []
    cluster_series: list[float] = []
    max_tick_ms = (-1.0, -1)
    max_clusters = (-1, -1)
    min_clusters = (-1, -1)

    try:
        for tick in range(steps):
            start = perf_counter()
            world.step()
            elapsed_ms = (perf_counter() - start) * 1000.0
            tick_ms = 0.0 if deterministic_log else elapsed_ms
            tick_ms_series.append(tick_ms)
            if tick_ms > max_tick_ms[0]:
                max_tick_ms = (tick_ms, tick)

            if tick % interval != 0 and tick != steps - 1:
                continue

            frame_rate = None if deterministic_log or elapsed_ms <= 0.0 else 1000.0 / elapsed_ms
            stats = world.stats(frame_rate=frame_rate)
            speed_series.append(stats.average_speed)
            cluster_series.append(float(stats.cluster_count))
            if stats.cluster_count > max_clusters[0]:
                max_clusters = (stats.cluster_count, tick)
            if min_clusters[0] < 0 or stats.cluster_count < min_clusters[0]:
                min_clusters = (stats.cluster_count, tick)

            if writer:
                if log_mode == "detailed":
                    writer.writerow(_format_detailed_row(world, tick, stats, tick_ms))
                else:
                    writer.writerow(_format_basic_row(tick, stats, world.config.population_size, tick_ms))
    finally:
        if csv_file:
            csv_file.close()

    if summary_path:
        window = max(1, int(summary_window))
        tail_slice = slice(max(0, len(tick_ms_series) - window), len(tick_ms_series))
        summary = {
            "steps": steps,
            "seed": world.config.seed,
            "mode": world.config.mode.value,
            "population": world.config.population_size,
            "world": {"width": world.width, "height": world.height},
            "log_format": log_mode,
            "deterministic_log": deterministic_log,
            "stats_interval": interval,
            "tick_ms": _summary_stats(tick_ms_series),
            "average_speed": _summary_stats(speed_series),
            "clusters": _summary_stats(cluster_series),
            "over_threshold": {
                "tick_ms_gt_16": sum(1 for value in tick_ms_series if value > 16.7),
                "tick_ms_gt_33": sum(1 for value in tick_ms_series if value > 33.3),
            },
            "peaks": {
                "tick_ms": {"value": float(max_tick_ms[0]), "tick": max_tick_ms[1]},
                "clusters": {"value": max_clusters[0], "tick": max_clusters[1]},
                "min_clusters": {"value": min_clusters[0], "tick": min_clusters[1]},
            },
            "tail_window": {
                "window": window,
                "tick_ms": _summary_stats(tick_ms_series[tail_slice]),
            },
        }
        Path(summary_path).write_text(json.dumps(summary, indent=2))
        logger.info("Wrote run summary to %s", summary_path)


def _parse_obstacle(text: str) -> Tuple[float, ...]:
    parts = [float(part) for part in text.split(",")]
    if len(parts) not in (2, 3):
        raise argparse.ArgumentTypeError(f"Obstacle must be 'x,y' or 'x,y,radius', got {text!r}")
    return tuple(parts)


def main() -> None:
    parser = argparse.ArgumentParser(description="Headless flocking simulation")
    parser.add_argument("--steps", type=int, default=3000)
    parser.add_argument("--seed", type=int, default=None)
    parser.add_argument("--config", type=Path, default=None, help="YAML file with world and simulation settings")
    parser.add_argument("--width", type=float, default=None)
    parser.add_argument("--height", type=float, default=None)
    parser.add_argument("--mode", choices=[mode.value for mode in SimulationMode], default=None)
    parser.add_argument(
        "--obstacle",
        type=_parse_obstacle,
        action="append",
        default=[],
        help="Place an obstacle before the run as x,y[,radius]; may be repeated.",
    )
    parser.add_argument("--log", type=Path, default=None, help="CSV file to write stats")
    parser.add_argument(
        "--log-format",
        choices=["basic", "detailed"],
        default="detailed",
        help="CSV format to write when --log is provided.",
    )
    parser.add_argument(
        "--stats-interval",
        type=int,
        default=None,
        help="Ticks between stats rows (clustering is O(n^2) so this is not every tick by default).",
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
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    args = parser.parse_args()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    run_headless(
        args.steps,
        args.seed,
        args.log,
        deterministic_log=args.deterministic_log,
        log_format=args.log_format,
        summary_path=args.summary,
        summary_window=args.summary_window,
        config_path=args.config,
        width=args.width,
        height=args.height,
        mode=args.mode,
        stats_interval=args.stats_interval,
        obstacles=args.obstacle,
    )


if __name__ == "__main__":
    main()
