from __future__ import annotations

import math
from typing import Iterable, List, Sequence

from pygame.math import Vector2

from ..core.agent import Obstacle
from ..core.config import SimulationConfig, SimulationMode
from ..utils.math2d import _clamp_length_xy, _safe_normalize_xy
from .boundaries import BOUNDARY_WEIGHT, OBSTACLE_WEIGHT, boundary_avoidance, obstacle_avoidance

PANIC_STRENGTH = 2.0
PANIC_WEIGHT = 1.5
GATHER_WEIGHT = 1.0


def seek(position: Vector2, velocity: Vector2, target: Vector2, max_speed: float, max_force: float) -> Vector2:
    desired = _safe_normalize_xy(target.x - position.x, target.y - position.y)
    return _clamp_length_xy(
        desired.x * max_speed - velocity.x,
        desired.y * max_speed - velocity.y,
        max_force,
    )


def separation(
    index: int,
    positions: Sequence[Vector2],
    velocities: Sequence[Vector2],
    neighbors: Sequence[int],
    neighbor_dist_sq: Sequence[float],
    radius: float,
    max_speed: float,
) -> Vector2:
    position = positions[index]
    radius_sq = radius * radius
    sum_x = 0.0
    sum_y = 0.0
    count = 0
    for other, dist_sq in zip(neighbors, neighbor_dist_sq):
        if dist_sq <= 0.0 or dist_sq >= radius_sq:
            continue
        dist = math.sqrt(dist_sq)
        away = _safe_normalize_xy(position.x - positions[other].x, position.y - positions[other].y)
        sum_x += away.x / dist
        sum_y += away.y / dist
        count += 1
    if count == 0:
        return Vector2()
    desired = _safe_normalize_xy(sum_x / count, sum_y / count)
    velocity = velocities[index]
    return Vector2(desired.x * max_speed - velocity.x, desired.y * max_speed - velocity.y)


def alignment(
    index: int,
    velocities: Sequence[Vector2],
    neighbors: Sequence[int],
    neighbor_dist_sq: Sequence[float],
    radius: float,
    max_speed: float,
    max_force: float,
) -> Vector2:
    radius_sq = radius * radius
    sum_x = 0.0
    sum_y = 0.0
    count = 0
    for other, dist_sq in zip(neighbors, neighbor_dist_sq):
        if dist_sq <= 0.0 or dist_sq >= radius_sq:
            continue
        sum_x += velocities[other].x
        sum_y += velocities[other].y
        count += 1
    if count == 0:
        return Vector2()
    heading = _safe_normalize_xy(sum_x / count, sum_y / count)
    velocity = velocities[index]
    return _clamp_length_xy(
        heading.x * max_speed - velocity.x,
        heading.y * max_speed - velocity.y,
        max_force,
    )


def cohesion(
    index: int,
    positions: Sequence[Vector2],
    velocities: Sequence[Vector2],
    neighbors: Sequence[int],
    neighbor_dist_sq: Sequence[float],
    radius: float,
    max_speed: float,
    max_force: float,
) -> Vector2:
    radius_sq = radius * radius
    sum_x = 0.0
    sum_y = 0.0
    count = 0
    for other, dist_sq in zip(neighbors, neighbor_dist_sq):
        if dist_sq <= 0.0 or dist_sq >= radius_sq:
            continue
        sum_x += positions[other].x
        sum_y += positions[other].y
        count += 1
    if count == 0:
        return Vector2()
    centroid = Vector2(sum_x / count, sum_y / count)
    return seek(positions[index], velocities[index], centroid, max_speed, max_force)


def panic(position: Vector2, center: Vector2) -> Vector2:
    """Fixed-strength push radially away from ``center``; zero exactly at the centre."""
    away = _safe_normalize_xy(position.x - center.x, position.y - center.y)
    return away * PANIC_STRENGTH


def gather(position: Vector2, velocity: Vector2, center: Vector2, max_speed: float, max_force: float) -> Vector2:
    return seek(position, velocity, center, max_speed, max_force)


def mode_force(
    mode: SimulationMode,
    position: Vector2,
    velocity: Vector2,
    center: Vector2,
    max_speed: float,
    max_force: float,
) -> Vector2:
    """Weighted contribution of the active simulation mode."""
    if mode is SimulationMode.NORMAL:
        return Vector2()
    if mode is SimulationMode.PANIC:
        return panic(position, center) * PANIC_WEIGHT
    if mode is SimulationMode.GATHERING:
        return gather(position, velocity, center, max_speed, max_force) * GATHER_WEIGHT
    raise ValueError(f"Unhandled simulation mode: {mode!r}")


def compute_steering_force(
    index: int,
    positions: Sequence[Vector2],
    velocities: Sequence[Vector2],
    neighbors: Sequence[int],
    neighbor_dist_sq: Sequence[float],
    config: SimulationConfig,
    obstacles: Iterable[Obstacle],
    width: float,
    height: float,
    max_speed: float,
    max_force: float,
) -> Vector2:
    """Weighted sum of every steering rule for one agent, capped at ``config.max_force``.

    ``positions``/``velocities`` must be the start-of-step state of the whole
    flock; ``max_speed``/``max_force`` are the agent's own caps.
    """
    position = positions[index]
    velocity = velocities[index]

    terms: List[Vector2] = [
        separation(index, positions, velocities, neighbors, neighbor_dist_sq, config.separation_radius, max_speed)
        * config.separation_weight,
        alignment(index, velocities, neighbors, neighbor_dist_sq, config.alignment_radius, max_speed, max_force)
        * config.alignment_weight,
        cohesion(
            index, positions, velocities, neighbors, neighbor_dist_sq, config.cohesion_radius, max_speed, max_force
        )
        * config.cohesion_weight,
        obstacle_avoidance(position, obstacles) * OBSTACLE_WEIGHT,
        boundary_avoidance(position, width, height) * BOUNDARY_WEIGHT,
        mode_force(config.mode, position, velocity, Vector2(width / 2, height / 2), max_speed, max_force),
    ]

    total_x = 0.0
    total_y = 0.0
    for term in terms:
        total_x += term.x
        total_y += term.y
    return _clamp_length_xy(total_x, total_y, config.max_force)
