from __future__ import annotations

import math
from typing import Iterable, Tuple

from pygame.math import Vector2

from ..core.agent import Obstacle
from ..utils.math2d import _safe_normalize_xy

OBSTACLE_BUFFER = 30.0
OBSTACLE_WEIGHT = 2.0
BOUNDARY_MARGIN = 50.0
BOUNDARY_WEIGHT = 1.5
CONTAINMENT_MARGIN = 10.0


def obstacle_avoidance(position: Vector2, obstacles: Iterable[Obstacle]) -> Vector2:
    """Push away from every obstacle whose buffer zone contains ``position``.

    Strength falls off linearly from 1 at the obstacle centre to 0 at
    ``radius + OBSTACLE_BUFFER``.
    """
    steer_x = 0.0
    steer_y = 0.0
    for obstacle in obstacles:
        offset_x = position.x - obstacle.position.x
        offset_y = position.y - obstacle.position.y
        dist = math.hypot(offset_x, offset_y)
        avoid_distance = obstacle.radius + OBSTACLE_BUFFER
        if dist >= avoid_distance:
            continue
        push = _safe_normalize_xy(offset_x, offset_y)
        strength = (avoid_distance - dist) / avoid_distance
        steer_x += push.x * strength
        steer_y += push.y * strength
    return Vector2(steer_x, steer_y)


def boundary_avoidance(position: Vector2, width: float, height: float) -> Vector2:
    margin = BOUNDARY_MARGIN
    steer = Vector2()
    if position.x < margin:
        steer.x = (margin - position.x) / margin
    elif position.x > width - margin:
        steer.x = -(position.x - (width - margin)) / margin

    if position.y < margin:
        steer.y = (margin - position.y) / margin
    elif position.y > height - margin:
        steer.y = -(position.y - (height - margin)) / margin
    return steer


def contain(
    x: float, y: float, vx: float, vy: float, width: float, height: float
) -> Tuple[float, float, float, float]:
    """Clamp a position into the inner world box and turn the clamped velocity axis inward."""
    low = CONTAINMENT_MARGIN
    high_x = width - CONTAINMENT_MARGIN
    high_y = height - CONTAINMENT_MARGIN

    if x < low:
        x = low
        vx = abs(vx)
    elif x > high_x:
        x = high_x
        vx = -abs(vx)

    if y < low:
        y = low
        vy = abs(vy)
    elif y > high_y:
        y = high_y
        vy = -abs(vy)

    return x, y, vx, vy
