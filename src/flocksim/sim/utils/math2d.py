from __future__ import annotations

import math
from typing import TYPE_CHECKING

from pygame.math import Vector2

if TYPE_CHECKING:
    from ..core.rng import DeterministicRng


class VectorDomainError(ZeroDivisionError, ValueError):
    """Raised when a vector is divided by a zero scalar."""


def add(a: Vector2, b: Vector2) -> Vector2:
    return Vector2(a.x + b.x, a.y + b.y)


def subtract(a: Vector2, b: Vector2) -> Vector2:
    return Vector2(a.x - b.x, a.y - b.y)


def scale(vector: Vector2, scalar: float) -> Vector2:
    return Vector2(vector.x * scalar, vector.y * scalar)


def divide(vector: Vector2, scalar: float) -> Vector2:
    if scalar == 0:
        raise VectorDomainError(f"cannot divide ({vector.x}, {vector.y}) by zero")
    return Vector2(vector.x / scalar, vector.y / scalar)


def magnitude(vector: Vector2) -> float:
    return math.sqrt(vector.x * vector.x + vector.y * vector.y)


def normalize(vector: Vector2) -> Vector2:
    return _safe_normalize_xy(vector.x, vector.y)


def _safe_normalize_xy(x: float, y: float) -> Vector2:
    magnitude_sq = x * x + y * y
    if magnitude_sq <= 0.0:
        return Vector2()
    inv = 1.0 / math.sqrt(magnitude_sq)
    return Vector2(x * inv, y * inv)


def limit(vector: Vector2, max_length: float) -> Vector2:
    return _clamp_length_xy(vector.x, vector.y, max_length)


def _clamp_length_xy(x: float, y: float, max_length: float) -> Vector2:
    if max_length <= 0:
        return Vector2()
    magnitude_sq = x * x + y * y
    if magnitude_sq <= max_length * max_length:
        return Vector2(x, y)
    inv = max_length / math.sqrt(magnitude_sq)
    return Vector2(x * inv, y * inv)


def distance(a: Vector2, b: Vector2) -> float:
    return math.hypot(a.x - b.x, a.y - b.y)


def angle(vector: Vector2) -> float:
    """Signed angle of ``vector`` in radians, in ``(-pi, pi]``."""
    return math.atan2(vector.y, vector.x)


def from_angle(radians: float, length: float = 1.0) -> Vector2:
    return Vector2(math.cos(radians) * length, math.sin(radians) * length)


def lerp(a: Vector2, b: Vector2, t: float) -> Vector2:
    # pygame's Vector2.lerp rejects t outside [0, 1]; extrapolation is allowed here.
    return Vector2(a.x + (b.x - a.x) * t, a.y + (b.y - a.y) * t)


def random_vector(rng: DeterministicRng, length: float = 1.0) -> Vector2:
    return rng.next_unit_circle() * length
