from __future__ import annotations

from collections import deque
from typing import Deque, Dict, Tuple

from pygame.math import Vector2

TRAIL_LENGTH = 20


class TrailBuffer:
    """Bounded recent-position history per agent id, oldest point evicted first."""

    def __init__(self, max_length: int = TRAIL_LENGTH) -> None:
        self._max_length = max(1, int(max_length))
        self._trails: Dict[int, Deque[Vector2]] = {}

    @property
    def max_length(self) -> int:
        return self._max_length

    def record(self, agent_id: int, position: Vector2) -> None:
        trail = self._trails.get(agent_id)
        if trail is None:
            trail = deque(maxlen=self._max_length)
            self._trails[agent_id] = trail
        trail.append(Vector2(position))

    def clear(self) -> None:
        self._trails.clear()

    def get(self, agent_id: int) -> Tuple[Vector2, ...]:
        trail = self._trails.get(agent_id)
        if trail is None:
            return ()
        return tuple(Vector2(point) for point in trail)

    def snapshot(self) -> Dict[int, Tuple[Vector2, ...]]:
        return {agent_id: tuple(Vector2(point) for point in trail) for agent_id, trail in self._trails.items()}

    def __len__(self) -> int:
        return len(self._trails)
