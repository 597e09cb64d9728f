from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from pygame.math import Vector2

AGENT_COLORS = ("#0EA5E9", "#10B981", "#F59E0B", "#EF4444", "#8B5CF6")


class AgentState(str, Enum):
    # Agents only ever report NORMAL; no steering rule reads the state.
    NORMAL = "normal"


class ObstacleKind(str, Enum):
    CIRCLE = "circle"
    WALL = "wall"


@dataclass(slots=True)
class Agent:
    id: int
    position: Vector2
    velocity: Vector2
    max_speed: float
    max_force: float
    radius: float = 4.0
    color: str = AGENT_COLORS[0]
    age: float = 0.0
    energy: float = 100.0
    state: AgentState = AgentState.NORMAL
    acceleration: Vector2 = field(default_factory=Vector2)


@dataclass(slots=True)
class Obstacle:
    id: int
    position: Vector2
    radius: float
    kind: ObstacleKind = ObstacleKind.CIRCLE
