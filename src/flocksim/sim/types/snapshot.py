from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Tuple

from pygame.math import Vector2

from ..core.agent import Agent, AgentState, Obstacle, ObstacleKind


@dataclass(frozen=True, slots=True)
class AgentView:
    id: int
    position: Vector2
    velocity: Vector2
    acceleration: Vector2
    max_speed: float
    max_force: float
    radius: float
    color: str
    age: float
    energy: float
    state: AgentState

    @classmethod
    def from_agent(cls, agent: Agent) -> "AgentView":
        return cls(
            id=agent.id,
            position=Vector2(agent.position),
            velocity=Vector2(agent.velocity),
            acceleration=Vector2(agent.acceleration),
            max_speed=agent.max_speed,
            max_force=agent.max_force,
            radius=agent.radius,
            color=agent.color,
            age=agent.age,
            energy=agent.energy,
            state=agent.state,
        )

    def to_payload(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "x": self.position.x,
            "y": self.position.y,
            "vx": self.velocity.x,
            "vy": self.velocity.y,
            "ax": self.acceleration.x,
            "ay": self.acceleration.y,
            "speed": self.velocity.length(),
            "radius": self.radius,
            "color": self.color,
            "age": self.age,
            "energy": self.energy,
            "state": self.state.value,
        }


@dataclass(frozen=True, slots=True)
class ObstacleView:
    id: int
    position: Vector2
    radius: float
    kind: ObstacleKind

    @classmethod
    def from_obstacle(cls, obstacle: Obstacle) -> "ObstacleView":
        return cls(
            id=obstacle.id,
            position=Vector2(obstacle.position),
            radius=obstacle.radius,
            kind=obstacle.kind,
        )

    def to_payload(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "x": self.position.x,
            "y": self.position.y,
            "radius": self.radius,
            "type": self.kind.value,
        }


@dataclass(frozen=True, slots=True)
class SnapshotWorld:
    width: float
    height: float


@dataclass(frozen=True, slots=True)
class Snapshot:
    tick: int
    world: SnapshotWorld
    agents: Tuple[AgentView, ...]
    obstacles: Tuple[ObstacleView, ...]
    trails: Dict[int, Tuple[Vector2, ...]]
