from __future__ import annotations

import logging
import math
from dataclasses import replace
from typing import Dict, List, Tuple

from pygame.math import Vector2

from .agent import AGENT_COLORS, Agent, AgentState, Obstacle, ObstacleKind
from .config import SimulationConfig
from .rng import DeterministicRng
from .spatial_grid import SpatialGrid
from ..systems import boundaries, metrics as metrics_system, steering
from ..systems.trails import TrailBuffer
from ..types.metrics import SimulationStats
from ..types.snapshot import AgentView, ObstacleView, Snapshot, SnapshotWorld
from ..utils.math2d import _clamp_length_xy, random_vector

logger = logging.getLogger(__name__)

AGE_STEP = 0.1
ENERGY_DECAY = 0.01
DEFAULT_OBSTACLE_RADIUS = 20.0


class World:
    """Flocking engine advanced one fixed logical frame per ``step()`` call.

    Not reentrant: callers must serialise every call on one instance.
    """

    def __init__(
        self,
        width: float,
        height: float,
        config: SimulationConfig | None = None,
        rng: DeterministicRng | None = None,
    ):
        if width <= 2 * boundaries.CONTAINMENT_MARGIN or height <= 2 * boundaries.CONTAINMENT_MARGIN:
            raise ValueError(
                f"World must be larger than {2 * boundaries.CONTAINMENT_MARGIN} on each axis, got {width}x{height}"
            )
        self._width = float(width)
        self._height = float(height)
        self._config = self._fit_to_world(config if config is not None else SimulationConfig())
        self._owns_rng = rng is None
        self._rng = rng if rng is not None else DeterministicRng(self._config.seed)
        self._grid = SpatialGrid(self._config.cell_size)
        self._agents: List[Agent] = []
        self._obstacles: List[Obstacle] = []
        self._trails = TrailBuffer()
        self._neighbor_indices: List[int] = []
        self._neighbor_dist_sq: List[float] = []
        self._force_buffer: List[Vector2] = []
        self._next_id = 0
        self._next_obstacle_id = 0
        self._tick = 0
        self._refresh_neighbor_cache()
        self._bootstrap_population()

    @property
    def width(self) -> float:
        return self._width

    @property
    def height(self) -> float:
        return self._height

    @property
    def config(self) -> SimulationConfig:
        return replace(self._config)

    @property
    def tick(self) -> int:
        return self._tick

    def agents(self) -> Tuple[AgentView, ...]:
        return tuple(AgentView.from_agent(agent) for agent in self._agents)

    def obstacles(self) -> Tuple[ObstacleView, ...]:
        return tuple(ObstacleView.from_obstacle(obstacle) for obstacle in self._obstacles)

    def trails(self) -> Dict[int, Tuple[Vector2, ...]]:
        return self._trails.snapshot()

    def stats(self, frame_rate: float | None = None) -> SimulationStats:
        return metrics_system.create_stats(self._agents, self._width, self._height, frame_rate)

    def snapshot(self) -> Snapshot:
        return Snapshot(
            tick=self._tick,
            world=SnapshotWorld(width=self._width, height=self._height),
            agents=self.agents(),
            obstacles=self.obstacles(),
            trails=self.trails(),
        )

    def set_config(self, config: SimulationConfig) -> None:
        config = self._fit_to_world(config)
        previous = self._config
        self._config = config
        if config.cell_size != previous.cell_size:
            self._grid = SpatialGrid(config.cell_size)
        self._refresh_neighbor_cache()
        if len(self._agents) != config.population_size:
            logger.debug("Population size changed from %d to %d; regenerating agents", len(self._agents), config.population_size)
            self._bootstrap_population()
            return
        for agent in self._agents:
            agent.max_speed = config.max_speed
            agent.max_force = config.max_force

    def add_obstacle(self, position: Vector2, radius: float = DEFAULT_OBSTACLE_RADIUS) -> None:
        obstacle = Obstacle(
            id=self._next_obstacle_id,
            position=Vector2(position),
            radius=max(0.0, float(radius)),
            kind=ObstacleKind.CIRCLE,
        )
        self._next_obstacle_id += 1
        self._obstacles.append(obstacle)
        logger.debug("Added obstacle %d at (%.1f, %.1f) r=%.1f", obstacle.id, position.x, position.y, obstacle.radius)

    def clear_obstacles(self) -> None:
        logger.debug("Clearing %d obstacles", len(self._obstacles))
        self._obstacles.clear()

    def reset(self) -> None:
        if self._owns_rng:
            self._rng = DeterministicRng(self._config.seed)
        else:
            self._rng.reset()
        self._obstacles.clear()
        self._next_id = 0
        self._next_obstacle_id = 0
        self._tick = 0
        logger.debug("World reset with seed %d", self._rng.seed)
        self._bootstrap_population()

    def step(self) -> None:
        config = self._config
        agents = self._agents
        width = self._width
        height = self._height

        # Every force reads this start-of-step state, never a half-updated agent.
        positions = [Vector2(agent.position) for agent in agents]
        velocities = [Vector2(agent.velocity) for agent in agents]
        self._grid.rebuild(positions)

        forces = self._force_buffer
        forces.clear()
        neighbor_indices = self._neighbor_indices
        neighbor_dist_sq = self._neighbor_dist_sq
        for index, agent in enumerate(agents):
            self._grid.collect_neighbors(
                positions[index],
                self._neighbor_cell_offsets,
                self._interaction_radius_sq,
                neighbor_indices,
                exclude_index=index,
                out_dist_sq=neighbor_dist_sq,
            )
            forces.append(
                steering.compute_steering_force(
                    index,
                    positions,
                    velocities,
                    neighbor_indices,
                    neighbor_dist_sq,
                    config,
                    self._obstacles,
                    width,
                    height,
                    agent.max_speed,
                    agent.max_force,
                )
            )

        for agent, force in zip(agents, forces):
            agent.acceleration = force
            velocity = _clamp_length_xy(
                agent.velocity.x + force.x, agent.velocity.y + force.y, agent.max_speed
            )
            pos_x, pos_y, vel_x, vel_y = boundaries.contain(
                agent.position.x + velocity.x,
                agent.position.y + velocity.y,
                velocity.x,
                velocity.y,
                width,
                height,
            )
            agent.position = Vector2(pos_x, pos_y)
            agent.velocity = Vector2(vel_x, vel_y)
            if config.show_trails:
                self._trails.record(agent.id, agent.position)
            agent.age += AGE_STEP
            agent.energy = max(0.0, agent.energy - ENERGY_DECAY)

        self._grid.clear()
        self._tick += 1

    def _bootstrap_population(self) -> None:
        self._agents = []
        self._trails.clear()
        for _ in range(self._config.population_size):
            self._agents.append(self._spawn_agent())

    def _spawn_agent(self) -> Agent:
        rng = self._rng
        position = Vector2(rng.next_range(0.0, self._width), rng.next_range(0.0, self._height))
        velocity = random_vector(rng, rng.next_range(0.0, 2.0))
        agent = Agent(
            id=self._next_id,
            position=position,
            velocity=velocity,
            max_speed=self._config.max_speed,
            max_force=self._config.max_force,
            radius=3.0 + rng.next_float() * 2.0,
            color=rng.sample_choice(AGENT_COLORS),
            age=rng.next_float() * 100.0,
            energy=50.0 + rng.next_float() * 50.0,
            state=AgentState.NORMAL,
        )
        self._next_id += 1
        return agent

    def _refresh_neighbor_cache(self) -> None:
        radius = self._config.interaction_radius
        self._interaction_radius_sq = radius * radius
        self._neighbor_cell_offsets = self._grid.build_neighbor_cell_offsets(radius)

    def _fit_to_world(self, config: SimulationConfig) -> SimulationConfig:
        """Sanitize ``config`` and cap interaction radii at the world diagonal.

        Agents are never farther apart than the diagonal, so capped radii admit
        the same neighbours while grid queries stay bounded by the world size.
        """
        config = config.sanitized()
        diagonal = math.hypot(self._width, self._height)
        return replace(
            config,
            separation_radius=min(config.separation_radius, diagonal),
            alignment_radius=min(config.alignment_radius, diagonal),
            cohesion_radius=min(config.cohesion_radius, diagonal),
        )
