from __future__ import annotations

from typing import Sequence

from ..core.agent import Agent
from ..types.metrics import SimulationStats
from .clustering import count_clusters

DEFAULT_FRAME_RATE = 60.0
DENSITY_REFERENCE_AREA = 100.0 * 100.0


def create_stats(
    agents: Sequence[Agent],
    width: float,
    height: float,
    frame_rate: float | None = None,
) -> SimulationStats:
    population = len(agents)
    speed_sum = 0.0
    age_sum = 0.0
    for agent in agents:
        speed_sum += agent.velocity.length()
        age_sum += agent.age
    area = width * height
    return SimulationStats(
        average_speed=0.0 if population == 0 else speed_sum / population,
        average_density=0.0 if area <= 0 else population / area * DENSITY_REFERENCE_AREA,
        cluster_count=count_clusters([agent.position for agent in agents]),
        total_distance=age_sum,
        frame_rate=DEFAULT_FRAME_RATE if frame_rate is None else float(frame_rate),
    )
