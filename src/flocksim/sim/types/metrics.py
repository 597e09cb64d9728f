from __future__ import annotations

from dataclasses import dataclass


@dataclass(slots=True)
class SimulationStats:
    average_speed: float
    average_density: float
    cluster_count: int
    # Sum of agent ages, kept under the name the stats panel has always shown.
    total_distance: float
    frame_rate: float
