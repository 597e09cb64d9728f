from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from pathlib import Path
from typing import Any, Dict

import yaml

_MIN_CELL_SIZE = 1.0


class SimulationMode(str, Enum):
    NORMAL = "normal"
    PANIC = "panic"
    GATHERING = "gathering"

    @classmethod
    def coerce(cls, value: "SimulationMode | str") -> "SimulationMode":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            choices = ", ".join(mode.value for mode in cls)
            raise ValueError(f"Unknown simulation mode: {value!r} (expected one of {choices})") from None


@dataclass
class SimulationConfig:
    population_size: int = 200
    separation_radius: float = 25.0
    alignment_radius: float = 50.0
    cohesion_radius: float = 50.0
    separation_weight: float = 1.5
    alignment_weight: float = 1.0
    cohesion_weight: float = 1.0
    max_speed: float = 2.0
    max_force: float = 0.03
    # Display toggles; physics never reads show_forces.
    show_trails: bool = True
    show_forces: bool = False
    mode: SimulationMode = SimulationMode.NORMAL
    seed: int = 42
    cell_size: float = 50.0

    def __post_init__(self) -> None:
        self.mode = SimulationMode.coerce(self.mode)

    @property
    def interaction_radius(self) -> float:
        return max(self.separation_radius, self.alignment_radius, self.cohesion_radius)

    def sanitized(self) -> "SimulationConfig":
        """Return a copy with out-of-range values clamped into their valid domain."""
        return replace(
            self,
            population_size=max(0, int(self.population_size)),
            separation_radius=max(0.0, float(self.separation_radius)),
            alignment_radius=max(0.0, float(self.alignment_radius)),
            cohesion_radius=max(0.0, float(self.cohesion_radius)),
            separation_weight=float(self.separation_weight),
            alignment_weight=float(self.alignment_weight),
            cohesion_weight=float(self.cohesion_weight),
            max_speed=max(0.0, float(self.max_speed)),
            max_force=max(0.0, float(self.max_force)),
            show_trails=bool(self.show_trails),
            show_forces=bool(self.show_forces),
            seed=int(self.seed),
            cell_size=max(_MIN_CELL_SIZE, float(self.cell_size)),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "population_size": self.population_size,
            "separation_radius": self.separation_radius,
            "alignment_radius": self.alignment_radius,
            "cohesion_radius": self.cohesion_radius,
            "separation_weight": self.separation_weight,
            "alignment_weight": self.alignment_weight,
            "cohesion_weight": self.cohesion_weight,
            "max_speed": self.max_speed,
            "max_force": self.max_force,
            "show_trails": self.show_trails,
            "show_forces": self.show_forces,
            "mode": self.mode.value,
            "seed": self.seed,
            "cell_size": self.cell_size,
        }

    @staticmethod
    def from_yaml(path: Path) -> "SimulationConfig":
        data = yaml.safe_load(Path(path).read_text()) or {}
        return load_config(data.get("simulation", data))


@dataclass
class AppConfig:
    simulation: SimulationConfig = field(default_factory=SimulationConfig)
    world_width: float = 800.0
    world_height: float = 600.0
    tick_rate: float = 60.0
    broadcast_interval: int = 2
    stats_interval: int = 10

    @staticmethod
    def from_yaml(path: Path) -> "AppConfig":
        data = yaml.safe_load(Path(path).read_text()) or {}
        return load_app_config(data)


# Key names used by the browser control panel.
_CAMEL_ALIASES = {
    "populationSize": "population_size",
    "separationRadius": "separation_radius",
    "alignmentRadius": "alignment_radius",
    "cohesionRadius": "cohesion_radius",
    "separationWeight": "separation_weight",
    "alignmentWeight": "alignment_weight",
    "cohesionWeight": "cohesion_weight",
    "maxSpeed": "max_speed",
    "maxForce": "max_force",
    "showTrails": "show_trails",
    "showForces": "show_forces",
    "simulationMode": "mode",
    "simulation_mode": "mode",
}


def _normalize_keys(raw: Dict[str, Any]) -> Dict[str, Any]:
    return {_CAMEL_ALIASES.get(key, key): value for key, value in raw.items()}


def load_config(raw: Dict[str, Any]) -> SimulationConfig:
    values = _normalize_keys(raw)
    # UI-only setting with no engine counterpart.
    values.pop("language", None)
    return SimulationConfig(**values).sanitized()


def update_config(config: SimulationConfig, changes: Dict[str, Any]) -> SimulationConfig:
    values = config.to_dict()
    values.update(_normalize_keys(changes))
    return load_config(values)


def load_app_config(raw: Dict[str, Any]) -> AppConfig:
    app_values = {k: v for k, v in raw.items() if k != "simulation"}
    simulation = load_config(raw.get("simulation", {}))
    config = AppConfig(simulation=simulation, **app_values)
    if config.world_width <= 0 or config.world_height <= 0:
        raise ValueError(f"World size must be positive, got {config.world_width}x{config.world_height}")
    config.tick_rate = max(1.0, float(config.tick_rate))
    config.broadcast_interval = max(1, int(config.broadcast_interval))
    config.stats_interval = max(1, int(config.stats_interval))
    return config
