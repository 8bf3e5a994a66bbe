from __future__ import annotations

from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import List, Optional

import yaml


class ConfigurationError(ValueError):
    """Raised when simulation parameters or geometry cannot produce a valid run."""


@dataclass
class RectConfig:
    x: float = 0.0
    y: float = 0.0
    w: float = 0.0
    h: float = 0.0


@dataclass
class EnvironmentConfig:
    width: float = 800.0
    height: float = 600.0
    # None means "use the default corridor layout for this width/height".
    walls: Optional[List[RectConfig]] = None
    restricted_zones: Optional[List[RectConfig]] = None
    exit: Optional[RectConfig] = None
    agent_collision_radius: float = 5.0
    exit_threshold: float = 10.0
    near_wall_margin: float = 20.0


@dataclass
class AgentConfig:
    max_speed: float = 2.0
    desired_separation: float = 20.0
    radius: float = 5.0
    wall_perception_radius: float = 30.0


@dataclass
class SimulationParams:
    num_agents: int = 50
    separation_weight: float = 1.5
    alignment_weight: float = 1.0
    cohesion_weight: float = 1.0
    goal_weight: float = 1.2
    perception_radius: float = 50.0


@dataclass
class SimulationConfig:
    time_step: float = 1.0 / 60.0
    seed: int = 42
    config_version: str = "v1"
    grid_cell_size: float = 50.0
    neighbor_limit: int = 10
    wall_avoidance_weight: float = 1.5
    collision_damping: float = 0.8
    jam_speed_threshold: float = 0.5
    crowd_neighbor_threshold: int = 5
    max_spawn_attempts: int = 10_000
    spawn_area: RectConfig = field(default_factory=lambda: RectConfig(50.0, 50.0, 200.0, 500.0))
    params: SimulationParams = field(default_factory=SimulationParams)
    agent: AgentConfig = field(default_factory=AgentConfig)
    environment: EnvironmentConfig = field(default_factory=EnvironmentConfig)

    @staticmethod
    def from_yaml(path: Path) -> "SimulationConfig":
        data = yaml.safe_load(Path(path).read_text()) or {}
        return load_config(data)

    def to_dict(self) -> dict:
        return asdict(self)


def validate_params(params: SimulationParams, agent: AgentConfig) -> None:
    if int(params.num_agents) != params.num_agents or params.num_agents < 0:
        raise ConfigurationError(f"num_agents must be a non-negative integer, got {params.num_agents!r}")
    if params.perception_radius <= 0:
        raise ConfigurationError(f"perception_radius must be positive, got {params.perception_radius!r}")
    for name in ("separation_weight", "alignment_weight", "cohesion_weight", "goal_weight"):
        value = getattr(params, name)
        if value < 0:
            raise ConfigurationError(f"{name} must be non-negative, got {value!r}")
    if agent.max_speed <= 0:
        raise ConfigurationError(f"agent.max_speed must be positive, got {agent.max_speed!r}")
    if agent.desired_separation <= 0 or agent.desired_separation >= params.perception_radius:
        raise ConfigurationError(
            "agent.desired_separation must be positive and smaller than perception_radius "
            f"({agent.desired_separation!r} vs {params.perception_radius!r})"
        )
    if agent.wall_perception_radius <= 0:
        raise ConfigurationError(
            f"agent.wall_perception_radius must be positive, got {agent.wall_perception_radius!r}"
        )


def validate_config(config: SimulationConfig) -> None:
    validate_params(config.params, config.agent)
    if config.grid_cell_size <= 0:
        raise ConfigurationError(f"grid_cell_size must be positive, got {config.grid_cell_size!r}")
    if config.neighbor_limit <= 0:
        raise ConfigurationError(f"neighbor_limit must be positive, got {config.neighbor_limit!r}")
    if config.max_spawn_attempts <= 0:
        raise ConfigurationError(f"max_spawn_attempts must be positive, got {config.max_spawn_attempts!r}")
    env = config.environment
    if env.width <= 0 or env.height <= 0:
        raise ConfigurationError(f"environment size must be positive, got {env.width!r}x{env.height!r}")
    if config.spawn_area.w < 0 or config.spawn_area.h < 0:
        raise ConfigurationError("spawn_area must have non-negative width and height")


def _section(cls, values: dict | None, name: str):
    values = dict(values or {})
    unknown = set(values) - {f.name for f in fields(cls)}
    if unknown:
        raise ConfigurationError(f"unknown {name} keys: {sorted(unknown)}")
    return cls(**values)


def load_config(raw: dict) -> SimulationConfig:
    def _rect(value: dict | list | tuple | None, name: str) -> Optional[RectConfig]:
        if value is None:
            return None
        if isinstance(value, (list, tuple)):
            if len(value) != 4:
                raise ConfigurationError(f"{name} needs exactly 4 values [x, y, w, h], got {list(value)!r}")
            return RectConfig(*(float(v) for v in value))
        return _section(RectConfig, value, name)

    def _rects(values: list | None, name: str) -> Optional[List[RectConfig]]:
        if values is None:
            return None
        return [_rect(value, name) for value in values]

    env_raw = dict(raw.get("environment") or {})
    walls = _rects(env_raw.pop("walls", None), "environment.walls")
    zones = _rects(env_raw.pop("restricted_zones", None), "environment.restricted_zones")
    exit_rect = _rect(env_raw.pop("exit", None), "environment.exit")
    env = _section(EnvironmentConfig, env_raw, "environment")
    env.walls, env.restricted_zones, env.exit = walls, zones, exit_rect
    params = _section(SimulationParams, raw.get("params"), "params")
    agent = _section(AgentConfig, raw.get("agent"), "agent")
    spawn = _rect(raw.get("spawn_area"), "spawn_area")
    nested = {"environment", "params", "agent", "spawn_area"}
    sim_values = {k: v for k, v in raw.items() if k not in nested}
    known = {f.name for f in fields(SimulationConfig)}
    unknown = set(sim_values) - known
    if unknown:
        raise ConfigurationError(f"unknown configuration keys: {sorted(unknown)}")
    config = SimulationConfig(environment=env, params=params, agent=agent, **sim_values)
    if spawn is not None:
        config.spawn_area = spawn
    validate_config(config)
    return config
