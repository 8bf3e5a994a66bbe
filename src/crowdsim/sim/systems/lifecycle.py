from __future__ import annotations

import logging
from typing import List, Sequence

from pygame.math import Vector2

from ...rng import DeterministicRng
from ..core.agent import Agent
from ..core.config import AgentConfig, ConfigurationError, RectConfig
from ..core.environment import Environment

logger = logging.getLogger(__name__)


def make_agent(agent_id: int, position: Vector2, agent_config: AgentConfig, perception_radius: float) -> Agent:
    return Agent(
        id=agent_id,
        position=Vector2(position),
        velocity=Vector2(),
        max_speed=agent_config.max_speed,
        perception_radius=perception_radius,
        desired_separation=agent_config.desired_separation,
        radius=agent_config.radius,
        wall_perception_radius=agent_config.wall_perception_radius,
    )


def find_spawn_point(
    rng: DeterministicRng,
    environment: Environment,
    area: RectConfig,
    max_attempts: int,
) -> Vector2:
    for _ in range(max_attempts):
        candidate = rng.next_point_in(area.x, area.y, area.w, area.h)
        if environment.is_position_valid(candidate):
            return candidate
    raise ConfigurationError(
        f"no valid spawn point in area ({area.x}, {area.y}, {area.w}, {area.h}) after {max_attempts} attempts"
    )


def spawn_agents(
    count: int,
    rng: DeterministicRng,
    environment: Environment,
    area: RectConfig,
    agent_config: AgentConfig,
    perception_radius: float,
    max_attempts: int,
    first_id: int = 0,
) -> List[Agent]:
    agents: List[Agent] = []
    for offset in range(count):
        position = find_spawn_point(rng, environment, area, max_attempts)
        agents.append(make_agent(first_id + offset, position, agent_config, perception_radius))
    logger.debug("spawned %d agents in area (%s, %s, %s, %s)", count, area.x, area.y, area.w, area.h)
    return agents


def remove_exited(agents: List[Agent], exited: Sequence[Agent]) -> int:
    """Drop exited agents in one compaction pass, keeping the order of the rest."""
    if not exited:
        return 0
    gone = {id(agent) for agent in exited}
    agents[:] = [agent for agent in agents if id(agent) not in gone]
    return len(gone)
