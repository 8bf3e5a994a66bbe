from __future__ import annotations

from pygame.math import Vector2

from ..core.agent import Agent
from ..core.environment import Environment
from ..utils.math2d import limit_ip


def apply_force(agent: Agent, force: Vector2) -> None:
    # Forces arrive pre-weighted.
    agent.velocity += force


def integrate(agent: Agent, environment: Environment, damping: float = 0.8) -> bool:
    """Move the agent one frame with a single soft collision correction.

    Returns True when the committed position is valid. A damped retry can
    still land inside geometry; the position is committed regardless.
    """
    limit_ip(agent.velocity, agent.max_speed)
    candidate = agent.position + agent.velocity
    if environment.is_position_valid(candidate):
        agent.position = candidate
        return True
    agent.velocity *= damping
    candidate = agent.position + agent.velocity
    agent.position = candidate
    return environment.is_position_valid(candidate)
