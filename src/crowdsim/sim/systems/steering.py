from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Sequence

from pygame.math import Vector2

from ..core.agent import Agent
from ..core.environment import Environment
from ..utils.math2d import steer_xy


@dataclass(frozen=True, slots=True)
class SteeringWeights:
    separation: float = 1.5
    alignment: float = 1.0
    cohesion: float = 1.0
    goal: float = 1.2
    wall_avoidance: float = 1.5


def separation(agent: Agent, neighbors: Sequence[Agent]) -> Vector2:
    pos_x = agent.position.x
    pos_y = agent.position.y
    desired = agent.desired_separation
    accum_x = 0.0
    accum_y = 0.0
    count = 0
    for other in neighbors:
        away_x = pos_x - other.position.x
        away_y = pos_y - other.position.y
        dist = math.hypot(away_x, away_y)
        if 0.0 < dist < desired:
            # Unit vector away, weighted by 1/d.
            inv = 1.0 / (dist * dist)
            accum_x += away_x * inv
            accum_y += away_y * inv
            count += 1
    if count == 0:
        return Vector2()
    accum_x /= count
    accum_y /= count
    if accum_x == 0.0 and accum_y == 0.0:
        return Vector2()
    return steer_xy(accum_x, accum_y, agent.velocity, agent.max_speed)


def alignment(agent: Agent, neighbors: Sequence[Agent]) -> Vector2:
    if not neighbors:
        return Vector2()
    sum_x = 0.0
    sum_y = 0.0
    for other in neighbors:
        sum_x += other.velocity.x
        sum_y += other.velocity.y
    count = len(neighbors)
    return steer_xy(sum_x / count, sum_y / count, agent.velocity, agent.max_speed)


def cohesion(agent: Agent, neighbors: Sequence[Agent]) -> Vector2:
    if not neighbors:
        return Vector2()
    sum_x = 0.0
    sum_y = 0.0
    for other in neighbors:
        sum_x += other.position.x
        sum_y += other.position.y
    count = len(neighbors)
    return steer_xy(
        sum_x / count - agent.position.x,
        sum_y / count - agent.position.y,
        agent.velocity,
        agent.max_speed,
    )


def seek_goal(agent: Agent, goal: Vector2) -> Vector2:
    return steer_xy(goal.x - agent.position.x, goal.y - agent.position.y, agent.velocity, agent.max_speed)


def wall_avoidance(agent: Agent, environment: Environment) -> Vector2:
    """Push away from the closest point of every wall and restricted zone in range."""
    pos_x = agent.position.x
    pos_y = agent.position.y
    perception = agent.wall_perception_radius
    accum_x = 0.0
    accum_y = 0.0
    count = 0
    for rect in environment.obstacles():
        closest_x, closest_y = rect.closest_point(pos_x, pos_y)
        away_x = pos_x - closest_x
        away_y = pos_y - closest_y
        dist = math.hypot(away_x, away_y)
        if 0.0 < dist < perception:
            inv = 1.0 / (dist * dist)
            accum_x += away_x * inv
            accum_y += away_y * inv
            count += 1
    if count == 0:
        return Vector2()
    accum_x /= count
    accum_y /= count
    if accum_x == 0.0 and accum_y == 0.0:
        return Vector2()
    return steer_xy(accum_x, accum_y, agent.velocity, agent.max_speed)


def combined_force(
    agent: Agent,
    neighbors: Sequence[Agent],
    environment: Environment,
    goal: Vector2,
    weights: SteeringWeights,
) -> Vector2:
    force = separation(agent, neighbors) * weights.separation
    force += alignment(agent, neighbors) * weights.alignment
    force += cohesion(agent, neighbors) * weights.cohesion
    force += seek_goal(agent, goal) * weights.goal
    force += wall_avoidance(agent, environment) * weights.wall_avoidance
    return force
