from __future__ import annotations

import math

from pygame.math import Vector2
from pytest import approx

from crowdsim.sim.core.agent import Agent
from crowdsim.sim.core.config import EnvironmentConfig
from crowdsim.sim.core.environment import Environment, Rect
from crowdsim.sim.systems import motion


def _env() -> Environment:
    return Environment.from_config(EnvironmentConfig())


def test_agent_uses_slots_and_isolates_defaults():
    a = Agent(id=1, position=Vector2(10, 10))
    b = Agent(id=2, position=Vector2(10, 10))

    assert not hasattr(a, "__dict__")
    assert hasattr(Agent, "__slots__")
    assert a.velocity is not b.velocity
    a.velocity.x = 1.5
    assert b.velocity.x == 0.0


def test_agents_compare_by_identity():
    a = Agent(id=1, position=Vector2(10, 10))
    twin = Agent(id=1, position=Vector2(10, 10))
    assert a != twin
    assert a in [a]
    assert twin not in [a]


def test_apply_force_adds_into_velocity():
    agent = Agent(id=0, position=Vector2(400, 360), velocity=Vector2(0.5, 0.0))
    force = Vector2(0.25, -1.0)
    motion.apply_force(agent, force)
    assert agent.velocity == Vector2(0.75, -1.0)
    assert force == Vector2(0.25, -1.0)


def test_integrate_clamps_speed_and_moves():
    agent = Agent(id=0, position=Vector2(400, 360), velocity=Vector2(30.0, 40.0), max_speed=2.0)
    assert motion.integrate(agent, _env())
    assert agent.velocity.length() == approx(2.0)
    assert agent.position.x == approx(401.2)
    assert agent.position.y == approx(361.6)


def test_integrate_does_not_alias_previous_position():
    agent = Agent(id=0, position=Vector2(400, 360), velocity=Vector2(1.0, 0.0))
    before = agent.position
    motion.integrate(agent, _env())
    assert before == Vector2(400, 360)
    assert agent.position is not before


def test_integrate_dampens_once_when_blocked():
    env = Environment(100, 100, [Rect(50, 0, 10, 100)], [], Rect(90, 40, 10, 20))
    agent = Agent(id=0, position=Vector2(44.0, 50.0), velocity=Vector2(2.0, 0.0), max_speed=2.0)
    valid = motion.integrate(agent, env)
    # Single soft correction: slowed to 1.6 and committed even though still overlapping.
    assert agent.velocity == Vector2(1.6, 0.0)
    assert agent.position.x == approx(45.6)
    assert not valid


def test_integrate_soft_correction_can_recover():
    env = Environment(100, 100, [Rect(50, 0, 10, 100)], [], Rect(90, 40, 10, 20))
    agent = Agent(id=0, position=Vector2(43.0, 50.0), velocity=Vector2(2.0, 0.0), max_speed=2.0)
    assert motion.integrate(agent, env)
    assert agent.velocity == Vector2(1.6, 0.0)
    assert agent.position.x == approx(44.6)


def test_velocity_bound_holds_after_integration():
    env = _env()
    for heading in range(0, 360, 15):
        rad = math.radians(heading)
        agent = Agent(id=0, position=Vector2(400, 300), velocity=Vector2(math.cos(rad) * 9, math.sin(rad) * 9))
        motion.integrate(agent, env)
        assert agent.velocity.length() <= agent.max_speed + 1e-9
