from __future__ import annotations

from dataclasses import dataclass, field

from pygame.math import Vector2


@dataclass(slots=True, eq=False)
class Agent:
    id: int
    position: Vector2
    velocity: Vector2 = field(default_factory=Vector2)
    max_speed: float = 2.0
    perception_radius: float = 50.0
    desired_separation: float = 20.0
    radius: float = 5.0
    wall_perception_radius: float = 30.0

    @property
    def speed(self) -> float:
        return self.velocity.length()
