from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Dict, Iterator, List, Optional, Sequence, Tuple

from pygame.math import Vector2

from ..utils.math2d import _clamp_value
from .config import EnvironmentConfig, RectConfig


@dataclass(frozen=True, slots=True)
class Rect:
    x: float
    y: float
    w: float
    h: float

    @property
    def left(self) -> float:
        return self.x

    @property
    def right(self) -> float:
        return self.x + self.w

    @property
    def top(self) -> float:
        return self.y

    @property
    def bottom(self) -> float:
        return self.y + self.h

    @property
    def center(self) -> Vector2:
        return Vector2(self.x + self.w / 2, self.y + self.h / 2)

    def intersects(self, other: "Rect") -> bool:
        # Touching edges count as overlap.
        return not (
            self.right < other.left
            or self.left > other.right
            or self.bottom < other.top
            or self.top > other.bottom
        )

    def closest_point(self, x: float, y: float) -> Tuple[float, float]:
        return _clamp_value(x, self.left, self.right), _clamp_value(y, self.top, self.bottom)

    def to_dict(self) -> Dict[str, float]:
        return {"x": self.x, "y": self.y, "w": self.w, "h": self.h}

    @staticmethod
    def from_config(rect: RectConfig) -> "Rect":
        return Rect(float(rect.x), float(rect.y), float(rect.w), float(rect.h))


def default_layout(width: float, height: float) -> Tuple[List[Rect], List[Rect], Rect]:
    """Corridor scenario: three boundary walls, a two-segment bottleneck and one no-entry zone."""
    walls = [
        Rect(0.0, 0.0, width, 20.0),
        Rect(0.0, height - 20.0, width, 20.0),
        Rect(0.0, 0.0, 20.0, height),
        Rect(300.0, 100.0, 20.0, 200.0),
        Rect(300.0, 400.0, 20.0, 200.0),
    ]
    zones = [Rect(100.0, 100.0, 100.0, 100.0)]
    exit_rect = Rect(width - 50.0, height / 2 - 25.0, 50.0, 50.0)
    return walls, zones, exit_rect


class Environment:
    def __init__(
        self,
        width: float,
        height: float,
        walls: Sequence[Rect],
        restricted_zones: Sequence[Rect],
        exit_rect: Rect,
        agent_collision_radius: float = 5.0,
        near_wall_margin: float = 20.0,
    ) -> None:
        self._width = float(width)
        self._height = float(height)
        self._walls: Tuple[Rect, ...] = tuple(walls)
        self._restricted_zones: Tuple[Rect, ...] = tuple(restricted_zones)
        self._exit = exit_rect
        self._exit_center = exit_rect.center
        self._agent_collision_radius = agent_collision_radius
        self._near_wall_margin = near_wall_margin

    @classmethod
    def from_config(cls, config: Optional[EnvironmentConfig] = None) -> "Environment":
        config = config or EnvironmentConfig()
        walls, zones, exit_rect = default_layout(config.width, config.height)
        if config.walls is not None:
            walls = [Rect.from_config(rect) for rect in config.walls]
        if config.restricted_zones is not None:
            zones = [Rect.from_config(rect) for rect in config.restricted_zones]
        if config.exit is not None:
            exit_rect = Rect.from_config(config.exit)
        return cls(
            config.width,
            config.height,
            walls,
            zones,
            exit_rect,
            agent_collision_radius=config.agent_collision_radius,
            near_wall_margin=config.near_wall_margin,
        )

    @property
    def width(self) -> float:
        return self._width

    @property
    def height(self) -> float:
        return self._height

    @property
    def walls(self) -> Tuple[Rect, ...]:
        return self._walls

    @property
    def restricted_zones(self) -> Tuple[Rect, ...]:
        return self._restricted_zones

    @property
    def exit(self) -> Rect:
        return self._exit

    @property
    def exit_center(self) -> Vector2:
        # Copy so callers can accumulate into it freely.
        return Vector2(self._exit_center)

    def obstacles(self) -> Iterator[Rect]:
        yield from self._walls
        yield from self._restricted_zones

    def is_position_valid(self, position: Vector2) -> bool:
        r = self._agent_collision_radius
        footprint = Rect(position.x - r, position.y - r, r * 2, r * 2)
        for rect in self.obstacles():
            if footprint.intersects(rect):
                return False
        return 0.0 <= position.x <= self._width and 0.0 <= position.y <= self._height

    def is_at_exit(self, position: Vector2, threshold: float = 10.0) -> bool:
        center = self._exit_center
        return math.hypot(position.x - center.x, position.y - center.y) < threshold

    def is_near_wall(self, position: Vector2, margin: Optional[float] = None) -> bool:
        """Edge-line proximity test used to flag bottleneck crowding.

        Each axis is checked independently against the wall's edge lines, so a
        point level with a wall edge counts as near even when it is far away
        along the other axis.
        """
        margin = self._near_wall_margin if margin is None else margin
        x = position.x
        y = position.y
        for wall in self._walls:
            if min(abs(x - wall.left), abs(x - wall.right)) < margin:
                return True
            if min(abs(y - wall.top), abs(y - wall.bottom)) < margin:
                return True
        return False

    def export(self) -> Dict[str, object]:
        return {
            "width": self._width,
            "height": self._height,
            "walls": [rect.to_dict() for rect in self._walls],
            "restricted_zones": [rect.to_dict() for rect in self._restricted_zones],
            "exit": self._exit.to_dict(),
        }
