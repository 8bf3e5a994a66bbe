from __future__ import annotations

import random

from pygame.math import Vector2


class DeterministicRng:
    def __init__(self, seed: int):
        self._seed = seed
        self._random = random.Random(seed)

    def reset(self, seed: int | None = None) -> None:
        if seed is not None:
            self._seed = seed
        self._random.seed(self._seed)

    def next_point_in(self, x: float, y: float, w: float, h: float) -> Vector2:
        return Vector2(x + self._random.random() * w, y + self._random.random() * h)
