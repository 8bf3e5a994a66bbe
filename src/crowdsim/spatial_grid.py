from __future__ import annotations

import math
from typing import TYPE_CHECKING, Iterable, List, Tuple

from pygame.math import Vector2

if TYPE_CHECKING:
    from .sim.core.agent import Agent


class SpatialGrid:
    """Dense `cols x rows` bucket grid over the simulation bounds.

    The grid is rebuilt from scratch every frame. Agents whose cell falls
    outside the grid are not indexed but keep simulating.
    """

    def __init__(self, width: float, height: float, cell_size: float) -> None:
        self._cell_size = cell_size
        self._cols = max(1, int(math.ceil(width / cell_size)))
        self._rows = max(1, int(math.ceil(height / cell_size)))
        self._cells: List[List[List["Agent"]]] = [[[] for _ in range(self._rows)] for _ in range(self._cols)]
        self._active_keys: List[Tuple[int, int]] = []

    @property
    def cell_size(self) -> float:
        return self._cell_size

    @property
    def cols(self) -> int:
        return self._cols

    @property
    def rows(self) -> int:
        return self._rows

    def clear(self) -> None:
        for col, row in self._active_keys:
            self._cells[col][row].clear()
        self._active_keys.clear()

    def insert(self, agent: "Agent") -> bool:
        col, row = self.cell_of(agent.position)
        if not self._in_range(col, row):
            return False
        bucket = self._cells[col][row]
        if not bucket:
            self._active_keys.append((col, row))
        bucket.append(agent)
        return True

    def rebuild(self, agents: Iterable["Agent"]) -> int:
        self.clear()
        indexed = 0
        for agent in agents:
            if self.insert(agent):
                indexed += 1
        return indexed

    def bucket(self, col: int, row: int) -> List["Agent"]:
        if not self._in_range(col, row):
            return []
        return list(self._cells[col][row])

    def occupied_cells(self) -> List[Tuple[int, int]]:
        return [key for key in self._active_keys if self._cells[key[0]][key[1]]]

    def query_near(self, agent: "Agent", radius: float, limit: int = 10) -> List["Agent"]:
        """First `limit` agents within `radius` of `agent`, in bucket scan order.

        The result is a fresh list. It is not sorted by distance and is not
        guaranteed to hold the nearest agents once the cap is hit.
        """
        found: List["Agent"] = []
        if limit <= 0:
            return found
        position = agent.position
        base_col, base_row = self.cell_of(position)
        cell_range = int(math.ceil(radius / self._cell_size))
        pos_x = position.x
        pos_y = position.y
        cells = self._cells
        cols = self._cols
        rows = self._rows

        # Column offset outer, row offset inner: this order decides which
        # neighbors survive the cap.
        for dx in range(-cell_range, cell_range + 1):
            col = base_col + dx
            if col < 0 or col >= cols:
                continue
            column = cells[col]
            for dy in range(-cell_range, cell_range + 1):
                row = base_row + dy
                if row < 0 or row >= rows:
                    continue
                for other in column[row]:
                    if other is agent:
                        continue
                    if math.hypot(other.position.x - pos_x, other.position.y - pos_y) < radius:
                        found.append(other)
                        if len(found) >= limit:
                            return found
        return found

    def count_near(self, agent: "Agent", radius: float, limit: int = 10) -> int:
        return len(self.query_near(agent, radius, limit))

    def cell_of(self, position: Vector2) -> Tuple[int, int]:
        return (int(math.floor(position.x / self._cell_size)), int(math.floor(position.y / self._cell_size)))

    def _in_range(self, col: int, row: int) -> bool:
        return 0 <= col < self._cols and 0 <= row < self._rows
