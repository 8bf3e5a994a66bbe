from __future__ import annotations

import math

from pygame.math import Vector2

from crowdsim.sim.core.agent import Agent
from crowdsim.spatial_grid import SpatialGrid


def _agents(*coords: tuple[float, float]) -> list[Agent]:
    return [Agent(id=idx, position=Vector2(x, y)) for idx, (x, y) in enumerate(coords)]


def test_grid_dimensions_round_up():
    grid = SpatialGrid(width=810, height=600, cell_size=50)
    assert (grid.cols, grid.rows) == (17, 12)


def test_rebuild_places_each_agent_in_its_floored_cell():
    grid = SpatialGrid(width=800, height=600, cell_size=50)
    agents = _agents((0, 0), (49.9, 49.9), (50, 50), (125, 580), (799, 599))
    assert grid.rebuild(agents) == len(agents)

    for col, row in [(0, 0), (1, 1), (2, 11), (15, 11)]:
        expected = [
            a for a in agents if (math.floor(a.position.x / 50), math.floor(a.position.y / 50)) == (col, row)
        ]
        assert grid.bucket(col, row) == expected
    assert sorted(grid.occupied_cells()) == [(0, 0), (1, 1), (2, 11), (15, 11)]


def test_out_of_range_agents_are_not_indexed():
    grid = SpatialGrid(width=100, height=100, cell_size=50)
    agents = _agents((10, 10), (-5, 10), (10, 150), (100, 50))
    assert grid.rebuild(agents) == 1
    assert grid.bucket(0, 0) == [agents[0]]
    assert grid.bucket(-1, 0) == []


def test_rebuild_clears_previous_frame():
    grid = SpatialGrid(width=200, height=200, cell_size=50)
    agents = _agents((10, 10), (60, 60))
    grid.rebuild(agents)
    agents[0].position = Vector2(160, 160)
    grid.rebuild(agents)
    assert grid.bucket(0, 0) == []
    assert grid.bucket(3, 3) == [agents[0]]
    assert grid.bucket(1, 1) == [agents[1]]


def test_query_matches_bruteforce_below_cap():
    grid = SpatialGrid(width=400, height=400, cell_size=50)
    agents = _agents((100, 100), (120, 110), (149, 100), (150, 100), (100, 160), (300, 300), (100, 100))
    grid.rebuild(agents)
    center = agents[0]
    radius = 50.0
    found = grid.query_near(center, radius, limit=10)
    brute = [
        a for a in agents if a is not center and a.position.distance_to(center.position) < radius
    ]
    assert sorted(a.id for a in found) == sorted(a.id for a in brute)
    assert center not in found
    # Exactly on the radius is excluded.
    assert agents[3] not in found
    # A coincident agent is still a neighbor.
    assert agents[6] in found


def test_query_cap_returns_first_found_in_scan_order():
    grid = SpatialGrid(width=400, height=400, cell_size=50)
    center = Agent(id=99, position=Vector2(125, 125))
    # Column 2 is scanned before column 3; within a column rows go top to bottom.
    far_first = _agents((110, 80), (110, 130), (160, 125), (140, 125))
    grid.rebuild([center, *far_first])
    found = grid.query_near(center, 50.0, limit=3)
    assert [a.id for a in found] == [0, 1, 3]
    # id 2 (35 away) is dropped by the cap while id 0 (47 away) is kept.
    assert far_first[2] not in found


def test_query_for_agent_outside_grid_still_scans_in_range_cells():
    grid = SpatialGrid(width=200, height=200, cell_size=50)
    inside = Agent(id=0, position=Vector2(10, 10))
    outside = Agent(id=1, position=Vector2(-20, 10))
    grid.rebuild([inside, outside])
    assert grid.query_near(outside, 50.0) == [inside]
    assert grid.count_near(inside, 50.0) == 0
