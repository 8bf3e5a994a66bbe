from __future__ import annotations

import logging
from dataclasses import asdict, fields, replace
from time import perf_counter
from typing import Any, Callable, Dict, List, Optional

from pygame.math import Vector2

from ...rng import DeterministicRng
from ...spatial_grid import SpatialGrid
from ..systems import lifecycle, metrics as metrics_system, motion, steering
from ..types.metrics import EvacuationReport, FrameMetrics
from ..types.snapshot import Snapshot, SnapshotMetadata
from .agent import Agent
from .config import ConfigurationError, SimulationConfig, SimulationParams, validate_config
from .environment import Environment

logger = logging.getLogger(__name__)


class World:
    def __init__(
        self,
        config: Optional[SimulationConfig] = None,
        clock: Callable[[], float] = perf_counter,
    ):
        self._config = config or SimulationConfig()
        validate_config(self._config)
        self._clock = clock
        self._rng = DeterministicRng(self._config.seed)
        self._environment = Environment.from_config(self._config.environment)
        self._grid = SpatialGrid(
            self._environment.width,
            self._environment.height,
            self._config.grid_cell_size,
        )
        self._agents: List[Agent] = []
        self._forces: List[Vector2] = []
        self._next_id = 0
        self._frame = 0
        self._max_density = 0.0
        self._jam_count = 0
        self._total_exited = 0
        self._start_time = self._clock()
        self._metrics: FrameMetrics | None = None
        self._report: EvacuationReport | None = None
        self._refresh_weights()
        self._bootstrap_population()

    @property
    def config(self) -> SimulationConfig:
        return self._config

    @property
    def params(self) -> SimulationParams:
        return self._config.params

    @property
    def agents(self) -> List[Agent]:
        return self._agents

    @property
    def environment(self) -> Environment:
        return self._environment

    @property
    def grid(self) -> SpatialGrid:
        return self._grid

    @property
    def frame(self) -> int:
        return self._frame

    @property
    def max_density(self) -> float:
        return self._max_density

    @property
    def jam_count(self) -> int:
        return self._jam_count

    @property
    def metrics(self) -> FrameMetrics | None:
        return self._metrics

    @property
    def report(self) -> EvacuationReport | None:
        return self._report

    @property
    def evacuated(self) -> bool:
        return self._report is not None

    def reset(self, params: SimulationParams | None = None, **overrides: Any) -> None:
        new_params = params if params is not None else self._config.params
        if overrides:
            unknown = set(overrides) - {f.name for f in fields(SimulationParams)}
            if unknown:
                raise ConfigurationError(f"unknown parameters: {sorted(unknown)}")
            new_params = replace(new_params, **overrides)
        candidate = replace(self._config, params=new_params)
        validate_config(candidate)
        self._config = candidate
        self._agents.clear()
        self._forces.clear()
        self._grid.clear()
        self._rng.reset(self._config.seed)
        self._next_id = 0
        self._frame = 0
        self._max_density = 0.0
        self._jam_count = 0
        self._total_exited = 0
        self._start_time = self._clock()
        self._metrics = None
        self._report = None
        self._refresh_weights()
        self._bootstrap_population()
        logger.info("simulation reset: %s", asdict(self._config.params))

    def add_agent(self, position: Vector2, velocity: Vector2 | None = None) -> Agent:
        agent = lifecycle.make_agent(
            self._next_id,
            position,
            self._config.agent,
            self._config.params.perception_radius,
        )
        if velocity is not None:
            agent.velocity = Vector2(velocity)
        self._next_id += 1
        self._agents.append(agent)
        return agent

    def step(self) -> FrameMetrics:
        start = perf_counter()
        config = self._config
        environment = self._environment
        grid = self._grid
        agents = self._agents
        limit = config.neighbor_limit
        weights = self._weights
        goal = environment.exit_center

        self._frame += 1
        grid.rebuild(agents)

        # Every force is computed against the frame-start state before any
        # agent moves.
        forces = self._forces
        forces.clear()
        neighbor_checks = 0
        for agent in agents:
            neighbors = grid.query_near(agent, agent.perception_radius, limit)
            neighbor_checks += len(neighbors)
            forces.append(steering.combined_force(agent, neighbors, environment, goal, weights))

        exited: List[Agent] = []
        jammed = 0
        jam_threshold = config.jam_speed_threshold
        exit_threshold = config.environment.exit_threshold
        damping = config.collision_damping
        for agent, force in zip(agents, forces):
            motion.apply_force(agent, force)
            motion.integrate(agent, environment, damping)
            if environment.is_at_exit(agent.position, exit_threshold):
                exited.append(agent)
            if agent.speed < jam_threshold:
                jammed += 1
        removed = lifecycle.remove_exited(agents, exited)
        self._total_exited += removed

        indexed = grid.rebuild(agents)
        frame_density, clusters = self._measure_density()
        if frame_density > self._max_density:
            self._max_density = frame_density
        if jammed > 0:
            self._jam_count += 1

        if not agents and self._report is None:
            self._finalize_report()

        elapsed_ms = (perf_counter() - start) * 1000.0
        metrics = metrics_system.create_metrics(
            frame=self._frame,
            population=len(agents),
            exited=removed,
            total_exited=self._total_exited,
            avg_speed=metrics_system.average_speed(agents),
            jammed=jammed,
            jam_count=self._jam_count,
            frame_density=frame_density,
            max_density=self._max_density,
            clusters=clusters,
            neighbor_checks=neighbor_checks,
            unindexed=len(agents) - indexed,
            duration_ms=elapsed_ms,
        )
        self._metrics = metrics
        return metrics

    def run(self, max_frames: int) -> EvacuationReport | None:
        for _ in range(max_frames):
            self.step()
            if self._report is not None:
                break
        return self._report

    def snapshot(self) -> Snapshot:
        metadata = SnapshotMetadata(
            seed=self._config.seed,
            config_version=self._config.config_version,
            time_step=self._config.time_step,
            grid_cell_size=self._config.grid_cell_size,
            params=asdict(self._config.params),
        )
        return Snapshot(
            frame=self._frame,
            metrics=self._metrics,
            agents=[self._agent_snapshot(agent) for agent in self._agents],
            environment=self._environment.export(),
            metadata=metadata,
            report=self._report,
        )

    def _measure_density(self) -> tuple[float, tuple[int, int]]:
        grid = self._grid
        limit = self._config.neighbor_limit
        crowd_threshold = self._config.crowd_neighbor_threshold
        environment = self._environment
        max_density = 0.0
        crowded = 0
        bottleneck = 0
        for agent in self._agents:
            count = grid.count_near(agent, agent.perception_radius, limit)
            density = metrics_system.local_density(count, agent.perception_radius)
            if density > max_density:
                max_density = density
            if count > crowd_threshold:
                crowded += 1
                if environment.is_near_wall(agent.position):
                    bottleneck += 1
        return max_density, (crowded, bottleneck)

    def _finalize_report(self) -> None:
        seconds = self._clock() - self._start_time
        self._report = metrics_system.create_report(
            frames=self._frame,
            seconds=seconds,
            max_density=self._max_density,
            jam_count=self._jam_count,
            evacuated=self._total_exited,
        )
        logger.info(
            "evacuation complete: %d frames (%.3f s), max density %.6f, jam frames %d",
            self._report.frames,
            self._report.seconds,
            self._report.max_density,
            self._report.jam_count,
        )

    def _agent_snapshot(self, agent: Agent) -> Dict[str, Any]:
        neighbors = self._grid.count_near(agent, agent.perception_radius, self._config.neighbor_limit)
        crowded = neighbors > self._config.crowd_neighbor_threshold
        return {
            "id": agent.id,
            "x": agent.position.x,
            "y": agent.position.y,
            "vx": agent.velocity.x,
            "vy": agent.velocity.y,
            "speed": agent.speed,
            "radius": agent.radius,
            "neighbors": neighbors,
            "crowded": crowded,
            "bottleneck": crowded and self._environment.is_near_wall(agent.position),
        }

    def _refresh_weights(self) -> None:
        params = self._config.params
        self._weights = steering.SteeringWeights(
            separation=params.separation_weight,
            alignment=params.alignment_weight,
            cohesion=params.cohesion_weight,
            goal=params.goal_weight,
            wall_avoidance=self._config.wall_avoidance_weight,
        )

    def _bootstrap_population(self) -> None:
        config = self._config
        spawned = lifecycle.spawn_agents(
            int(config.params.num_agents),
            self._rng,
            self._environment,
            config.spawn_area,
            config.agent,
            config.params.perception_radius,
            config.max_spawn_attempts,
            first_id=self._next_id,
        )
        self._next_id += len(spawned)
        self._agents.extend(spawned)
