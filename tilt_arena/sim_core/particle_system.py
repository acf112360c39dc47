"""
Particle System
===============

Owns the fixed set of balls and advances them once per rendered frame:
Verlet integration first, then iterative relaxation of ball-ball contacts
and arena containment.
"""

from __future__ import annotations

import logging
import math
from typing import Optional, Tuple

import numpy as np

from tilt_arena.sim_core.config_loader import ArenaConfig, get_config
from tilt_arena.sim_core.particle import Particle
from tilt_arena.sim_core.rng import JitterSource
from tilt_arena.sim_core.state_snapshot import SimulationSnapshot, build_snapshot


logger = logging.getLogger(__name__)

NANOS_PER_SECOND = 1_000_000_000


class ParticleIndexError(IndexError):
    """Raised when a particle index is outside [0, particle_count())."""


class ParticleSimulator:
    """
    Tilt-driven ball simulation confined to a rectangle centered on the origin.

    Handles:
    - Timing bookkeeping from caller-provided nanosecond timestamps
    - Time-corrected Verlet integration of every ball
    - Pairwise contact resolution with an infinitely stiff virtual spring
    - Clamping every ball into the arena

    Integration needs two earlier timestamps to form a step ratio, so the
    first two updates only record timing and no ball moves until the third.
    """

    def __init__(
        self,
        config: Optional[ArenaConfig] = None,
        jitter: Optional[JitterSource] = None,
        seed: Optional[int] = None
    ):
        """
        Initialize the simulator with all balls at rest at the origin.

        Args:
            config: Arena configuration. Uses default if None.
            jitter: Random source for friction and contact jitter.
                Created from ``seed`` if None.
            seed: Random seed, only used when ``jitter`` is None.
        """
        if config is None:
            config = get_config()

        self._config = config
        self._jitter = jitter if jitter is not None else JitterSource(seed)

        particle_cfg = config.particles
        self._particles: Tuple[Particle, ...] = tuple(
            Particle.with_random_friction(
                particle_cfg.base_friction,
                self._jitter,
                spread=particle_cfg.friction_jitter,
                virtual_mass=particle_cfg.virtual_mass
            )
            for _ in range(particle_cfg.count)
        )

        # Timing state, mutated only by update()
        self._last_timestamp: Optional[int] = None
        self._last_delta_t: float = 0.0

        # Diagnostics from the most recent update()
        self._last_iterations: int = 0
        self._last_converged: bool = True

    @property
    def config(self) -> ArenaConfig:
        """Arena configuration."""
        return self._config

    @property
    def jitter(self) -> JitterSource:
        """Random source shared by all balls."""
        return self._jitter

    @property
    def particles(self) -> Tuple[Particle, ...]:
        """All balls, in stable index order."""
        return self._particles

    @property
    def horizontal_bound(self) -> float:
        return self._config.arena.horizontal_bound

    @property
    def vertical_bound(self) -> float:
        return self._config.arena.vertical_bound

    @property
    def last_timestamp(self) -> Optional[int]:
        """Timestamp of the latest accepted update, or None before the first."""
        return self._last_timestamp

    @property
    def last_delta_t(self) -> float:
        """Seconds between the two latest accepted updates (0.0 until known)."""
        return self._last_delta_t

    @property
    def last_iterations(self) -> int:
        """Relaxation iterations run by the latest update."""
        return self._last_iterations

    @property
    def last_converged(self) -> bool:
        """False if the latest update hit the iteration cap with contacts left."""
        return self._last_converged

    def particle_count(self) -> int:
        """Number of balls."""
        return len(self._particles)

    def position_of(self, index: int) -> Tuple[float, float]:
        """
        Get the position of one ball.

        Args:
            index: Ball index in [0, particle_count()).

        Returns:
            (x, y) in arena coordinates.

        Raises:
            ParticleIndexError: If index is out of range. Negative indices
                are not wrapped.
        """
        if not 0 <= index < len(self._particles):
            raise ParticleIndexError(
                f"Particle index {index} out of range [0, {len(self._particles)})"
            )
        return self._particles[index].position

    def positions(self) -> np.ndarray:
        """All positions as a (count, 2) float32 array."""
        return np.array([p.position for p in self._particles], dtype=np.float32).reshape(-1, 2)

    def snapshot(self) -> SimulationSnapshot:
        """Packed read-only view of the current state."""
        return build_snapshot(self)

    def update(self, tilt_x: float, tilt_y: float, timestamp_nanos: int) -> None:
        """
        Perform one frame of simulation.

        Advances every ball with the Verlet integrator, then resolves contacts
        and arena containment. Contacts are resolved only on calls where the
        integration pass ran; every call clamps the balls into the arena.

        Args:
            tilt_x: Horizontal tilt (simulated gravity) component.
            tilt_y: Vertical tilt (simulated gravity) component.
            timestamp_nanos: Frame time in nanoseconds. Should not decrease;
                a non-advancing timestamp is tolerated as a zero step.
        """
        if self._update_positions(float(tilt_x), float(tilt_y), int(timestamp_nanos)):
            self._resolve_constraints()
        else:
            # Balls already inside the arena are left untouched
            hb, vb = self._config.bounds
            for ball in self._particles:
                ball.resolve_collision_with_bounds(hb, vb)
            self._last_iterations = 0
            self._last_converged = True

    def _update_positions(self, tilt_x: float, tilt_y: float, timestamp: int) -> bool:
        """Integrate every ball. Returns True if the balls were advanced."""
        if self._last_timestamp is None:
            self._last_timestamp = timestamp
            return False

        dt = (timestamp - self._last_timestamp) / NANOS_PER_SECOND
        if dt <= 0.0:
            # Keep the latest timestamp so the next delta is measured from it
            logger.debug(
                "Non-advancing timestamp %d (last %d), skipping step",
                timestamp, self._last_timestamp
            )
            return False

        if self._last_delta_t != 0.0:
            dt_ratio: Optional[float] = dt / self._last_delta_t
        elif self._config.solver.eager_start:
            dt_ratio = 1.0
        else:
            dt_ratio = None

        if dt_ratio is not None:
            for ball in self._particles:
                ball.compute_physics(tilt_x, tilt_y, dt, dt_ratio)

        self._last_delta_t = dt
        self._last_timestamp = timestamp
        return dt_ratio is not None

    def _resolve_constraints(self) -> None:
        """
        Relax contacts and containment.

        Every ball is tested against every other ball. A colliding pair is
        moved apart with a virtual spring of infinite stiffness, then all
        balls are clamped into the arena. Repeats until an iteration finds no
        contact or the iteration cap is reached.
        """
        solver = self._config.solver
        diameter = self._config.particles.contact_diameter
        diameter_sq = self._config.contact_diameter_sq
        jitter_width = solver.contact_jitter
        hb, vb = self._config.bounds

        balls = self._particles
        count = len(balls)
        iterations = 0
        more = True

        while more and iterations < solver.max_iterations:
            more = False
            iterations += 1
            for i in range(count):
                curr = balls[i]
                for j in range(i + 1, count):
                    ball = balls[j]
                    dx = ball.pos_x - curr.pos_x
                    dy = ball.pos_y - curr.pos_y
                    dd = dx * dx + dy * dy
                    if dd > diameter_sq:
                        continue

                    more = True
                    # Break exact symmetry of coincident balls
                    dx += self._jitter.contact_offset(jitter_width)
                    dy += self._jitter.contact_offset(jitter_width)
                    dd = dx * dx + dy * dy
                    if dd == 0.0:
                        continue

                    d = math.sqrt(dd)
                    c = (0.5 * (diameter - d)) / d
                    curr.pos_x -= dx * c
                    curr.pos_y -= dy * c
                    ball.pos_x += dx * c
                    ball.pos_y += dy * c

            for ball in balls:
                ball.resolve_collision_with_bounds(hb, vb)

        self._last_iterations = iterations
        self._last_converged = not more
        if more:
            logger.debug(
                "Contact relaxation hit the %d iteration cap with overlap remaining",
                solver.max_iterations
            )
