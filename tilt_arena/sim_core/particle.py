"""
Particle
========

A single ball: position history, acceleration and friction, advanced with
time-corrected Verlet integration.
"""

from __future__ import annotations

from typing import Tuple

from tilt_arena.sim_core.rng import JitterSource


# Nominal mass of the virtual test object
DEFAULT_VIRTUAL_MASS = 1000.0


class Particle:
    """
    Point mass moved by the tilt vector.

    Velocity is never stored: it is implied by the pair (position,
    previous position). Resolving a constraint only needs to move the
    position, and the implied velocity follows on the next step.
    """

    def __init__(self, friction_retention: float, virtual_mass: float = DEFAULT_VIRTUAL_MASS):
        """
        Initialize a ball at rest at the origin.

        Args:
            friction_retention: Fraction of the implied velocity kept per step
                (1 - friction). Constant for the particle's lifetime.
            virtual_mass: Nominal mass used in the force derivation.
        """
        self.pos_x: float = 0.0
        self.pos_y: float = 0.0
        self.last_pos_x: float = 0.0
        self.last_pos_y: float = 0.0
        self.accel_x: float = 0.0
        self.accel_y: float = 0.0
        self._friction_retention = float(friction_retention)
        self._virtual_mass = float(virtual_mass)

    @classmethod
    def with_random_friction(
        cls,
        base_friction: float,
        jitter: JitterSource,
        spread: float = 0.1,
        virtual_mass: float = DEFAULT_VIRTUAL_MASS
    ) -> "Particle":
        """
        Create a ball whose friction differs slightly from its siblings.

        Args:
            base_friction: Friction of the virtual table and air.
            jitter: Random source for the per-ball offset.
            spread: Offset is drawn from [-spread, spread).
            virtual_mass: Nominal mass used in the force derivation.
        """
        retention = 1.0 - base_friction + jitter.friction_offset(spread)
        return cls(retention, virtual_mass)

    @property
    def friction_retention(self) -> float:
        return self._friction_retention

    @property
    def position(self) -> Tuple[float, float]:
        return self.pos_x, self.pos_y

    @property
    def previous_position(self) -> Tuple[float, float]:
        return self.last_pos_x, self.last_pos_y

    @property
    def acceleration(self) -> Tuple[float, float]:
        return self.accel_x, self.accel_y

    @property
    def displacement(self) -> Tuple[float, float]:
        """Movement during the last integration step."""
        return self.pos_x - self.last_pos_x, self.pos_y - self.last_pos_y

    def place(self, x: float, y: float) -> None:
        """Put the ball at (x, y) with no implied velocity."""
        self.pos_x = self.last_pos_x = float(x)
        self.pos_y = self.last_pos_y = float(y)

    def restore_state(
        self,
        x: float,
        y: float,
        last_x: float,
        last_y: float,
        friction_retention: float
    ) -> None:
        """Overwrite position history and friction, e.g. to replay a recording."""
        self.pos_x, self.pos_y = float(x), float(y)
        self.last_pos_x, self.last_pos_y = float(last_x), float(last_y)
        self._friction_retention = float(friction_retention)

    def compute_physics(self, tilt_x: float, tilt_y: float, dt: float, dt_ratio: float) -> None:
        """
        Advance one step.

        Time-corrected Verlet with friction:

            x(t+dt) = x(t) + k * (x(t) - x(t-dt)) * (dt / dt_prev) + a(t) * dt^2

        where k is the friction retention. a(t) is the acceleration stored by
        the previous call; the one derived from this call's tilt is stored for
        the next step.

        Args:
            tilt_x: Horizontal tilt component.
            tilt_y: Vertical tilt component.
            dt: Seconds since the previous step.
            dt_ratio: dt divided by the previous step's dt.
        """
        # F = m * g with g = -tilt, then a = F / m
        m = self._virtual_mass
        ax = (-tilt_x * m) / m
        ay = (-tilt_y * m) / m

        dt_sq = dt * dt
        k = self._friction_retention * dt_ratio
        x = self.pos_x + k * (self.pos_x - self.last_pos_x) + self.accel_x * dt_sq
        y = self.pos_y + k * (self.pos_y - self.last_pos_y) + self.accel_y * dt_sq

        self.last_pos_x = self.pos_x
        self.last_pos_y = self.pos_y
        self.pos_x = x
        self.pos_y = y
        self.accel_x = ax
        self.accel_y = ay

    def resolve_collision_with_bounds(self, horizontal_bound: float, vertical_bound: float) -> None:
        """Clamp the position into [-bound, +bound] on each axis."""
        if self.pos_x > horizontal_bound:
            self.pos_x = horizontal_bound
        elif self.pos_x < -horizontal_bound:
            self.pos_x = -horizontal_bound

        if self.pos_y > vertical_bound:
            self.pos_y = vertical_bound
        elif self.pos_y < -vertical_bound:
            self.pos_y = -vertical_bound

    def __repr__(self) -> str:
        return f"Particle(pos=({self.pos_x:.6f}, {self.pos_y:.6f}), k={self._friction_retention:.3f})"
