"""
State Snapshot
==============

Packs simulator state into fixed-size numpy arrays for renderers and logs.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional, TYPE_CHECKING
import math

import numpy as np

if TYPE_CHECKING:
    from tilt_arena.sim_core.particle_system import ParticleSimulator


@dataclass
class SimulationSnapshot:
    """
    Copy of the simulator state at one instant.

    Arrays are owned by the snapshot; later updates do not change them.
    """
    positions: np.ndarray             # (N, 2) float32
    previous_positions: np.ndarray    # (N, 2) float32

    # Arena info (for normalization)
    horizontal_bound: float
    vertical_bound: float
    contact_diameter: float

    # Timing and solver diagnostics
    last_timestamp: Optional[int]
    last_iterations: int
    last_converged: bool

    @property
    def count(self) -> int:
        return int(self.positions.shape[0])

    def min_pair_distance(self) -> float:
        """Smallest center distance over all pairs (inf with fewer than 2 balls)."""
        if self.count < 2:
            return math.inf
        pts = self.positions.astype(np.float64)
        diff = pts[:, None, :] - pts[None, :, :]
        dist = np.sqrt(np.sum(diff * diff, axis=-1))
        upper = np.triu_indices(self.count, k=1)
        return float(dist[upper].min())

    def within_bounds(self) -> bool:
        """True if every ball lies inside the arena rectangle."""
        # Compare in float32 so rounding of a clamped coordinate cannot fail
        hb = np.float32(self.horizontal_bound)
        vb = np.float32(self.vertical_bound)
        return bool(
            np.all(np.abs(self.positions[:, 0]) <= hb)
            and np.all(np.abs(self.positions[:, 1]) <= vb)
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to plain Python types for JSON."""
        return {
            "positions": self.positions.tolist(),
            "previous_positions": self.previous_positions.tolist(),
            "horizontal_bound": self.horizontal_bound,
            "vertical_bound": self.vertical_bound,
            "contact_diameter": self.contact_diameter,
            "last_timestamp": self.last_timestamp,
            "last_iterations": self.last_iterations,
            "last_converged": self.last_converged,
        }


def build_snapshot(simulator: "ParticleSimulator") -> SimulationSnapshot:
    """Build a snapshot of the given simulator."""
    particles = simulator.particles
    previous = np.array(
        [p.previous_position for p in particles], dtype=np.float32
    ).reshape(-1, 2)

    return SimulationSnapshot(
        positions=simulator.positions(),
        previous_positions=previous,
        horizontal_bound=simulator.horizontal_bound,
        vertical_bound=simulator.vertical_bound,
        contact_diameter=simulator.config.particles.contact_diameter,
        last_timestamp=simulator.last_timestamp,
        last_iterations=simulator.last_iterations,
        last_converged=simulator.last_converged,
    )
