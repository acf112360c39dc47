"""
Configuration Loader
====================

Loads and validates arena_config.yaml, providing typed access to all parameters.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import yaml


@dataclass(frozen=True)
class ArenaBoundsConfig:
    """Containment rectangle, as half-extents around the origin."""
    horizontal_bound: float  # Half-width
    vertical_bound: float    # Half-height


@dataclass(frozen=True)
class ParticleConfig:
    """Ball count and per-ball physical parameters."""
    count: int
    contact_diameter: float
    base_friction: float
    friction_jitter: float = 0.1
    virtual_mass: float = 1000.0


@dataclass(frozen=True)
class SolverConfig:
    """Constraint relaxation parameters."""
    max_iterations: int = 10
    contact_jitter: float = 1e-4
    eager_start: bool = False  # Integrate from the 2nd update instead of the 3rd


@dataclass(frozen=True)
class ArenaConfig:
    """
    Complete simulation configuration loaded from YAML.

    All values are immutable to prevent accidental modification during runtime.
    """
    arena: ArenaBoundsConfig
    particles: ParticleConfig
    solver: SolverConfig

    @property
    def bounds(self) -> Tuple[float, float]:
        """(horizontal_bound, vertical_bound)."""
        return (self.arena.horizontal_bound, self.arena.vertical_bound)

    @property
    def contact_diameter_sq(self) -> float:
        """Squared contact diameter used by the collision test."""
        return self.particles.contact_diameter * self.particles.contact_diameter


def _validate_config(config: ArenaConfig) -> None:
    """Validate configuration consistency."""
    if config.particles.count <= 0:
        raise ValueError(f"particles.count must be positive, got {config.particles.count}")

    hb, vb = config.bounds
    if hb <= 0 or vb <= 0:
        raise ValueError(f"Arena bounds must be positive, got ({hb}, {vb})")

    if not 0.0 < config.particles.base_friction < 1.0:
        raise ValueError(
            f"particles.base_friction must be in (0, 1), got {config.particles.base_friction}"
        )

    if config.particles.friction_jitter < 0:
        raise ValueError(
            f"particles.friction_jitter must be non-negative, got {config.particles.friction_jitter}"
        )

    # Retention 1 - base_friction + offset, offset in [-jitter, jitter), must stay in (0, 1)
    base = config.particles.base_friction
    spread = config.particles.friction_jitter
    if spread > base:
        raise ValueError(
            f"particles.friction_jitter ({spread}) must not exceed base_friction ({base}), "
            f"or friction retention can reach 1"
        )
    if base + spread >= 1.0:
        raise ValueError(
            f"particles.base_friction + friction_jitter ({base + spread}) must be below 1, "
            f"or friction retention can reach 0"
        )

    if config.particles.virtual_mass <= 0:
        raise ValueError(
            f"particles.virtual_mass must be positive, got {config.particles.virtual_mass}"
        )

    # Several balls must fit side by side without overlapping
    diameter = config.particles.contact_diameter
    if diameter <= 0:
        raise ValueError(f"particles.contact_diameter must be positive, got {diameter}")
    if diameter > min(hb, vb):
        raise ValueError(
            f"particles.contact_diameter ({diameter}) must not exceed the smaller "
            f"arena half-extent ({min(hb, vb)})"
        )

    if config.solver.max_iterations <= 0:
        raise ValueError(
            f"solver.max_iterations must be positive, got {config.solver.max_iterations}"
        )

    if config.solver.contact_jitter < 0:
        raise ValueError(
            f"solver.contact_jitter must be non-negative, got {config.solver.contact_jitter}"
        )


def parse_config(raw: Dict[str, Any]) -> ArenaConfig:
    """
    Build and validate a configuration from a plain mapping.

    Optional keys fall back to the dataclass defaults, so tests and hosts can
    pass only the sections they care about.

    Args:
        raw: Mapping with "arena", "particles" and optionally "solver" sections.

    Returns:
        Validated ArenaConfig instance.

    Raises:
        KeyError: If a required key is missing.
        ValueError: If config validation fails.
    """
    arena_data = raw["arena"]
    arena = ArenaBoundsConfig(
        horizontal_bound=float(arena_data["horizontal_bound"]),
        vertical_bound=float(arena_data["vertical_bound"])
    )

    particle_data = raw["particles"]
    particles = ParticleConfig(
        count=int(particle_data["count"]),
        contact_diameter=float(particle_data["contact_diameter"]),
        base_friction=float(particle_data["base_friction"]),
        friction_jitter=float(particle_data.get("friction_jitter", 0.1)),
        virtual_mass=float(particle_data.get("virtual_mass", 1000.0))
    )

    solver_data = raw.get("solver") or {}
    solver = SolverConfig(
        max_iterations=int(solver_data.get("max_iterations", 10)),
        contact_jitter=float(solver_data.get("contact_jitter", 1e-4)),
        eager_start=bool(solver_data.get("eager_start", False))
    )

    config = ArenaConfig(arena=arena, particles=particles, solver=solver)

    _validate_config(config)
    return config


def load_config(config_path: Optional[str] = None) -> ArenaConfig:
    """
    Load and validate arena configuration from YAML.

    Args:
        config_path: Path to arena_config.yaml. If None, uses default location.

    Returns:
        Validated ArenaConfig instance.

    Raises:
        FileNotFoundError: If config file doesn't exist.
        ValueError: If config validation fails.
    """
    if config_path is None:
        config_path = os.path.join(
            os.path.dirname(os.path.dirname(__file__)),
            "arena_config.yaml"
        )

    config_path = Path(config_path)
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_path, "r") as f:
        raw = yaml.safe_load(f)

    if not isinstance(raw, dict):
        raise ValueError(f"Config file is not a mapping: {config_path}")

    return parse_config(raw)


# Module-level singleton for convenience
_cached_config: Optional[ArenaConfig] = None


def get_config() -> ArenaConfig:
    """Get the cached arena configuration, loading if necessary."""
    global _cached_config
    if _cached_config is None:
        _cached_config = load_config()
    return _cached_config


def reload_config(config_path: Optional[str] = None) -> ArenaConfig:
    """Reload the configuration (useful for testing)."""
    global _cached_config
    _cached_config = load_config(config_path)
    return _cached_config
