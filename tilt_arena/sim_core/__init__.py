"""
Sim Core - The tilt-driven particle kernel.

This module provides the ball simulation advanced once per rendered frame,
plus its configuration, seeded randomness, snapshots and input recording.

Main exports:
- ParticleSimulator: Owns the balls; update(tilt_x, tilt_y, timestamp_nanos)
- Particle: One ball with time-corrected Verlet integration
- JitterSource: Injectable seeded randomness
- ArenaConfig: Configuration loaded from arena_config.yaml
- FrameRecorder: Records frame inputs for exact replay
"""

from tilt_arena.sim_core.config_loader import (
    ArenaConfig,
    ArenaBoundsConfig,
    ParticleConfig,
    SolverConfig,
    load_config,
    parse_config,
    get_config,
)
from tilt_arena.sim_core.rng import JitterSource
from tilt_arena.sim_core.particle import Particle
from tilt_arena.sim_core.particle_system import ParticleSimulator, ParticleIndexError
from tilt_arena.sim_core.state_snapshot import SimulationSnapshot
from tilt_arena.sim_core.input_recorder import (
    FrameRecorder,
    load_recording,
    replay_recording,
    generate_recording_filename,
)

__all__ = [
    "ArenaConfig",
    "ArenaBoundsConfig",
    "ParticleConfig",
    "SolverConfig",
    "load_config",
    "parse_config",
    "get_config",
    "JitterSource",
    "Particle",
    "ParticleSimulator",
    "ParticleIndexError",
    "SimulationSnapshot",
    "FrameRecorder",
    "load_recording",
    "replay_recording",
    "generate_recording_filename",
]
