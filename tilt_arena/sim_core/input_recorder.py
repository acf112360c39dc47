"""
Input Recorder
==============

Records the per-frame inputs fed to a simulator so a session can be replayed
exactly.

Usage:
    from tilt_arena.sim_core import ParticleSimulator, FrameRecorder

    sim = ParticleSimulator(seed=42)
    recorder = FrameRecorder(sim)

    for tilt_x, tilt_y, now in sensor_frames():
        recorder.update(tilt_x, tilt_y, now)

    recorder.save("session.json")

Replaying rebuilds a simulator with the recorded configuration, jitter state,
starting positions and per-ball friction, so the final positions match the
recorded session. The jitter source must not be shared with another
simulator while recording.
"""

from __future__ import annotations

import dataclasses
import hashlib
import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

from tilt_arena.sim_core.config_loader import ArenaConfig, parse_config
from tilt_arena.sim_core.particle_system import ParticleSimulator
from tilt_arena.sim_core.rng import JitterSource


logger = logging.getLogger(__name__)

RECORDING_FORMAT = "tilt-arena-frames"
RECORDING_VERSION = 2

Frame = Tuple[float, float, int]


def generate_recording_filename(
    name: str = "session",
    seed: Optional[int] = None,
    directory: Optional[Union[str, Path]] = None
) -> Path:
    """
    Generate a timestamped recording filename.

    Format: {name}_{YYYYMMDD_HHMMSS}_s{seed}.json

    Args:
        name: Prefix for the file.
        seed: Random seed (optional, included if provided).
        directory: Directory for the file. Defaults to current directory.

    Returns:
        Path object for the recording file.
    """
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")

    if seed is not None:
        filename = f"{name}_{timestamp}_s{seed}.json"
    else:
        filename = f"{name}_{timestamp}.json"

    if directory:
        return Path(directory) / filename
    return Path(filename)


def compute_config_hash(config: ArenaConfig) -> str:
    """Compute a short hash of every parameter that affects trajectories."""
    hash_data = dataclasses.asdict(config)
    return hashlib.md5(json.dumps(hash_data, sort_keys=True).encode()).hexdigest()[:8]


class FrameRecorder:
    """
    Wrapper that records simulator inputs for replay.

    The wrapped simulator must not have been updated yet. Its jitter state,
    the balls' starting positions and their friction are captured at
    construction, so an injected JitterSource that already served other
    simulators still replays exactly.
    """

    def __init__(self, simulator: ParticleSimulator, name: str = "session"):
        """
        Initialize the recorder.

        Args:
            simulator: Fresh simulator to drive.
            name: Label stored in the recording and used for filenames.

        Raises:
            ValueError: If the simulator has already received an update.
        """
        if simulator.last_timestamp is not None:
            raise ValueError("FrameRecorder needs a simulator that has not been updated yet")

        self.simulator = simulator
        self.name = name
        self._seed = simulator.jitter.seed
        self._jitter_state = simulator.jitter.get_state()
        self._config_hash = compute_config_hash(simulator.config)
        self._initial_state = [
            [p.pos_x, p.pos_y, p.last_pos_x, p.last_pos_y, p.friction_retention]
            for p in simulator.particles
        ]
        self._frames: List[Frame] = []

    @property
    def seed(self) -> int:
        return self._seed

    @property
    def frames(self) -> List[Frame]:
        """Recorded (tilt_x, tilt_y, timestamp_nanos) frames."""
        return list(self._frames)

    def update(self, tilt_x: float, tilt_y: float, timestamp_nanos: int) -> None:
        """Forward one frame to the simulator and record it."""
        frame = (float(tilt_x), float(tilt_y), int(timestamp_nanos))
        self.simulator.update(*frame)
        self._frames.append(frame)

    def to_dict(self) -> Dict[str, Any]:
        """
        Get the recording as a dictionary.

        Returns:
            Dictionary containing all recording data.
        """
        return {
            "format": RECORDING_FORMAT,
            "version": RECORDING_VERSION,
            "name": self.name,
            "seed": self._seed,
            "config_hash": self._config_hash,
            "jitter_state": self._jitter_state,
            "config": dataclasses.asdict(self.simulator.config),
            "initial_state": [list(row) for row in self._initial_state],
            "frames": [list(frame) for frame in self._frames],
            "final_positions": [list(p.position) for p in self.simulator.particles],
        }

    def save(
        self,
        path: Optional[Union[str, Path]] = None,
        overwrite: bool = True,
        directory: Optional[Union[str, Path]] = None
    ) -> Path:
        """
        Save the recording to a JSON file.

        Args:
            path: Target path. If None, auto-generates a timestamped name.
            overwrite: If True, overwrite existing file.
            directory: Directory for auto-generated filename (only used if path is None).

        Returns:
            Path where the recording was saved.
        """
        if path is None:
            path = generate_recording_filename(self.name, self._seed, directory)
        else:
            path = Path(path)

        if path.exists() and not overwrite:
            raise FileExistsError(f"Recording file already exists: {path}")

        path.parent.mkdir(parents=True, exist_ok=True)

        with open(path, "w") as f:
            json.dump(self.to_dict(), f, indent=2)

        logger.info("Recording saved: %s (%d frames, seed %s)", path, len(self._frames), self._seed)
        return path


def load_recording(path: Union[str, Path]) -> Dict[str, Any]:
    """
    Load a recording saved by FrameRecorder.save().

    Raises:
        FileNotFoundError: If the file doesn't exist.
        ValueError: If the file is not a frame recording.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Recording not found: {path}")

    with open(path, "r") as f:
        data = json.load(f)

    if not isinstance(data, dict) or data.get("format") != RECORDING_FORMAT:
        raise ValueError(f"Not a frame recording: {path}")
    if data.get("version") != RECORDING_VERSION:
        raise ValueError(f"Unsupported recording version {data.get('version')} in {path}")

    return data


def replay_recording(
    recording: Dict[str, Any],
    config: Optional[ArenaConfig] = None
) -> ParticleSimulator:
    """
    Rebuild a simulator and feed it every recorded frame.

    Args:
        recording: Data from FrameRecorder.to_dict() or load_recording().
        config: Configuration to replay with. Uses the recorded one if None.

    Returns:
        The simulator after the last frame.

    Raises:
        ValueError: If the configuration does not match the recording or the
            recorded starting state does not fit the ball count.
    """
    if config is None:
        config = parse_config(recording["config"])

    config_hash = compute_config_hash(config)
    if config_hash != recording["config_hash"]:
        raise ValueError(
            f"Config hash mismatch: recording has {recording['config_hash']}, "
            f"replay config has {config_hash}"
        )

    jitter = JitterSource(recording["seed"])
    simulator = ParticleSimulator(config=config, jitter=jitter)

    initial_state = recording["initial_state"]
    if len(initial_state) != simulator.particle_count():
        raise ValueError(
            f"Recording has {len(initial_state)} balls, config has {simulator.particle_count()}"
        )
    # Friction drawn at construction is replaced by the recorded values
    for ball, (x, y, last_x, last_y, retention) in zip(simulator.particles, initial_state):
        ball.restore_state(x, y, last_x, last_y, retention)
    jitter.set_state(recording["jitter_state"])

    for tilt_x, tilt_y, timestamp in recording["frames"]:
        simulator.update(tilt_x, tilt_y, int(timestamp))

    return simulator
