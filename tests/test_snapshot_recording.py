"""
Tests for state snapshots and frame recording/replay.
"""

import json
import math

import numpy as np
import pytest

from tilt_arena.sim_core.input_recorder import (
    FrameRecorder,
    compute_config_hash,
    generate_recording_filename,
    load_recording,
    replay_recording,
)
from tilt_arena.sim_core.particle_system import ParticleSimulator
from tilt_arena.sim_core.rng import JitterSource


FRAME = 16_666_667


def _drive(target, frames=90, seed=3):
    """Feed a fixed pseudo-random input sequence to a simulator or recorder."""
    rng = np.random.default_rng(seed)
    now = 0
    for _ in range(frames):
        tx, ty = rng.uniform(-3.0, 3.0, size=2)
        target.update(tx, ty, now)
        now += int(rng.integers(12_000_000, 22_000_000))


class TestSnapshot:
    """Test packed simulator snapshots."""

    def test_shapes_and_metadata(self, make_config):
        sim = ParticleSimulator(config=make_config(count=4, vertical_bound=0.5), seed=1)
        _drive(sim, frames=10)
        snap = sim.snapshot()

        assert snap.count == 4
        assert snap.positions.shape == (4, 2)
        assert snap.previous_positions.shape == (4, 2)
        assert snap.positions.dtype == np.float32
        assert snap.vertical_bound == 0.5
        assert snap.contact_diameter == pytest.approx(0.004)
        assert snap.last_timestamp == sim.last_timestamp
        assert snap.within_bounds()

    def test_snapshot_is_a_copy(self, make_config):
        """Later updates do not change an earlier snapshot."""
        sim = ParticleSimulator(config=make_config(count=2), seed=1)
        snap = sim.snapshot()

        sim.update(0.0, 0.0, 0)
        sim.update(0.0, 0.0, FRAME)
        sim.update(0.0, 0.0, 2 * FRAME)  # separates the coincident pair

        assert np.all(snap.positions == 0.0)

    def test_min_pair_distance(self, make_config):
        sim = ParticleSimulator(config=make_config(count=3), seed=1)
        sim.particles[0].place(0.0, 0.0)
        sim.particles[1].place(0.3, 0.4)
        sim.particles[2].place(-0.6, 0.0)

        assert sim.snapshot().min_pair_distance() == pytest.approx(0.5)

    def test_min_pair_distance_single_ball(self, make_config):
        sim = ParticleSimulator(config=make_config(count=1), seed=1)
        assert math.isinf(sim.snapshot().min_pair_distance())

    def test_out_of_bounds_detected(self, make_config):
        sim = ParticleSimulator(config=make_config(count=1), seed=1)
        sim.particles[0].place(1.5, 0.0)
        assert not sim.snapshot().within_bounds()

    def test_to_dict_is_json_ready(self, make_config):
        sim = ParticleSimulator(config=make_config(count=2), seed=1)
        _drive(sim, frames=5)
        data = json.loads(json.dumps(sim.snapshot().to_dict()))

        assert len(data["positions"]) == 2
        assert data["last_timestamp"] == sim.last_timestamp


class TestFrameRecorder:
    """Test recording and exact replay."""

    def test_records_every_frame(self, make_config):
        recorder = FrameRecorder(ParticleSimulator(config=make_config(), seed=4))
        _drive(recorder, frames=25)

        assert len(recorder.frames) == 25
        tx, ty, ts = recorder.frames[0]
        assert ts == 0

    def test_replay_reproduces_positions(self, make_config):
        """Replaying the recording lands on the same positions."""
        sim = ParticleSimulator(config=make_config(count=4), seed=4)
        sim.particles[1].place(0.2, -0.1)
        recorder = FrameRecorder(sim)
        _drive(recorder)

        replayed = replay_recording(recorder.to_dict())

        for i in range(sim.particle_count()):
            assert replayed.position_of(i) == sim.position_of(i)

    def test_shared_jitter_source_replays(self, make_config):
        """A jitter source already used by another simulator still replays exactly."""
        config = make_config(count=3)
        jitter = JitterSource(seed=5)
        first = ParticleSimulator(config=config, jitter=jitter)
        _drive(first, frames=15, seed=8)

        second = ParticleSimulator(config=config, jitter=jitter)
        recorder = FrameRecorder(second)
        _drive(recorder, frames=20)

        replayed = replay_recording(recorder.to_dict())

        for i in range(3):
            assert replayed.particles[i].friction_retention == second.particles[i].friction_retention
            assert replayed.position_of(i) == second.position_of(i)

    def test_shared_jitter_source_replays_from_file(self, make_config, tmp_path):
        """Recorded generator state survives the JSON round trip."""
        config = make_config(count=3)
        jitter = JitterSource(seed=5)
        ParticleSimulator(config=config, jitter=jitter)
        recorder = FrameRecorder(ParticleSimulator(config=config, jitter=jitter))
        _drive(recorder, frames=20)

        replayed = replay_recording(load_recording(recorder.save(tmp_path / "shared.json")))

        for i in range(3):
            assert replayed.position_of(i) == recorder.simulator.position_of(i)

    def test_unseeded_session_replays(self, make_config):
        """Sessions without an explicit seed still replay exactly."""
        sim = ParticleSimulator(config=make_config(count=3))
        recorder = FrameRecorder(sim)
        _drive(recorder)

        replayed = replay_recording(recorder.to_dict())

        assert replayed.snapshot().positions.tolist() == sim.snapshot().positions.tolist()

    def test_save_and_load(self, make_config, tmp_path):
        recorder = FrameRecorder(ParticleSimulator(config=make_config(), seed=4), name="demo")
        _drive(recorder, frames=30)

        path = recorder.save(directory=tmp_path)
        assert path.parent == tmp_path
        assert path.name.startswith("demo_")

        data = load_recording(path)
        assert data["seed"] == 4
        assert len(data["frames"]) == 30

        replayed = replay_recording(data)
        for i in range(3):
            assert replayed.position_of(i) == recorder.simulator.position_of(i)

    def test_no_overwrite(self, make_config, tmp_path):
        recorder = FrameRecorder(ParticleSimulator(config=make_config(), seed=4))
        path = recorder.save(tmp_path / "session.json")

        with pytest.raises(FileExistsError):
            recorder.save(path, overwrite=False)

    def test_requires_fresh_simulator(self, make_config):
        sim = ParticleSimulator(config=make_config(), seed=4)
        sim.update(0.0, 0.0, 0)

        with pytest.raises(ValueError):
            FrameRecorder(sim)

    def test_config_mismatch_rejected(self, make_config):
        recorder = FrameRecorder(ParticleSimulator(config=make_config(count=3), seed=4))
        _drive(recorder, frames=5)

        with pytest.raises(ValueError, match="hash"):
            replay_recording(recorder.to_dict(), config=make_config(count=5))

    def test_config_hash_tracks_parameters(self, make_config):
        assert compute_config_hash(make_config()) == compute_config_hash(make_config())
        assert compute_config_hash(make_config()) != compute_config_hash(make_config(max_iterations=3))

    def test_load_rejects_other_json(self, tmp_path):
        path = tmp_path / "other.json"
        path.write_text(json.dumps({"actions": [0.1, 0.2]}))

        with pytest.raises(ValueError):
            load_recording(path)

    def test_load_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_recording(tmp_path / "missing.json")

    def test_generated_filename(self, tmp_path):
        path = generate_recording_filename("run", seed=9, directory=tmp_path)
        assert path.parent == tmp_path
        assert path.name.startswith("run_")
        assert path.name.endswith("_s9.json")
