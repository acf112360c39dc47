"""
Performance Benchmark
=====================

Measures ParticleSimulator.update throughput for several ball counts.

Usage:
    python -m tools.benchmark_speed [--counts N ...] [--steps S] [--quick]
"""

from __future__ import annotations

import argparse
import dataclasses
import sys
import time
from typing import Sequence

import numpy as np

from tilt_arena.sim_core.config_loader import load_config
from tilt_arena.sim_core.particle_system import ParticleSimulator

# Simulated 60 Hz display clock
FRAME_NANOS = 16_666_667


def benchmark_simulator(
    particle_count: int = 3,
    num_steps: int = 1000,
    seed: int = 42
) -> dict:
    """
    Benchmark update() for one ball count.

    Args:
        particle_count: Number of balls.
        num_steps: Number of updates to time.
        seed: Random seed for jitter and tilt.

    Returns:
        Dict with timing results.
    """
    base = load_config()
    config = dataclasses.replace(
        base,
        particles=dataclasses.replace(base.particles, count=particle_count)
    )
    sim = ParticleSimulator(config=config, seed=seed)
    rng = np.random.default_rng(seed)
    tilts = rng.uniform(-1, 1, size=(num_steps + 10, 2))

    # Warmup (also gets past the timing warm-up)
    now = 0
    for i in range(10):
        sim.update(tilts[i, 0], tilts[i, 1], now)
        now += FRAME_NANOS

    capped = 0
    start = time.perf_counter()

    for i in range(10, num_steps + 10):
        sim.update(tilts[i, 0], tilts[i, 1], now)
        now += FRAME_NANOS
        if not sim.last_converged:
            capped += 1

    elapsed = time.perf_counter() - start

    return {
        "particles": particle_count,
        "num_steps": num_steps,
        "elapsed_seconds": elapsed,
        "steps_per_second": num_steps / elapsed,
        "ms_per_step": (elapsed * 1000) / num_steps,
        "capped_steps": capped,
    }


def run_all_benchmarks(
    counts: Sequence[int] = (1, 3, 10, 30, 100),
    steps: int = 500
) -> list:
    """Run benchmarks for every ball count."""
    results = []

    print("=" * 60)
    print("TILT ARENA PERFORMANCE BENCHMARK")
    print("=" * 60)
    print()

    for count in counts:
        print(f"Benchmarking ParticleSimulator (n={count})...")
        result = benchmark_simulator(particle_count=count, num_steps=steps)
        results.append(result)
        print(f"  Steps/sec: {result['steps_per_second']:.1f}")
        print(f"  ms/step:   {result['ms_per_step']:.3f}")
        print()

    print("=" * 60)
    print("SUMMARY")
    print("=" * 60)
    print()
    print(f"{'Balls':>6} {'Steps/s':>12} {'ms/step':>10} {'Capped':>8}")
    print("-" * 40)

    for r in results:
        print(
            f"{r['particles']:>6} {r['steps_per_second']:>12.1f} "
            f"{r['ms_per_step']:>10.3f} {r['capped_steps']:>8}"
        )

    return results


def main():
    parser = argparse.ArgumentParser(description="Benchmark tilt arena simulation performance")
    parser.add_argument("--steps", type=int, default=500, help="Updates per benchmark")
    parser.add_argument("--counts", type=int, nargs="+", default=[1, 3, 10, 30, 100],
                        help="Ball counts to test")
    parser.add_argument("--quick", action="store_true", help="Quick benchmark (fewer steps)")

    args = parser.parse_args()

    steps = 100 if args.quick else args.steps

    run_all_benchmarks(counts=args.counts, steps=steps)

    return 0


if __name__ == "__main__":
    sys.exit(main())
