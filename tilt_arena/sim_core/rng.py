"""
RNG - Jitter Source
===================

Provides the seeded randomness the kernel needs: a per-ball friction offset
drawn once at construction, and a tiny positional jitter drawn for every
detected contact.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

import numpy as np


class JitterSource:
    """
    Injectable random source for friction variance and contact jitter.

    Both streams are spawned from one SeedSequence, so they are independent
    of each other yet fully reproducible from a single integer seed. Drawing
    extra contact jitter never shifts the friction values of later balls.
    """

    def __init__(self, seed: Optional[int] = None):
        """
        Initialize jitter source.

        Args:
            seed: Random seed for reproducibility. Random if None.
        """
        self._seed_streams(seed)

    def _seed_streams(self, seed: Optional[int]) -> None:
        seq = np.random.SeedSequence(seed)
        # With seed=None the drawn entropy is kept so reset() can replay it
        self._seed: int = int(seq.entropy)
        friction_seq, contact_seq = seq.spawn(2)
        self._friction_rng = np.random.default_rng(friction_seq)
        self._contact_rng = np.random.default_rng(contact_seq)

    @property
    def seed(self) -> int:
        """Seed both streams were derived from."""
        return self._seed

    def friction_offset(self, spread: float) -> float:
        """
        Draw a per-ball friction offset.

        Args:
            spread: Half-width of the range.

        Returns:
            Uniform value in [-spread, spread).
        """
        return float(self._friction_rng.uniform(-spread, spread))

    def contact_offset(self, width: float) -> float:
        """
        Draw one axis of contact jitter.

        Args:
            width: Full width of the range.

        Returns:
            Uniform value in [-width / 2, width / 2).
        """
        return (float(self._contact_rng.random()) - 0.5) * width

    def get_state(self) -> Dict[str, Any]:
        """
        Get serializable state for replay/checkpointing.

        Returns:
            Dict with the seed and both bit generator states (JSON-ready).
        """
        return {
            "seed": self._seed,
            "friction": self._friction_rng.bit_generator.state,
            "contact": self._contact_rng.bit_generator.state,
        }

    def set_state(self, state: Dict[str, Any]) -> None:
        """
        Restore state captured by get_state().

        Args:
            state: Dict returned by get_state().
        """
        self._seed = int(state["seed"])
        self._friction_rng.bit_generator.state = state["friction"]
        self._contact_rng.bit_generator.state = state["contact"]

    def reset(self, seed: Optional[int] = None) -> None:
        """
        Restart both streams.

        Args:
            seed: New random seed. Keeps current if None.
        """
        self._seed_streams(self._seed if seed is None else seed)
