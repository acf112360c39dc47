"""
Shared fixtures for the simulation tests.
"""

import pytest

from tilt_arena.sim_core.config_loader import parse_config


@pytest.fixture
def make_config():
    """Factory building a validated ArenaConfig from keyword overrides."""
    def _make(
        count=3,
        horizontal_bound=1.0,
        vertical_bound=1.0,
        contact_diameter=0.004,
        base_friction=0.1,
        friction_jitter=0.1,
        max_iterations=10,
        contact_jitter=1e-4,
        eager_start=False,
    ):
        return parse_config({
            "arena": {
                "horizontal_bound": horizontal_bound,
                "vertical_bound": vertical_bound,
            },
            "particles": {
                "count": count,
                "contact_diameter": contact_diameter,
                "base_friction": base_friction,
                "friction_jitter": friction_jitter,
            },
            "solver": {
                "max_iterations": max_iterations,
                "contact_jitter": contact_jitter,
                "eager_start": eager_start,
            },
        })
    return _make
