"""
Pytest configuration and shared fixtures.
"""

import pytest
import numpy as np


@pytest.fixture
def sim():
    """Fresh simulation with statistics enabled."""
    from discretesim.core import Simulation
    return Simulation()


@pytest.fixture
def bare_sim():
    """Simulation that records no statistics."""
    from discretesim.core import Simulation, SimulationConfig
    return Simulation(SimulationConfig(name="bare", record_statistics=False))


@pytest.fixture
def rng():
    """Reproducible random number generator."""
    return np.random.default_rng(seed=42)
