"""Pytest configuration and shared fixtures."""

import sys
from pathlib import Path

import numpy as np
import pytest

# Add the project root to the Python path
root_dir = Path(__file__).parent.parent
sys.path.insert(0, str(root_dir))


@pytest.fixture
def rng():
    """Seeded generator so every test is reproducible."""
    return np.random.default_rng(12345)


@pytest.fixture
def world():
    """A small 10x10 world."""
    from world import World
    return World(10, 10)


@pytest.fixture
def make_creature():
    """Factory for creatures at a given cell with a given genome (default: none)."""
    from creature import Creature
    from world import Direction, Position

    def _make(x=0, y=0, genes=(), facing=Direction.NORTH, num_internal=2):
        return Creature(position=Position(x, y), genes=list(genes),
                        num_internal=num_internal, facing=facing,
                        rng=np.random.default_rng(0))
    return _make
