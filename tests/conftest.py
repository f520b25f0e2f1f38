"""
Pytest configuration and fixtures for Sounding Life tests.
"""

from typing import Callable

import numpy as np
import pytest

from life import Grid, LifeConfig, Simulation, pattern_initializer


@pytest.fixture
def rng() -> np.random.Generator:
    """Seeded random source for stochastic tests."""
    return np.random.default_rng(12345)


@pytest.fixture
def grid_from() -> Callable[[list[str]], Grid]:
    """Build a grid from rows of text: '#' or 'O' is alive, anything else dead."""

    def build(lines: list[str]) -> Grid:
        live = [
            (r, c)
            for r, line in enumerate(lines)
            for c, ch in enumerate(line)
            if ch in "#O"
        ]
        return Grid(len(lines), len(lines[0]), pattern_initializer(live))

    return build


@pytest.fixture
def empty_grid() -> Grid:
    """5x5 grid with every cell dead."""
    return Grid(5, 5)


@pytest.fixture
def strict_config() -> LifeConfig:
    """Small strict configuration, no randomness."""
    return LifeConfig(rows=6, columns=6, generation_interval_seconds=1.0, strict=True)


@pytest.fixture
def blinker_sim(strict_config: LifeConfig) -> Simulation:
    """Simulation holding a horizontal blinker in the middle of a 6x6 grid."""
    return Simulation.from_config(
        strict_config, initializer=pattern_initializer([(0, 0), (0, 1), (0, 2)], (2, 1))
    )
