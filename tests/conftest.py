import dataclasses

import numpy as np
import pytest

from canvas_layout.config import DEFAULT_CONFIG
from canvas_layout.engine import PlacementEngine
from canvas_layout.placement import PlacementSolver


@pytest.fixture
def still_config():
    return dataclasses.replace(DEFAULT_CONFIG, jitter=0.0)


@pytest.fixture
def solver(still_config):
    return PlacementSolver(still_config, np.random.default_rng(0))


@pytest.fixture
def engine():
    return PlacementEngine(seed=7)
