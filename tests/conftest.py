import numpy as np
import pytest

from sigrange.frontend import RFFrontEnd
from sigrange.signal_path import SignalPathManager


@pytest.fixture
def frontend():
    return RFFrontEnd()


@pytest.fixture
def manager(frontend):
    return SignalPathManager(frontend)


@pytest.fixture
def rng():
    return np.random.default_rng(1234)
