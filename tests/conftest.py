"""
conftest.py
~~~~~~~~~~~

Shared fixtures for the test suite.
"""

import os
import tempfile

import numpy as np
import pytest

# The API server reads MODEL_DIR at import time; keep its registry out of
# the working tree.
os.environ.setdefault('MODEL_DIR', tempfile.mkdtemp(prefix='ffnet-models-'))

from ffnet.datasets import and_dataset, xor_dataset
from ffnet.layer import Layer
from ffnet.linalg import Matrix, Vector
from ffnet.network import Network


@pytest.fixture
def rng():
    """Seeded random generator so tests are reproducible."""
    return np.random.default_rng(1234)


@pytest.fixture
def temp_db_dir(tmp_path):
    """Create a temporary directory for database storage."""
    db_dir = tmp_path / "test_models"
    db_dir.mkdir()
    return str(db_dir)


@pytest.fixture
def simple_network(rng):
    """Create a small 3-4-2 network for testing."""
    return Network.create([3, 4, 2], rng=rng)


@pytest.fixture
def fixed_layer():
    """2-input, 2-output sigmoid layer with known parameters."""
    return Layer(
        Matrix([[0.5, -0.25], [1.0, 0.75]]),
        Vector([0.1, -0.2])
    )


@pytest.fixture
def xor_data():
    return xor_dataset()


@pytest.fixture
def and_data():
    return and_dataset()
