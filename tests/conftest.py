"""
Pytest configuration for the erasearch test suite.

Unit tests use small in-memory frames and stub trainers; nothing touches the
network.
"""

import numpy as np
import pandas as pd
import pytest

from erasearch.core.config import HyperOptConfig


@pytest.fixture
def era_frame() -> pd.DataFrame:
    """Ten eras with four rows each and a noisy target."""
    rng = np.random.default_rng(0)
    eras = np.repeat(np.arange(1, 11), 4)
    return pd.DataFrame(
        {
            "era": eras,
            "feature": rng.normal(size=len(eras)),
            "target": rng.normal(size=len(eras)),
        }
    )


@pytest.fixture
def hyperopt_config() -> HyperOptConfig:
    return HyperOptConfig(model_type="stub", n_splits=3, verbose=False, parallel=False)


@pytest.fixture
def oracle_trainer():
    """Returns the validation targets as predictions."""

    def train_and_predict(params, train, validation):
        return validation["target"].to_numpy()

    return train_and_predict


@pytest.fixture
def params_trainer():
    """Ignores the data and hands the parameters to the scorer."""

    def train_and_predict(params, train, validation):
        return params

    return train_and_predict


@pytest.fixture
def failing_trainer():
    def train_and_predict(params, train, validation):
        raise RuntimeError("trainer exploded")

    return train_and_predict
