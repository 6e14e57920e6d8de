"""
Unit tests for objective scorers.
"""

import math

import numpy as np
import pandas as pd
import pytest

from erasearch.core.exceptions import ConfigurationError
from erasearch.optimization.objectives import (
    available_objectives,
    get_objective,
    pearson_correlation,
    sharpe_ratio,
)


@pytest.fixture
def validation_frame():
    return pd.DataFrame({"era": [1, 1, 2, 2, 3], "target": [0.1, 0.4, 0.2, 0.9, 0.5]})


class TestSharpeRatio:
    """Test degenerate and regular Sharpe cases."""

    @pytest.mark.parametrize("values", [[], [0.3]])
    def test_too_few_values(self, values):
        assert sharpe_ratio(values) == 0.0

    def test_constant_values(self):
        assert sharpe_ratio([0.1, 0.1]) == float("inf")
        assert sharpe_ratio([-0.1, -0.1]) == float("-inf")
        assert sharpe_ratio([0.0, 0.0]) == 0.0

    def test_mean_over_sample_std(self):
        assert sharpe_ratio([0.1, 0.3]) == pytest.approx(0.2 / np.std([0.1, 0.3], ddof=1))


class TestCorrelation:
    def test_constant_predictions_give_nan(self):
        assert math.isnan(pearson_correlation([1.0, 1.0, 1.0], [0.1, 0.2, 0.3]))

    def test_length_mismatch(self):
        with pytest.raises(ValueError):
            pearson_correlation([1.0, 2.0], [1.0, 2.0, 3.0])


class TestObjectiveRegistry:
    """Test scorer resolution and scoring."""

    def test_available(self):
        assert available_objectives() == ["correlation", "multi_objective", "sharpe"]

    def test_correlation_objective(self, validation_frame):
        score = get_objective("correlation")

        assert score(validation_frame["target"].to_numpy(), validation_frame) == pytest.approx(1.0)
        assert score(-validation_frame["target"].to_numpy(), validation_frame) == pytest.approx(-1.0)

    def test_name_is_case_insensitive(self, validation_frame):
        score = get_objective("Correlation")

        assert score(validation_frame["target"], validation_frame) == pytest.approx(1.0)

    def test_multi_objective_single_target(self, validation_frame):
        score = get_objective("multi_objective")

        # Sharpe of a single correlation is 0
        assert score(validation_frame["target"], validation_frame) == pytest.approx(0.7)

    def test_multi_target_mapping(self, validation_frame):
        score = get_objective("correlation", targets=("alpha", "beta"))
        val_data = {"alpha": validation_frame, "beta": validation_frame}
        predictions = {"alpha": validation_frame["target"], "beta": -validation_frame["target"]}

        assert score(predictions, val_data) == pytest.approx(0.0, abs=1e-9)

    def test_multi_target_columns(self):
        frame = pd.DataFrame({"t1": [0.1, 0.5, 0.3], "t2": [0.3, 0.1, 0.9]})
        score = get_objective("correlation", targets=("t1", "t2"))
        predictions = pd.DataFrame({"t1": frame["t1"], "t2": -frame["t2"]})

        assert score(predictions, frame) == pytest.approx(0.0, abs=1e-9)

    def test_no_scorable_target(self, validation_frame):
        score = get_objective("correlation", targets=("missing",))

        assert score({"other": validation_frame["target"]}, {"other": validation_frame}) == float("-inf")

    def test_unknown_objective(self):
        with pytest.raises(ConfigurationError):
            get_objective("accuracy")
