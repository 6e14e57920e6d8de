"""
Unit tests for parameter space definitions and model presets.
"""

import numpy as np
import pytest
from scipy import stats

from erasearch.core.exceptions import ConfigurationError, ParameterValidationError
from erasearch.optimization.parameter_space import (
    HiddenLayerSampler,
    ParameterBounds,
    ParameterDistributions,
    ParameterGrid,
    create_param_distributions,
    create_param_grid,
    supported_model_types,
)


class TestParameterGrid:
    """Test grid enumeration."""

    def test_enumeration_order(self):
        grid = ParameterGrid(values={"lr": [0.01, 0.1], "depth": [3, 5]})

        assert grid.combinations() == [
            {"lr": 0.01, "depth": 3},
            {"lr": 0.01, "depth": 5},
            {"lr": 0.1, "depth": 3},
            {"lr": 0.1, "depth": 5},
        ]

    def test_size_is_product_of_value_counts(self):
        grid = ParameterGrid(values={"a": [1, 2], "b": [1, 2, 3], "c": [1, 2, 3, 4]})

        assert len(grid) == 24
        assert len(grid.combinations()) == 24

    def test_empty_value_list_rejected(self):
        with pytest.raises(ParameterValidationError):
            ParameterGrid(values={"a": [1], "b": []})

    def test_empty_grid_rejected(self):
        with pytest.raises(ParameterValidationError):
            ParameterGrid(values={})


class TestParameterDistributions:
    """Test sampler handling."""

    def test_mixed_samplers(self):
        distributions = ParameterDistributions(
            samplers={
                "alpha": stats.uniform(1.0, 2.0),
                "activation": ["relu", "tanh"],
                "constant": lambda: 7,
            }
        )

        params = distributions.sample(np.random.default_rng(0))

        assert 1.0 <= params["alpha"] <= 3.0
        assert isinstance(params["alpha"], float)
        assert params["activation"] in ("relu", "tanh")
        assert params["constant"] == 7

    @pytest.mark.parametrize("sampler", [[], "abc", 3])
    def test_invalid_sampler_rejected(self, sampler):
        with pytest.raises(ParameterValidationError):
            ParameterDistributions(samplers={"a": sampler})

    def test_hidden_layer_sampler_is_decreasing(self):
        layers = HiddenLayerSampler().rvs(random_state=np.random.default_rng(5))

        assert 2 <= len(layers) <= 4
        assert all(a >= b for a, b in zip(layers, layers[1:]))
        assert all(32 <= width <= 512 for width in layers)


class TestParameterBounds:
    """Test continuous bounds."""

    @pytest.fixture
    def bounds(self):
        return ParameterBounds(bounds={"lr": (0.0, 0.5), "depth": (2.0, 10.0)}, integer_params=frozenset({"depth"}))

    def test_normalize_round_trip(self, bounds):
        raw = np.array([0.25, 6.0])

        normalized = bounds.normalize(raw)

        assert list(normalized) == [0.5, 0.5]
        assert list(bounds.denormalize(normalized)) == [0.25, 6.0]

    def test_to_params_rounds_integer_parameters(self, bounds):
        params = bounds.to_params(np.array([0.1, 6.7]))

        assert params == {"lr": 0.1, "depth": 7}
        assert isinstance(params["depth"], int)

    def test_sample_uniform_inside_box(self, bounds):
        rng = np.random.default_rng(0)

        for _ in range(20):
            vector = bounds.sample_uniform(rng)
            assert np.all(vector >= bounds.lows)
            assert np.all(vector <= bounds.highs)

    @pytest.mark.parametrize("interval", [(1.0, 1.0), (2.0, 1.0), (0.0, float("inf"))])
    def test_invalid_interval_rejected(self, interval):
        with pytest.raises(ParameterValidationError):
            ParameterBounds(bounds={"a": interval})


class TestPresets:
    """Test model family presets."""

    @pytest.mark.parametrize("model_type", supported_model_types())
    def test_every_preset_builds(self, model_type):
        grid = create_param_grid(model_type)
        distributions = create_param_distributions(model_type)

        assert len(grid) > 0
        assert set(distributions.sample(np.random.default_rng(0))) == set(distributions.param_names)

    def test_lookup_is_case_and_underscore_insensitive(self):
        assert create_param_grid("XGBoost").param_names == create_param_grid("xgboost").param_names
        assert create_param_distributions("Neural_Network").param_names[0] == "hidden_layers"

    def test_ridge_grid(self):
        grid = create_param_grid("ridge")

        assert grid.values == {"alpha": [0.001, 0.01, 0.1, 1.0, 10.0, 100.0, 1000.0]}

    def test_unknown_model_type(self):
        with pytest.raises(ConfigurationError):
            create_param_grid("random_forest")

        with pytest.raises(ConfigurationError):
            create_param_distributions("random_forest")
