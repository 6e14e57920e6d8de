"""
Parameter Space Definitions for Hyperparameter Search.

Three declarative space shapes, one per search strategy:

- ``ParameterGrid``: name -> ordered candidate values. The Cartesian product is
  the full search set, enumerated with names in declaration order and values
  in the order given.
- ``ParameterDistributions``: name -> sampler. A sampler is a scipy frozen
  distribution (anything with ``rvs``), a non-empty sequence sampled uniformly,
  or a zero-argument callable.
- ``ParameterBounds``: name -> (low, high) real interval, used by the Bayesian
  optimizer. Values are mapped linearly to [0, 1] for the surrogate.

Preset spaces for the supported model families are available through
``create_param_grid`` and ``create_param_distributions``.
"""

import itertools
from collections.abc import Callable, Iterator, Sequence
from typing import Any

import numpy as np
from pydantic import BaseModel, ConfigDict, Field, field_validator
from scipy import stats

from erasearch.core.exceptions import ConfigurationError, ParameterValidationError
from erasearch.core.logging import get_logger

logger = get_logger(__name__)


class ParameterGrid(BaseModel):
    """Discrete grid: the Cartesian product of every parameter's values."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    values: dict[str, list[Any]] = Field(description="Parameter name -> candidate values")

    @field_validator("values")
    @classmethod
    def validate_values(cls, v: dict[str, list[Any]]) -> dict[str, list[Any]]:
        if not v:
            raise ParameterValidationError("Parameter grid must define at least one parameter")
        for name, candidates in v.items():
            if len(candidates) == 0:
                raise ParameterValidationError(
                    f"Parameter grid entry '{name}' has no candidate values",
                    parameter_name=name,
                )
        return v

    @property
    def param_names(self) -> list[str]:
        return list(self.values.keys())

    def __len__(self) -> int:
        return int(np.prod([len(candidates) for candidates in self.values.values()]))

    def iter_combinations(self) -> Iterator[dict[str, Any]]:
        names = self.param_names
        for combination in itertools.product(*(self.values[name] for name in names)):
            yield dict(zip(names, combination, strict=True))

    def combinations(self) -> list[dict[str, Any]]:
        """Materialize every parameter combination in enumeration order."""
        return list(self.iter_combinations())


class ParameterDistributions(BaseModel):
    """Independent per-parameter samplers for random search."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    samplers: dict[str, Any] = Field(description="Parameter name -> sampler")

    @field_validator("samplers")
    @classmethod
    def validate_samplers(cls, v: dict[str, Any]) -> dict[str, Any]:
        if not v:
            raise ParameterValidationError("Parameter distributions must define at least one parameter")
        for name, sampler in v.items():
            if hasattr(sampler, "rvs") or callable(sampler):
                continue
            if isinstance(sampler, Sequence) and not isinstance(sampler, str) and len(sampler) > 0:
                continue
            raise ParameterValidationError(
                f"Sampler for '{name}' must be a distribution, a non-empty sequence or a callable",
                parameter_name=name,
                parameter_value=repr(sampler),
            )
        return v

    @property
    def param_names(self) -> list[str]:
        return list(self.samplers.keys())

    def sample(self, rng: np.random.Generator) -> dict[str, Any]:
        """Draw one value per parameter, each independently of the others."""
        return {name: _draw(sampler, rng) for name, sampler in self.samplers.items()}


def _draw(sampler: Any, rng: np.random.Generator) -> Any:
    if hasattr(sampler, "rvs"):
        value = sampler.rvs(random_state=rng)
    elif callable(sampler):
        value = sampler()
    else:
        value = sampler[int(rng.integers(len(sampler)))]
    # numpy scalars -> python scalars so trials serialize cleanly
    if isinstance(value, np.generic):
        return value.item()
    return value


class ParameterBounds(BaseModel):
    """Continuous box bounds for Bayesian optimization."""

    model_config = ConfigDict(frozen=True)

    bounds: dict[str, tuple[float, float]] = Field(description="Parameter name -> (low, high)")
    integer_params: frozenset[str] = Field(
        default=frozenset(), description="Parameters rounded to int before evaluation"
    )

    @field_validator("bounds")
    @classmethod
    def validate_bounds(cls, v: dict[str, tuple[float, float]]) -> dict[str, tuple[float, float]]:
        if not v:
            raise ParameterValidationError("Parameter bounds must define at least one parameter")
        for name, (low, high) in v.items():
            if not (np.isfinite(low) and np.isfinite(high)) or low >= high:
                raise ParameterValidationError(
                    f"Bounds for '{name}' must be finite with low < high",
                    parameter_name=name,
                    parameter_bounds=(low, high),
                )
        return v

    @property
    def param_names(self) -> list[str]:
        return list(self.bounds.keys())

    @property
    def dimension(self) -> int:
        return len(self.bounds)

    @property
    def lows(self) -> np.ndarray:
        return np.array([low for low, _ in self.bounds.values()], dtype=float)

    @property
    def highs(self) -> np.ndarray:
        return np.array([high for _, high in self.bounds.values()], dtype=float)

    def ranges(self) -> list[tuple[float, float]]:
        return list(self.bounds.values())

    def normalize(self, vectors: np.ndarray) -> np.ndarray:
        """Map raw vectors (shape ``(d,)`` or ``(n, d)``) onto the unit cube."""
        lows = self.lows
        return (np.asarray(vectors, dtype=float) - lows) / (self.highs - lows)

    def denormalize(self, vectors: np.ndarray) -> np.ndarray:
        lows = self.lows
        return lows + np.asarray(vectors, dtype=float) * (self.highs - lows)

    def sample_uniform(self, rng: np.random.Generator) -> np.ndarray:
        """Draw one raw vector uniformly inside the box."""
        return self.lows + rng.random(self.dimension) * (self.highs - self.lows)

    def to_params(self, vector: np.ndarray) -> dict[str, Any]:
        """Convert a raw vector into a parameter mapping."""
        params: dict[str, Any] = {}
        for name, value in zip(self.param_names, vector, strict=True):
            params[name] = int(round(float(value))) if name in self.integer_params else float(value)
        return params


# =============================================================================
# PRESET SPACES
# =============================================================================


def _steps(start: float, stop: float, step: float) -> list[float]:
    count = int(round((stop - start) / step)) + 1
    return [round(start + i * step, 10) for i in range(count)]


def _powers_of_ten(low: int, high: int) -> list[float]:
    return [10.0**k for k in range(low, high + 1)]


class HiddenLayerSampler:
    """Samples a decreasing stack of 2-4 hidden layer widths."""

    def __init__(self, min_layers: int = 2, max_layers: int = 4, max_width: int = 512, min_width: int = 32):
        self.min_layers = min_layers
        self.max_layers = max_layers
        self.max_width = max_width
        self.min_width = min_width

    def rvs(self, random_state: np.random.Generator | None = None) -> list[int]:
        rng = random_state if random_state is not None else np.random.default_rng()
        n_layers = int(rng.integers(self.min_layers, self.max_layers + 1))
        layers = []
        prev_size = self.max_width
        for _ in range(n_layers):
            size = int(rng.integers(self.min_width, prev_size + 1))
            layers.append(size)
            prev_size = size
        return layers


_PARAM_GRIDS: dict[str, Callable[[], dict[str, list[Any]]]] = {
    "xgboost": lambda: {
        "max_depth": [3, 5, 7, 10],
        "learning_rate": [0.001, 0.01, 0.05, 0.1],
        "n_estimators": [100, 200, 500, 1000],
        "colsample_bytree": [0.1, 0.3, 0.5, 0.7],
        "subsample": [0.5, 0.7, 0.9, 1.0],
        "min_child_weight": [1, 3, 5],
        "gamma": [0, 0.1, 0.3, 0.5],
        "reg_alpha": [0, 0.001, 0.01, 0.1],
        "reg_lambda": [0, 0.001, 0.01, 0.1],
    },
    "lightgbm": lambda: {
        "num_leaves": [15, 31, 63, 127],
        "learning_rate": [0.001, 0.01, 0.05, 0.1],
        "n_estimators": [100, 200, 500, 1000],
        "feature_fraction": [0.1, 0.3, 0.5, 0.7],
        "bagging_fraction": [0.5, 0.7, 0.9, 1.0],
        "bagging_freq": [0, 1, 5],
        "min_data_in_leaf": [10, 20, 50, 100],
        "lambda_l1": [0, 0.001, 0.01, 0.1],
        "lambda_l2": [0, 0.001, 0.01, 0.1],
    },
    "evotrees": lambda: {
        "max_depth": [3, 5, 7, 10],
        "eta": [0.001, 0.01, 0.05, 0.1],
        "nrounds": [100, 200, 500, 1000],
        "subsample": [0.5, 0.7, 0.9, 1.0],
        "colsample": [0.1, 0.3, 0.5, 0.7],
        "gamma": [0, 0.1, 0.3, 0.5],
        "lambda": [0, 0.001, 0.01, 0.1],
        "alpha": [0, 0.001, 0.01, 0.1],
    },
    "catboost": lambda: {
        "depth": [3, 5, 7, 10],
        "learning_rate": [0.001, 0.01, 0.05, 0.1],
        "iterations": [100, 200, 500, 1000],
        "l2_leaf_reg": [1, 3, 5, 10],
        "bagging_temperature": [0, 0.5, 1.0],
        "random_strength": [0, 0.5, 1.0, 2.0],
        "border_count": [32, 64, 128, 254],
    },
    "ridge": lambda: {"alpha": [0.001, 0.01, 0.1, 1.0, 10.0, 100.0, 1000.0]},
    "lasso": lambda: {"alpha": [0.0001, 0.001, 0.01, 0.1, 1.0, 10.0, 100.0]},
    "elasticnet": lambda: {
        "alpha": [0.001, 0.01, 0.1, 1.0, 10.0],
        "l1_ratio": [0.1, 0.3, 0.5, 0.7, 0.9],
    },
    "neuralnetwork": lambda: {
        "hidden_layers": [[128, 64], [256, 128, 64], [512, 256, 128], [128, 64, 32]],
        "learning_rate": [0.0001, 0.001, 0.01, 0.1],
        "batch_size": [256, 512, 1024, 2048],
        "epochs": [10, 20, 50, 100],
        "dropout_rate": [0.0, 0.1, 0.2, 0.3],
        "activation": ["relu", "tanh", "sigmoid"],
    },
}


_PARAM_DISTRIBUTIONS: dict[str, Callable[[], dict[str, Any]]] = {
    "xgboost": lambda: {
        "max_depth": stats.randint(3, 16),
        "learning_rate": _powers_of_ten(-4, -1),
        "n_estimators": stats.randint(100, 2001),
        "colsample_bytree": _steps(0.1, 1.0, 0.1),
        "subsample": _steps(0.5, 1.0, 0.1),
        "min_child_weight": stats.randint(1, 11),
        "gamma": _steps(0.0, 1.0, 0.1),
        "reg_alpha": _powers_of_ten(-4, 0),
        "reg_lambda": _powers_of_ten(-4, 0),
    },
    "lightgbm": lambda: {
        "num_leaves": stats.randint(10, 201),
        "learning_rate": _powers_of_ten(-4, -1),
        "n_estimators": stats.randint(100, 2001),
        "feature_fraction": _steps(0.1, 1.0, 0.1),
        "bagging_fraction": _steps(0.5, 1.0, 0.1),
        "bagging_freq": stats.randint(0, 11),
        "min_data_in_leaf": stats.randint(5, 201),
        "lambda_l1": _powers_of_ten(-4, 0),
        "lambda_l2": _powers_of_ten(-4, 0),
    },
    "evotrees": lambda: {
        "max_depth": stats.randint(3, 16),
        "eta": _powers_of_ten(-4, -1),
        "nrounds": stats.randint(100, 2001),
        "subsample": _steps(0.5, 1.0, 0.1),
        "colsample": _steps(0.1, 1.0, 0.1),
        "gamma": _steps(0.0, 1.0, 0.1),
        "lambda": _powers_of_ten(-4, 0),
        "alpha": _powers_of_ten(-4, 0),
    },
    "catboost": lambda: {
        "depth": stats.randint(3, 13),
        "learning_rate": _powers_of_ten(-4, -1),
        "iterations": stats.randint(100, 2001),
        "l2_leaf_reg": stats.randint(1, 31),
        "bagging_temperature": _steps(0.0, 2.0, 0.1),
        "random_strength": _steps(0.0, 3.0, 0.1),
        "border_count": [32, 64, 128, 254],
    },
    "ridge": lambda: {"alpha": _powers_of_ten(-3, 3)},
    "lasso": lambda: {"alpha": _powers_of_ten(-4, 2)},
    "elasticnet": lambda: {
        "alpha": _powers_of_ten(-3, 2),
        "l1_ratio": stats.uniform(0.0, 1.0),
    },
    "neuralnetwork": lambda: {
        "hidden_layers": HiddenLayerSampler(),
        "learning_rate": _powers_of_ten(-4, -1),
        "batch_size": [256, 512, 1024, 2048],
        "epochs": stats.randint(10, 101),
        "dropout_rate": _steps(0.0, 0.5, 0.05),
        "activation": ["relu", "tanh", "sigmoid"],
    },
}


def _lookup(registry: dict[str, Callable[[], Any]], model_type: str) -> Any:
    key = model_type.lower().replace("_", "")
    if key not in registry:
        raise ConfigurationError(
            f"Unknown model type: {model_type}",
            config_section="model_type",
            field_name="model_type",
            field_value=model_type,
        )
    return registry[key]()


def create_param_grid(model_type: str) -> ParameterGrid:
    """Preset grid for a supported model family."""
    grid = ParameterGrid(values=_lookup(_PARAM_GRIDS, model_type))
    logger.debug("Created preset parameter grid", model_type=model_type, combinations=len(grid))
    return grid


def create_param_distributions(model_type: str) -> ParameterDistributions:
    """Preset random-search distributions for a supported model family."""
    return ParameterDistributions(samplers=_lookup(_PARAM_DISTRIBUTIONS, model_type))


def supported_model_types() -> list[str]:
    return sorted(_PARAM_GRIDS)
