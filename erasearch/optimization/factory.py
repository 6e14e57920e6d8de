"""
Factory for creating optimizers.

One entry point per concern: ``create_optimizer`` dispatches on the search
strategy and checks that the parameter space matches it, and
``optimize_hyperparameters`` / ``run_optimization`` drive any optimizer to an
OptimizationResult from async or sync code.
"""

import asyncio
from typing import Any

from erasearch.core.config import HyperOptConfig
from erasearch.core.exceptions import ConfigurationError
from erasearch.core.logging import get_logger
from erasearch.optimization.bayesian import BayesianConfig, BayesianOptimizer
from erasearch.optimization.brute_force import GridSearchOptimizer, RandomSearchOptimizer
from erasearch.optimization.core import OptimizationEngine, OptimizationResult, OptimizerKind
from erasearch.optimization.evaluation import EvaluationHarness
from erasearch.optimization.parameter_space import (
    ParameterBounds,
    ParameterDistributions,
    ParameterGrid,
    create_param_distributions,
    create_param_grid,
)
from erasearch.optimization.splitter import Dataset

logger = get_logger(__name__)

ParameterSpace = ParameterGrid | ParameterDistributions | ParameterBounds

_SPACE_TYPES: dict[OptimizerKind, type] = {
    OptimizerKind.GRID: ParameterGrid,
    OptimizerKind.RANDOM: ParameterDistributions,
    OptimizerKind.BAYESIAN: ParameterBounds,
}


def _resolve_kind(kind: OptimizerKind | str) -> OptimizerKind:
    if isinstance(kind, OptimizerKind):
        return kind
    try:
        return OptimizerKind(kind.lower())
    except ValueError as e:
        raise ConfigurationError(
            f"Unknown optimizer kind: {kind}",
            config_section="optimizer",
            field_name="kind",
            field_value=kind,
        ) from e


def create_optimizer(
    kind: OptimizerKind | str,
    harness: EvaluationHarness,
    config: HyperOptConfig,
    space: ParameterSpace | None = None,
    n_iter: int = 50,
    bayesian_config: BayesianConfig | None = None,
) -> OptimizationEngine:
    """
    Create an optimizer for ``kind``.

    Args:
        kind: Search strategy
        harness: Evaluation harness shared by every trial
        config: Run configuration
        space: Parameter space matching the strategy. Grid and random search
            fall back to the preset space for ``config.model_type``; Bayesian
            search requires explicit bounds
        n_iter: Number of random-search samples
        bayesian_config: Bayesian budget and surrogate settings

    Raises:
        ConfigurationError: For an unknown kind, a missing Bayesian space or a
            space of the wrong shape
    """
    kind = _resolve_kind(kind)

    if space is None:
        if kind is OptimizerKind.GRID:
            space = create_param_grid(config.model_type)
        elif kind is OptimizerKind.RANDOM:
            space = create_param_distributions(config.model_type)
        else:
            raise ConfigurationError(
                "Bayesian optimization requires explicit parameter bounds",
                config_section="optimizer",
                field_name="space",
            )

    expected = _SPACE_TYPES[kind]
    if not isinstance(space, expected):
        raise ConfigurationError(
            f"{kind.value} search needs a {expected.__name__}, got {type(space).__name__}",
            config_section="optimizer",
            field_name="space",
        )

    logger.info("Creating optimizer", kind=kind.value, model_type=config.model_type)
    if kind is OptimizerKind.GRID:
        return GridSearchOptimizer(harness, config, space)
    if kind is OptimizerKind.RANDOM:
        return RandomSearchOptimizer(harness, config, space, n_iter=n_iter)
    return BayesianOptimizer(harness, config, space, bayesian_config=bayesian_config)


async def optimize_hyperparameters(optimizer: OptimizationEngine, dataset: Dataset) -> OptimizationResult:
    """Run ``optimizer`` on ``dataset``."""
    return await optimizer.optimize(dataset)


def run_optimization(
    kind: OptimizerKind | str,
    harness: EvaluationHarness,
    config: HyperOptConfig,
    dataset: Dataset,
    space: ParameterSpace | None = None,
    **kwargs: Any,
) -> OptimizationResult:
    """Synchronous convenience wrapper: create an optimizer and run it to completion."""
    optimizer = create_optimizer(kind, harness, config, space, **kwargs)
    return asyncio.run(optimize_hyperparameters(optimizer, dataset))
