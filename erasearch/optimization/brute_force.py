"""
Exhaustive and random hyperparameter search.

Key Features:
- Grid search over the full Cartesian product of a ParameterGrid
- Seeded random search over independent per-parameter samplers
- Optional concurrent evaluation on worker threads, recorded in submission
  order so results are identical to a sequential run
"""

import random
from typing import Any

import numpy as np

from erasearch.core.config import HyperOptConfig
from erasearch.core.exceptions import ConfigurationError
from erasearch.core.logging import get_logger
from erasearch.optimization.core import OptimizationEngine, OptimizationResult
from erasearch.optimization.evaluation import EvaluationHarness
from erasearch.optimization.parameter_space import ParameterDistributions, ParameterGrid
from erasearch.optimization.splitter import Dataset
from erasearch.utils.decorators import time_execution

logger = get_logger(__name__)


class GridSearchOptimizer(OptimizationEngine):
    """Evaluates every combination of a parameter grid exactly once."""

    algorithm_name = "grid_search"

    def __init__(self, harness: EvaluationHarness, config: HyperOptConfig, param_grid: ParameterGrid):
        super().__init__(harness, config)
        self.param_grid = param_grid

    @time_execution
    async def optimize(self, dataset: Dataset) -> OptimizationResult:
        return await super().optimize(dataset)

    async def _run(self, dataset: Dataset) -> None:
        combinations = self.param_grid.combinations()
        logger.info(
            "Starting grid search",
            combinations=len(combinations),
            parameters=self.param_grid.param_names,
            parallel=self.config.parallel,
        )
        await self._evaluate_many(combinations, dataset)


class RandomSearchOptimizer(OptimizationEngine):
    """
    Draws ``n_iter`` independent samples from per-parameter distributions.

    The draw sequence depends only on ``config.seed``: samples are generated
    up front from a seeded generator before any evaluation starts, so parallel
    and sequential runs evaluate the same candidates.
    """

    algorithm_name = "random_search"

    def __init__(
        self,
        harness: EvaluationHarness,
        config: HyperOptConfig,
        param_distributions: ParameterDistributions,
        n_iter: int = 50,
    ):
        if n_iter < 0:
            raise ConfigurationError(
                f"n_iter must be non-negative, got {n_iter}", field_name="n_iter", field_value=n_iter
            )
        super().__init__(harness, config)
        self.param_distributions = param_distributions
        self.n_iter = n_iter

    def sample_candidates(self) -> list[dict[str, Any]]:
        """Generate the run's candidate list from ``config.seed``."""
        rng = np.random.default_rng(self.config.seed)
        # zero-argument callables draw from the global generators
        random.seed(self.config.seed)
        np.random.seed(self.config.seed)
        return [self.param_distributions.sample(rng) for _ in range(self.n_iter)]

    @time_execution
    async def optimize(self, dataset: Dataset) -> OptimizationResult:
        return await super().optimize(dataset)

    async def _run(self, dataset: Dataset) -> None:
        candidates = self.sample_candidates()
        logger.info(
            "Starting random search",
            n_iter=self.n_iter,
            seed=self.config.seed,
            parameters=self.param_distributions.param_names,
            parallel=self.config.parallel,
        )
        await self._evaluate_many(candidates, dataset)
