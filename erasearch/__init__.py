"""
Erasearch - Hyperparameter Search for Era-Structured Data

Grid, random and Bayesian search over model hyperparameters, scored with
time-window cross-validation on data keyed by an ordered era column.
"""

__version__ = "1.0.0"
__description__ = "Hyperparameter search engine with time-window cross-validation"

from .core.config import HyperOptConfig, OptimizationSettings
from .core.exceptions import (
    ConfigurationError,
    ErasearchError,
    EvaluationError,
    OptimizationError,
    ParameterValidationError,
    SurrogateNumericalError,
)
from .core.logging import correlation_context, get_logger, setup_logging
from .optimization import (
    BayesianConfig,
    BayesianOptimizer,
    EvaluationHarness,
    GridSearchOptimizer,
    OptimizationResult,
    OptimizerKind,
    ParameterBounds,
    ParameterDistributions,
    ParameterGrid,
    RandomSearchOptimizer,
    TimeWindowSplitter,
    TrialLedger,
    create_optimizer,
    optimize_hyperparameters,
    run_optimization,
)

__all__ = [
    "BayesianConfig",
    "BayesianOptimizer",
    "ConfigurationError",
    "ErasearchError",
    "EvaluationError",
    "EvaluationHarness",
    "GridSearchOptimizer",
    "HyperOptConfig",
    "OptimizationError",
    "OptimizationResult",
    "OptimizationSettings",
    "OptimizerKind",
    "ParameterBounds",
    "ParameterDistributions",
    "ParameterGrid",
    "ParameterValidationError",
    "RandomSearchOptimizer",
    "SurrogateNumericalError",
    "TimeWindowSplitter",
    "TrialLedger",
    "correlation_context",
    "create_optimizer",
    "get_logger",
    "optimize_hyperparameters",
    "run_optimization",
    "setup_logging",
]
