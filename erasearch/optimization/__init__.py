"""
Hyperparameter Optimization Module.

Key Features:
- Grid search over a full Cartesian product
- Seeded random search over per-parameter samplers
- Bayesian optimization with a Gaussian Process surrogate
- Time-window cross-validation with failure containment
- Append-only trial ledger with first-occurrence best tracking
"""

from .bayesian import (
    AcquisitionKind,
    BayesianConfig,
    BayesianOptimizer,
    BayesianPhase,
    GaussianProcessSurrogate,
    LatinHypercubeSampler,
    calculate_expected_improvement,
    calculate_upper_confidence_bound,
    expected_improvement,
    upper_confidence_bound,
)
from .brute_force import GridSearchOptimizer, RandomSearchOptimizer
from .core import (
    OptimizationEngine,
    OptimizationResult,
    OptimizationStatus,
    OptimizerKind,
    Trial,
    TrialLedger,
)
from .evaluation import EvaluationHarness, EvaluationOutcome, evaluate_params
from .factory import create_optimizer, optimize_hyperparameters, run_optimization
from .objectives import available_objectives, get_objective, sharpe_ratio
from .parameter_space import (
    ParameterBounds,
    ParameterDistributions,
    ParameterGrid,
    create_param_distributions,
    create_param_grid,
    supported_model_types,
)
from .splitter import TimeWindowSplitter

__all__ = [
    "AcquisitionKind",
    "BayesianConfig",
    "BayesianOptimizer",
    "BayesianPhase",
    "EvaluationHarness",
    "EvaluationOutcome",
    "GaussianProcessSurrogate",
    "GridSearchOptimizer",
    "LatinHypercubeSampler",
    "OptimizationEngine",
    "OptimizationResult",
    "OptimizationStatus",
    "OptimizerKind",
    "ParameterBounds",
    "ParameterDistributions",
    "ParameterGrid",
    "RandomSearchOptimizer",
    "TimeWindowSplitter",
    "Trial",
    "TrialLedger",
    "available_objectives",
    "calculate_expected_improvement",
    "calculate_upper_confidence_bound",
    "create_optimizer",
    "create_param_distributions",
    "create_param_grid",
    "evaluate_params",
    "expected_improvement",
    "get_objective",
    "optimize_hyperparameters",
    "run_optimization",
    "sharpe_ratio",
    "supported_model_types",
    "upper_confidence_bound",
]
