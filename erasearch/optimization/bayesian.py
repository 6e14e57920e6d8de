"""
Bayesian Optimization for Efficient Parameter Search.

This module implements sequential Bayesian optimization with a from-scratch
Gaussian Process surrogate over a continuous ParameterBounds space.

Key Features:
- Zero-mean GP with an RBF kernel and fixed hyperparameters
- Cholesky posterior with a regularized-inverse fallback
- Expected Improvement and Upper Confidence Bound acquisition functions
- Latin Hypercube candidate generation
- Two-phase search: uniform random warm-up, then surrogate-guided steps

The surrogate works in normalized space: parameters are mapped to [0, 1] per
dimension and scores are standardized before fitting. Predictions are mapped
back to the raw score scale before they reach the acquisition function.
"""

from collections.abc import Sequence
from enum import Enum
from typing import Any

import numpy as np
from pydantic import BaseModel, ConfigDict, Field, ValidationError as PydanticValidationError
from pydantic import field_validator
from scipy import linalg
from scipy.stats import qmc
from scipy.stats import norm

from erasearch.core.config import HyperOptConfig
from erasearch.core.exceptions import ConfigurationError, SurrogateNumericalError
from erasearch.core.logging import get_logger
from erasearch.optimization.core import OptimizationEngine, OptimizationResult
from erasearch.optimization.evaluation import EvaluationHarness
from erasearch.optimization.parameter_space import ParameterBounds
from erasearch.optimization.splitter import Dataset
from erasearch.utils.decorators import time_execution

logger = get_logger(__name__)

DEFAULT_NOISE = 1e-6
DEFAULT_LENGTH_SCALE = 1.0
FALLBACK_REGULARIZATION = 1e-4
VARIANCE_FLOOR = 1e-6
MIN_ACQUISITION_STD = 1e-9
DEFAULT_BETA = 2.0
DEFAULT_N_CANDIDATES = 2000


class AcquisitionKind(Enum):
    """Acquisition functions supported by the optimizer."""

    EI = "ei"
    UCB = "ucb"


class BayesianPhase(Enum):
    """Lifecycle of one Bayesian optimization run."""

    INIT = "init"
    RANDOM_SAMPLING = "random_sampling"
    SURROGATE_GUIDED = "surrogate_guided"
    DONE = "done"


class BayesianConfig(BaseModel):
    """
    Configuration for Bayesian optimization.

    Combines the search budget, acquisition settings and the fixed GP kernel
    hyperparameters.
    """

    model_config = ConfigDict(frozen=True)

    n_initial: int = Field(default=10, ge=1, description="Uniform random warm-up evaluations")
    n_iter: int = Field(default=50, ge=0, description="Surrogate-guided evaluations")
    acquisition_function: str = Field(default="ei", description="Acquisition function: 'ei' or 'ucb'")
    n_candidates: int = Field(
        default=DEFAULT_N_CANDIDATES, ge=1, description="Latin hypercube candidates per guided step"
    )
    beta: float = Field(default=DEFAULT_BETA, ge=0, description="UCB exploration weight")
    length_scale: float = Field(default=DEFAULT_LENGTH_SCALE, gt=0, description="RBF kernel length scale")
    noise: float = Field(default=DEFAULT_NOISE, gt=0, description="Observation noise on the kernel diagonal")

    @field_validator("acquisition_function")
    @classmethod
    def validate_acquisition_function(cls, v: str) -> str:
        valid = [kind.value for kind in AcquisitionKind]
        if v.lower() not in valid:
            raise ValueError(f"Invalid acquisition function: {v}. Must be one of {valid}")
        return v.lower()

    @property
    def acquisition(self) -> AcquisitionKind:
        return AcquisitionKind(self.acquisition_function)

    @classmethod
    def create(cls, **kwargs: Any) -> "BayesianConfig":
        try:
            return cls(**kwargs)
        except PydanticValidationError as e:
            raise ConfigurationError(
                f"Invalid Bayesian configuration: {e}",
                config_section="BayesianConfig",
            ) from e


# =============================================================================
# ACQUISITION FUNCTIONS
# =============================================================================


def expected_improvement(mean: Any, std: Any, best_observed: float | None) -> Any:
    """
    Expected Improvement over ``best_observed`` for a maximization problem.

    Accepts scalars or arrays. Points with ``std < 1e-9`` score 0, and so does
    everything when there is no finite best observation yet.
    """
    mean_arr = np.asarray(mean, dtype=float)
    std_arr = np.asarray(std, dtype=float)

    if best_observed is None or not np.isfinite(best_observed):
        ei = np.zeros(np.broadcast(mean_arr, std_arr).shape)
    else:
        with np.errstate(divide="ignore", invalid="ignore"):
            z = (mean_arr - best_observed) / std_arr
            ei = std_arr * (z * norm.cdf(z) + norm.pdf(z))
        ei = np.where(std_arr < MIN_ACQUISITION_STD, 0.0, np.maximum(ei, 0.0))

    return float(ei) if ei.ndim == 0 else ei


def upper_confidence_bound(mean: Any, std: Any, beta: float = DEFAULT_BETA) -> Any:
    """``mean + beta * std``; scalars or arrays."""
    ucb = np.asarray(mean, dtype=float) + beta * np.asarray(std, dtype=float)
    return float(ucb) if ucb.ndim == 0 else ucb


# =============================================================================
# GAUSSIAN PROCESS SURROGATE
# =============================================================================


class GaussianProcessSurrogate:
    """
    Zero-mean Gaussian Process with an RBF kernel.

    Observations are stored as normalized parameter vectors plus raw scores.
    Scores are standardized over the finite observations every time a
    prediction is made; failed (``-inf``) observations are kept for the record
    but excluded from the fit.

    With ``strict=True`` linear algebra failures raise
    :class:`SurrogateNumericalError` instead of falling back.
    """

    def __init__(
        self,
        length_scale: float = DEFAULT_LENGTH_SCALE,
        noise: float = DEFAULT_NOISE,
        strict: bool = False,
    ):
        self.length_scale = length_scale
        self.noise = noise
        self.strict = strict
        self.observed_params: list[np.ndarray] = []
        self.observed_scores: list[float] = []

    def kernel(self, x1: np.ndarray, x2: np.ndarray) -> float:
        diff = (np.asarray(x1, dtype=float) - np.asarray(x2, dtype=float)) / self.length_scale
        return float(np.exp(-0.5 * np.sum(diff**2)))

    def kernel_matrix(self, a: np.ndarray, b: np.ndarray) -> np.ndarray:
        """Pairwise kernel values between the rows of ``a`` and ``b``."""
        a = np.atleast_2d(np.asarray(a, dtype=float)) / self.length_scale
        b = np.atleast_2d(np.asarray(b, dtype=float)) / self.length_scale
        sq_dist = (
            np.sum(a**2, axis=1)[:, None] + np.sum(b**2, axis=1)[None, :] - 2.0 * a @ b.T
        )
        return np.exp(-0.5 * np.maximum(sq_dist, 0.0))

    def posterior(
        self,
        observed_x: np.ndarray,
        observed_y: np.ndarray,
        query: np.ndarray,
    ) -> tuple[np.ndarray, np.ndarray]:
        """
        Posterior mean and variance at every row of ``query``.

        Returns the prior ``(0, 1)`` when there are no observations. A point
        whose variance cannot be computed comes back as NaN.
        """
        query = np.atleast_2d(np.asarray(query, dtype=float))
        n_query = query.shape[0]
        observed_x = np.asarray(observed_x, dtype=float)
        observed_y = np.asarray(observed_y, dtype=float)

        if observed_x.size == 0:
            return np.zeros(n_query), np.ones(n_query)

        observed_x = np.atleast_2d(observed_x)
        n = observed_x.shape[0]
        k = self.kernel_matrix(observed_x, observed_x) + self.noise * np.eye(n)
        k_star = self.kernel_matrix(query, observed_x)
        k_star_star = 1.0 + self.noise

        try:
            lower = linalg.cholesky(k, lower=True)
            alpha = linalg.solve_triangular(
                lower.T, linalg.solve_triangular(lower, observed_y, lower=True), lower=False
            )
            mean = k_star @ alpha
            v = linalg.solve_triangular(lower, k_star.T, lower=True)
            variance = k_star_star - np.sum(v**2, axis=0)
        except linalg.LinAlgError as e:
            if self.strict:
                raise SurrogateNumericalError(
                    f"Cholesky factorization failed: {e}", matrix_size=n
                ) from e
            logger.warning("Cholesky factorization failed; using regularized inverse", n_observations=n)
            mean, variance = self._inverse_posterior(k, k_star, k_star_star, observed_y)

        return mean, np.maximum(variance, VARIANCE_FLOOR)

    def _inverse_posterior(
        self,
        k: np.ndarray,
        k_star: np.ndarray,
        k_star_star: float,
        observed_y: np.ndarray,
    ) -> tuple[np.ndarray, np.ndarray]:
        n = k.shape[0]
        try:
            k_inv = np.linalg.inv(k + FALLBACK_REGULARIZATION * np.eye(n))
        except np.linalg.LinAlgError as e:
            if self.strict:
                raise SurrogateNumericalError(f"Regularized inverse failed: {e}", matrix_size=n) from e
            logger.warning("Regularized inverse failed; candidates are not selectable", n_observations=n)
            nan = np.full(k_star.shape[0], np.nan)
            return nan, nan.copy()

        mean = k_star @ (k_inv @ observed_y)
        variance = k_star_star - np.einsum("ij,jk,ik->i", k_star, k_inv, k_star)
        return mean, variance

    def fit_and_predict(
        self,
        observed_x: Sequence[Sequence[float]],
        observed_y: Sequence[float],
        query_x: Sequence[float],
    ) -> tuple[float, float]:
        """Posterior ``(mean, variance)`` at a single query point."""
        mean, variance = self.posterior(
            np.asarray(observed_x, dtype=float),
            np.asarray(observed_y, dtype=float),
            np.asarray(query_x, dtype=float)[None, :],
        )
        return float(mean[0]), float(variance[0])

    def add_observation(self, normalized_params: np.ndarray, score: float) -> None:
        self.observed_params.append(np.asarray(normalized_params, dtype=float))
        self.observed_scores.append(float(score))

    def __len__(self) -> int:
        return len(self.observed_scores)

    def _fit_set(self) -> tuple[np.ndarray, np.ndarray]:
        scores = np.asarray(self.observed_scores, dtype=float)
        finite = np.isfinite(scores)
        if not finite.any():
            return np.empty((0, 0)), np.empty(0)
        return np.vstack([p for p, keep in zip(self.observed_params, finite, strict=True) if keep]), scores[finite]

    @property
    def best_observed(self) -> float | None:
        """Largest finite raw score, or None before the first success."""
        _, scores = self._fit_set()
        return float(scores.max()) if scores.size else None

    def predict(self, query: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
        """Raw-scale posterior mean and variance for normalized query rows."""
        x, y = self._fit_set()
        mean_score, std_score = standardization(y)
        mean, variance = self.posterior(x, (y - mean_score) / std_score, query)
        return mean * std_score + mean_score, variance * std_score**2


def standardization(scores: np.ndarray) -> tuple[float, float]:
    """Mean and sample standard deviation; a degenerate spread becomes 1.0."""
    if scores.size == 0:
        return 0.0, 1.0
    mean_score = float(np.mean(scores))
    std_score = float(np.std(scores, ddof=1)) if scores.size > 1 else 0.0
    if not np.isfinite(std_score) or std_score < 1e-12:
        std_score = 1.0
    return mean_score, std_score


def _raw_posterior(
    candidate: Sequence[float],
    observed_params: Sequence[Sequence[float]],
    observed_scores: Sequence[float],
    length_scale: float,
    noise: float,
) -> tuple[float, float, float]:
    scores = np.asarray(observed_scores, dtype=float)
    mean_score, std_score = standardization(scores)
    surrogate = GaussianProcessSurrogate(length_scale=length_scale, noise=noise)
    mean, variance = surrogate.fit_and_predict(observed_params, (scores - mean_score) / std_score, candidate)
    return mean * std_score + mean_score, float(np.sqrt(variance * std_score**2)), float(scores.max())


def calculate_expected_improvement(
    candidate: Sequence[float],
    observed_params: Sequence[Sequence[float]],
    observed_scores: Sequence[float],
    length_scale: float = DEFAULT_LENGTH_SCALE,
    noise: float = DEFAULT_NOISE,
) -> float:
    """Fit a surrogate on the given observations and return EI at ``candidate``."""
    if len(observed_scores) == 0:
        return 0.0
    mean, std, best = _raw_posterior(candidate, observed_params, observed_scores, length_scale, noise)
    return expected_improvement(mean, std, best)


def calculate_upper_confidence_bound(
    candidate: Sequence[float],
    observed_params: Sequence[Sequence[float]],
    observed_scores: Sequence[float],
    beta: float = DEFAULT_BETA,
    length_scale: float = DEFAULT_LENGTH_SCALE,
    noise: float = DEFAULT_NOISE,
) -> float:
    """Fit a surrogate on the given observations and return UCB at ``candidate``."""
    if len(observed_scores) == 0:
        return 0.0
    mean, std, _ = _raw_posterior(candidate, observed_params, observed_scores, length_scale, noise)
    return upper_confidence_bound(mean, std, beta)


# =============================================================================
# CANDIDATE SAMPLING
# =============================================================================


class LatinHypercubeSampler:
    """
    Stratified candidate generator backed by ``scipy.stats.qmc.LatinHypercube``.

    Each dimension is cut into ``n_candidates`` equal strata with exactly one
    sample per stratum, and the strata are permuted independently per
    dimension.
    """

    def __init__(self, rng: np.random.Generator):
        self.rng = rng

    def sample_unit(self, n_candidates: int, dimension: int) -> np.ndarray:
        sampler = qmc.LatinHypercube(d=dimension, rng=self.rng)
        return sampler.random(n=n_candidates)

    def sample(
        self,
        n_candidates: int,
        bounds: ParameterBounds | Sequence[tuple[float, float]],
    ) -> np.ndarray:
        """Return an ``(n_candidates, d)`` array of raw parameter vectors."""
        ranges = bounds.ranges() if isinstance(bounds, ParameterBounds) else list(bounds)
        lows = np.array([low for low, _ in ranges], dtype=float)
        highs = np.array([high for _, high in ranges], dtype=float)
        return qmc.scale(self.sample_unit(n_candidates, len(ranges)), lows, highs)


# =============================================================================
# OPTIMIZER
# =============================================================================


class BayesianOptimizer(OptimizationEngine):
    """
    Sequential Bayesian optimization over continuous bounds.

    Runs ``n_initial`` uniform random evaluations, then ``n_iter``
    surrogate-guided evaluations. Each guided step ranks a fresh Latin
    hypercube of candidates by acquisition value and evaluates the first
    maximum. Steps are strictly sequential; only candidate scoring inside a
    step is vectorized.
    """

    algorithm_name = "bayesian"

    def __init__(
        self,
        harness: EvaluationHarness,
        config: HyperOptConfig,
        param_bounds: ParameterBounds,
        bayesian_config: BayesianConfig | None = None,
    ):
        super().__init__(harness, config)
        self.param_bounds = param_bounds
        self.bayesian_config = bayesian_config or BayesianConfig()
        self.phase = BayesianPhase.INIT
        self.surrogate = GaussianProcessSurrogate(
            length_scale=self.bayesian_config.length_scale,
            noise=self.bayesian_config.noise,
        )
        self.rng = np.random.default_rng(config.seed)

        logger.info(
            "BayesianOptimizer initialized",
            optimization_id=self.optimization_id,
            parameter_count=param_bounds.dimension,
            acquisition_function=self.bayesian_config.acquisition_function,
            n_initial=self.bayesian_config.n_initial,
            n_iter=self.bayesian_config.n_iter,
        )

    @time_execution
    async def optimize(self, dataset: Dataset) -> OptimizationResult:
        return await super().optimize(dataset)

    async def _run(self, dataset: Dataset) -> None:
        self.phase = BayesianPhase.INIT
        self.surrogate = GaussianProcessSurrogate(
            length_scale=self.bayesian_config.length_scale,
            noise=self.bayesian_config.noise,
        )
        self.rng = np.random.default_rng(self.config.seed)
        sampler = LatinHypercubeSampler(self.rng)

        self.phase = BayesianPhase.RANDOM_SAMPLING
        logger.info("Starting random sampling phase", n_initial=self.bayesian_config.n_initial)
        for _ in range(self.bayesian_config.n_initial):
            await self._observe(self.param_bounds.sample_uniform(self.rng), dataset)

        self.phase = BayesianPhase.SURROGATE_GUIDED
        logger.info(
            "Starting surrogate-guided phase",
            n_iter=self.bayesian_config.n_iter,
            n_candidates=self.bayesian_config.n_candidates,
        )
        for step in range(self.bayesian_config.n_iter):
            candidates = sampler.sample(self.bayesian_config.n_candidates, self.param_bounds)
            vector = self.select_candidate(candidates)
            logger.debug("Selected candidate", step=step + 1, vector=vector.tolist())
            await self._observe(vector, dataset)

        self.phase = BayesianPhase.DONE

    def acquisition_values(self, candidates: np.ndarray) -> np.ndarray:
        """Acquisition value of every raw candidate row under the current surrogate."""
        mean, variance = self.surrogate.predict(self.param_bounds.normalize(candidates))
        std = np.sqrt(variance)
        if self.bayesian_config.acquisition is AcquisitionKind.UCB:
            return np.asarray(upper_confidence_bound(mean, std, self.bayesian_config.beta))
        return np.asarray(expected_improvement(mean, std, self.surrogate.best_observed))

    def select_candidate(self, candidates: np.ndarray) -> np.ndarray:
        """First candidate with the maximum acquisition value; NaN is never selected."""
        values = self.acquisition_values(candidates)
        values = np.where(np.isnan(values), -np.inf, values)
        return candidates[int(np.argmax(values))]

    async def _observe(self, vector: np.ndarray, dataset: Dataset) -> None:
        trial = await self._evaluate(self.param_bounds.to_params(vector), dataset)
        self.surrogate.add_observation(self.param_bounds.normalize(vector), trial.aggregate_score)
