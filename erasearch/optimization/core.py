"""
Core optimization types and base classes.

This module provides the foundational types shared by every search strategy:
trial records, the append-only trial ledger with incremental best tracking,
the final optimization result and the abstract optimization engine.

Key Features:
- Immutable trial records with per-fold scores
- Append-only ledger with O(1) best-so-far maintenance
- First-occurrence tie-breaking (a later trial must be strictly better)
- Status tracking and progress logging
- Correlation-id binding for every log line of a run
"""

import asyncio
import math
import time
import uuid
from abc import ABC, abstractmethod
from collections.abc import Iterator, Mapping
from datetime import datetime, timezone
from enum import Enum
from types import MappingProxyType
from typing import Any

import pandas as pd
from pydantic import BaseModel, ConfigDict, Field, field_validator

from erasearch.core.config import HyperOptConfig
from erasearch.core.exceptions import ConfigurationError, ErasearchError, OptimizationError
from erasearch.core.logging import correlation_context, get_logger
from erasearch.optimization.evaluation import EvaluationHarness, EvaluationOutcome
from erasearch.optimization.splitter import Dataset

logger = get_logger(__name__)

PROGRESS_LOG_INTERVAL = 10


class OptimizationStatus(Enum):
    """Status enumeration for optimization processes."""

    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class OptimizerKind(Enum):
    """Search strategies available through the factory."""

    GRID = "grid"
    RANDOM = "random"
    BAYESIAN = "bayesian"


def _read_only(params: Mapping[str, Any]) -> Mapping[str, Any]:
    return MappingProxyType(dict(params))


class Trial(BaseModel):
    """
    One completed evaluation of a parameter set.

    Trials are immutable: ``params`` is a read-only mapping and
    ``fold_scores`` a tuple, both copied from the inputs.
    """

    model_config = ConfigDict(frozen=True)

    params: Mapping[str, Any] = Field(description="Evaluated parameter values")
    fold_scores: tuple[float, ...] = Field(default=(), description="Per-fold scores")
    aggregate_score: float = Field(description="Mean fold score, -inf on failure")
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @field_validator("params", mode="after")
    @classmethod
    def freeze_params(cls, v: Mapping[str, Any]) -> Mapping[str, Any]:
        return _read_only(v)

    @property
    def failed(self) -> bool:
        return self.aggregate_score == float("-inf")

    def to_dict(self) -> dict[str, Any]:
        return {
            "params": dict(self.params),
            "fold_scores": list(self.fold_scores),
            "aggregate_score": self.aggregate_score,
            "timestamp": self.timestamp.isoformat(),
        }


class TrialLedger:
    """
    Append-only record of trials with the best trial tracked incrementally.

    A trial replaces the current best only when its score is strictly greater,
    so ties keep the earliest trial and a trial scored ``-inf`` can never
    become best. Every trial in a ledger must use the same parameter names as
    the first one. A sealed ledger accepts no further trials.
    """

    def __init__(self) -> None:
        self._trials: list[Trial] = []
        self._best_index: int | None = None
        self._best_history: list[float] = []
        self._param_names: frozenset[str] | None = None
        self._sealed = False

    @property
    def sealed(self) -> bool:
        return self._sealed

    def seal(self) -> None:
        self._sealed = True

    def append(self, trial: Trial) -> bool:
        """
        Record ``trial``. Returns True if it became the new best.

        Raises:
            ConfigurationError: If the trial's parameter names differ from the
                ledger's
            OptimizationError: If the ledger has been sealed
        """
        if self._sealed:
            raise OptimizationError(
                "Cannot append to a sealed trial ledger",
                optimization_stage="finalized",
                parameters=dict(trial.params),
            )
        names = frozenset(trial.params)
        if self._param_names is None:
            self._param_names = names
        elif names != self._param_names:
            raise ConfigurationError(
                "Trial parameter names do not match the ledger",
                field_name="params",
                field_value=sorted(names),
                validation_rule=f"expected {sorted(self._param_names)}",
            )

        self._trials.append(trial)
        score = trial.aggregate_score
        is_best = not math.isnan(score) and score > self.best_score
        if is_best:
            self._best_index = len(self._trials) - 1
        self._best_history.append(self.best_score)
        return is_best

    def record(self, params: dict[str, Any], outcome: EvaluationOutcome) -> tuple[Trial, bool]:
        trial = Trial(
            params=params,
            fold_scores=tuple(outcome.fold_scores),
            aggregate_score=outcome.mean_score,
        )
        return trial, self.append(trial)

    @property
    def trials(self) -> list[Trial]:
        return list(self._trials)

    @property
    def best_trial(self) -> Trial | None:
        if self._best_index is None:
            return None
        return self._trials[self._best_index]

    @property
    def best_score(self) -> float:
        best = self.best_trial
        return best.aggregate_score if best is not None else float("-inf")

    @property
    def best_score_history(self) -> list[float]:
        """Best score after each append; non-decreasing."""
        return list(self._best_history)

    @property
    def param_names(self) -> list[str]:
        return sorted(self._param_names) if self._param_names else []

    def __len__(self) -> int:
        return len(self._trials)

    def __iter__(self) -> Iterator[Trial]:
        return iter(list(self._trials))

    def to_frame(self) -> pd.DataFrame:
        """
        Tabulate the ledger: one row per trial with ``score``, ``cv_mean``,
        ``cv_std`` and one ``param_<name>`` column per parameter.
        """
        rows = []
        for trial in self._trials:
            row: dict[str, Any] = {
                "score": trial.aggregate_score,
                "cv_mean": float(pd.Series(trial.fold_scores, dtype=float).mean())
                if trial.fold_scores
                else float("nan"),
                "cv_std": float(pd.Series(trial.fold_scores, dtype=float).std())
                if len(trial.fold_scores) > 1
                else float("nan"),
                "timestamp": trial.timestamp,
            }
            for name, value in trial.params.items():
                row[f"param_{name}"] = value
            rows.append(row)
        return pd.DataFrame(rows)


class OptimizationResult(BaseModel):
    """Outcome of a finished search. Read-only once built."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    optimization_id: str = Field(description="Run identifier, also the log correlation id")
    algorithm: str = Field(description="Search strategy name")
    best_params: Mapping[str, Any] = Field(
        default_factory=lambda: MappingProxyType({}), description="Empty if every trial failed"
    )
    best_score: float = Field(default=float("-inf"))
    best_fold_scores: tuple[float, ...] = Field(default=())
    ledger: TrialLedger = Field(description="Every trial in completion order, sealed")
    wall_clock_seconds: float = Field(ge=0.0)

    @field_validator("best_params", mode="after")
    @classmethod
    def freeze_best_params(cls, v: Mapping[str, Any]) -> Mapping[str, Any]:
        return _read_only(v)

    @field_validator("ledger", mode="after")
    @classmethod
    def seal_ledger(cls, v: TrialLedger) -> TrialLedger:
        v.seal()
        return v

    @property
    def n_trials(self) -> int:
        return len(self.ledger)

    def get_best_params(self) -> dict[str, Any]:
        return dict(self.best_params)

    def to_dict(self) -> dict[str, Any]:
        return {
            "optimization_id": self.optimization_id,
            "algorithm": self.algorithm,
            "best_params": dict(self.best_params),
            "best_score": self.best_score,
            "best_fold_scores": list(self.best_fold_scores),
            "n_trials": self.n_trials,
            "wall_clock_seconds": self.wall_clock_seconds,
            "history": [trial.to_dict() for trial in self.ledger],
        }


class OptimizationEngine(ABC):
    """
    Abstract base class for search strategies.

    Subclasses implement :meth:`_run`, feeding trials into ``self.ledger``
    through :meth:`_evaluate` or :meth:`_evaluate_many`. :meth:`optimize`
    wraps the run with status tracking, timing and correlation-id binding.
    """

    algorithm_name = "base"

    def __init__(self, harness: EvaluationHarness, config: HyperOptConfig):
        self.harness = harness
        self.config = config
        self.optimization_id = str(uuid.uuid4())
        self.status = OptimizationStatus.PENDING
        self.ledger = TrialLedger()
        self.result: OptimizationResult | None = None

        logger.info(
            "Optimization engine initialized",
            optimization_id=self.optimization_id,
            engine_type=self.__class__.__name__,
            model_type=config.model_type,
            objective=config.objective,
            n_splits=config.n_splits,
        )

    @abstractmethod
    async def _run(self, dataset: Dataset) -> None:
        """Evaluate candidates until the strategy's budget is spent."""

    async def optimize(self, dataset: Dataset) -> OptimizationResult:
        """
        Run the search on ``dataset``.

        Raises:
            ErasearchError: Configuration problems propagate unchanged
            OptimizationError: Any other unexpected failure
        """
        self.ledger = TrialLedger()
        start = time.perf_counter()
        with correlation_context.correlation_context(self.optimization_id):
            self.status = OptimizationStatus.RUNNING
            logger.info("Starting optimization", algorithm=self.algorithm_name)
            try:
                await self._run(dataset)
            except ErasearchError:
                self.status = OptimizationStatus.FAILED
                raise
            except Exception as e:
                self.status = OptimizationStatus.FAILED
                logger.error("Optimization failed unexpectedly", error=str(e))
                raise OptimizationError(
                    f"{self.algorithm_name} optimization failed: {e!s}",
                    optimization_algorithm=self.algorithm_name,
                ) from e

            self.result = self._finalize(time.perf_counter() - start)
            self.status = OptimizationStatus.COMPLETED
            logger.info(
                "Optimization completed",
                algorithm=self.algorithm_name,
                best_score=self.result.best_score,
                best_params=self.result.get_best_params(),
                n_trials=self.result.n_trials,
                wall_clock_seconds=round(self.result.wall_clock_seconds, 3),
            )
        return self.result

    def _finalize(self, elapsed: float) -> OptimizationResult:
        best = self.ledger.best_trial
        if best is None:
            logger.warning("No successful trials; best parameters are empty", n_trials=len(self.ledger))
        return OptimizationResult(
            optimization_id=self.optimization_id,
            algorithm=self.algorithm_name,
            best_params=best.params if best else {},
            best_score=best.aggregate_score if best else float("-inf"),
            best_fold_scores=best.fold_scores if best else (),
            ledger=self.ledger,
            wall_clock_seconds=elapsed,
        )

    async def _evaluate_outcome(self, params: dict[str, Any], dataset: Dataset) -> EvaluationOutcome:
        return await asyncio.to_thread(self.harness.evaluate, params, dataset, self.config)

    async def _evaluate(self, params: dict[str, Any], dataset: Dataset) -> Trial:
        """Evaluate one parameter set and record it."""
        outcome = await self._evaluate_outcome(params, dataset)
        trial, _ = self._record(params, outcome)
        return trial

    async def _evaluate_many(self, candidates: list[dict[str, Any]], dataset: Dataset) -> list[Trial]:
        """
        Evaluate independent candidates and record them in submission order.

        With ``config.parallel`` the evaluations run concurrently on worker
        threads, at most ``config.max_workers`` at a time. Recording happens
        only after every evaluation finished, in the order the candidates
        were given, so results do not depend on scheduling.
        """
        if not self.config.parallel or len(candidates) <= 1:
            return [await self._evaluate(params, dataset) for params in candidates]

        semaphore = asyncio.Semaphore(self.config.max_workers or len(candidates))

        async def bounded(params: dict[str, Any]) -> EvaluationOutcome:
            async with semaphore:
                return await self._evaluate_outcome(params, dataset)

        outcomes = await asyncio.gather(*(bounded(params) for params in candidates))
        return [self._record(params, outcome)[0] for params, outcome in zip(candidates, outcomes, strict=True)]

    def _record(self, params: dict[str, Any], outcome: EvaluationOutcome) -> tuple[Trial, bool]:
        trial, is_best = self.ledger.record(params, outcome)
        n = len(self.ledger)
        if is_best:
            logger.info("New best trial", trial=n, score=trial.aggregate_score, params=dict(trial.params))
        if self.config.verbose and n % PROGRESS_LOG_INTERVAL == 0:
            logger.info("Optimization progress", trials=n, best_score=self.ledger.best_score)
        return trial, is_best
