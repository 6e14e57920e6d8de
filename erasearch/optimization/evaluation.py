"""
Cross-validated evaluation of one parameter set.

The harness runs ``n_splits`` time-window folds. For every fold it trains on
the training subset, predicts the validation subset and scores the
predictions. The fitness of the parameter set is the arithmetic mean of the
fold scores.

Failures inside training, prediction or scoring never escape: the whole
evaluation collapses to ``(-inf, [])`` and is logged at WARNING, so a search
can keep going past a broken configuration. Configuration problems detected
while splitting (non-positive fold count, empty dataset) are not evaluation
failures and propagate.
"""

import math
from collections.abc import Callable
from typing import Any

import numpy as np
from pydantic import BaseModel, ConfigDict, Field

from erasearch.core.config import HyperOptConfig
from erasearch.core.exceptions import EvaluationError
from erasearch.core.logging import get_logger
from erasearch.optimization.objectives import Scorer, get_objective
from erasearch.optimization.splitter import Dataset, TimeWindowSplitter

logger = get_logger(__name__)

FAILED_SCORE = float("-inf")

# train_and_predict(params, train, validation) -> predictions
TrainAndPredict = Callable[[dict[str, Any], Any, Any], Any]


class EvaluationOutcome(BaseModel):
    """Result of evaluating one parameter set across all folds."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    mean_score: float = Field(description="Mean fold score, -inf on failure")
    fold_scores: list[float] = Field(default_factory=list, description="Per-fold scores in fold order")
    error: EvaluationError | None = Field(default=None, description="Captured failure, if any")

    @property
    def failed(self) -> bool:
        return self.error is not None or not math.isfinite(self.mean_score)

    def to_tuple(self) -> tuple[float, list[float]]:
        return self.mean_score, list(self.fold_scores)

    @classmethod
    def failure(cls, error: EvaluationError | None = None) -> "EvaluationOutcome":
        return cls(mean_score=FAILED_SCORE, fold_scores=[], error=error)


class EvaluationHarness:
    """
    Scores parameter sets with time-window cross-validation.

    The trainer is supplied by the caller: any callable with the signature
    ``train_and_predict(params, train, validation)`` returning
    predictions for ``validation``. Trainers that need run settings such as
    the model type bind them up front, e.g. with :func:`functools.partial`.
    The scorer defaults to the objective named in the config.
    """

    def __init__(
        self,
        train_and_predict: TrainAndPredict,
        scorer: Scorer | None = None,
        splitter: TimeWindowSplitter | None = None,
    ):
        self.train_and_predict = train_and_predict
        self.scorer = scorer
        self.splitter = splitter

    def _resolve_scorer(self, config: HyperOptConfig) -> Scorer:
        if self.scorer is not None:
            return self.scorer
        return get_objective(config.objective, targets=config.targets)

    def _resolve_splitter(self, config: HyperOptConfig) -> TimeWindowSplitter:
        if self.splitter is None:
            self.splitter = TimeWindowSplitter(era_column=config.era_column)
        return self.splitter

    def evaluate(
        self,
        params: dict[str, Any],
        dataset: Dataset,
        config: HyperOptConfig,
    ) -> EvaluationOutcome:
        """
        Evaluate ``params`` on every fold of ``dataset``.

        Returns:
            EvaluationOutcome whose ``mean_score`` is the mean of the fold
            scores, or ``-inf`` with no fold scores if anything failed

        Raises:
            ConfigurationError: If the dataset cannot be split as configured
        """
        scorer = self._resolve_scorer(config)
        splitter = self._resolve_splitter(config)
        folds = list(splitter.iter_folds(dataset, config.n_splits, config.validation_eras or None))

        fold_scores: list[float] = []
        current_fold: int | None = None
        try:
            for fold_index, train, validation in folds:
                current_fold = fold_index
                predictions = self.train_and_predict(params, train, validation)
                fold_scores.append(float(scorer(predictions, validation)))
        except Exception as e:
            logger.warning(
                "Evaluation failed",
                params=params,
                fold_index=current_fold,
                error=str(e),
                error_type=type(e).__name__,
            )
            return EvaluationOutcome.failure(
                EvaluationError(
                    f"Evaluation failed on fold {current_fold}: {e}",
                    fold_index=current_fold,
                    parameters=params,
                )
            )

        mean_score = float(np.mean(fold_scores))
        if math.isnan(mean_score):
            logger.warning("Evaluation produced a NaN score", params=params, fold_scores=fold_scores)
            return EvaluationOutcome.failure(
                EvaluationError("Evaluation produced a NaN score", parameters=params)
            )

        logger.debug("Evaluated parameters", params=params, mean_score=mean_score, fold_scores=fold_scores)
        return EvaluationOutcome(mean_score=mean_score, fold_scores=fold_scores)


def evaluate_params(
    train_and_predict: TrainAndPredict,
    params: dict[str, Any],
    dataset: Dataset,
    config: HyperOptConfig,
    scorer: Scorer | None = None,
) -> tuple[float, list[float]]:
    """Functional shortcut returning ``(mean_score, fold_scores)``."""
    return EvaluationHarness(train_and_predict, scorer=scorer).evaluate(params, dataset, config).to_tuple()
