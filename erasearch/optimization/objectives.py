"""
Objective scorers.

A scorer turns fold predictions plus the validation subset into one scalar
fitness value where larger is better. Scorers are looked up by name through
``get_objective``; the returned callable has the ``score(predictions, val_data)``
shape the evaluation harness expects.

Validation data is either a single DataFrame holding a ``target`` column, or
a mapping of target name -> DataFrame. Predictions mirror that shape: an
array-like for one frame, a mapping/DataFrame keyed by target name otherwise.
"""

from collections.abc import Callable, Mapping, Sequence
from typing import Any

import numpy as np
import pandas as pd

from erasearch.core.exceptions import ConfigurationError
from erasearch.core.logging import get_logger

logger = get_logger(__name__)

Scorer = Callable[[Any, Any], float]

MULTI_OBJECTIVE_WEIGHTS = (0.7, 0.3)


def pearson_correlation(predictions: Any, targets: Any) -> float:
    """Pearson correlation; NaN when either side is constant or too short."""
    x = np.asarray(predictions, dtype=float).ravel()
    y = np.asarray(targets, dtype=float).ravel()
    if x.size != y.size:
        raise ValueError(f"Prediction length {x.size} does not match target length {y.size}")
    if x.size < 2 or np.std(x) == 0 or np.std(y) == 0:
        return float("nan")
    return float(np.corrcoef(x, y)[0, 1])


def sharpe_ratio(values: Sequence[float]) -> float:
    """Mean over sample standard deviation with the usual degenerate cases."""
    arr = np.asarray(values, dtype=float)
    if arr.size <= 1:
        return 0.0
    mean = float(arr.mean())
    std = float(arr.std(ddof=1))
    if std == 0.0:
        if mean > 0.0:
            return float("inf")
        return float("-inf") if mean < 0.0 else 0.0
    ratio = mean / std
    return 0.0 if np.isnan(ratio) else ratio


def _target_correlations(
    predictions: Any,
    val_data: Any,
    targets: Sequence[str],
    target_column: str,
) -> list[float]:
    correlations: list[float] = []

    if isinstance(val_data, pd.DataFrame):
        if targets and isinstance(predictions, (Mapping, pd.DataFrame)):
            for target in targets:
                if target in val_data.columns and target in predictions:
                    correlations.append(pearson_correlation(predictions[target], val_data[target]))
        else:
            correlations.append(pearson_correlation(predictions, val_data[target_column]))
        return correlations

    names = list(targets) if targets else list(val_data.keys())
    for target in names:
        if target in val_data and target in predictions:
            correlations.append(
                pearson_correlation(predictions[target], val_data[target][target_column])
            )
    return correlations


def correlation_objective(targets: Sequence[str] = (), target_column: str = "target") -> Scorer:
    """Mean correlation across targets; ``-inf`` when no target could be scored."""

    def score(predictions: Any, val_data: Any) -> float:
        correlations = _target_correlations(predictions, val_data, targets, target_column)
        return float(np.mean(correlations)) if correlations else float("-inf")

    return score


def sharpe_objective(targets: Sequence[str] = (), target_column: str = "target") -> Scorer:
    """Sharpe ratio of the per-target correlations."""

    def score(predictions: Any, val_data: Any) -> float:
        correlations = _target_correlations(predictions, val_data, targets, target_column)
        return sharpe_ratio(correlations) if correlations else float("-inf")

    return score


def multi_objective(targets: Sequence[str] = (), target_column: str = "target") -> Scorer:
    """Weighted blend of correlation and Sharpe."""
    correlation = correlation_objective(targets, target_column)
    sharpe = sharpe_objective(targets, target_column)
    corr_weight, sharpe_weight = MULTI_OBJECTIVE_WEIGHTS

    def score(predictions: Any, val_data: Any) -> float:
        return corr_weight * correlation(predictions, val_data) + sharpe_weight * sharpe(
            predictions, val_data
        )

    return score


_OBJECTIVES: dict[str, Callable[..., Scorer]] = {
    "correlation": correlation_objective,
    "sharpe": sharpe_objective,
    "multi_objective": multi_objective,
}


def available_objectives() -> list[str]:
    return sorted(_OBJECTIVES)


def get_objective(name: str, targets: Sequence[str] = (), target_column: str = "target") -> Scorer:
    """
    Resolve an objective scorer by name.

    Raises:
        ConfigurationError: If ``name`` is not a registered objective
    """
    factory = _OBJECTIVES.get(name.lower())
    if factory is None:
        raise ConfigurationError(
            f"Unknown objective: {name}",
            config_section="objective",
            field_name="objective",
            field_value=name,
        )
    logger.debug("Resolved objective scorer", objective=name, targets=list(targets))
    return factory(targets, target_column)
