"""
Time-window cross-validation splits.

Folds are contiguous blocks of the sorted distinct eras: with ``n`` eras and
``k`` folds every block holds ``n // k`` eras and fold ``i`` (1-based)
validates on block ``i``. Any remainder eras are never validated and always
train. The training subset is the complement of the validation block, so for
inner folds it contains eras on both sides of the window.

Frames without an era column fall back to contiguous row-position blocks
with the same arithmetic.
"""

from collections.abc import Iterable, Mapping
from typing import Any

import numpy as np
import pandas as pd

from erasearch.core.exceptions import ConfigurationError
from erasearch.core.logging import get_logger

logger = get_logger(__name__)

Dataset = pd.DataFrame | Mapping[str, pd.DataFrame]


def _block_bounds(n_items: int, fold_index: int, total_folds: int) -> tuple[int, int]:
    """Return the 0-based half-open ``[start, end)`` slice of the validation block."""
    block_size = n_items // total_folds
    start = (fold_index - 1) * block_size
    end = min(fold_index * block_size, n_items)
    return start, end


class TimeWindowSplitter:
    """Splits a dataset into train/validation subsets for one fold."""

    def __init__(self, era_column: str = "era"):
        self.era_column = era_column
        self._fixed_window_flagged = False

    def split(
        self,
        dataset: Dataset,
        fold_index: int,
        total_folds: int,
        fixed_validation_window: Iterable[Any] | None = None,
    ) -> tuple[Dataset, Dataset]:
        """
        Split ``dataset`` for fold ``fold_index`` of ``total_folds``.

        Args:
            dataset: A DataFrame, or a mapping of target name -> DataFrame in
                which case every frame is split independently
            fold_index: 1-based fold number
            total_folds: Number of folds
            fixed_validation_window: Explicit era set. When non-empty it is
                used as the validation set for every fold

        Returns:
            ``(train, validation)`` with the same container shape as ``dataset``

        Raises:
            ConfigurationError: If ``total_folds <= 0``, ``fold_index`` is out of
                range or the dataset is empty
        """
        if total_folds <= 0:
            raise ConfigurationError(
                f"total_folds must be positive, got {total_folds}",
                field_name="total_folds",
                field_value=total_folds,
            )
        if not 1 <= fold_index <= total_folds:
            raise ConfigurationError(
                f"fold_index must be in [1, {total_folds}], got {fold_index}",
                field_name="fold_index",
                field_value=fold_index,
            )

        window = list(fixed_validation_window) if fixed_validation_window is not None else []
        if window and total_folds > 1 and not self._fixed_window_flagged:
            # every fold validates on the same eras when a fixed window is set
            logger.warning(
                "Fixed validation window overrides every fold's validation block",
                total_folds=total_folds,
                window_size=len(window),
            )
            self._fixed_window_flagged = True

        if isinstance(dataset, pd.DataFrame):
            return self._split_frame(dataset, fold_index, total_folds, window)

        if not dataset:
            raise ConfigurationError("Dataset is empty", field_name="dataset")

        train: dict[str, pd.DataFrame] = {}
        validation: dict[str, pd.DataFrame] = {}
        for name, frame in dataset.items():
            train[name], validation[name] = self._split_frame(frame, fold_index, total_folds, window)
        return train, validation

    def _split_frame(
        self,
        frame: pd.DataFrame,
        fold_index: int,
        total_folds: int,
        window: list[Any],
    ) -> tuple[pd.DataFrame, pd.DataFrame]:
        if frame.empty:
            raise ConfigurationError("Dataset is empty", field_name="dataset")

        if self.era_column in frame.columns:
            eras = np.sort(frame[self.era_column].unique())
            if window:
                validation_eras = window
            else:
                start, end = _block_bounds(len(eras), fold_index, total_folds)
                validation_eras = list(eras[start:end])
                if not validation_eras:
                    logger.warning(
                        "Validation block is empty; fewer eras than folds",
                        n_eras=len(eras),
                        total_folds=total_folds,
                    )
            mask = frame[self.era_column].isin(validation_eras).to_numpy()
        else:
            start, end = _block_bounds(len(frame), fold_index, total_folds)
            positions = np.arange(len(frame))
            mask = (positions >= start) & (positions < end)

        return frame[~mask], frame[mask]

    def iter_folds(
        self,
        dataset: Dataset,
        total_folds: int,
        fixed_validation_window: Iterable[Any] | None = None,
    ):
        """Yield ``(fold_index, train, validation)`` for every fold in order."""
        if total_folds <= 0:
            raise ConfigurationError(
                f"total_folds must be positive, got {total_folds}",
                field_name="total_folds",
                field_value=total_folds,
            )
        window = list(fixed_validation_window) if fixed_validation_window is not None else None
        for fold_index in range(1, total_folds + 1):
            train, validation = self.split(dataset, fold_index, total_folds, window)
            yield fold_index, train, validation
