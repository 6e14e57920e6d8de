"""
Unit tests for time-window cross-validation splits.
"""

import pandas as pd
import pytest

from erasearch.core.exceptions import ConfigurationError
from erasearch.optimization.splitter import TimeWindowSplitter


class TestEraSplits:
    """Test era-keyed splitting."""

    @pytest.fixture
    def splitter(self):
        return TimeWindowSplitter()

    def test_first_fold_validates_first_block(self, splitter, era_frame):
        train, validation = splitter.split(era_frame, 1, 3)

        # ten eras, three folds -> blocks of three eras
        assert sorted(validation["era"].unique()) == [1, 2, 3]
        assert len(validation) == 12
        assert len(train) == len(era_frame) - 12

    def test_inner_fold_trains_on_both_sides(self, splitter, era_frame):
        train, validation = splitter.split(era_frame, 2, 3)

        assert sorted(validation["era"].unique()) == [4, 5, 6]
        assert sorted(train["era"].unique()) == [1, 2, 3, 7, 8, 9, 10]

    def test_remainder_eras_always_train(self, splitter, era_frame):
        validated = set()
        for fold_index in range(1, 4):
            train, validation = splitter.split(era_frame, fold_index, 3)
            validated.update(validation["era"].unique())
            assert 10 in set(train["era"].unique())

        assert 10 not in validated

    def test_train_and_validation_partition_the_frame(self, splitter, era_frame):
        train, validation = splitter.split(era_frame, 3, 3)

        assert set(train.index).isdisjoint(validation.index)
        assert len(train) + len(validation) == len(era_frame)

    def test_unsorted_eras_are_sorted_before_blocking(self, splitter, era_frame):
        shuffled = era_frame.sample(frac=1.0, random_state=1)
        _, validation = splitter.split(shuffled, 1, 5)

        assert sorted(validation["era"].unique()) == [1, 2]

    def test_fixed_window_overrides_every_fold(self, splitter, era_frame):
        for fold_index in range(1, 4):
            _, validation = splitter.split(era_frame, fold_index, 3, fixed_validation_window=[9, 10])
            assert sorted(validation["era"].unique()) == [9, 10]

    def test_empty_fixed_window_is_ignored(self, splitter, era_frame):
        _, validation = splitter.split(era_frame, 1, 3, fixed_validation_window=[])

        assert sorted(validation["era"].unique()) == [1, 2, 3]

    def test_custom_era_column(self, era_frame):
        frame = era_frame.rename(columns={"era": "period"})
        splitter = TimeWindowSplitter(era_column="period")

        _, validation = splitter.split(frame, 1, 2)

        assert sorted(validation["period"].unique()) == [1, 2, 3, 4, 5]


class TestIndexFallback:
    """Test splitting of frames without an era column."""

    def test_row_blocks(self):
        frame = pd.DataFrame({"feature": range(10), "target": range(10)})
        splitter = TimeWindowSplitter()

        train, validation = splitter.split(frame, 2, 3)

        assert list(validation["feature"]) == [3, 4, 5]
        assert list(train["feature"]) == [0, 1, 2, 6, 7, 8, 9]


class TestMultiTargetSplits:
    """Test splitting of target name -> frame mappings."""

    def test_each_frame_is_split(self, era_frame):
        splitter = TimeWindowSplitter()
        dataset = {"alpha": era_frame, "beta": era_frame.copy()}

        train, validation = splitter.split(dataset, 1, 2)

        assert set(train) == {"alpha", "beta"}
        assert set(validation) == {"alpha", "beta"}
        for name in dataset:
            assert sorted(validation[name]["era"].unique()) == [1, 2, 3, 4, 5]

    def test_empty_mapping_raises(self):
        with pytest.raises(ConfigurationError):
            TimeWindowSplitter().split({}, 1, 3)


class TestSplitErrors:
    """Test configuration failures."""

    @pytest.mark.parametrize("total_folds", [0, -2])
    def test_non_positive_fold_count(self, era_frame, total_folds):
        with pytest.raises(ConfigurationError):
            TimeWindowSplitter().split(era_frame, 1, total_folds)

    @pytest.mark.parametrize("fold_index", [0, 4])
    def test_fold_index_out_of_range(self, era_frame, fold_index):
        with pytest.raises(ConfigurationError):
            TimeWindowSplitter().split(era_frame, fold_index, 3)

    def test_empty_frame(self):
        with pytest.raises(ConfigurationError):
            TimeWindowSplitter().split(pd.DataFrame({"era": [], "target": []}), 1, 3)

    def test_iter_folds_yields_every_fold(self, era_frame):
        folds = list(TimeWindowSplitter().iter_folds(era_frame, 3))

        assert [fold_index for fold_index, _, _ in folds] == [1, 2, 3]

    def test_iter_folds_rejects_zero_folds(self, era_frame):
        with pytest.raises(ConfigurationError):
            list(TimeWindowSplitter().iter_folds(era_frame, 0))
