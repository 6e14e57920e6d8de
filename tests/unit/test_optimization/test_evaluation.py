"""
Unit tests for the cross-validated evaluation harness.
"""

import functools
import math

import pandas as pd
import pytest

from erasearch.core.exceptions import ConfigurationError, EvaluationError
from erasearch.optimization.evaluation import EvaluationHarness, EvaluationOutcome, evaluate_params


class TestEvaluationHarness:
    """Test fold iteration and aggregation."""

    def test_oracle_predictions_score_perfect_correlation(self, oracle_trainer, era_frame, hyperopt_config):
        harness = EvaluationHarness(oracle_trainer)

        outcome = harness.evaluate({"alpha": 1.0}, era_frame, hyperopt_config)

        assert not outcome.failed
        assert len(outcome.fold_scores) == 3
        assert outcome.mean_score == pytest.approx(1.0)

    def test_mean_of_fold_scores(self, params_trainer, era_frame, hyperopt_config):
        scores = iter([0.1, 0.2, 0.6])
        harness = EvaluationHarness(params_trainer, scorer=lambda predictions, validation: next(scores))

        mean_score, fold_scores = harness.evaluate({"alpha": 1.0}, era_frame, hyperopt_config).to_tuple()

        assert fold_scores == [0.1, 0.2, 0.6]
        assert mean_score == pytest.approx(0.3)

    def test_trainer_called_once_per_fold(self, era_frame, hyperopt_config):
        calls = []

        def trainer(params, train, validation):
            calls.append((len(train), len(validation)))
            return validation["target"].to_numpy()

        EvaluationHarness(trainer).evaluate({"alpha": 1.0}, era_frame, hyperopt_config)

        assert calls == [(28, 12), (28, 12), (28, 12)]

    def test_fixed_validation_window_from_config(self, era_frame, hyperopt_config):
        seen = []

        def trainer(params, train, validation):
            seen.append(sorted(validation["era"].unique()))
            return validation["target"].to_numpy()

        config = hyperopt_config.model_copy(update={"validation_eras": (9, 10)})
        EvaluationHarness(trainer).evaluate({"alpha": 1.0}, era_frame, config)

        assert seen == [[9, 10], [9, 10], [9, 10]]

    def test_three_argument_trainer_scores_every_fold(self, era_frame, hyperopt_config):
        def train_and_predict(params, train_data, val_data):
            return val_data["target"].to_numpy() * params["alpha"]

        outcome = EvaluationHarness(train_and_predict).evaluate({"alpha": 2.0}, era_frame, hyperopt_config)

        assert not outcome.failed
        assert all(math.isfinite(score) for score in outcome.fold_scores)
        assert outcome.mean_score == pytest.approx(1.0)

    def test_model_type_bound_with_partial(self, era_frame, hyperopt_config):
        seen = []

        def train_and_predict(model_type, params, train_data, val_data):
            seen.append(model_type)
            return val_data["target"].to_numpy()

        trainer = functools.partial(train_and_predict, hyperopt_config.model_type)
        outcome = EvaluationHarness(trainer).evaluate({"alpha": 1.0}, era_frame, hyperopt_config)

        assert outcome.mean_score == pytest.approx(1.0)
        assert seen == ["stub", "stub", "stub"]


class TestFailureContainment:
    """Test that trainer and scorer failures never escape."""

    def test_failing_trainer_yields_sentinel(self, failing_trainer, era_frame, hyperopt_config):
        outcome = EvaluationHarness(failing_trainer).evaluate({"alpha": 1.0}, era_frame, hyperopt_config)

        assert outcome.failed
        assert outcome.mean_score == float("-inf")
        assert outcome.fold_scores == []
        assert isinstance(outcome.error, EvaluationError)
        assert outcome.error.context["fold_index"] == 1

    def test_failure_in_later_fold_discards_earlier_scores(self, params_trainer, era_frame, hyperopt_config):
        scores = iter([0.5, 0.5])

        def scorer(predictions, validation):
            return next(scores)

        outcome = EvaluationHarness(params_trainer, scorer=scorer).evaluate(
            {"alpha": 1.0}, era_frame, hyperopt_config
        )

        # third fold raises StopIteration from the exhausted iterator
        assert outcome.to_tuple() == (float("-inf"), [])
        assert outcome.error.context["fold_index"] == 3

    def test_nan_score_is_a_failure(self, params_trainer, era_frame, hyperopt_config):
        harness = EvaluationHarness(params_trainer, scorer=lambda predictions, validation: float("nan"))

        outcome = harness.evaluate({"alpha": 1.0}, era_frame, hyperopt_config)

        assert outcome.failed
        assert outcome.mean_score == float("-inf")

    def test_split_errors_propagate(self, oracle_trainer, hyperopt_config):
        with pytest.raises(ConfigurationError):
            EvaluationHarness(oracle_trainer).evaluate(
                {"alpha": 1.0}, pd.DataFrame({"era": [], "target": []}), hyperopt_config
            )

    def test_unknown_objective_propagates(self, oracle_trainer, era_frame, hyperopt_config):
        config = hyperopt_config.model_copy(update={"objective": "accuracy"})

        with pytest.raises(ConfigurationError):
            EvaluationHarness(oracle_trainer).evaluate({"alpha": 1.0}, era_frame, config)


class TestEvaluationOutcome:
    def test_failure_constructor(self):
        outcome = EvaluationOutcome.failure()

        assert outcome.failed
        assert math.isinf(outcome.mean_score)

    def test_functional_shortcut(self, oracle_trainer, era_frame, hyperopt_config):
        mean_score, fold_scores = evaluate_params(oracle_trainer, {"alpha": 1.0}, era_frame, hyperopt_config)

        assert mean_score == pytest.approx(1.0)
        assert len(fold_scores) == 3
