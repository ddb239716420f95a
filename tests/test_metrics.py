"""Tests for evaluation metrics."""

import numpy as np
import pytest

from image_folder_pipeline.classifier_trainer.metrics import compute_metrics
from image_folder_pipeline.lib import TrainingFailed


class TestComputeMetrics:
    """Tests for compute_metrics."""

    def test_perfect_predictions(self):
        probs = np.array([[0.9, 0.1], [0.2, 0.8], [0.7, 0.3]])

        metrics = compute_metrics(["a", "b", "a"], probs, ["a", "b"])

        assert metrics.micro_accuracy == 1.0
        assert metrics.macro_accuracy == 1.0
        assert metrics.confusion_matrix == [[2, 0], [0, 1]]
        assert metrics.number_of_classes == 2
        assert metrics.log_loss == pytest.approx(-np.mean(np.log([0.9, 0.8, 0.7])))

    def test_micro_and_macro_accuracy_differ_on_imbalanced_classes(self):
        # Three "a" all correct, one "b" wrong
        probs = np.array([[0.9, 0.1], [0.9, 0.1], [0.9, 0.1], [0.6, 0.4]])

        metrics = compute_metrics(["a", "a", "a", "b"], probs, ["a", "b"])

        assert metrics.micro_accuracy == pytest.approx(0.75)
        assert metrics.macro_accuracy == pytest.approx(0.5)
        assert metrics.confusion_matrix == [[3, 0], [1, 0]]

    def test_absent_classes_do_not_count_towards_macro_accuracy(self):
        probs = np.array([[0.8, 0.1, 0.1], [0.1, 0.1, 0.8]])

        metrics = compute_metrics(["a", "a"], probs, ["a", "b", "c"])

        assert metrics.macro_accuracy == pytest.approx(0.5)
        assert metrics.confusion_matrix[0] == [1, 0, 1]

    def test_confident_miss_has_finite_loss(self):
        probs = np.array([[1.0, 0.0]])

        metrics = compute_metrics(["b"], probs, ["a", "b"])

        assert np.isfinite(metrics.log_loss)
        assert metrics.log_loss > 30

    def test_empty_split(self):
        metrics = compute_metrics([], np.zeros((0, 2)), ["a", "b"])

        assert metrics.micro_accuracy == 0.0
        assert metrics.confusion_matrix == [[0, 0], [0, 0]]

    def test_unknown_label_raises(self):
        with pytest.raises(ValueError):
            compute_metrics(["z"], np.array([[0.5, 0.5]]), ["a", "b"])

    def test_shape_mismatch_raises(self):
        with pytest.raises(ValueError):
            compute_metrics(["a", "b"], np.array([[0.5, 0.5]]), ["a", "b"])

    def test_single_class(self):
        metrics = compute_metrics(["a", "a"], np.array([[1.0], [1.0]]), ["a"])

        assert metrics.micro_accuracy == 1.0
        assert metrics.macro_accuracy == 1.0
        assert metrics.log_loss == 0.0
        assert metrics.confusion_matrix == [[2]]

    def test_unnormalised_rows_are_accepted(self):
        probs = np.array([[0.9, 0.1000001], [0.2, 0.8]], dtype=np.float32)

        metrics = compute_metrics(["a", "b"], probs, ["a", "b"])

        assert metrics.micro_accuracy == 1.0
        assert np.isfinite(metrics.log_loss)

    def test_non_finite_probabilities_raise_training_failed(self):
        probs = np.array([[np.nan, np.nan], [0.5, 0.5]])

        with pytest.raises(TrainingFailed):
            compute_metrics(["a", "b"], probs, ["a", "b"])
