"""Tests for confusion matrix reporting."""

import numpy as np

from image_folder_pipeline.classifier_trainer.metrics import compute_metrics
from image_folder_pipeline.classifier_trainer.report import (
    confusion_matrix_frame,
    save_confusion_matrix_plot,
)


def sample_metrics():
    probs = np.array([[0.9, 0.1], [0.4, 0.6], [0.7, 0.3]])
    return compute_metrics(["a", "b", "b"], probs, ["a", "b"])


class TestReport:
    """Tests for the confusion matrix helpers."""

    def test_frame_is_labelled(self):
        frame = confusion_matrix_frame(sample_metrics())

        assert list(frame.index) == ["a", "b"]
        assert list(frame.columns) == ["a", "b"]
        assert frame.loc["b", "a"] == 1

    def test_plot_is_written(self, tmp_path):
        path = save_confusion_matrix_plot(sample_metrics(), tmp_path / "plots" / "cm.png")

        assert path.is_file()
