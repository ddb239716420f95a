from typing import List, Sequence

import numpy as np
from sklearn.metrics import (
    accuracy_score,
    balanced_accuracy_score,
    confusion_matrix,
    log_loss,
)

from image_folder_pipeline.lib import ModelMetrics, TrainingFailed

# Lower bound for row sums when normalising probabilities
LOG_LOSS_EPSILON = 1e-15


def compute_metrics(
    actual_labels: Sequence[str],
    probabilities: np.ndarray,
    class_names: List[str],
) -> ModelMetrics:
    """
    Multiclass metrics for one evaluated split.

    Args:
        actual_labels: True label of each evaluated image
        probabilities: Class probabilities, shape (n_images, n_classes)
        class_names: Class names in the column order of `probabilities`

    Returns:
        ModelMetrics with micro/macro accuracy, log loss and confusion matrix.
        Macro accuracy is the mean per-class recall over the classes present
        in `actual_labels`.
    """
    num_classes = len(class_names)
    if len(actual_labels) == 0:
        return ModelMetrics(
            micro_accuracy=0.0,
            macro_accuracy=0.0,
            log_loss=0.0,
            confusion_matrix=[[0] * num_classes for _ in range(num_classes)],
            class_names=list(class_names),
            number_of_classes=num_classes,
        )

    class_index = {name: idx for idx, name in enumerate(class_names)}
    unknown = sorted({label for label in actual_labels if label not in class_index})
    if unknown:
        raise ValueError(f"Labels not known to the model: {unknown}")

    probs = np.asarray(probabilities, dtype=np.float64)
    if probs.shape != (len(actual_labels), num_classes):
        raise ValueError(
            f"Expected probabilities of shape {(len(actual_labels), num_classes)}, "
            f"got {probs.shape}"
        )
    if not np.all(np.isfinite(probs)):
        raise TrainingFailed(
            "The model produced non-finite class probabilities; training likely diverged"
        )

    y_true = np.array([class_index[label] for label in actual_labels])
    y_pred = probs.argmax(axis=1)

    cm = confusion_matrix(y_true, y_pred, labels=list(range(num_classes)))

    if num_classes > 1:
        # log_loss expects every row to sum to 1
        probs = probs / np.clip(probs.sum(axis=1, keepdims=True), LOG_LOSS_EPSILON, None)
        loss = float(log_loss(y_true, probs, labels=list(range(num_classes))))
    else:
        loss = 0.0

    return ModelMetrics(
        micro_accuracy=float(accuracy_score(y_true, y_pred)),
        macro_accuracy=float(balanced_accuracy_score(y_true, y_pred)),
        log_loss=max(loss, 0.0),
        confusion_matrix=cm.astype(int).tolist(),
        class_names=list(class_names),
        number_of_classes=num_classes,
    )
