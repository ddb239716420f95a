from pathlib import Path
from typing import Union

import matplotlib.pyplot as plt
import pandas as pd
import seaborn as sns

from image_folder_pipeline.lib import ModelMetrics, setup_logger

logger = setup_logger(__name__)


def confusion_matrix_frame(metrics: ModelMetrics) -> pd.DataFrame:
    """Confusion matrix with actual classes as rows and predictions as columns."""
    return pd.DataFrame(
        metrics.confusion_matrix, index=metrics.class_names, columns=metrics.class_names
    )


def save_confusion_matrix_plot(
    metrics: ModelMetrics, output_path: Union[str, Path]
) -> Path:
    """Render the confusion matrix as an annotated heatmap PNG."""
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    cm_df = confusion_matrix_frame(metrics)
    plt.figure(figsize=(10, 7))
    sns.heatmap(cm_df, annot=True, fmt="d", cmap="Blues")
    plt.title("Confusion Matrix")
    plt.ylabel("Actual")
    plt.xlabel("Predicted")
    plt.savefig(output_path)
    plt.close()

    logger.info(f"Confusion matrix saved to {output_path}")
    return output_path
