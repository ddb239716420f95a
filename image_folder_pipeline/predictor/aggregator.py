from collections import Counter
from pathlib import Path
from typing import Iterable, List, Sequence, Tuple, Union

from image_folder_pipeline.classifier_trainer.backend import FittedModel
from image_folder_pipeline.lib import (
    BatchSummary,
    ErrorKind,
    PredictionRecord,
    Result,
    setup_logger,
)

logger = setup_logger(__name__)


class PredictionAggregator:
    """Runs single and batch predictions against a fitted model."""

    def __init__(self, model: FittedModel):
        self.model = model

    def try_predict_one(self, image_path: Union[str, Path]) -> Result[PredictionRecord]:
        """Predict one image, returning failures as an error result."""
        path = str(image_path)
        if not Path(path).is_file():
            return Result.err(
                ErrorKind.IMAGE_NOT_FOUND, f"Image file not found: {path}", subject=path
            )

        try:
            label, scores = self.model.predict(path)
        except Exception as e:
            return Result.err(ErrorKind.PREDICTION_FAILED, str(e), subject=path)

        return Result.ok(
            PredictionRecord(
                image_path=path,
                predicted_label=label,
                score_per_class=list(scores),
                class_names=list(self.model.class_names),
            )
        )

    def predict_one(self, image_path: Union[str, Path]) -> PredictionRecord:
        """Predict one image, raising ImageNotFound or PredictionFailed."""
        return self.try_predict_one(image_path).unwrap()

    def predict_batch(self, image_paths: Iterable[Union[str, Path]]) -> List[PredictionRecord]:
        """
        Predict every image in turn.

        Images that are missing or fail to score are logged and left out of
        the result.
        """
        records: List[PredictionRecord] = []
        for image_path in image_paths:
            result = self.try_predict_one(image_path)
            if not result.is_ok:
                logger.warning(f"Failed to predict for image {image_path}: {result.message}")
                continue
            records.append(result.unwrap())
        return records

    @staticmethod
    def summarize(records: Sequence[PredictionRecord]) -> BatchSummary:
        """Average confidence and per-label counts, most frequent label first."""
        if not records:
            return BatchSummary(count=0, average_confidence=0.0, counts_by_label={})

        counts = Counter(record.predicted_label for record in records)
        return BatchSummary(
            count=len(records),
            average_confidence=sum(r.confidence for r in records) / len(records),
            # most_common keeps first-seen order for ties
            counts_by_label=dict(counts.most_common()),
        )

    @staticmethod
    def top_scores(record: PredictionRecord, k: int = 3) -> List[Tuple[str, float]]:
        """The k highest (class, score) pairs of a prediction."""
        names = record.class_names or [str(i) for i in range(len(record.score_per_class))]
        ranked = sorted(zip(names, record.score_per_class), key=lambda p: p[1], reverse=True)
        return ranked[:k]
