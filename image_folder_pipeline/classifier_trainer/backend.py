"""
Interfaces between the training orchestrator and the ML library that fits,
scores and persists the classifier.

The orchestrator only depends on these protocols; `TorchTrainer` in
`trainer.py` is the implementation shipped with the package.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Protocol, Sequence, Tuple, Union

import numpy as np
from pydantic import BaseModel, Field

from image_folder_pipeline.lib import CancellationToken, LabeledImage

from .config import DeviceOptions, TrainingConfig


class ModelSchema(BaseModel):
    """Describes the inputs and outputs of a persisted model."""

    class_names: List[str] = Field(..., description="Output classes, in score order")
    image_width: int
    image_height: int
    feature_extractor: str = Field(..., description="'pixels' or 'dino'")
    feature_dim: int
    architecture: str
    transfer_model_name: Optional[str] = None


@dataclass
class FitRequest:
    """Everything the backend needs for one fit call."""

    image_root: Path
    config: TrainingConfig
    device: DeviceOptions
    # Every class of the full dataset, not only those present in the train split
    class_names: List[str]
    cancellation: CancellationToken = field(default_factory=CancellationToken.none)


class FittedModel(Protocol):
    """A trained classifier able to score single images."""

    @property
    def schema(self) -> ModelSchema: ...

    @property
    def class_names(self) -> List[str]: ...

    def predict(self, image_path: Union[str, Path]) -> Tuple[str, List[float]]:
        """Return the predicted label and the per-class scores."""
        ...


class TrainingBackend(Protocol):
    """Fits, scores and persists classifiers."""

    def fit(
        self,
        train: Sequence[LabeledImage],
        validation: Sequence[LabeledImage],
        request: FitRequest,
    ) -> FittedModel: ...

    def predict_proba(
        self, model: FittedModel, images: Sequence[LabeledImage]
    ) -> np.ndarray:
        """Class probabilities, shape (len(images), len(model.class_names))."""
        ...

    def save(self, model: FittedModel, path: Path) -> None: ...

    def load(self, path: Path) -> Tuple[FittedModel, ModelSchema]: ...
