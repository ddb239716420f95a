from enum import Enum
import json
import os
from typing import Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator

from image_folder_pipeline.lib.logger import setup_logger

logger = setup_logger(__name__)


class LabeledImage(BaseModel):
    """Represents a single image file with the class it belongs to."""

    model_config = ConfigDict(frozen=True)

    path: str = Field(..., description="Absolute path to the image file")
    label: str = Field(..., description="Name of the top-level class directory")

    @field_validator("label")
    @classmethod
    def validate_label(cls, v: str) -> str:
        if not v:
            raise ValueError("label must not be empty")
        return v


class ImageFormat(str, Enum):
    """Supported image file extensions, matched case-insensitively."""

    JPG = ".jpg"
    JPEG = ".jpeg"
    PNG = ".png"
    BMP = ".bmp"
    GIF = ".gif"
    TIFF = ".tiff"
    TIF = ".tif"
    WEBP = ".webp"

    @classmethod
    def extensions(cls) -> Tuple[str, ...]:
        return tuple(fmt.value for fmt in cls)


class DatasetReport(BaseModel):
    """Outcome of validating a dataset directory. Built once per validation call."""

    model_config = ConfigDict(frozen=True)

    is_valid: bool
    errors: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)
    # Insertion order follows the class directory enumeration order
    class_counts: Dict[str, int] = Field(default_factory=dict)
    total_images: int = 0


class DatasetSplit(BaseModel):
    """Represents a dataset split (train, validation, or test)."""

    items: List[LabeledImage]

    def __len__(self) -> int:
        return len(self.items)


class Dataset(BaseModel):
    """A dataset partitioned into train, validation and test splits."""

    name: str
    train: DatasetSplit
    validation: DatasetSplit
    test: DatasetSplit

    # {class_name: index}, indices follow sorted class names
    label_mapping: Dict[str, int]

    @property
    def splits(self) -> Dict[str, DatasetSplit]:
        return {"train": self.train, "validation": self.validation, "test": self.test}

    @classmethod
    def load_from_saved_folder(cls, folder_path: str) -> "Dataset":
        """
        Load a dataset from a folder. The folder has the following structure:
        - name/
            - label_mapping.json
            - train.jsonl
            - validation.jsonl (optional)
            - test.jsonl

        Each jsonl file contains one LabeledImage per line.
        """

        name = os.path.basename(os.path.normpath(folder_path))

        mapping_path = os.path.join(folder_path, "label_mapping.json")
        with open(mapping_path, "r") as f:
            label_mapping = json.load(f)
        logger.info(f"Label mapping loaded from {mapping_path}")

        splits: Dict[str, DatasetSplit] = {}
        for split_name in ["train", "validation", "test"]:
            split_path = os.path.join(folder_path, f"{split_name}.jsonl")
            if not os.path.exists(split_path):
                if split_name == "validation":
                    splits[split_name] = DatasetSplit(items=[])
                    continue
                raise FileNotFoundError(f"Missing split file: {split_path}")

            items: List[LabeledImage] = []
            with open(split_path, "r") as f:
                for line in f:
                    if line.strip():
                        items.append(LabeledImage.model_validate_json(line))
            splits[split_name] = DatasetSplit(items=items)
            logger.info(f"{len(items)} {split_name} items loaded from {split_path}")

        return cls(name=name, label_mapping=label_mapping, **splits)


class ModelMetrics(BaseModel):
    """Evaluation results for a fitted classifier on one held-out split."""

    model_config = ConfigDict(frozen=True)

    micro_accuracy: float = Field(..., ge=0, le=1)
    macro_accuracy: float = Field(..., ge=0, le=1)
    log_loss: float = Field(..., ge=0)
    # Rows are actual classes, columns are predicted classes
    confusion_matrix: List[List[int]]
    class_names: List[str]
    number_of_classes: int
    training_time_seconds: float = 0.0
    training_sample_count: int = 0
    test_sample_count: int = 0
    validation_micro_accuracy: Optional[float] = None
    overfitting_suspected: bool = False


class PredictionRecord(BaseModel):
    """Prediction for a single image."""

    model_config = ConfigDict(frozen=True)

    image_path: str
    predicted_label: str
    # Aligned with class_names
    score_per_class: List[float]
    class_names: List[str] = Field(default_factory=list)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def confidence(self) -> float:
        """Highest class score, as a percentage."""
        if not self.score_per_class:
            return 0.0
        return max(self.score_per_class) * 100


class BatchSummary(BaseModel):
    """Aggregate statistics over a batch of predictions."""

    count: int
    average_confidence: float
    # Ordered by count, descending
    counts_by_label: Dict[str, int]

    def ranked(self) -> List[Tuple[str, int]]:
        return list(self.counts_by_label.items())
