from enum import Enum
from typing import Any, Dict, Mapping, Optional, Union

from pydantic import BaseModel, Field, ValidationError

from image_folder_pipeline.dataset_builder.config import DEFAULT_SEED, SplitFractions
from image_folder_pipeline.lib import ConfigurationError


class Architecture(str, Enum):
    """Classifier head fitted on top of the image features."""

    LINEAR = "linear"
    MLP = "mlp"


DEFAULT_IMAGE_SIZE = 224
DEFAULT_LEARNING_RATE = 0.001
DEFAULT_BATCH_SIZE = 32
DEFAULT_NUM_EPOCHS = 100
DEFAULT_L1_REGULARIZATION = 0.0
DEFAULT_L2_REGULARIZATION = 0.0001
DEFAULT_OVERFITTING_THRESHOLD = 0.98


class ImageSize(BaseModel):
    """Size images are resized to before feature extraction."""

    width: int = Field(DEFAULT_IMAGE_SIZE, description="Width in pixels", gt=0)
    height: int = Field(DEFAULT_IMAGE_SIZE, description="Height in pixels", gt=0)


class Hyperparameters(BaseModel):
    """Hyperparameters for the training process."""

    learning_rate: float = Field(
        DEFAULT_LEARNING_RATE, description="Learning rate for the optimizer", gt=0
    )
    batch_size: int = Field(
        DEFAULT_BATCH_SIZE, description="Batch size for training", ge=1
    )
    num_epochs: int = Field(
        DEFAULT_NUM_EPOCHS, description="Maximum number of epochs to train", ge=1
    )
    l1_regularization: float = Field(
        DEFAULT_L1_REGULARIZATION, description="L1 penalty on the head weights", ge=0
    )
    l2_regularization: float = Field(
        DEFAULT_L2_REGULARIZATION, description="L2 penalty (weight decay)", ge=0
    )


class DeviceOptions(BaseModel):
    """Where the classifier is fitted. Passed explicitly to the training backend."""

    use_gpu: bool = Field(False, description="Train on a CUDA device")
    device_id: int = Field(0, description="CUDA device index", ge=0)
    fallback_to_cpu: bool = Field(
        False, description="Retry once on the CPU if GPU training fails"
    )

    @property
    def torch_device(self) -> str:
        return f"cuda:{self.device_id}" if self.use_gpu else "cpu"


class TrackingOptions(BaseModel):
    """Optional experiment tracking with aim."""

    enabled: bool = Field(False, description="Track the run with aim")
    experiment: str = Field("image_folder_pipeline", description="aim experiment name")
    repo: Optional[str] = Field(None, description="aim repository path")


class PathConfiguration(BaseModel):
    """Default filesystem locations, overridable from the command line."""

    dataset_path: Optional[str] = Field(None, description="Dataset root directory")
    model_path: Optional[str] = Field(None, description="Output model file")
    test_images_path: Optional[str] = Field(
        None, description="Directory of images for batch prediction"
    )


class TrainingConfig(BaseModel):
    """Configuration for training a classifier."""

    image: ImageSize = Field(default_factory=ImageSize)
    split: SplitFractions = Field(default_factory=SplitFractions)
    seed: Optional[int] = Field(
        DEFAULT_SEED,
        description="Random seed for reproducibility. None gives a fresh split each run.",
    )
    stratify: bool = Field(False, description="Split each class separately")
    hyperparameters: Hyperparameters = Field(default_factory=Hyperparameters)
    architecture: Architecture = Field(
        Architecture.LINEAR, description="Classifier head to train"
    )
    use_transfer_learning: bool = Field(
        False, description="Use pretrained DINOv2 features instead of raw pixels"
    )
    transfer_model_name: str = Field(
        "facebook/dinov2-base", description="Pretrained model for transfer learning"
    )
    device: DeviceOptions = Field(default_factory=DeviceOptions)
    timeout_seconds: Optional[float] = Field(
        None, description="Abort fitting after this many seconds", gt=0
    )
    overfitting_threshold: float = Field(
        DEFAULT_OVERFITTING_THRESHOLD,
        description="Validation accuracy above which overfitting is suspected",
        gt=0,
        le=1,
    )
    tracking: TrackingOptions = Field(default_factory=TrackingOptions)
    paths: PathConfiguration = Field(default_factory=PathConfiguration)


def parse_training_config(
    config: Union[TrainingConfig, Mapping[str, Any], None],
) -> TrainingConfig:
    """Validate a training configuration, raising ConfigurationError on failure."""
    if isinstance(config, TrainingConfig):
        return config
    try:
        return TrainingConfig.model_validate(dict(config or {}))
    except ValidationError as e:
        raise ConfigurationError(f"Invalid training configuration: {e}") from e


def merge_overrides(
    config_data: Dict[str, Any], overrides: Dict[str, Any]
) -> Dict[str, Any]:
    """Recursively merge non-None overrides into raw configuration data."""
    merged = dict(config_data)
    for key, value in overrides.items():
        if value is None:
            continue
        if isinstance(value, dict):
            merged[key] = merge_overrides(dict(merged.get(key) or {}), value)
        else:
            merged[key] = value
    return merged
