"""
Exception types raised by the pipeline.

Dataset quality problems are not exceptions: they are reported through
`DatasetReport` so the caller can decide whether to proceed. The types below
cover configuration, filesystem and training/prediction failures.
"""

from pathlib import Path
from typing import Optional, Union


class PipelineError(Exception):
    """Base class for all pipeline errors."""


class ConfigurationError(PipelineError, ValueError):
    """Invalid configuration (fractions, dimensions, missing paths)."""


class DirectoryNotFound(PipelineError, FileNotFoundError):
    """A required directory does not exist."""

    def __init__(self, path: Union[str, Path], message: Optional[str] = None):
        self.path = str(path)
        super().__init__(message or f"Directory not found: {self.path}")


class ImageNotFound(PipelineError, FileNotFoundError):
    """An image file passed for prediction does not exist."""

    def __init__(self, path: Union[str, Path]):
        self.path = str(path)
        super().__init__(f"Image file not found: {self.path}")


class ModelNotFound(PipelineError, FileNotFoundError):
    """A persisted model file does not exist."""

    def __init__(self, path: Union[str, Path]):
        self.path = str(path)
        super().__init__(f"Model file not found: {self.path}")


class RootResolutionError(PipelineError):
    """The common image root could not be inferred from the image paths."""


class TrainingFailed(PipelineError, RuntimeError):
    """Fitting the classifier failed."""


class TrainingTimeout(TrainingFailed):
    """Fitting exceeded the configured time budget."""


class PredictionFailed(PipelineError, RuntimeError):
    """Scoring a single image failed."""

    def __init__(self, image_path: Union[str, Path], reason: str):
        self.image_path = str(image_path)
        self.reason = reason
        super().__init__(f"Prediction failed for {self.image_path}: {reason}")
