"""
Utility library for the image folder pipeline.

This module provides common utilities used across the pipeline components.
"""

from .logger import setup_logger, configure_logging
from .errors import (
    PipelineError,
    ConfigurationError,
    DirectoryNotFound,
    ImageNotFound,
    ModelNotFound,
    RootResolutionError,
    TrainingFailed,
    TrainingTimeout,
    PredictionFailed,
)
from .result import Result, ErrorKind
from .cancellation import CancellationToken
from .config_files import load_config_file
from .models import (
    LabeledImage,
    ImageFormat,
    DatasetReport,
    DatasetSplit,
    Dataset,
    ModelMetrics,
    PredictionRecord,
    BatchSummary,
)

__all__ = [
    "setup_logger",
    "configure_logging",
    "PipelineError",
    "ConfigurationError",
    "DirectoryNotFound",
    "ImageNotFound",
    "ModelNotFound",
    "RootResolutionError",
    "TrainingFailed",
    "TrainingTimeout",
    "PredictionFailed",
    "Result",
    "ErrorKind",
    "CancellationToken",
    "load_config_file",
    "LabeledImage",
    "ImageFormat",
    "DatasetReport",
    "DatasetSplit",
    "Dataset",
    "ModelMetrics",
    "PredictionRecord",
    "BatchSummary",
]
