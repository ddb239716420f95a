"""
Dataset Construction Component for the Image Folder Pipeline.

This module provides functionality for:
- Discovering labeled images in a class-per-subdirectory layout
- Validating class counts before training
- Splitting the dataset into train, validation, and test sets
- Inferring the dataset root from a flat list of image paths
- Saving the dataset splits and label mappings to disk
"""

from .builder import DatasetBuilder
from .config import DatasetConfig, SplitFractions
from .discovery import ImageDiscovery, find_image_files
from .paths import PathResolver
from .splitter import SplitPlanner
from .validator import DatasetValidator, format_report

__all__ = [
    "DatasetBuilder",
    "DatasetConfig",
    "SplitFractions",
    "ImageDiscovery",
    "find_image_files",
    "PathResolver",
    "SplitPlanner",
    "DatasetValidator",
    "format_report",
]
