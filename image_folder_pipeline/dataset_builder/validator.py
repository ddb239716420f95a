from collections import Counter
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Union

from image_folder_pipeline.lib import DatasetReport, ImageFormat, setup_logger

from .discovery import find_image_files, list_class_directories

logger = setup_logger(__name__)

DEFAULT_MIN_IMAGES_PER_CLASS = 10


class DatasetValidator:
    """
    Checks a dataset directory before training.

    Problems are reported as errors and warnings on a `DatasetReport`; the
    validator itself only raises on programming errors.
    """

    def __init__(
        self,
        extensions: Optional[Sequence[str]] = None,
        min_images_per_class: int = DEFAULT_MIN_IMAGES_PER_CLASS,
    ):
        self.extensions = tuple(extensions or ImageFormat.extensions())
        self.min_images_per_class = min_images_per_class

    def validate(self, root_path: Union[str, Path]) -> DatasetReport:
        root = Path(root_path)
        errors: List[str] = []
        warnings: List[str] = []

        if not root.is_dir():
            errors.append(f"Dataset directory not found: {root}")
            return DatasetReport(is_valid=False, errors=errors)

        class_dirs = list_class_directories(root)
        if len(class_dirs) == 0:
            errors.append(
                "No class subdirectories found. Each class should be in its own subdirectory."
            )
            return DatasetReport(is_valid=False, errors=errors)

        if len(class_dirs) == 1:
            warnings.append(
                "Only one class found. Multi-class classification requires at least 2 classes."
            )

        class_counts: Dict[str, int] = {}
        total_images = 0
        for class_dir in class_dirs:
            label = class_dir.name
            files = find_image_files(class_dir, self.extensions)

            class_counts[label] = len(files)
            total_images += len(files)

            if len(files) == 0:
                warnings.append(
                    f"No images found for class '{label}' (searched recursively)"
                )
            else:
                formats = Counter(f.suffix.lower() for f in files)
                format_info = ", ".join(f"{ext}: {n}" for ext, n in formats.items())
                logger.info(f"{label}: {len(files)} images in formats [{format_info}]")

                if len(files) < self.min_images_per_class:
                    warnings.append(
                        f"Very few images ({len(files)}) found for class '{label}'. "
                        "Consider adding more for better training."
                    )

        if total_images == 0:
            errors.append("No valid images found in the dataset.")

        return DatasetReport(
            is_valid=len(errors) == 0,
            errors=errors,
            warnings=warnings,
            class_counts=class_counts,
            total_images=total_images,
        )


def format_report(report: DatasetReport) -> List[str]:
    """Human-readable lines for a validation report, errors first."""
    lines: List[str] = []
    if report.errors:
        lines.append("Dataset validation failed:")
        lines.extend(f"  - {error}" for error in report.errors)
    if report.warnings:
        lines.append("Warnings:")
        lines.extend(f"  - {warning}" for warning in report.warnings)
    if report.is_valid:
        lines.append(
            f"Dataset validation successful: {report.total_images} images, "
            f"{len(report.class_counts)} classes"
        )
        ordered = sorted(report.class_counts.items(), key=lambda kv: kv[1], reverse=True)
        lines.extend(f"    {label}: {count} images" for label, count in ordered)
    return lines
