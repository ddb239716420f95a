import json
from pathlib import Path
from typing import Dict, List, Optional, Union

from image_folder_pipeline.lib import (
    Dataset,
    DatasetReport,
    DatasetSplit,
    LabeledImage,
    setup_logger,
)

from .config import DatasetConfig
from .discovery import ImageDiscovery
from .splitter import SplitPlanner
from .validator import DatasetValidator

logger = setup_logger(__name__)


class DatasetBuilder:
    """Builds split manifests for a class-per-subdirectory image dataset."""

    def __init__(self, config: Optional[DatasetConfig] = None):
        self.config = config or DatasetConfig()
        self.discovery = ImageDiscovery(self.config.extensions)
        self.validator = DatasetValidator(
            self.config.extensions, self.config.min_images_per_class
        )
        self.planner = SplitPlanner()

    def validate(self, image_root: Union[str, Path]) -> DatasetReport:
        return self.validator.validate(image_root)

    @staticmethod
    def create_label_mapping(images: List[LabeledImage]) -> Dict[str, int]:
        """Map each class name to an index, in sorted class name order."""
        return {label: idx for idx, label in enumerate(sorted({i.label for i in images}))}

    def build(self, image_root: Union[str, Path], name: Optional[str] = None) -> Dataset:
        """
        Discover the images below `image_root` and split them.

        Args:
            image_root: Path to the dataset root directory
            name: Name of the dataset, defaults to the root directory name

        Returns:
            A Dataset with train, validation and test splits
        """
        logger.info("Starting to build dataset.")

        image_root = Path(image_root)
        images = self.discovery.discover(image_root)
        if not images:
            raise ValueError(f"No valid images found in {image_root}")

        train, validation, test = self.planner.plan(
            images,
            self.config.split,
            seed=self.config.seed,
            stratify=self.config.stratify,
        )

        dataset = Dataset(
            name=name or image_root.resolve().name,
            train=DatasetSplit(items=train),
            validation=DatasetSplit(items=validation),
            test=DatasetSplit(items=test),
            label_mapping=self.create_label_mapping(images),
        )
        logger.info("Dataset built successfully.")
        return dataset

    def save(self, dataset: Dataset, output_dir: Union[str, Path]) -> Path:
        """
        Save a dataset to disk in JSONL format.

        Args:
            dataset: The dataset to save
            output_dir: Directory to save the dataset to

        Returns:
            The output directory
        """
        output_dir = Path(output_dir)
        output_dir.mkdir(parents=True, exist_ok=True)

        summary = {
            "name": dataset.name,
            "train_size": len(dataset.train),
            "validation_size": len(dataset.validation),
            "test_size": len(dataset.test),
            "classes": list(dataset.label_mapping.keys()),
        }
        with open(output_dir / "summary.json", "w") as f:
            json.dump(summary, f, indent=2)

        # Each line is a valid JSON object
        for split_name, split in dataset.splits.items():
            with open(output_dir / f"{split_name}.jsonl", "w") as f:
                for item in split.items:
                    f.write(item.model_dump_json() + "\n")

        with open(output_dir / "label_mapping.json", "w") as f:
            json.dump(dataset.label_mapping, f, indent=2)

        logger.info(f"Dataset '{dataset.name}' saved to {output_dir}")
        return output_dir
