"""Shared fixtures for the image folder pipeline tests."""

import json
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np
import pytest
from PIL import Image

from image_folder_pipeline.classifier_trainer.backend import FitRequest, ModelSchema
from image_folder_pipeline.lib import LabeledImage

PALETTE = [
    (220, 30, 30),
    (30, 30, 220),
    (30, 200, 30),
    (240, 220, 20),
]


def write_image(path: Path, color=(255, 0, 0), size=(8, 8)) -> Path:
    """Write a solid-colour image, creating parent directories."""
    path.parent.mkdir(parents=True, exist_ok=True)
    Image.new("RGB", size, color).save(path)
    return path


@pytest.fixture
def dataset_factory(tmp_path):
    """
    Build a class-per-subdirectory dataset under tmp_path.

    `layout` maps class names to image counts. Each class gets its own colour
    so a pixel classifier can separate them.
    """

    def _make(
        layout: Dict[str, int],
        name: str = "dataset",
        ext: str = ".png",
        nested: bool = False,
    ) -> Path:
        root = tmp_path / name
        root.mkdir(parents=True, exist_ok=True)
        for idx, (label, count) in enumerate(layout.items()):
            class_dir = root / label
            class_dir.mkdir(parents=True, exist_ok=True)
            color = PALETTE[idx % len(PALETTE)]
            for i in range(count):
                subdir = class_dir / f"batch_{i % 2}" if nested else class_dir
                write_image(subdir / f"{label}_{i:03d}{ext}", color)
        return root

    return _make


class MemorizedModel:
    """Predicts the label it saw for a path during fitting."""

    def __init__(self, labels_by_path: Dict[str, str], class_names: List[str]):
        self.labels_by_path = labels_by_path
        self._class_names = list(class_names)

    @property
    def class_names(self) -> List[str]:
        return self._class_names

    @property
    def schema(self) -> ModelSchema:
        return ModelSchema(
            class_names=self._class_names,
            image_width=8,
            image_height=8,
            feature_extractor="pixels",
            feature_dim=192,
            architecture="linear",
        )

    def predict(self, image_path) -> Tuple[str, List[float]]:
        label = self.labels_by_path.get(str(image_path), self._class_names[0])
        n = len(self._class_names)
        rest = 0.1 / (n - 1) if n > 1 else 0.0
        scores = [0.9 if name == label else rest for name in self._class_names]
        if n == 1:
            scores = [1.0]
        return label, scores


class MemorizingBackend:
    """
    Training backend stand-in that records fit calls.

    `fail_on_gpu` makes GPU fits raise, `fail_always` makes every fit raise
    and `memorize_validation` lets the model see validation labels too.
    """

    def __init__(
        self,
        fail_on_gpu: bool = False,
        fail_always: bool = False,
        memorize_validation: bool = False,
        error: Optional[Exception] = None,
    ):
        self.fail_on_gpu = fail_on_gpu
        self.fail_always = fail_always
        self.memorize_validation = memorize_validation
        self.error = error
        self.fit_calls: List[FitRequest] = []

    def fit(
        self,
        train: Sequence[LabeledImage],
        validation: Sequence[LabeledImage],
        request: FitRequest,
    ) -> MemorizedModel:
        self.fit_calls.append(request)
        if self.error is not None:
            raise self.error
        if self.fail_always:
            raise RuntimeError("fit exploded")
        if self.fail_on_gpu and request.device.use_gpu:
            raise RuntimeError("CUDA error: out of memory")

        seen = list(train) + (list(validation) if self.memorize_validation else [])
        return MemorizedModel({i.path: i.label for i in seen}, request.class_names)

    def predict_proba(self, model: MemorizedModel, images: Sequence[LabeledImage]) -> np.ndarray:
        if not images:
            return np.zeros((0, len(model.class_names)))
        return np.array([model.predict(image.path)[1] for image in images])

    def save(self, model: MemorizedModel, path: Path) -> None:
        with open(path, "w") as f:
            json.dump(
                {"labels_by_path": model.labels_by_path, "class_names": model.class_names}, f
            )

    def load(self, path: Path) -> Tuple[MemorizedModel, ModelSchema]:
        with open(path) as f:
            payload = json.load(f)
        model = MemorizedModel(payload["labels_by_path"], payload["class_names"])
        return model, model.schema


@pytest.fixture
def memorizing_backend() -> MemorizingBackend:
    return MemorizingBackend()


@pytest.fixture
def backend_factory():
    return MemorizingBackend


@pytest.fixture
def memorized_model_factory():
    return MemorizedModel


@pytest.fixture
def make_image():
    return write_image
