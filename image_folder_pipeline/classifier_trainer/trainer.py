import copy
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple, Union

import numpy as np
import torch
from torch.utils.data import DataLoader
from tqdm import tqdm

from image_folder_pipeline.feature_extractor.pixels import PixelFeatureExtractor
from image_folder_pipeline.lib import (
    CancellationToken,
    LabeledImage,
    ModelNotFound,
    setup_logger,
)

from .backend import FitRequest, ModelSchema
from .config import Architecture, DeviceOptions, Hyperparameters, TrainingConfig
from .dataset import FeatureDataset
from .model import build_head
from .tracking import ExperimentTracker

logger = setup_logger(__name__)

criterion_standard = torch.nn.CrossEntropyLoss()


def build_feature_extractor(schema: ModelSchema, device: torch.device):
    """Create the feature extractor a model was trained with."""
    if schema.feature_extractor == "dino":
        # transformers is only imported for transfer learning
        from image_folder_pipeline.feature_extractor.dino import DinoFeatureExtractor

        return DinoFeatureExtractor(
            model_name=schema.transfer_model_name or "facebook/dinov2-base",
            device=device,
        )
    return PixelFeatureExtractor(width=schema.image_width, height=schema.image_height)


class TorchImageClassifier:
    """A fitted classifier head together with its feature extractor."""

    def __init__(
        self,
        head: torch.nn.Module,
        extractor,
        schema: ModelSchema,
        device: Union[str, torch.device] = "cpu",
    ):
        self.device = torch.device(device)
        self.head = head.to(self.device)
        self.head.eval()
        self.extractor = extractor
        self._schema = schema

    @property
    def schema(self) -> ModelSchema:
        return self._schema

    @property
    def class_names(self) -> List[str]:
        return self._schema.class_names

    def predict_proba_paths(self, image_paths: Sequence[Union[str, Path]]) -> np.ndarray:
        """Softmax class probabilities for each image path."""
        if len(image_paths) == 0:
            return np.zeros((0, len(self.class_names)), dtype=np.float32)

        features = np.stack([self.extractor.extract(path) for path in image_paths])
        with torch.no_grad():
            logits = self.head(torch.as_tensor(features, dtype=torch.float32).to(self.device))
            probs = torch.softmax(logits, dim=1)
        return probs.cpu().numpy()

    def predict(self, image_path: Union[str, Path]) -> Tuple[str, List[float]]:
        scores = self.predict_proba_paths([image_path])[0]
        return self.class_names[int(np.argmax(scores))], [float(s) for s in scores]


class TorchTrainer:
    """
    Fits a classifier head on pixel or DINOv2 features with PyTorch.

    Implements the `TrainingBackend` protocol used by the orchestrator.
    """

    def __init__(
        self,
        show_progress: bool = True,
        inference_device: Union[str, torch.device] = "cpu",
    ):
        self.show_progress = show_progress
        self.inference_device = torch.device(inference_device)

    @staticmethod
    def _resolve_device(device: DeviceOptions) -> torch.device:
        if device.use_gpu:
            if not torch.cuda.is_available():
                raise RuntimeError("GPU training requested but CUDA is not available")
            if device.device_id >= torch.cuda.device_count():
                raise RuntimeError(
                    f"CUDA device {device.device_id} requested but only "
                    f"{torch.cuda.device_count()} devices are available"
                )
        return torch.device(device.torch_device)

    @staticmethod
    def _seed(seed: Optional[int]) -> torch.Generator:
        """Seed torch and numpy, returning a generator for the data loader."""
        generator = torch.Generator()
        if seed is not None:
            torch.manual_seed(seed)
            np.random.seed(seed)
            if torch.cuda.is_available():
                torch.cuda.manual_seed_all(seed)
            generator.manual_seed(seed)
        return generator

    def _schema_for(self, config: TrainingConfig, class_names: List[str]) -> ModelSchema:
        if config.use_transfer_learning:
            # DINOv2 base has a hidden size of 768; refined once the model is loaded
            return ModelSchema(
                class_names=class_names,
                image_width=config.image.width,
                image_height=config.image.height,
                feature_extractor="dino",
                feature_dim=768,
                architecture=config.architecture.value,
                transfer_model_name=config.transfer_model_name,
            )
        return ModelSchema(
            class_names=class_names,
            image_width=config.image.width,
            image_height=config.image.height,
            feature_extractor="pixels",
            feature_dim=config.image.width * config.image.height * 3,
            architecture=config.architecture.value,
        )

    def _extract(
        self,
        extractor,
        images: Sequence[LabeledImage],
        desc: str,
        cancellation: CancellationToken,
    ) -> np.ndarray:
        features = []
        for image in tqdm(images, desc=desc, disable=not self.show_progress):
            cancellation.raise_if_cancelled()
            features.append(extractor.extract(image.path))
        return np.stack(features) if features else np.zeros((0, extractor.feature_dim))

    def _run_epoch(
        self,
        head: torch.nn.Module,
        loader: DataLoader,
        device: torch.device,
        cancellation: CancellationToken,
        optimizer: Optional[torch.optim.Optimizer] = None,
        hyperparameters: Optional[Hyperparameters] = None,
    ) -> Dict[str, float]:
        """Runs a single epoch of training (with an optimizer) or evaluation."""
        is_training = optimizer is not None
        if is_training:
            head.train()
            context = torch.enable_grad()
        else:
            head.eval()
            context = torch.no_grad()

        l1 = hyperparameters.l1_regularization if hyperparameters else 0.0
        epoch_loss = 0.0
        correct = 0
        seen = 0

        with context:
            for features, labels in loader:
                cancellation.raise_if_cancelled()
                features, labels = features.to(device), labels.to(device)

                if is_training:
                    optimizer.zero_grad()

                logits = head(features)
                loss = criterion_standard(logits, labels)
                if is_training and l1 > 0:
                    loss = loss + l1 * sum(
                        p.abs().sum() for name, p in head.named_parameters() if "weight" in name
                    )

                if is_training:
                    loss.backward()
                    optimizer.step()

                epoch_loss += loss.item() * len(labels)
                correct += (torch.argmax(logits, dim=1) == labels).sum().item()
                seen += len(labels)

        return {"loss": epoch_loss / max(seen, 1), "accuracy": correct / max(seen, 1)}

    def fit(
        self,
        train: Sequence[LabeledImage],
        validation: Sequence[LabeledImage],
        request: FitRequest,
    ) -> TorchImageClassifier:
        config = request.config
        hp = config.hyperparameters
        cancellation = request.cancellation

        if len(train) == 0:
            raise ValueError("Cannot fit a classifier on an empty training split")

        device = self._resolve_device(request.device)
        logger.info(f"Using device: {device}")
        logger.info(f"Base image path: {request.image_root}")
        generator = self._seed(config.seed)

        class_names = list(request.class_names) or sorted({i.label for i in train})
        class_index = {name: idx for idx, name in enumerate(class_names)}
        schema = self._schema_for(config, class_names)
        extractor = build_feature_extractor(schema, device)
        schema = schema.model_copy(update={"feature_dim": extractor.feature_dim})

        x_train = self._extract(extractor, train, "Extracting train features", cancellation)
        y_train = np.array([class_index[i.label] for i in train])
        train_loader = DataLoader(
            FeatureDataset(x_train, y_train),
            batch_size=hp.batch_size,
            shuffle=True,
            generator=generator,
        )

        val_loader = None
        if len(validation) > 0:
            x_val = self._extract(
                extractor, validation, "Extracting validation features", cancellation
            )
            y_val = np.array([class_index[i.label] for i in validation])
            val_loader = DataLoader(
                FeatureDataset(x_val, y_val), batch_size=hp.batch_size, shuffle=False
            )

        head = build_head(Architecture(config.architecture), schema.feature_dim, len(class_names))
        head.to(device)
        optimizer = torch.optim.AdamW(
            head.parameters(), lr=hp.learning_rate, weight_decay=hp.l2_regularization
        )

        tracker = ExperimentTracker(config.tracking, config.model_dump(mode="json"))
        best_val_loss = float("inf")
        best_state = None
        best_epoch = -1

        try:
            for epoch in tqdm(
                range(hp.num_epochs), desc="Training", disable=not self.show_progress
            ):
                cancellation.raise_if_cancelled()
                train_metrics = self._run_epoch(
                    head, train_loader, device, cancellation, optimizer, hp
                )
                logger.debug(
                    f"Epoch {epoch + 1}/{hp.num_epochs} Train | Loss: {train_metrics['loss']:.4f}, Acc: {train_metrics['accuracy']:.4f}"
                )
                tracker.track(train_metrics["loss"], "epoch_loss", epoch, "train")
                tracker.track(train_metrics["accuracy"], "epoch_accuracy", epoch, "train")

                if val_loader is None:
                    continue

                val_metrics = self._run_epoch(head, val_loader, device, cancellation)
                logger.debug(
                    f"Epoch {epoch + 1}/{hp.num_epochs} Val   | Loss: {val_metrics['loss']:.4f}, Acc: {val_metrics['accuracy']:.4f}"
                )
                tracker.track(val_metrics["loss"], "epoch_loss", epoch, "val")
                tracker.track(val_metrics["accuracy"], "epoch_accuracy", epoch, "val")

                if val_metrics["loss"] < best_val_loss:
                    best_val_loss = val_metrics["loss"]
                    best_state = copy.deepcopy(head.state_dict())
                    best_epoch = epoch
        finally:
            tracker.close()

        if best_state is not None:
            logger.info(
                f"Best validation loss ({best_val_loss:.4f}) achieved at epoch {best_epoch + 1}"
            )
            head.load_state_dict(best_state)

        logger.info("Training finished.")
        return TorchImageClassifier(head, extractor, schema, device)

    def predict_proba(
        self, model: TorchImageClassifier, images: Sequence[LabeledImage]
    ) -> np.ndarray:
        return model.predict_proba_paths([image.path for image in images])

    def save(self, model: TorchImageClassifier, path: Path) -> None:
        """Saves the head weights together with the model schema."""
        state_dict = {k: v.cpu() for k, v in model.head.state_dict().items()}
        torch.save({"state_dict": state_dict, "schema": model.schema.model_dump()}, path)
        logger.info(f"Model saved to {path}")

    def load(self, path: Path) -> Tuple[TorchImageClassifier, ModelSchema]:
        path = Path(path)
        if not path.is_file():
            raise ModelNotFound(path)

        payload = torch.load(path, map_location=self.inference_device)
        schema = ModelSchema.model_validate(payload["schema"])
        head = build_head(
            Architecture(schema.architecture), schema.feature_dim, len(schema.class_names)
        )
        head.load_state_dict(payload["state_dict"])
        extractor = build_feature_extractor(schema, self.inference_device)

        logger.info(f"Model loaded from {path} ({len(schema.class_names)} classes)")
        model = TorchImageClassifier(head, extractor, schema, self.inference_device)
        return model, schema
