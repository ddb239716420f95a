import time
from pathlib import Path
from typing import Any, List, Mapping, Optional, Sequence, Tuple, Union

from image_folder_pipeline.dataset_builder.paths import PathResolver
from image_folder_pipeline.dataset_builder.splitter import SplitPlanner
from image_folder_pipeline.lib import (
    CancellationToken,
    ConfigurationError,
    LabeledImage,
    ModelMetrics,
    ModelNotFound,
    TrainingFailed,
    TrainingTimeout,
    setup_logger,
)

from .backend import FitRequest, FittedModel, ModelSchema, TrainingBackend
from .config import DeviceOptions, TrainingConfig, parse_training_config
from .metrics import compute_metrics

logger = setup_logger(__name__)


class TrainingOrchestrator:
    """
    Drives a training backend through split, fit, evaluate and persist.

    Fit failures surface as `TrainingFailed`. When GPU training is configured
    with `fallback_to_cpu`, a failed GPU fit is retried once on the CPU.
    """

    def __init__(
        self,
        backend: TrainingBackend,
        planner: Optional[SplitPlanner] = None,
        resolver: Optional[PathResolver] = None,
    ):
        self.backend = backend
        self.planner = planner or SplitPlanner()
        self.resolver = resolver or PathResolver()

    def train(
        self,
        images: Sequence[LabeledImage],
        config: Union[TrainingConfig, Mapping[str, Any], None] = None,
    ) -> Tuple[FittedModel, ModelMetrics]:
        config = parse_training_config(config)
        if len(images) == 0:
            raise ConfigurationError("No training images were provided")

        logger.info(f"Starting {config.architecture.value} training with {len(images)} samples")

        train, validation, test = self.planner.plan(
            images, config.split, seed=config.seed, stratify=config.stratify
        )
        if len(train) == 0:
            raise ConfigurationError(
                f"The training split is empty for {len(images)} images; add more images"
            )

        image_root = self.resolver.resolve_common_root(images)
        logger.info(f"Base path for images: {image_root}")

        class_names = sorted({image.label for image in images})
        model, training_time = self._fit_with_fallback(
            train, validation, image_root, class_names, config
        )
        logger.info(
            f"Training completed in {training_time:.1f} seconds "
            f"({len(train) / max(training_time, 1e-9):.1f} images/second)"
        )

        validation_accuracy: Optional[float] = None
        overfitting_suspected = False
        if len(validation) > 0:
            validation_metrics = self.evaluate(model, validation)
            validation_accuracy = validation_metrics.micro_accuracy
            logger.info(
                f"Validation metrics - Accuracy: {validation_accuracy * 100:.1f}%, "
                f"Loss: {validation_metrics.log_loss:.3f}"
            )
            if validation_accuracy > config.overfitting_threshold:
                overfitting_suspected = True
                logger.warning(
                    f"High validation accuracy detected ({validation_accuracy * 100:.1f}%) "
                    "- possible overfitting"
                )
        else:
            logger.info("Validation split is empty, skipping the overfitting check")

        test_metrics = self.evaluate(model, test)
        metrics = test_metrics.model_copy(
            update={
                "training_time_seconds": training_time,
                "training_sample_count": len(images),
                "test_sample_count": len(test),
                "validation_micro_accuracy": validation_accuracy,
                "overfitting_suspected": overfitting_suspected,
            }
        )
        return model, metrics

    def _fit_with_fallback(
        self,
        train: List[LabeledImage],
        validation: List[LabeledImage],
        image_root: Path,
        class_names: List[str],
        config: TrainingConfig,
    ) -> Tuple[FittedModel, float]:
        device = config.device
        try:
            return self._fit(train, validation, image_root, class_names, config, device)
        except TrainingTimeout:
            raise
        except Exception as e:
            if device.use_gpu and not device.fallback_to_cpu:
                logger.error(f"GPU training failed and CPU fallback is disabled: {e}")
                raise TrainingFailed(
                    "GPU training failed and CPU fallback is disabled"
                ) from e
            if not device.use_gpu:
                logger.error(f"Training failed: {e}")
                raise TrainingFailed(f"Training failed: {e}") from e
            logger.warning(f"GPU training failed ({e}), retrying on the CPU")

        cpu = device.model_copy(update={"use_gpu": False})
        try:
            return self._fit(train, validation, image_root, class_names, config, cpu)
        except TrainingTimeout:
            raise
        except Exception as e:
            logger.error(f"CPU fallback training failed: {e}")
            raise TrainingFailed(f"Training failed on GPU and on CPU fallback: {e}") from e

    def _fit(
        self,
        train: List[LabeledImage],
        validation: List[LabeledImage],
        image_root: Path,
        class_names: List[str],
        config: TrainingConfig,
        device: DeviceOptions,
    ) -> Tuple[FittedModel, float]:
        request = FitRequest(
            image_root=image_root,
            config=config,
            device=device,
            class_names=class_names,
            cancellation=CancellationToken(config.timeout_seconds),
        )
        logger.info(f"Fitting on {device.torch_device}")
        start = time.perf_counter()
        model = self.backend.fit(train, validation, request)
        return model, time.perf_counter() - start

    def evaluate(self, model: FittedModel, images: Sequence[LabeledImage]) -> ModelMetrics:
        """Score a held-out split and compute its metrics."""
        logger.info(f"Evaluating model on {len(images)} images...")
        probabilities = self.backend.predict_proba(model, images)
        metrics = compute_metrics(
            [image.label for image in images], probabilities, list(model.class_names)
        )
        logger.info(
            f"Evaluation complete - Micro accuracy: {metrics.micro_accuracy:.4f}, "
            f"Macro accuracy: {metrics.macro_accuracy:.4f}, Log loss: {metrics.log_loss:.4f}"
        )
        return metrics

    def save(self, model: FittedModel, model_path: Union[str, Path]) -> Path:
        """Persist a model, creating the destination directory if needed."""
        model_path = Path(model_path)
        logger.info(f"Saving model to {model_path}")

        model_path.parent.mkdir(parents=True, exist_ok=True)
        self.backend.save(model, model_path)

        size_mb = model_path.stat().st_size / (1024.0 * 1024.0)
        logger.info(f"Model saved successfully. File size: {size_mb:.2f} MB")
        return model_path

    def load(self, model_path: Union[str, Path]) -> Tuple[FittedModel, ModelSchema]:
        model_path = Path(model_path)
        logger.info(f"Loading model from: {model_path}")
        if not model_path.is_file():
            raise ModelNotFound(model_path)
        return self.backend.load(model_path)
