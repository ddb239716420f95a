from typing import Any, Dict, Optional

from image_folder_pipeline.lib import ConfigurationError, setup_logger

from .config import TrackingOptions

logger = setup_logger(__name__)


class ExperimentTracker:
    """Thin wrapper around an aim run. Does nothing unless tracking is enabled."""

    def __init__(self, options: TrackingOptions, hparams: Dict[str, Any]):
        self.run: Optional[Any] = None
        if not options.enabled:
            return

        try:
            import aim
        except ImportError as e:
            raise ConfigurationError(
                "Experiment tracking requires aim: pip install 'image-folder-pipeline[tracking]'"
            ) from e

        self.run = aim.Run(experiment=options.experiment, repo=options.repo)
        self.run["hparams"] = hparams
        logger.info(f"Aim run initialized. Check UI or logs at: {self.run.repo.path}")

    def track(
        self, value: float, name: str, epoch: Optional[int] = None, subset: str = "train"
    ) -> None:
        if self.run is None:
            return
        self.run.track(value, name=name, epoch=epoch, context={"subset": subset})

    def close(self) -> None:
        if self.run is not None:
            self.run.close()
            self.run = None
