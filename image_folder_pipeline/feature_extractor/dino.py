from pathlib import Path
from typing import Union

import numpy as np
import torch
from PIL import Image
from transformers import AutoImageProcessor, AutoModel

from image_folder_pipeline.lib import setup_logger

logger = setup_logger(__name__)

DEFAULT_DINO_MODEL = "facebook/dinov2-base"


class DinoFeatureExtractor:
    """Extracts transfer-learning features from images using a DINOv2 model."""

    def __init__(
        self,
        model_name: str = DEFAULT_DINO_MODEL,
        device: Union[str, torch.device] = "cpu",
    ):
        self.model_name = model_name
        self.device = torch.device(device)
        self.processor = AutoImageProcessor.from_pretrained(self.model_name)
        self.model = AutoModel.from_pretrained(self.model_name).to(self.device)
        self.model.eval()
        logger.info(f"Loaded {self.model_name} on {self.device}")

    @property
    def feature_dim(self) -> int:
        return int(self.model.config.hidden_size)

    def _normalise_image(self, image: Image.Image):
        """
        Normalises the image as expected by the DINO model.

        Remarks:
        AutoImageProcessor already handles resizing and normalisation.
        """
        return self.processor(images=image, return_tensors="pt", do_resize=True)

    def extract_features(self, image: Image.Image) -> torch.Tensor:
        """
        Takes an image and returns the mean-pooled last hidden state.
        """
        inputs = self._normalise_image(image).to(self.device)
        with torch.no_grad():
            outputs = self.model(**inputs)
        features: torch.Tensor = outputs.last_hidden_state
        logger.debug(f"Features shape: {features.shape}")

        averaged_features: torch.Tensor = features.mean(dim=1)
        logger.debug(f"Averaged feature shape: {averaged_features.shape}")
        return averaged_features

    def extract(self, image_path: Union[str, Path]) -> np.ndarray:
        """Feature vector for the image stored at `image_path`."""
        with Image.open(image_path) as image:
            features = self.extract_features(image.convert("RGB"))
        return features.flatten().cpu().numpy().astype(np.float32)
