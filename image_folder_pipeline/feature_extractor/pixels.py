from pathlib import Path
from typing import Union

import numpy as np
from PIL import Image


class PixelFeatureExtractor:
    """
    Uses the resized RGB pixels of an image as its feature vector.

    Values are scaled to [0, 1] so every feature shares the same range.
    """

    def __init__(self, width: int = 224, height: int = 224):
        if width <= 0 or height <= 0:
            raise ValueError("width and height must be positive")
        self.width = width
        self.height = height

    @property
    def feature_dim(self) -> int:
        return self.width * self.height * 3

    def load_image(self, image_path: Union[str, Path]) -> Image.Image:
        with Image.open(image_path) as image:
            return image.convert("RGB").resize((self.width, self.height))

    def extract(self, image_path: Union[str, Path]) -> np.ndarray:
        pixels = np.asarray(self.load_image(image_path), dtype=np.float32) / 255.0
        return pixels.flatten()
