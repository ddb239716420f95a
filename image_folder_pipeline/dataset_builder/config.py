from typing import List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from image_folder_pipeline.lib import ImageFormat

DEFAULT_TEST_FRACTION = 0.2
DEFAULT_VALIDATION_FRACTION = 0.1
DEFAULT_SEED = 42


class SplitFractions(BaseModel):
    """
    Fractions of the dataset held out for testing and validation.

    The training fraction is whatever remains. Test must be non-zero so the
    second split (test out of the held-out set) is always defined.
    """

    test: float = Field(
        DEFAULT_TEST_FRACTION, description="Ratio of test data", gt=0, lt=1
    )
    validation: float = Field(
        DEFAULT_VALIDATION_FRACTION, description="Ratio of validation data", ge=0, lt=1
    )

    @model_validator(mode="after")
    def validate_sum(self) -> "SplitFractions":
        """Validate that some data is left for training."""
        if self.test + self.validation >= 1:
            raise ValueError(
                f"test ({self.test}) + validation ({self.validation}) must be below 1"
            )
        return self

    @property
    def train(self) -> float:
        return 1 - self.test - self.validation

    @property
    def held_out(self) -> float:
        return self.test + self.validation


class DatasetConfig(BaseModel):
    """Configuration for discovering, validating and splitting a dataset."""

    split: SplitFractions = Field(
        default_factory=SplitFractions, description="Held-out fractions"
    )
    seed: Optional[int] = Field(
        DEFAULT_SEED,
        description="Random seed for reproducible splits. Omit for a fresh split each run.",
    )
    stratify: bool = Field(
        False, description="Split each class separately to keep class proportions"
    )
    extensions: List[str] = Field(
        default_factory=lambda: list(ImageFormat.extensions()),
        description="Image file extensions to include",
    )
    min_images_per_class: int = Field(
        10, description="Classes below this count produce a warning", ge=1
    )

    @field_validator("extensions")
    @classmethod
    def validate_extensions(cls, v: List[str]) -> List[str]:
        """Normalise extensions to lower case with a leading dot."""
        if not v:
            raise ValueError("extensions must not be empty")
        return [ext.lower() if ext.startswith(".") else f".{ext.lower()}" for ext in v]
