import hashlib
import secrets
from collections import defaultdict
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple, Union

from pydantic import ValidationError

from image_folder_pipeline.lib import ConfigurationError, LabeledImage, setup_logger

from .config import SplitFractions

logger = setup_logger(__name__)

Partitions = Tuple[List[LabeledImage], List[LabeledImage], List[LabeledImage]]


def _item_key(seed: int, stage: str, item: LabeledImage) -> int:
    """Pseudo-random rank of an item, a pure function of (seed, stage, item)."""
    digest = hashlib.blake2b(
        f"{seed}|{stage}|{item.path}|{item.label}".encode("utf-8"), digest_size=8
    ).digest()
    return int.from_bytes(digest, "big")


class SplitPlanner:
    """
    Partitions labeled images into train, validation and test sets.

    Two splits are made with the same seed: first `test + validation` of the
    data is held out, then `test / (test + validation)` of the held-out data
    becomes the test set and the rest the validation set. Each item's side is
    decided by a hash of the seed and the item, so the result does not depend
    on the order the caller enumerates the images in.
    """

    def plan(
        self,
        images: Sequence[LabeledImage],
        fractions: Union[SplitFractions, Mapping[str, Any]],
        seed: Optional[int] = None,
        stratify: bool = False,
    ) -> Partitions:
        fractions = self._validate_fractions(fractions)

        if seed is None:
            seed = secrets.randbits(32)
            logger.info(f"No seed configured, using random seed {seed}")

        if stratify:
            by_label: Dict[str, List[LabeledImage]] = defaultdict(list)
            for item in images:
                by_label[item.label].append(item)

            train: List[LabeledImage] = []
            validation: List[LabeledImage] = []
            test: List[LabeledImage] = []
            for label in sorted(by_label):
                tr, va, te = self._plan_group(by_label[label], fractions, seed)
                train.extend(tr)
                validation.extend(va)
                test.extend(te)
        else:
            train, validation, test = self._plan_group(images, fractions, seed)

        train, validation, test = (
            sorted(part, key=lambda item: item.path)
            for part in (train, validation, test)
        )
        logger.info(
            f"Split {len(images)} images into train={len(train)}, "
            f"validation={len(validation)}, test={len(test)} (seed={seed})"
        )
        return train, validation, test

    def _plan_group(
        self, items: Sequence[LabeledImage], fractions: SplitFractions, seed: int
    ) -> Partitions:
        # First split: hold out test + validation
        rest, held_out = self._split(items, fractions.held_out, seed, "held_out")

        # Second split: test out of the held-out part
        test_ratio = fractions.test / fractions.held_out
        validation, test = self._split(held_out, test_ratio, seed, "test")
        return rest, validation, test

    @staticmethod
    def _split(
        items: Sequence[LabeledImage], fraction: float, seed: int, stage: str
    ) -> Tuple[List[LabeledImage], List[LabeledImage]]:
        """Split items into (remainder, selected) with `fraction` of them selected."""
        ranked = sorted(items, key=lambda item: (_item_key(seed, stage, item), item.path))
        n_selected = int(round(len(ranked) * fraction))
        return ranked[n_selected:], ranked[:n_selected]

    @staticmethod
    def _validate_fractions(
        fractions: Union[SplitFractions, Mapping[str, Any]],
    ) -> SplitFractions:
        if not isinstance(fractions, SplitFractions):
            try:
                return SplitFractions.model_validate(fractions)
            except ValidationError as e:
                raise ConfigurationError(f"Invalid split fractions: {e}") from e

        # Instances built with model_construct skip validation
        if not (0 < fractions.test < 1 and 0 <= fractions.validation < 1):
            raise ConfigurationError(
                f"Invalid split fractions: test={fractions.test}, validation={fractions.validation}"
            )
        if fractions.held_out >= 1:
            raise ConfigurationError(
                "test + validation must be below 1 so that training data remains"
            )
        return fractions
