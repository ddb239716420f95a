import os
from pathlib import Path
from typing import List, Optional, Sequence, Set

from image_folder_pipeline.lib import (
    ConfigurationError,
    LabeledImage,
    RootResolutionError,
    setup_logger,
)

logger = setup_logger(__name__)


def _absolute(path: str) -> Path:
    return Path(os.path.abspath(path))


class PathResolver:
    """
    Infers the dataset root (the parent of the class directories) from a flat
    list of labeled image paths.

    This is a heuristic: it assumes class directories are siblings and that at
    least two of them are represented among the images. Starting from the
    directory of the first image it walks upwards and stops at the first
    ancestor where more than one immediate subdirectory contains images.

    In strict mode a level is only accepted if every image lies below
    `<level>/<label>/`. A dataset with a single class directory resolves to
    the nearest such level. `RootResolutionError` is raised when no level
    qualifies, instead of guessing.
    """

    def resolve_common_root(
        self, images: Sequence[LabeledImage], strict: bool = True
    ) -> Path:
        if len(images) == 0:
            raise ConfigurationError("Cannot resolve an image root without images")

        paths = [_absolute(image.path) for image in images]

        directory = paths[0].parent
        last_examined = directory
        nearest_containing: Optional[Path] = None
        while directory.parent != directory:
            level = directory.parent
            last_examined = level

            contains_all = self._contains_all_classes(level, images, paths)
            if contains_all and nearest_containing is None:
                nearest_containing = level

            matching = self._populated_subdirectories(level, paths)
            logger.debug(f"{level}: {len(matching)} populated subdirectories")
            if len(matching) > 1:
                if not strict or contains_all:
                    logger.info(f"Using base image path: {level}")
                    return level
                logger.debug(
                    f"{level} does not contain every class directory, moving up"
                )

            directory = level

        if strict:
            # A single class directory never gives more than one populated level
            if nearest_containing is not None:
                logger.info(f"Using base image path: {nearest_containing}")
                return nearest_containing
            raise RootResolutionError(
                f"Could not find a directory containing every class directory "
                f"for {len(images)} images (started at {paths[0].parent})"
            )

        logger.warning(
            f"No common class root found, falling back to {last_examined}"
        )
        return last_examined

    @staticmethod
    def _populated_subdirectories(level: Path, paths: List[Path]) -> Set[str]:
        """Names of subdirectories of `level` that are a prefix of some image path."""
        try:
            subdirs = {p.name for p in level.iterdir() if p.is_dir()}
        except OSError as e:
            logger.debug(f"Cannot list {level}: {e}")
            return set()

        first_components = set()
        for path in paths:
            try:
                relative = path.relative_to(level)
            except ValueError:
                continue
            # The image must sit below the subdirectory, not be the entry itself
            if len(relative.parts) > 1:
                first_components.add(relative.parts[0])

        return subdirs & first_components

    @staticmethod
    def _contains_all_classes(
        level: Path, images: Sequence[LabeledImage], paths: List[Path]
    ) -> bool:
        for image, path in zip(images, paths):
            try:
                relative = path.relative_to(level / image.label)
            except ValueError:
                return False
            if len(relative.parts) == 0:
                return False
        return True
