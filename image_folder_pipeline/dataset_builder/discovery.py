from pathlib import Path
from typing import Iterable, List, Optional, Sequence, Union

from image_folder_pipeline.lib import (
    DirectoryNotFound,
    ImageFormat,
    LabeledImage,
    setup_logger,
)

logger = setup_logger(__name__)


def find_image_files(
    directory: Union[str, Path], extensions: Optional[Iterable[str]] = None
) -> List[Path]:
    """
    Recursively collect image files below a directory.

    Extensions are compared case-insensitively. The result is de-duplicated
    and sorted by path.
    """
    suffixes = {ext.lower() for ext in (extensions or ImageFormat.extensions())}
    directory = Path(directory)

    files = {
        path
        for path in directory.rglob("*")
        if path.suffix.lower() in suffixes and path.is_file()
    }
    return sorted(files, key=str)


def list_class_directories(root: Union[str, Path]) -> List[Path]:
    """Immediate subdirectories of a dataset root, sorted by name."""
    return sorted((p for p in Path(root).iterdir() if p.is_dir()), key=lambda p: p.name)


class ImageDiscovery:
    """Walks a class-per-subdirectory dataset root and labels every image."""

    def __init__(self, extensions: Optional[Sequence[str]] = None):
        self.extensions = tuple(extensions or ImageFormat.extensions())

    def discover(self, root_path: Union[str, Path]) -> List[LabeledImage]:
        """
        Discover labeled images below a dataset root.

        Args:
            root_path: Directory whose immediate subdirectories are class labels

        Returns:
            Labeled images sorted by path, one per unique file
        """
        root = Path(root_path).resolve()
        logger.info(f"Loading images from {root}")
        logger.debug(f"Supported formats: {', '.join(self.extensions)}")

        if not root.is_dir():
            raise DirectoryNotFound(root, f"Dataset directory not found: {root}")

        class_dirs = list_class_directories(root)
        images = {}
        for class_dir in class_dirs:
            label = class_dir.name
            files = find_image_files(class_dir, self.extensions)

            if len(files) == 0:
                logger.warning(f"No images found for '{label}' in {class_dir}")
                continue

            nested = [p for p in class_dir.rglob("*") if p.is_dir()]
            if nested:
                logger.info(f"{label}: found {len(nested)} nested subdirectories")

            for file in files:
                images[str(file)] = LabeledImage(path=str(file), label=label)

            logger.info(f"{label}: {len(files)} images (including subdirectories)")

        result = [images[path] for path in sorted(images)]
        logger.info(f"Loaded {len(result)} images from {len(class_dirs)} classes")
        return result
