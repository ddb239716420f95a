import logging
from pathlib import Path
from typing import Optional, Union

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

PACKAGE_LOGGER = "image_folder_pipeline"


def setup_logger(name: str, level: int = logging.INFO) -> logging.Logger:
    """Set up a logger with the specified name and logging level."""
    logger = logging.getLogger(name)
    logger.setLevel(level)

    # Create console handler and set level
    ch = logging.StreamHandler()
    ch.setLevel(level)
    ch.setFormatter(logging.Formatter(LOG_FORMAT))

    # Add the handler to the logger
    if not logger.hasHandlers():
        logger.addHandler(ch)

    return logger


def configure_logging(
    verbose: bool = False, log_file: Optional[Union[str, Path]] = None
) -> None:
    """
    Apply CLI logging options to every logger of the package.

    Loggers are created per module by `setup_logger`, so the level has to be
    pushed down to each of them rather than set once on a parent.
    """
    level = logging.DEBUG if verbose else logging.INFO

    file_handler: Optional[logging.Handler] = None
    if log_file is not None:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(level)
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT))

    for name, logger in list(logging.root.manager.loggerDict.items()):
        if not name.startswith(PACKAGE_LOGGER) or not isinstance(logger, logging.Logger):
            continue
        logger.setLevel(level)
        for handler in logger.handlers:
            handler.setLevel(level)
        if file_handler is not None:
            logger.addHandler(file_handler)
