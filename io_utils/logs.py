import logging
from pathlib import Path

DEBUG_LOG_FORMAT = "%(asctime)s [%(levelname)s] %(message)s"


def file_logger(name: str, log_path: Path) -> logging.Logger:
    """Return a non-propagating logger that writes only to ``log_path``.

    The file is truncated; handlers from a previous call are replaced.
    """
    log_path.parent.mkdir(parents=True, exist_ok=True)
    logger = logging.getLogger(name)
    close_file_logger(logger)
    handler = logging.FileHandler(log_path, mode="w", encoding="utf-8")
    handler.setFormatter(logging.Formatter(DEBUG_LOG_FORMAT))
    logger.addHandler(handler)
    logger.setLevel(logging.DEBUG)
    logger.propagate = False
    return logger


def close_file_logger(logger: logging.Logger) -> None:
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)
        handler.close()
