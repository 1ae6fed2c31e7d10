"""Logging setup for command-line use of the BOM engine."""

import logging
from typing import Union

from src.services.logging_utils import LOGGER_PREFIX

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(level: Union[int, str] = logging.WARNING) -> logging.Logger:
    """
    Attach a stderr handler to the 'plm' logger tree.

    Safe to call more than once; the handler is only added the first time.

    Args:
        level: Level name ("DEBUG", "info") or logging constant

    Returns:
        The configured 'plm' logger
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            raise ValueError(f"Unknown log level: {level}")

    plm_logger = logging.getLogger(LOGGER_PREFIX.split(".")[0])
    if not plm_logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        plm_logger.addHandler(handler)
    plm_logger.setLevel(level)
    return plm_logger
