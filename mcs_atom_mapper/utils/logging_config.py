"""
Package-wide logger.

Modules import the shared ``logger`` from here. The level can be set with the
``MCS_ATOM_MAPPER_LOG_LEVEL`` environment variable or with ``set_log_level``.
"""

import logging
import os
from typing import Union

LOGGER_NAME = "mcs_atom_mapper"
LOG_LEVEL_ENV_VAR = "MCS_ATOM_MAPPER_LOG_LEVEL"
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(threadName)s - %(message)s"


def _configure_logger() -> logging.Logger:
    _logger = logging.getLogger(LOGGER_NAME)
    if not _logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        _logger.addHandler(handler)
    level_name = os.environ.get(LOG_LEVEL_ENV_VAR, "WARNING").upper()
    _logger.setLevel(getattr(logging, level_name, logging.WARNING))
    return _logger


def set_log_level(level: Union[int, str]) -> None:
    """
    Change the level of the package logger.

    Args:
        level: A logging level, either numeric or a name such as "DEBUG"
    """
    if isinstance(level, str):
        level = getattr(logging, level.upper())
    logger.setLevel(level)


logger = _configure_logger()
