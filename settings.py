# settings.py
from __future__ import annotations

import logging
import os
from typing import Optional, Union

from reference_data import EL_SALVADOR_ECONOMICS, EconomicsConfig, load_economics

ECONOMICS_FILE_ENV = "WORLDSIM_ECONOMICS_FILE"
LOG_LEVEL_ENV = "WORLDSIM_LOG_LEVEL"
DEFAULT_LOG_LEVEL = "WARNING"

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(level: Union[str, int, None] = None) -> None:
    """Prefer explicit level, then WORLDSIM_LOG_LEVEL, then WARNING."""
    if level is None:
        level = os.getenv(LOG_LEVEL_ENV) or DEFAULT_LOG_LEVEL
    if isinstance(level, str):
        level = level.upper()
    logging.basicConfig(level=level, format=LOG_FORMAT)


def default_economics(path: Optional[str] = None) -> EconomicsConfig:
    """Prefer explicit override file, then WORLDSIM_ECONOMICS_FILE, then built-in tables."""
    if path is None:
        path = os.getenv(ECONOMICS_FILE_ENV) or None
    if path is None:
        return EL_SALVADOR_ECONOMICS
    return load_economics(path)
