"""Logging helpers."""

from __future__ import annotations

import logging
from typing import Optional, Union

_LOGGING_CONFIGURED = False


def get_logger(name: Optional[str] = None, level: Union[int, str, None] = None) -> logging.Logger:
    global _LOGGING_CONFIGURED
    if not _LOGGING_CONFIGURED:
        logging.basicConfig(
            level=logging.INFO,
            format="[%(asctime)s] %(levelname)s %(name)s - %(message)s",
        )
        _LOGGING_CONFIGURED = True
    if level is not None:
        logging.getLogger().setLevel(level.upper() if isinstance(level, str) else level)
    return logging.getLogger(name)
