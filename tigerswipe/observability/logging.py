from __future__ import annotations

import logging
from typing import Final

from tigerswipe.infrastructure.settings import LOG_LEVEL

_FORMAT: Final[str] = "%(asctime)s %(levelname)s [%(name)s] %(message)s"
_configured: bool = False


def _level(name: str = LOG_LEVEL) -> int:
    return getattr(logging, name.upper(), logging.INFO)


def get_logger(name: str) -> logging.Logger:
    """Module logger; the first call attaches one stream handler to the root."""
    global _configured

    if not _configured:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
        root = logging.getLogger()
        root.addHandler(handler)
        root.setLevel(_level())
        _configured = True

    return logging.getLogger(name)
