"""Central logging utilities for the rating engine.

Every entry point (API app, Celery worker, offload worker processes) calls
``configure_logging`` before doing any work so that records emitted from
worker processes carry the same format as the ones from the caller.
"""

from __future__ import annotations

import logging
from typing import Final

from beartype import beartype

__all__: Final = ["configure_logging"]

_DEFAULT_LOG_FORMAT: Final = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
_is_configured: bool = False


@beartype
def configure_logging(
    *, level: int | str = logging.INFO, fmt: str = _DEFAULT_LOG_FORMAT
) -> None:
    """Configure the root logger exactly once.

    Calling this function multiple times is safe; configuration is only
    be applied on the first invocation.
    """
    global _is_configured
    if _is_configured:
        return

    logging.basicConfig(level=level, format=fmt)
    _is_configured = True
