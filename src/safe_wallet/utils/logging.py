"""Root logging setup driven by :class:`LoggingConfig`."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from safe_wallet.config.settings import LoggingConfig


def configure_logging(config: LoggingConfig, *, debug: bool = False) -> None:
    """Install a stream handler on the root logger.

    ``debug`` forces the DEBUG level regardless of the configured one.
    """
    level = logging.DEBUG if debug else getattr(logging, config.level.value)
    logging.basicConfig(level=level, format=config.format, force=True)
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(max(level, logging.WARNING))
