"""htmlregions - durable, re-anchorable highlight regions for HTML documents.

Select a span of a rendered document, record it as a portable anchor, and
later rebuild both the range and its highlight on a fresh render.
"""

from __future__ import annotations

import logging
import os
from logging.handlers import RotatingFileHandler
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from htmlregions.config import Settings

__version__ = "0.1.0"

_CONFIGURED = False


def setup_logging(
    settings: Settings | None = None, *, log_to_file: bool = True
) -> None:
    """Configure logging to the console and (optionally) a rotating file."""
    global _CONFIGURED  # noqa: PLW0603
    if _CONFIGURED:
        return

    from htmlregions.config import get_settings

    settings = settings or get_settings()

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)

    if log_to_file:
        log_dir = settings.app.log_dir
        log_dir.mkdir(parents=True, exist_ok=True)
        log_file = log_dir / f"htmlregions.{os.getpid()}.log"

        # File handler - detailed logging with rotation (10MB, keep 5 backups)
        file_handler = RotatingFileHandler(
            log_file,
            maxBytes=10 * 1024 * 1024,
            backupCount=5,
            encoding="utf-8",
        )
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(
            logging.Formatter(
                "%(asctime)s | %(levelname)-8s | %(name)s:%(lineno)d | %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
        )
        root_logger.addHandler(file_handler)

    # Console handler - less verbose
    console_handler = logging.StreamHandler()
    console_handler.setLevel(settings.app.log_level.upper())
    console_handler.setFormatter(logging.Formatter("%(levelname)s: %(message)s"))
    root_logger.addHandler(console_handler)

    _CONFIGURED = True
    logging.debug("Logging configured (file logging: %s)", log_to_file)
