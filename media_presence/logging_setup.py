from __future__ import annotations

import logging
import os
from pathlib import Path

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def _env_level(default: int) -> tuple[int, str | None]:
    """MEDIA_PRESENCE_LOG_LEVEL as a name (``debug``) or a number (``10``)."""
    raw = os.getenv("MEDIA_PRESENCE_LOG_LEVEL")
    if not raw:
        return default, None
    raw = raw.strip()
    if raw.isdigit():
        return int(raw), None
    level = logging.getLevelName(raw.upper())
    if isinstance(level, int):
        return level, None
    return default, raw


def setup_logging(debug: bool, log_file: Path | None = None) -> None:
    """
    Configure the root logger.

    While ``watch`` owns the terminal, records written to stderr would tear
    the box apart, so they go to ``log_file`` instead.
    """
    level, bad_name = _env_level(logging.DEBUG if debug else logging.INFO)

    handlers: list[logging.Handler]
    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handlers = [logging.FileHandler(log_file, encoding="utf-8")]
    else:
        handlers = [logging.StreamHandler()]

    logging.basicConfig(level=level, format=LOG_FORMAT, handlers=handlers)
    if bad_name is not None:
        logging.getLogger(__name__).warning("Unknown MEDIA_PRESENCE_LOG_LEVEL %r, using %s", bad_name, logging.getLevelName(level))
