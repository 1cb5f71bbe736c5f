from __future__ import annotations

import logging

from docrev.config import Settings

LOG_FORMAT = "%(asctime)s level=%(levelname)s logger=%(name)s %(message)s"


def configure_logging(settings: Settings) -> None:
    """Apply LOG_LEVEL to the root logger.

    DEBUG=True forces debug level so per-operation durations are emitted.
    """
    level_name = "DEBUG" if settings.DEBUG else (settings.LOG_LEVEL or "INFO").strip().upper()
    level = logging.getLevelName(level_name)
    if not isinstance(level, int):
        raise RuntimeError(f"Unknown LOG_LEVEL={settings.LOG_LEVEL!r}")

    logging.basicConfig(level=level, format=LOG_FORMAT)
    logging.getLogger().setLevel(level)
    # SQL echo is controlled by DEBUG on the engine; keep the sqlalchemy logger quiet otherwise.
    if not settings.DEBUG:
        logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
