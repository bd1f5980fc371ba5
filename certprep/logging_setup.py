from __future__ import annotations
import logging

from certprep.config import LOG_LEVEL

QUIET_LOGGERS = ("sqlalchemy.engine", "multipart")


def setup_console_logging(level: int | str | None = None) -> None:
    """
    Call once at process start (API server or CLI).
    Level defaults to LOG_LEVEL from the environment.
    """
    if level is None:
        level = LOG_LEVEL
    root = logging.getLogger()
    if root.handlers:
        # already configured (uvicorn or a second call)
        root.setLevel(level)
        return

    root.setLevel(level)
    handler = logging.StreamHandler()
    handler.setFormatter(
        logging.Formatter(
            "[%(asctime)s] %(levelname)s %(name)s: %(message)s",
            datefmt="%H:%M:%S",
        )
    )
    root.addHandler(handler)
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
