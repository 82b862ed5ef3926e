# chatrelay/core/logging.py

import logging
import os
import sys


DEFAULT_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"

# Loggers that emit one DEBUG line per inbound frame or per fan-out
FRAME_LOGGERS = (
    "chatrelay.api.websocket",
    "chatrelay.services.room_directory",
    "chatrelay.services.event_router",
)


def _level(name: str, default: int) -> int:
    return getattr(logging, name.upper(), default) if name else default


def setup_logging(level: str | None = None, log_frames: bool | None = None) -> None:
    """
    Configure relay logging.

    Args:
        level: Root level name, falls back to LOG_LEVEL (default INFO)
        log_frames: Keep per-frame DEBUG output of FRAME_LOGGERS. Falls back
            to LOG_FRAMES ("1"/"true"). When off, those loggers are held at
            INFO so LOG_LEVEL=DEBUG stays readable under chat traffic.

    Handlers are only added when nobody (e.g. Uvicorn) configured the root
    logger yet; levels are applied either way.
    """
    root_level = _level(level or os.getenv("LOG_LEVEL", "INFO"), logging.INFO)
    if log_frames is None:
        log_frames = os.getenv("LOG_FRAMES", "").lower() in ("1", "true", "yes")

    frame_level = logging.NOTSET if log_frames else max(root_level, logging.INFO)
    for name in FRAME_LOGGERS:
        logging.getLogger(name).setLevel(frame_level)

    root_logger = logging.getLogger()
    root_logger.setLevel(root_level)
    if root_logger.handlers:
        return

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(DEFAULT_FORMAT))
    root_logger.addHandler(handler)

    logging.getLogger("websockets").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)


def get_logger(name: str | None = None) -> logging.Logger:
    return logging.getLogger(name)
