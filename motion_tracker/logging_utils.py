"""Per-tracker loggers: one record format, console output and an optional log file."""

import logging
import os
from typing import Optional, Union

LOG_FORMAT = "%(asctime)s %(levelname)s [%(tracker)s] %(message)s"


class TrackerNameFilter(logging.Filter):
    """Stamp ``record.tracker`` so ``LOG_FORMAT`` can name the tracker."""

    def __init__(self, tracker_name: str):
        super().__init__()
        self.tracker_name = tracker_name

    def filter(self, record: logging.LogRecord) -> bool:
        record.tracker = self.tracker_name
        return True


def parse_level(level: Union[int, str]) -> int:
    """``"debug"``, ``"INFO"`` or a numeric level; unknown names raise ValueError."""
    if isinstance(level, int) and not isinstance(level, bool):
        return level
    value = logging.getLevelName(str(level).strip().upper())
    if not isinstance(value, int):
        raise ValueError(f"unknown log level: {level!r}")
    return value


def _attach(logger: logging.Logger, handler: logging.Handler, tracker_name: str) -> None:
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    handler.addFilter(TrackerNameFilter(tracker_name))
    logger.addHandler(handler)


def _logs_to(logger: logging.Logger, log_path: str) -> bool:
    target = os.path.abspath(log_path)
    return any(isinstance(h, logging.FileHandler) and h.baseFilename == target for h in logger.handlers)


def setup_logger(
    tracker_name: str,
    level: Union[int, str] = logging.INFO,
    log_path: Optional[str] = None,
) -> logging.Logger:
    """
    Logger ``motion_tracker.<tracker_name>`` with a console handler and,
    when ``log_path`` is set, a file handler using the same format.

    Calling it again for the same tracker only adjusts the level and adds
    a file handler for a log path it does not write to yet.
    """
    logger = logging.getLogger(f"motion_tracker.{tracker_name}")
    logger.setLevel(parse_level(level))

    if not any(type(h) is logging.StreamHandler for h in logger.handlers):
        _attach(logger, logging.StreamHandler(), tracker_name)
    if log_path and not _logs_to(logger, log_path):
        _attach(logger, logging.FileHandler(log_path), tracker_name)

    return logger
