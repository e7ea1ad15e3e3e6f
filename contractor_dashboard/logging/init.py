from __future__ import annotations

import logging
import sys

"""Console logging for the dashboard: one stdout handler, ``<LABEL> <message>`` lines.

Labels are INFO|WARN|ERROR|SUMMARY (DEBUG with --debug). Package module loggers
(``logging.getLogger(__name__)``) are children of ``contractor_dashboard`` and
write through its handler.
"""

__all__ = [
    "LOGGER_NAME",
    "SUMMARY_LEVEL",
    "LabeledFormatter",
    "setup_logging",
    "get_logger",
    "log_summary",
    "set_debug",
    "reset_logging",
]

LOGGER_NAME = "contractor_dashboard"
SUMMARY_LEVEL = 25  # ロード結果の集計行

_configured: logging.Logger | None = None

_LABELS = {
    logging.WARNING: "WARN",
    SUMMARY_LEVEL: "SUMMARY",
}


class LabeledFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        label = _LABELS.get(record.levelno, record.levelname)
        message = f"{label} {record.getMessage()}"
        if record.exc_info:
            message += "\n" + self.formatException(record.exc_info)
        return message


def setup_logging() -> logging.Logger:
    """Attach the labeled stdout handler once; later calls return the same logger.

    Propagation is off so Flask/werkzeug root handlers do not print the line twice.
    """
    global _configured
    if _configured is not None:
        return _configured

    logging.addLevelName(SUMMARY_LEVEL, "SUMMARY")
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(logging.INFO)
    logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(logging.INFO)
    handler.setFormatter(LabeledFormatter())
    logger.addHandler(handler)
    logger.propagate = False

    _configured = logger
    return logger


def get_logger() -> logging.Logger:
    return _configured or setup_logging()


def log_summary(message: str) -> None:
    get_logger().log(SUMMARY_LEVEL, message)


def set_debug(enabled: bool = True) -> None:
    level = logging.DEBUG if enabled else logging.INFO
    logger = get_logger()
    logger.setLevel(level)
    for h in logger.handlers:
        h.setLevel(level)


def reset_logging() -> None:
    """Forget the configured logger so the next ``setup_logging`` rebuilds its handler."""
    global _configured
    _configured = None
