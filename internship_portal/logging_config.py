"""Logging setup: rotating log file plus stdout, plain text or JSON lines."""

import json
import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

from internship_portal.config import settings

TEXT_FORMAT = "[%(asctime)s] %(levelname)s in %(module)s: %(message)s"


class JSONFormatter(logging.Formatter):
    """One JSON object per record, for log shippers"""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "timestamp": self.formatTime(record),
            "level": record.levelname,
            "logger": record.name,
            "module": record.module,
            "message": record.getMessage(),
        }
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


def configure_logging(
    level: Optional[str] = None,
    log_dir: Optional[str] = None,
    json_format: Optional[bool] = None,
) -> logging.Logger:
    """Attach file and stream handlers to the package logger.

    Safe to call more than once; existing handlers are replaced.
    """
    level_name = (level or settings.LOG_LEVEL).upper()
    log_level = getattr(logging, level_name, logging.INFO)
    use_json = settings.LOG_JSON if json_format is None else json_format

    logger = logging.getLogger("internship_portal")
    logger.setLevel(log_level)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    formatter = JSONFormatter() if use_json else logging.Formatter(TEXT_FORMAT)

    directory = Path(log_dir or settings.LOG_DIR)
    directory.mkdir(parents=True, exist_ok=True)

    # Rotating file handler (5MB x 5)
    file_handler = RotatingFileHandler(
        directory / settings.LOG_FILENAME, maxBytes=5_000_000, backupCount=5, encoding="utf-8"
    )
    file_handler.setLevel(log_level)
    file_handler.setFormatter(formatter)
    logger.addHandler(file_handler)

    stream_handler = logging.StreamHandler()
    stream_handler.setLevel(log_level)
    stream_handler.setFormatter(formatter)
    logger.addHandler(stream_handler)

    logger.info("Logging initialized.")
    return logger
