"""
Logging configuration.

Usage:
    from config.logging_config import get_logger
    logger = get_logger(__name__)

setup_logging() is called once by the API on start-up; modules only ask
for named loggers.
"""

import json
import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

ROOT_LOGGER_NAME = "vpdf"
# Modules that log with logging.getLogger(__name__)
PACKAGE_LOGGERS = ("core", "api", "config")

_configured = False


class JsonFormatter(logging.Formatter):
    """One JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "time": self.formatTime(record, "%Y-%m-%dT%H:%M:%S"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False)


def setup_logging(
    level: str = "INFO",
    logs_dir: Optional[Path] = None,
    json_format: bool = False,
) -> logging.Logger:
    """
    Configure the application root logger.

    Args:
        level: Log level name
        logs_dir: Directory for the rotating log file (None = console only)
        json_format: Emit JSON lines instead of plain text

    Returns:
        The configured root application logger
    """
    global _configured

    root = logging.getLogger(ROOT_LOGGER_NAME)
    loggers = [root] + [logging.getLogger(name) for name in PACKAGE_LOGGERS]
    for logger in loggers:
        logger.setLevel(level.upper())

    if _configured:
        return root

    if json_format:
        formatter: logging.Formatter = JsonFormatter()
    else:
        formatter = logging.Formatter(
            "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

    console = logging.StreamHandler(sys.stdout)
    console.setFormatter(formatter)
    handlers: list = [console]

    if logs_dir is not None:
        logs_dir.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            logs_dir / "vpdf.log",
            maxBytes=5 * 1024 * 1024,
            backupCount=3,
            encoding="utf-8",
        )
        file_handler.setFormatter(formatter)
        handlers.append(file_handler)

    for logger in loggers:
        for handler in handlers:
            logger.addHandler(handler)
        logger.propagate = False
    _configured = True
    return root


def get_logger(name: str) -> logging.Logger:
    """Get a logger under the application root ("vpdf.<name>")."""
    if name.startswith(ROOT_LOGGER_NAME + ".") or name == ROOT_LOGGER_NAME:
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")
