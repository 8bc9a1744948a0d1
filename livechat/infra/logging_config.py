"""Process-wide logging setup shared by the API and Celery workers."""

from __future__ import annotations

import logging
import logging.config
from typing import Optional

from livechat.config import get_settings

ROOT_LOGGER_NAME = "livechat"
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


class LoggingConfig:
    """Configure the ``livechat`` logger tree once per process."""

    _configured = False

    def __init__(self, level: Optional[str] = None) -> None:
        self.level = (level or get_settings().log_level or "INFO").upper()
        if not LoggingConfig._configured:
            self.configure()

    def configure(self) -> None:
        logging.config.dictConfig(
            {
                "version": 1,
                "disable_existing_loggers": False,
                "formatters": {"default": {"format": LOG_FORMAT}},
                "handlers": {
                    "default": {
                        "class": "logging.StreamHandler",
                        "formatter": "default",
                        "stream": "ext://sys.stdout",
                    }
                },
                "loggers": {
                    ROOT_LOGGER_NAME: {
                        "level": self.level,
                        "handlers": ["default"],
                        "propagate": False,
                    },
                    "celery": {"level": self.level, "handlers": ["default"]},
                },
            }
        )
        LoggingConfig._configured = True


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Return a logger under the ``livechat`` namespace."""
    if not name:
        return logging.getLogger(ROOT_LOGGER_NAME)
    if name.startswith(ROOT_LOGGER_NAME):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")
