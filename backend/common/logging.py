"""Logging layout shared by settings and every app logger."""
from __future__ import annotations

from pathlib import Path
from typing import Any, Dict

MAX_LOG_BYTES = 10 * 1024 * 1024

# app logger -> (level, handlers)
APP_LOGGERS = {
    "metering": ("DEBUG", ["console", "monitor_file", "error_file"]),
    "alerts": ("INFO", ["console", "monitor_file", "alerts_file", "error_file"]),
    "accounts": ("INFO", ["console", "file", "error_file"]),
    "storage": ("INFO", ["console", "file", "error_file"]),
}


def _rotating(log_dir: Path, filename: str, level: str, backups: int = 5) -> Dict[str, Any]:
    return {
        "level": level,
        "class": "logging.handlers.RotatingFileHandler",
        "filename": str(log_dir / filename),
        "maxBytes": MAX_LOG_BYTES,
        "backupCount": backups,
        "formatter": "verbose",
    }


def build_logging_config(log_dir: Path, console_level: str = "INFO") -> Dict[str, Any]:
    """
    Build the dictConfig assigned to settings.LOGGING.

    Ticks and alerts go to monitor.log, every raised alert is also kept in
    alerts.log, and anything at ERROR lands in error.log.

    Args:
        log_dir: Existing directory for the rotating files
        console_level: Threshold of the console handler
    """
    loggers: Dict[str, Any] = {
        "django": {"handlers": ["console", "file"], "level": "INFO"},
    }
    for name, (level, handlers) in APP_LOGGERS.items():
        loggers[name] = {"handlers": handlers, "level": level, "propagate": False}

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "verbose": {
                "format": "{levelname} {asctime} {name} [{threadName}] {message}",
                "style": "{",
            },
            "simple": {
                "format": "{levelname} {asctime} {name} {message}",
                "style": "{",
            },
        },
        "filters": {
            "alerts_only": {
                "()": "django.utils.log.CallbackFilter",
                "callback": lambda record: record.name == "alerts.engine" and record.levelname == "WARNING",
            },
        },
        "handlers": {
            "console": {
                "level": console_level,
                "class": "logging.StreamHandler",
                "formatter": "simple",
            },
            "file": _rotating(log_dir, "application.log", "INFO"),
            "monitor_file": _rotating(log_dir, "monitor.log", "DEBUG", backups=10),
            "alerts_file": {**_rotating(log_dir, "alerts.log", "WARNING", backups=10), "filters": ["alerts_only"]},
            "error_file": _rotating(log_dir, "error.log", "ERROR"),
        },
        "loggers": loggers,
        "root": {
            "handlers": ["console", "file", "error_file"],
            "level": "INFO",
        },
    }
