from __future__ import annotations

import sys
from pathlib import Path


def build_logging_config(log_dir: Path | None, log_level: str = "INFO"):
    handlers = ["console"]
    config = {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "json": {
                "()": "labtech.logging_utils.JsonFormatter",
            },
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": "json",
            },
        },
        "root": {
            "handlers": handlers,
            "level": log_level,
        },
        "loggers": {
            "django": {
                "handlers": handlers,
                "level": log_level,
                "propagate": False,
            },
            "django.server": {
                "handlers": handlers,
                "level": "WARNING",
                "propagate": False,
            },
            "django.request": {
                "handlers": handlers,
                "level": "ERROR",
                "propagate": False,
            },
            "lab": {
                "handlers": handlers,
                "level": log_level,
                "propagate": False,
            },
            "lab.request": {
                "handlers": handlers,
                "level": log_level,
                "propagate": False,
            },
        },
    }

    if log_dir is not None:
        # Several worker processes may write the same file
        config["handlers"]["file"] = {
            "class": "concurrent_log_handler.ConcurrentTimedRotatingFileHandler",
            "filename": log_dir / "labtech.log",
            "when": "midnight",
            "interval": 1,
            "backupCount": 20,
            "formatter": "json",
            "encoding": "utf-8",
        }
        handlers.append("file")

    # Silent under the test runner
    if "test" in sys.argv or "pytest" in sys.modules:
        for name in list(config["handlers"]):
            config["handlers"][name] = {"class": "logging.NullHandler"}

    return config
