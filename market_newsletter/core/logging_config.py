"""Logging setup for newsletter exports.

Every export logs its stages through the ``market_newsletter`` logger with
``extra`` fields (region, month, year, chart and page counts). The console gets
plain lines for CLI use, or JSON when ``--json-logs`` is given; the log file is
always JSON so an export can be traced afterwards.

PDF conversion and chart rendering pull in libraries that log font subsetting
and CSS details at INFO; those are held at WARNING.
"""

import copy
import logging
import logging.config
import os
from typing import Any


LOG_DIR = "logs"
LOG_FILE = "market_newsletter.log"

# Third-party loggers that are noisy during rendering
QUIET_LOGGERS = ("weasyprint", "fontTools", "PIL", "matplotlib")

LOGGING_CONFIG: dict[str, Any] = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "json": {
            "()": "pythonjsonlogger.json.JsonFormatter",
            "format": "%(asctime)s %(name)s %(levelname)s %(message)s",
            "datefmt": "%Y-%m-%dT%H:%M:%S%z",
        },
        "console": {
            "format": "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            "datefmt": "%H:%M:%S",
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "level": "WARNING",
            "formatter": "console",
            "stream": "ext://sys.stderr",
        },
        "export_file": {
            "class": "logging.handlers.RotatingFileHandler",
            "level": "DEBUG",
            "formatter": "json",
            "filename": os.path.join(LOG_DIR, LOG_FILE),
            "maxBytes": 5 * 1024 * 1024,
            "backupCount": 3,
            "encoding": "utf-8",
        },
    },
    "loggers": {
        "market_newsletter": {
            "level": "DEBUG",
            "handlers": ["console", "export_file"],
            "propagate": False,
        },
        **{name: {"level": "WARNING"} for name in QUIET_LOGGERS},
    },
    "root": {
        "level": "WARNING",
        "handlers": ["console"],
    },
}


def setup_logging(
    json_output: bool = False,
    log_level: str = "WARNING",
    log_dir: str = LOG_DIR,
) -> None:
    """Configure logging for CLI and library use.

    Args:
        json_output: Emit JSON on the console as well as in the log file
        log_level: Console and package level (DEBUG, INFO, WARNING, ERROR)
        log_dir: Directory for the rotating JSON log file
    """
    os.makedirs(log_dir, exist_ok=True)

    config = copy.deepcopy(LOGGING_CONFIG)
    config["handlers"]["export_file"]["filename"] = os.path.join(log_dir, LOG_FILE)

    if json_output:
        config["handlers"]["console"]["formatter"] = "json"

    if log_level:
        level = log_level.upper()
        config["handlers"]["console"]["level"] = level
        config["loggers"]["market_newsletter"]["level"] = level

    logging.config.dictConfig(config)


def get_logger(name: str) -> logging.Logger:
    """Return the module logger; pass ``__name__``.

    Example:
        logger = get_logger(__name__)
        logger.info("Newsletter exported", extra={"region": "anza", "pages": 2})
    """
    return logging.getLogger(name)
