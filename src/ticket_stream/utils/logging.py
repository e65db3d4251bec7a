from __future__ import annotations
import logging
import logging.config
import sys
from pathlib import Path
from typing import Optional, Union
import yaml

LOGGER_ROOT = "ticket_stream"
DEFAULT_LOGGING_CONFIG = "configs/logging.yaml"
LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"

# Chatty third-party loggers kept at WARNING when no YAML config is found.
_QUIET_LOGGERS = ("apscheduler", "urllib3")


def setup_logging(config_path: Optional[Union[str, Path]] = DEFAULT_LOGGING_CONFIG, level: Optional[str] = None) -> None:
    """
    Configure logging from a dictConfig YAML file.

    Without a readable file, falls back to a stderr handler so stdout stays
    free for the JSONL stdout sink. ``level`` overrides the ticket_stream
    logger level in both cases.
    """
    path = Path(config_path) if config_path else None
    if path is not None and path.is_file():
        with path.open("r", encoding="utf-8") as f:
            cfg = yaml.safe_load(f)
        logging.config.dictConfig(cfg)
    else:
        logging.basicConfig(level=logging.INFO, format=LOG_FORMAT, stream=sys.stderr)
        for name in _QUIET_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)
        if path is not None:
            get_logger("logging").warning("Logging config not found, using defaults: path=%s", path)

    if level:
        logging.getLogger(LOGGER_ROOT).setLevel(level.upper())


def get_logger(name: str) -> logging.Logger:
    """Get a logger under the ticket_stream namespace."""
    if name != LOGGER_ROOT and not name.startswith(LOGGER_ROOT + "."):
        name = f"{LOGGER_ROOT}.{name}"
    return logging.getLogger(name)
