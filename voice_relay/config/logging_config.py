"""
Configure logging for the voice relay.

All modules log through the single "voice_relay" logger. Call-scoped lines carry the
call id as a "[CA...]" prefix, so one call can be followed through the console and
the rotating log file. The file location comes from the LOG_FILE setting; an empty
LOG_FILE keeps output on the console only (containers that collect stdout).
"""

import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional, Union

from voice_relay.config.constants import LOGGER_NAME

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

DEFAULT_LOG_FILE = Path("logs") / "voice_relay.log"
MAX_LOG_SIZE = 10 * 1024 * 1024  # 10 MB
BACKUP_COUNT = 5


def _file_handler(log_file: Path, formatter: logging.Formatter) -> Optional[logging.Handler]:
    try:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handler = RotatingFileHandler(log_file, maxBytes=MAX_LOG_SIZE, backupCount=BACKUP_COUNT)
    except OSError as e:
        print(f"Could not set up file logging at {log_file}: {e}", file=sys.stderr)
        return None
    handler.setFormatter(formatter)
    return handler


def configure_logging(
    level: str = LOG_LEVEL,
    log_file: Optional[Union[str, Path]] = DEFAULT_LOG_FILE,
) -> logging.Logger:
    """
    Configure the relay logger. Calling it again replaces the previous handlers.

    Args:
        level: Name of the log level; unknown names fall back to INFO
        log_file: Rotating log file path, or None/"" for console-only logging

    Returns:
        logging.Logger: The configured "voice_relay" logger
    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    for handler in logger.handlers[:]:
        logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(LOG_FORMAT)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if log_file:
        handler = _file_handler(Path(log_file), formatter)
        if handler is not None:
            logger.addHandler(handler)

    # Uvicorn configures the root logger; keep relay lines from printing twice
    logger.propagate = False

    logger.debug(f"Logging configured at {logging.getLevelName(logger.level)}, file: {log_file or 'none'}")
    return logger
