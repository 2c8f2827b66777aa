"""Logging configuration for the character builder backend."""
import os
import sys
from datetime import datetime
from loguru import logger

from utils.paths import get_writable_dir


LOG_DIR = get_writable_dir(os.getenv("LOG_DIR", "logs"))

SESSION_ID = datetime.now().strftime("%Y%m%d_%H%M%S")

CONSOLE_FORMAT = "<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan>:{line} - <level>{message}</level>"
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{line} - {message}"


def configure_logging(enable_file_sinks: bool = True):
    """Configure Loguru logging."""
    logger.remove()

    log_filter = os.getenv("LOG_FILTER", "")
    log_level = os.getenv("LOG_LEVEL", "INFO").upper()

    if log_filter:
        logger.add(
            sys.stderr,
            level="DEBUG",
            format=CONSOLE_FORMAT,
            filter=lambda record: log_filter in record["name"]
        )
    else:
        logger.add(sys.stderr, level=log_level, format=CONSOLE_FORMAT)

    if enable_file_sinks:
        logger.add(
            LOG_DIR / f"builder_{SESSION_ID}.log",
            rotation="5 MB",
            retention=5,
            level="DEBUG",
            format=FILE_FORMAT
        )

        logger.add(
            LOG_DIR / "error.log",
            rotation="10 MB",
            retention="14 days",
            level="ERROR",
            format=FILE_FORMAT
        )

    return logger
