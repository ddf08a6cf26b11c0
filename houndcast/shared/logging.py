import logging
import os
import sys
from logging.handlers import RotatingFileHandler

DEFAULT_LOG_BACKUP_COUNT = 10
DEFAULT_LOG_MAX_BYTES = 10_000_000
LOG_FILE_NAME = "houndcast.log"
LOG_FORMAT = "[%(levelname)s] %(message)s"
ROOT_LOGGER_NAME = "houndcast"

# httpx logs every request at INFO
_NOISY_LOGGERS = (
    "httpx",
    "httpcore",
    "aiosqlite",
)


def quiet_noisy_loggers() -> None:
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def setup_logging(
    level="INFO",
    directory=None,
    max_bytes=DEFAULT_LOG_MAX_BYTES,
    backup_count=DEFAULT_LOG_BACKUP_COUNT,
):
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(level.upper() if isinstance(level, str) else level)
    logger.propagate = False

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(LOG_FORMAT)

    stream_handler = logging.StreamHandler(sys.stdout)
    stream_handler.setFormatter(formatter)
    logger.addHandler(stream_handler)

    if directory:
        os.makedirs(directory, exist_ok=True)
        file_handler = RotatingFileHandler(
            os.path.join(directory, LOG_FILE_NAME),
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8",
        )
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    quiet_noisy_loggers()
    return logger


def setup_logging_from_settings(settings):
    """Configure logging from a ``LoggingSettings`` section."""
    return setup_logging(
        level=settings.level,
        directory=settings.directory,
        max_bytes=settings.max_bytes,
        backup_count=settings.backup_count,
    )
