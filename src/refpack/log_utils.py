import logging
import os
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

from rich.logging import RichHandler

from refpack.constants import (
    DEBUG_LOG_FORMAT,
    INFO_LOG_FORMAT,
    LOG_DATE_FORMAT,
    LOG_FILE_BACKUP_COUNT,
    LOG_FILE_MAX_BYTES,
    LOG_FILE_NAME,
    LOG_LEVEL_ENV_VAR,
    LOGGER_NAME,
)

logger = logging.getLogger(LOGGER_NAME)

# Kept at module level so add_file_logging() can replace it
_file_handler: Optional[RotatingFileHandler] = None


def _resolve_level(level_name: str) -> Optional[int]:
    level = getattr(logging, str(level_name).upper(), None)
    return level if isinstance(level, int) else None


def _formatter_for(handler: logging.Handler, level: int) -> logging.Formatter:
    if isinstance(handler, RichHandler):
        return logging.Formatter("%(message)s")
    if level >= logging.INFO:
        return logging.Formatter(INFO_LOG_FORMAT, datefmt=LOG_DATE_FORMAT)
    return logging.Formatter(DEBUG_LOG_FORMAT, datefmt=LOG_DATE_FORMAT)


def set_log_level(level_name: str) -> None:
    """
    Set the log level for the refpack logger and reconfigure all attached handlers.

    Invalid level names are reported with a warning and leave the current
    configuration untouched. Rich console handlers always use a message-only
    formatter; file handlers switch between the informational and debug formats.

    Parameters:
        level_name (str): Case-insensitive name of the desired logging level (e.g., "debug", "INFO").
    """
    level = _resolve_level(level_name)
    if level is None:
        logger.warning("Invalid log level name: %s. Using current level.", level_name)
        return

    logger.setLevel(level)
    for handler in logger.handlers:
        handler.setLevel(level)
        handler.setFormatter(_formatter_for(handler, level))

    logger.log(level, "Log level set to %s", logging.getLevelName(level))


def add_file_logging(log_dir_path: Path, level_name: str = "INFO") -> None:
    """
    Enable rotating file logging for the refpack logger.

    Creates the directory if necessary and attaches a RotatingFileHandler writing
    to `refpack.log` inside it. Any file handler previously installed by this
    function is removed and closed first.
    """
    global _file_handler
    if _file_handler and _file_handler in logger.handlers:
        logger.removeHandler(_file_handler)
        _file_handler.close()

    log_dir_path.mkdir(parents=True, exist_ok=True)
    log_file = log_dir_path / LOG_FILE_NAME

    file_log_level = _resolve_level(level_name)
    if file_log_level is None:
        logger.warning("Invalid file log level name: %s. Defaulting to INFO.", level_name)
        file_log_level = logging.INFO

    _file_handler = RotatingFileHandler(
        log_file,
        maxBytes=LOG_FILE_MAX_BYTES,
        backupCount=LOG_FILE_BACKUP_COUNT,
        encoding="utf-8",
    )
    _file_handler.setFormatter(_formatter_for(_file_handler, file_log_level))
    _file_handler.setLevel(file_log_level)

    logger.addHandler(_file_handler)
    logger.info(
        "File logging enabled at %s with level %s",
        log_file,
        logging.getLevelName(file_log_level),
    )


def _initialize_logger() -> None:
    """
    Initialize the refpack logger with a console RichHandler.

    Existing handlers are removed, propagation to the root logger is disabled,
    and the initial level is read from REFPACK_LOG_LEVEL (INFO when unset or invalid).
    """
    logger.propagate = False

    for handler in logger.handlers[:]:
        logger.removeHandler(handler)
        handler.close()

    console_handler = RichHandler(
        rich_tracebacks=True,
        show_time=True,
        show_level=True,
        show_path=False,
        markup=False,
        log_time_format=LOG_DATE_FORMAT,
    )

    default_log_level = os.environ.get(LOG_LEVEL_ENV_VAR, "INFO").upper()
    initial_level = _resolve_level(default_log_level)
    if initial_level is None:
        logger.warning(
            "Invalid %s=%s; defaulting to INFO.", LOG_LEVEL_ENV_VAR, default_log_level
        )
        initial_level = logging.INFO

    console_handler.setFormatter(logging.Formatter("%(message)s"))
    logger.addHandler(console_handler)

    logger.setLevel(initial_level)
    console_handler.setLevel(initial_level)


# Initialize the logger when the module is imported
_initialize_logger()
