"""
Logging configuration using Loguru.

Every module logs through ``get_logger(__name__)``; the bound ``module``
field is shown on the console and kept in the JSON file records alongside
whatever context the call site binds. Call sites attach context with
``logger.bind(...)`` rather than ``extra=``: Loguru formats the message
with its arguments, so user text containing braces would break it.
"""

import sys
from pathlib import Path
from typing import TYPE_CHECKING

from loguru import logger

if TYPE_CHECKING:
    from notegraph.config import LoggingConfig

CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{extra[module]}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>"
)
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {extra[module]}:{line} - {message}"


def setup_logging(
    level: str = "INFO",
    log_to_file: bool = False,
    log_dir: str = "logs",
    file_rotation: str = "10 MB",
    file_retention: str = "7 days",
    compression: str = "zip",
    serialize: bool = True,
) -> None:
    """
    Replace Loguru's default sink with NoteGraph's sinks.

    Args:
        level: Minimum level for all sinks
        log_to_file: Also write rotating files under ``log_dir``
        log_dir: Directory for log files
        file_rotation: Loguru rotation condition
        file_retention: Loguru retention condition
        compression: Compression for rotated files
        serialize: Write file records as JSON
    """
    logger.remove()
    # Records from loggers that were never bound still need a module
    logger.configure(extra={"module": "notegraph"})

    logger.add(sys.stderr, level=level, format=CONSOLE_FORMAT, colorize=True)

    if log_to_file:
        log_path = Path(log_dir)
        log_path.mkdir(parents=True, exist_ok=True)

        logger.add(
            log_path / "notegraph_{time:YYYY-MM-DD}.log",
            level=level,
            format=FILE_FORMAT,
            rotation=file_rotation,
            retention=file_retention,
            compression=compression,
            serialize=serialize,
            enqueue=True,
        )
        # Store failures are easier to find in their own file
        logger.add(
            log_path / "notegraph_errors.log",
            level="ERROR",
            format=FILE_FORMAT,
            rotation=file_rotation,
            retention=file_retention,
            enqueue=True,
        )


def configure_from(config: "LoggingConfig") -> None:
    """Apply a LoggingConfig section."""
    setup_logging(
        level=config.level,
        log_to_file=config.log_to_file,
        log_dir=config.log_dir,
        file_rotation=config.file_rotation,
        file_retention=config.file_retention,
        compression=config.compression,
        serialize=config.serialize,
    )


def get_logger(name: str):
    """Get a logger instance for a module."""
    return logger.bind(module=name)
