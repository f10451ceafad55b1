"""
Logging for ToeRank

One rotating file handler and one rich console handler on the root
logger. The file format carries the thread name, since candidates are
scored from a pool of runner threads.
"""

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler

FILE_FORMAT = "%(asctime)s - %(threadName)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Chatty third-party loggers held at WARNING regardless of the root level
QUIET_LOGGERS = ('sqlalchemy.engine',)


def _file_handler(log_file: str, level: int, max_bytes: int, backup_count: int) -> logging.Handler:
    handler = RotatingFileHandler(
        filename=log_file,
        maxBytes=max_bytes,
        backupCount=backup_count,
        encoding='utf-8'
    )
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(fmt=FILE_FORMAT, datefmt=DATE_FORMAT))
    return handler


def _console_handler(level: int) -> logging.Handler:
    handler = RichHandler(
        console=Console(stderr=True),
        rich_tracebacks=True,
        tracebacks_show_locals=False,
        show_time=False,  # timestamps live in the file
        show_path=False
    )
    handler.setLevel(level)
    return handler


def setup_logging(
    log_file: str = "logs/toerank.log",
    log_level: str = "INFO",
    max_bytes: int = 10_485_760,  # 10MB
    backup_count: int = 5,
    module_levels: Optional[dict] = None
) -> logging.Logger:
    """
    Configure the root logger for a ranking run.

    Replaces any handlers already installed, so calling it twice (the CLI
    does once per invocation) never duplicates output.

    Args:
        log_file: Rotating log file, parent directories are created
        log_level: Level for both handlers (DEBUG, INFO, WARNING, ERROR)
        max_bytes: Rotation size of the log file
        backup_count: Rotated files kept
        module_levels: Per-logger overrides, e.g. {'src.scorer.ranking_registry': 'DEBUG'}

    Returns:
        Root logger
    """
    Path(log_file).parent.mkdir(parents=True, exist_ok=True)
    level = getattr(logging, log_level.upper())

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)  # handlers do the filtering
    root_logger.handlers.clear()
    root_logger.addHandler(_file_handler(log_file, level, max_bytes, backup_count))
    root_logger.addHandler(_console_handler(level))

    for module_name, module_level in (module_levels or {}).items():
        logging.getLogger(module_name).setLevel(getattr(logging, module_level.upper()))

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logger = get_logger("toerank.setup")
    logger.info(f"Logging to {log_file} at {log_level.upper()}")
    if module_levels:
        logger.debug(f"Per-module log levels: {module_levels}")

    return root_logger


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
