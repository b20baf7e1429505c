"""
Logging configuration for classical-lint.

Console output goes to stderr so that reports written to stdout stay clean;
an optional rotating log file can be added.
"""

import logging
import logging.handlers
import sys
from pathlib import Path
from typing import Optional

APP_LOGGER = 'classical-lint'
DEFAULT_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def setup_logging(
    level: str = "WARNING",
    log_file: Optional[Path] = None,
    max_file_size: int = 5 * 1024 * 1024,  # 5MB
    backup_count: int = 3,
    console_output: bool = True,
    fmt: str = DEFAULT_FORMAT
) -> logging.Logger:
    """
    Set up logging for the command-line tool.

    Args:
        level: Logging level ('DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL')
        log_file: Path to log file (optional)
        max_file_size: Maximum log file size in bytes before rotation
        backup_count: Number of backup files to keep
        console_output: Whether to log to the console (stderr)
        fmt: Log record format

    Returns:
        Configured application logger

    Raises:
        ValueError: If the level name is not a logging level
    """
    root_logger = logging.getLogger()
    root_logger.handlers.clear()

    numeric_level = getattr(logging, level.upper(), None)
    if not isinstance(numeric_level, int):
        raise ValueError(f'Invalid log level: {level}')

    root_logger.setLevel(numeric_level)

    formatter = logging.Formatter(fmt=fmt, datefmt='%Y-%m-%d %H:%M:%S')

    if console_output:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(numeric_level)
        console_handler.setFormatter(formatter)
        root_logger.addHandler(console_handler)

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.handlers.RotatingFileHandler(
            filename=str(log_file),
            maxBytes=max_file_size,
            backupCount=backup_count,
            encoding='utf-8'
        )
        file_handler.setLevel(numeric_level)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

    app_logger = logging.getLogger(APP_LOGGER)
    app_logger.setLevel(numeric_level)

    app_logger.debug(f"Logging initialized - Level: {level}")
    if log_file:
        app_logger.debug(f"Log file: {log_file}")

    return app_logger


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger namespaced under the application logger.

    Args:
        name: Logger name (typically a class or module name)

    Returns:
        Logger instance
    """
    return logging.getLogger(f'{APP_LOGGER}.{name}')


class LoggerMixin:
    """
    Mixin class that provides easy access to a logger instance.

    Usage:
        class MyClass(LoggerMixin):
            def method(self):
                self.logger.info("This is a log message")
    """

    @property
    def logger(self) -> logging.Logger:
        """Get logger instance for this class."""
        return get_logger(self.__class__.__name__)


def configure_library_logging():
    """Quiet third-party libraries that log at INFO/DEBUG."""
    for lib_name in ('mutagen', 'yaml'):
        logging.getLogger(lib_name).setLevel(logging.WARNING)
