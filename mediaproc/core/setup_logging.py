# mediaproc/core/setup_logging.py
"""
Logging configuration module for mediaproc.
Provides flexible logging setup with support for JSON formatting, file rotation, and syslog.
"""

import json
import logging
import os
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler, SysLogHandler
from typing import Any, Callable, Dict, Optional, Union

from mediaproc.core.config import config


class JSONFormatter(logging.Formatter):
    """
    Custom JSON formatter for structured logging.

    Formats log records as JSON objects for better parsing and analysis.
    """

    def format(self, record: logging.LogRecord) -> str:
        """
        Format a log record as a JSON string.

        Args:
            record: Log record to format

        Returns:
            str: JSON formatted log entry
        """
        log_record: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        # Add custom fields if they exist
        custom_fields = ["task_name", "media_file", "component", "operation"]
        for field in custom_fields:
            if hasattr(record, field):
                log_record[field] = getattr(record, field)

        # Add exception information if present
        if record.exc_info:
            log_record["exception"] = self.formatException(record.exc_info)
            log_record["stack_trace"] = (
                self.formatStack(record.stack_info) if record.stack_info else None
            )

        return json.dumps(log_record, ensure_ascii=False)


def _coerce_log_level(level: Union[int, str]) -> int:
    if isinstance(level, int):
        return level
    level_name = level.strip().upper()
    return logging._nameToLevel.get(level_name, logging.INFO)


def setup_logging(
    name: str,
    log_file: Optional[str] = None,
    json_format: bool = False,
    log_level: Union[int, str] = logging.INFO,
    console_level: int = logging.INFO,
    file_level: int = logging.DEBUG,
    max_file_size: int = 10485760,  # 10MB
    backup_count: int = 10,
) -> logging.Logger:
    """
    Configure logging for a given component with flexible options.

    Args:
        name: Name of the logger (typically the component name)
        log_file: Log file name (optional, uses default if not provided)
        json_format: If True, uses JSON formatting for logs
        log_level: Overall log level for the logger
        console_level: Log level for console output
        file_level: Log level for file output
        max_file_size: Maximum size of log file before rotation (in bytes)
        backup_count: Number of backup files to keep

    Returns:
        logging.Logger: Configured logger instance

    Raises:
        OSError: If log directory cannot be created
        PermissionError: If log file cannot be written
    """
    is_test_run = os.getenv("PYTEST_CURRENT_TEST") is not None

    # Get or create logger
    logger = logging.getLogger(name)

    # Prevent duplicate handlers and propagation to parent loggers
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.propagate = False
    logger.setLevel(_coerce_log_level(log_level))

    # Create formatter based on format preference
    formatter = _create_formatter(json_format)

    # Add console handler for development
    _add_console_handler(logger, formatter, console_level)

    # Skip persistent handlers when running under pytest to avoid resource warnings
    if is_test_run:
        return logger

    # Create log directory if it doesn't exist
    log_dir = config.LOG_DIRECTORY
    try:
        os.makedirs(log_dir, exist_ok=True)
    except OSError as e:
        raise OSError(f"Failed to create log directory {log_dir}: {e}")

    # Determine log file path
    if log_file is None:
        log_file = f'{name.lower().replace(" ", "_")}.log'
    log_path = os.path.join(log_dir, log_file)

    # Add file handler with rotation
    _add_file_handler(logger, formatter, log_path, file_level, max_file_size, backup_count)

    # Add syslog handler for system logging
    _add_syslog_handler(logger, formatter)

    return logger


def _create_formatter(json_format: bool) -> logging.Formatter:
    """
    Create appropriate formatter based on format preference.

    Args:
        json_format: Whether to use JSON formatting

    Returns:
        logging.Formatter: Configured formatter instance
    """
    if json_format:
        return JSONFormatter()
    else:
        return logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - [%(module)s:%(funcName)s:%(lineno)d] - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )


def _add_console_handler(
    logger: logging.Logger, formatter: logging.Formatter, level: int = logging.INFO
) -> None:
    """
    Add console handler to logger for development output.

    Args:
        logger: Logger instance to add handler to
        formatter: Formatter for the handler
        level: Log level for console output
    """
    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)


def _add_file_handler(
    logger: logging.Logger,
    formatter: logging.Formatter,
    log_path: str,
    level: int = logging.DEBUG,
    max_bytes: int = 10485760,
    backup_count: int = 10,
) -> None:
    """
    Add rotating file handler to logger for persistent log storage.

    Args:
        logger: Logger instance to add handler to
        formatter: Formatter for the handler
        log_path: Path to the log file
        level: Log level for file output
        max_bytes: Maximum file size before rotation
        backup_count: Number of backup files to keep

    Raises:
        PermissionError: If log file cannot be written
    """
    try:
        file_handler = RotatingFileHandler(
            filename=log_path, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8"
        )
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)
    except PermissionError as e:
        raise PermissionError(f"Cannot write to log file {log_path}: {e}")


def _add_syslog_handler(
    logger: logging.Logger, formatter: logging.Formatter, syslog_address: str = "/dev/log"
) -> None:
    """
    Add syslog handler for system-level logging.

    Args:
        logger: Logger instance to add handler to
        formatter: Formatter for the handler
        syslog_address: Address for syslog (file path or network address)
    """
    try:
        syslog_handler = SysLogHandler(address=syslog_address)
        syslog_handler.setFormatter(formatter)
        logger.addHandler(syslog_handler)
    except (OSError, ConnectionError) as e:
        # Log warning but don't fail if syslog is unavailable
        logger.warning(f"Syslog handler could not be configured: {e}")


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger below the ``mediaproc`` hierarchy.

    Child loggers propagate to the handlers installed by ``setup_default_logging``.

    Args:
        name: Name of the logger to retrieve (usually ``__name__``)

    Returns:
        logging.Logger: Logger instance
    """
    return logging.getLogger(name)


class LogContext:
    """
    Context manager for adding contextual information to logs.

    Example:
        with LogContext(logger, media_file="clip.mp4", operation="process"):
            logger.info("Processing media")
    """

    def __init__(self, logger: logging.Logger, **context_fields: Any):
        """
        Initialize log context with additional fields.

        Args:
            logger: Logger instance to use
            **context_fields: Additional fields to include in logs
        """
        self.logger = logger
        self.context_fields = context_fields
        self.old_factory: Optional[Callable[..., logging.LogRecord]] = None

    def __enter__(self) -> "LogContext":
        """
        Enter context and set up custom log record factory.

        Returns:
            LogContext: Self instance
        """
        self.old_factory = logging.getLogRecordFactory()

        def factory(*args, **kwargs):
            # old_factory is guaranteed to be set from getLogRecordFactory() above
            assert self.old_factory is not None
            record = self.old_factory(*args, **kwargs)
            for key, value in self.context_fields.items():
                setattr(record, key, value)
            return record

        logging.setLogRecordFactory(factory)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """
        Exit context and restore original log record factory.
        """
        if self.old_factory is not None:
            logging.setLogRecordFactory(self.old_factory)


# Default logger configuration for quick setup
def setup_default_logging(
    json_format: Optional[bool] = None, log_level: Union[int, str, None] = None
) -> logging.Logger:
    """
    Set up default logging configuration for the application.

    Args:
        json_format: Whether to use JSON formatting (defaults to LOG_JSON)
        log_level: Default log level (defaults to LOG_LEVEL)
    """
    return setup_logging(
        name="mediaproc",
        json_format=config.LOG_JSON if json_format is None else json_format,
        log_level=config.LOG_LEVEL if log_level is None else log_level,
        console_level=logging.DEBUG if config.DEBUG else logging.INFO,
    )
