"""
Logging configuration and utilities.
"""

import logging
import logging.handlers
import sys
import json
from typing import Optional
from pathlib import Path
from datetime import datetime, timezone

import structlog

from .config import LoggingConfig, get_config


class JSONFormatter(logging.Formatter):
    """JSON formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        # Add exception info if present
        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data)


class ColorFormatter(logging.Formatter):
    """Colored console formatter."""

    COLORS = {
        "DEBUG": "\033[36m",  # Cyan
        "INFO": "\033[32m",   # Green
        "WARNING": "\033[33m",  # Yellow
        "ERROR": "\033[31m",   # Red
        "CRITICAL": "\033[35m",  # Magenta
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        """Format log record with colors."""
        color = self.COLORS.get(record.levelname, self.RESET)
        message = super().format(record)
        return f"{color}{message}{self.RESET}"


def setup_logging(
    config: Optional[LoggingConfig] = None,
    log_file: Optional[str] = None,
    json_format: Optional[bool] = None
) -> None:
    """
    Setup logging configuration.

    Configures the stdlib root logger and routes structlog events through it,
    so proxy events end up in the same handlers as library log records.

    Args:
        config: Logging configuration
        log_file: Optional log file path
        json_format: Use JSON format for logs (defaults to config.json_format)
    """
    if config is None:
        config = get_config().logging
    if json_format is None:
        json_format = config.json_format

    file_path = log_file or config.file_path
    if file_path:
        Path(file_path).parent.mkdir(parents=True, exist_ok=True)

    # Determine formatter
    if json_format:
        formatter = JSONFormatter()
    else:
        formatter = logging.Formatter(
            fmt=config.format,
            datefmt=config.date_format
        )

    # Console handler
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(config.level.value)

    if not json_format:
        console_handler.setFormatter(ColorFormatter(
            fmt=config.format,
            datefmt=config.date_format
        ))
    else:
        console_handler.setFormatter(formatter)

    handlers = [console_handler]

    if file_path:
        try:
            file_handler = logging.handlers.RotatingFileHandler(
                filename=file_path,
                maxBytes=config.max_file_size,
                backupCount=config.backup_count,
                encoding="utf-8"
            )
            file_handler.setLevel(config.level.value)
            file_handler.setFormatter(formatter)
            handlers.append(file_handler)
        except OSError as e:
            logging.warning(f"Failed to setup file logging: {e}")

    # Configure root logger
    logging.basicConfig(
        level=config.level.value,
        format=config.format,
        datefmt=config.date_format,
        handlers=handlers,
        force=True  # Override existing handlers
    )

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.KeyValueRenderer(key_order=["event"]),
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    # Set levels for third-party libraries
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("asyncio").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)

    logging.info(f"Logging configured with level: {config.level.value}")


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger for a library module.

    Args:
        name: Logger name

    Returns:
        Logger
    """
    return logging.getLogger(name)
