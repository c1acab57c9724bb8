# File: wpstudio/infrastructure/logging/setup.py
# Purpose: Structured logging setup with rotation and a dedicated channel for outbound API calls
import structlog
import logging
import logging.handlers
from pathlib import Path
from typing import Iterable
from pythonjsonlogger import jsonlogger

from wpstudio.infrastructure.logging.formatters import redact_event_processor

# stdlib logger names that get their own file next to the app log
CHANNELS = ("external", "action")


def setup_logging(
    log_level: str = "INFO",
    log_dir: str = "./logs",
    app_name: str = "wpstudio",
    extra_channels: Iterable[str] = ()
) -> structlog.BoundLogger:
    """
    Setup structured logging with:
    - JSON formatting for machine parsing
    - Credential redaction on every event
    - File rotation (daily for app and channel logs, size-based for errors)
    - Context variables support for request tracking

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_dir: Directory to store log files
        app_name: Application name for logger identification
        extra_channels: Configured channel names that get their own file as well

    Returns:
        Configured structlog logger instance
    """
    log_path = Path(log_dir)
    log_path.mkdir(parents=True, exist_ok=True)

    structlog.configure(
        processors=[
            # Add context variables (like request_id)
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            # Mask passwords and tokens before rendering
            redact_event_processor,
            structlog.processors.JSONRenderer()
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    # Remove existing handlers to avoid duplicates
    root_logger.handlers.clear()

    json_formatter = jsonlogger.JsonFormatter(
        "%(asctime)s %(name)s %(levelname)s %(message)s",
        rename_fields={
            "asctime": "timestamp",
            "levelname": "level",
            "name": "logger"
        }
    )

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(json_formatter)
    console_handler.setLevel(logging.DEBUG)
    root_logger.addHandler(console_handler)

    # Application logs (rotated daily, keep 30 days)
    app_handler = _timed_handler(log_path / f"{app_name}.log", json_formatter)
    root_logger.addHandler(app_handler)

    # Error logs (rotated by size, keep 10 files)
    error_handler = logging.handlers.RotatingFileHandler(
        filename=log_path / f"{app_name}_error.log",
        maxBytes=10 * 1024 * 1024,  # 10MB
        backupCount=10,
        encoding="utf-8"
    )
    error_handler.setFormatter(json_formatter)
    error_handler.setLevel(logging.ERROR)
    root_logger.addHandler(error_handler)

    # Channel logs also propagate to the root handlers
    channels = list(dict.fromkeys([*CHANNELS, *(c for c in extra_channels if c)]))
    for channel in channels:
        channel_logger = logging.getLogger(channel)
        channel_logger.handlers.clear()
        channel_logger.addHandler(_timed_handler(log_path / f"{app_name}_{channel}.log", json_formatter))
        channel_logger.setLevel(log_level)

    logger = structlog.get_logger(app_name)
    logger.info(
        "logging_initialized",
        log_level=log_level,
        log_dir=str(log_path),
        handlers=["console", "app_file", "error_file", *[f"{c}_file" for c in channels]]
    )

    return logger


def _timed_handler(filename: Path, formatter: logging.Formatter) -> logging.Handler:
    handler = logging.handlers.TimedRotatingFileHandler(
        filename=filename,
        when="midnight",
        interval=1,
        backupCount=30,
        encoding="utf-8"
    )
    handler.setFormatter(formatter)
    handler.setLevel(logging.INFO)
    handler.suffix = "%Y-%m-%d"
    return handler
