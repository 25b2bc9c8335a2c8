"""Structured logging configuration."""
import logging
import sys
import os
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, List, Optional

import structlog
from structlog.stdlib import LoggerFactory

LOG_FILE_MAX_BYTES = 10 * 1024 * 1024
LOG_FILE_BACKUPS = 5


def _renderer(log_format: str) -> Any:
    if log_format == "json":
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer()


def _attach(handler: logging.Handler, level: int) -> logging.Handler:
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter("%(message)s"))
    return handler


def _build_handlers(level: int, log_file: Optional[str], log_dir: str) -> List[logging.Handler]:
    # stdout is reserved for CLI output
    if not log_file:
        return [_attach(logging.StreamHandler(sys.stderr), level)]

    log_path = Path(log_dir)
    log_path.mkdir(exist_ok=True)
    handlers = [_attach(
        RotatingFileHandler(log_path / log_file, maxBytes=LOG_FILE_MAX_BYTES, backupCount=LOG_FILE_BACKUPS),
        level,
    )]
    if os.getenv("X12_LOG_ECHO", "false").lower() == "true":
        handlers.append(_attach(logging.StreamHandler(sys.stderr), level))
    return handlers


def configure_logging(
    log_level: str = "INFO",
    log_format: str = "json",
    log_file: Optional[str] = None,
    log_dir: str = "logs",
) -> None:
    """
    Configure structured logging for the engine and any host application.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_format: Output format ("json" or "console")
        log_file: Optional log file name (if None, logs to stderr)
        log_dir: Directory for log files (default: "logs")
    """
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            _renderer(log_format),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    level = getattr(logging, log_level.upper())
    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    # Repeated calls (tests, CLI re-entry) must not stack handlers
    root_logger.handlers = []
    for handler in _build_handlers(level, log_file, log_dir):
        root_logger.addHandler(handler)


def get_logger(name: str) -> Any:
    """Get a structured logger instance."""
    return structlog.get_logger(name)
