"""Logging configuration for Sandbox MCP Server."""

import logging
import logging.handlers
import sys
from pathlib import Path
from typing import Optional, Dict, Any


SANDBOX_LOGGERS = (
    "mcp_server",
    "registry",
    "metadata_parser",
    "executor",
    "update_status",
    "stdio",
)


def setup_logging(
    log_level: str = "WARNING",
    log_file: Optional[str] = None,
    log_format: Optional[str] = None,
    max_file_size: int = 10 * 1024 * 1024,  # 10MB
    backup_count: int = 5,
    enable_console: bool = True
) -> None:
    """Setup logging configuration for the application.

    Console output always goes to stderr; stdout carries JSON-RPC
    responses when the server runs over stdio.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Path to log file (optional)
        log_format: Custom log format (optional)
        max_file_size: Maximum log file size in bytes before rotation
        backup_count: Number of backup log files to keep
        enable_console: Whether to enable console logging
    """
    if log_format is None:
        log_format = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    level = getattr(logging, log_level.upper())

    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    if enable_console:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(level)
        console_handler.setFormatter(logging.Formatter(log_format))
        root_logger.addHandler(console_handler)

    # File handler with rotation
    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.handlers.RotatingFileHandler(
            log_file,
            maxBytes=max_file_size,
            backupCount=backup_count
        )
        file_handler.setLevel(level)
        file_handler.setFormatter(logging.Formatter(log_format))
        root_logger.addHandler(file_handler)


def setup_sandbox_logging(config: Dict[str, Any]) -> None:
    """Setup logging for the server and its components.

    Args:
        config: Configuration dictionary containing logging settings
    """
    log_level = config.get("log_level") or "WARNING"

    setup_logging(
        log_level=log_level,
        log_file=config.get("log_file"),
        enable_console=True
    )

    for name in SANDBOX_LOGGERS:
        logging.getLogger(name).setLevel(getattr(logging, log_level.upper()))
