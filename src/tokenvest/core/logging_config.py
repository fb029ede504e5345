"""
tokenvest - Structured Logging Configuration

Configures structured JSON logging for ledger deployments:
- JSON format for easy parsing and aggregation
- Optional rotating file output
- Ledger context (``event``, beneficiary, amounts) passed through ``extra``

Usage:
    from tokenvest.core.logging_config import setup_logging

    logger = setup_logging(name="tokenvest", level="INFO")
    logger.info("Vesting created", extra={"event": "vesting.created", "amount": 900})
"""

from __future__ import annotations

import logging
import logging.handlers
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING, Any, Dict, Optional

from pythonjsonlogger import jsonlogger

if TYPE_CHECKING:
    from tokenvest.core.config_manager import ConfigManager

VALID_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """
    JSON formatter that stamps every record with timestamp, level,
    environment, service and source location.
    """

    def __init__(
        self,
        fmt: str = "%(timestamp)s %(level)s %(name)s %(message)s",
        timestamp: bool = True,
        environment: Optional[str] = None,
        service_name: str = "tokenvest",
    ):
        super().__init__(fmt=fmt)
        self.timestamp = timestamp
        self.environment = environment or "production"
        self.service_name = service_name

    def add_fields(
        self,
        log_record: Dict[str, Any],
        record: logging.LogRecord,
        message_dict: Dict[str, Any],
    ) -> None:
        super().add_fields(log_record, record, message_dict)

        if self.timestamp and not log_record.get("timestamp"):
            log_record["timestamp"] = datetime.now(timezone.utc).isoformat()

        log_record["environment"] = self.environment
        log_record["service"] = self.service_name

        if not log_record.get("level"):
            log_record["level"] = record.levelname.lower()

        log_record["source"] = {
            "function": record.funcName,
            "module": record.module,
            "line": record.lineno,
        }


def setup_logging(
    name: str = "tokenvest",
    log_file: Optional[str] = None,
    level: str = "INFO",
    environment: str = "production",
    json_format: bool = True,
    enable_console: bool = True,
    max_bytes: int = 50 * 1024 * 1024,  # 50MB
    backup_count: int = 10,
) -> logging.Logger:
    """
    Setup structured logging for a ledger process.

    Args:
        name: Logger name (module loggers under it inherit the handlers)
        log_file: Path to JSON log file (optional)
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        environment: Environment identifier (development, staging, production)
        json_format: Emit JSON records; plain text otherwise
        enable_console: Whether to log to stdout
        max_bytes: Maximum log file size before rotation
        backup_count: Number of backup files to keep

    Returns:
        Configured logger instance
    """
    if level.upper() not in VALID_LEVELS:
        raise ValueError(f"Invalid log level: {level}. Must be one of {VALID_LEVELS}")

    logger = logging.getLogger(name)
    logger.setLevel(getattr(logging, level.upper()))

    # Remove existing handlers to avoid duplicates
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    formatter: logging.Formatter
    if json_format:
        formatter = CustomJsonFormatter(
            environment=environment,
            service_name=name.split(".")[0],
        )
    else:
        formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")

    if enable_console:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            filename=str(log_path),
            maxBytes=max_bytes,
            backupCount=backup_count,
        )
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    return logger


def get_logger(name: str, level: str = "INFO") -> logging.Logger:
    """
    Get a logger, configuring it only if it has no handlers yet.
    """
    logger = logging.getLogger(name)
    if not logger.handlers:
        return setup_logging(name=name, level=level)
    return logger


def setup_ledger_logging(
    manager: "ConfigManager",
    level: Optional[str] = None,
    enable_console: bool = False,
) -> logging.Logger:
    """Setup logging from a loaded configuration; ``level`` overrides the configured one."""
    settings = manager.logging
    return setup_logging(
        name="tokenvest",
        log_file=settings.log_file,
        level=level or settings.level,
        environment=manager.environment.value,
        json_format=settings.json_format,
        enable_console=enable_console,
    )
