#!/usr/bin/env python3
"""
Centralized Logging Configuration for geo-blackhole

Provides standardized logging setup with:
- Console and rotating file output
- Configurable log levels
- Structured log formatting
- Operation timing
- systemd journal integration
"""

import logging
import logging.handlers
import os
import sys
import time
from pathlib import Path
from typing import Dict, Optional

from geo_blackhole.utils.config import LoggingConfig


class BlackholeFormatter(logging.Formatter):
    """Formatter with optional ANSI colors for console output"""

    COLORS = {
        "DEBUG": "\033[36m",  # Cyan
        "INFO": "\033[32m",  # Green
        "WARNING": "\033[33m",  # Yellow
        "ERROR": "\033[31m",  # Red
        "CRITICAL": "\033[35m",  # Magenta
    }
    RESET = "\033[0m"

    def __init__(self, use_colors: bool = True, include_module: bool = True):
        """
        Initialize formatter

        Args:
            use_colors: Use ANSI color codes for console output
            include_module: Include logger name in log output
        """
        self.use_colors = use_colors and sys.stderr.isatty()
        self.include_module = include_module

        if include_module:
            format_str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        else:
            format_str = "%(asctime)s - %(levelname)s - %(message)s"

        super().__init__(fmt=format_str, datefmt="%Y-%m-%d %H:%M:%S")

    def format(self, record):
        formatted = super().format(record)

        if self.use_colors and record.levelname in self.COLORS:
            color = self.COLORS[record.levelname]
            formatted = f"{color}{formatted}{self.RESET}"

        return formatted


def setup_logging(
    logging_config: Optional[LoggingConfig] = None,
    level: str = None,
    console_colors: bool = True,
) -> Dict[str, logging.Handler]:
    """
    Setup centralized logging for geo-blackhole

    Args:
        logging_config: Logging section of the configuration
        level: Log level override (from -v/-q)
        console_colors: Use colors in console output

    Returns:
        Dictionary of configured handlers
    """
    logging_config = logging_config or LoggingConfig()

    if level is None:
        level = logging_config.level
    numeric_level = getattr(logging, level.upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handlers = {}

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(numeric_level)
    console_handler.setFormatter(BlackholeFormatter(use_colors=console_colors))
    root_logger.addHandler(console_handler)
    handlers["console"] = console_handler

    if logging_config.log_to_file:
        log_path = Path(logging_config.log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.handlers.RotatingFileHandler(
            log_path,
            maxBytes=10 * 1024 * 1024,  # 10MB
            backupCount=5,
        )
        file_handler.setLevel(numeric_level)
        file_handler.setFormatter(BlackholeFormatter(use_colors=False))
        root_logger.addHandler(file_handler)
        handlers["file"] = file_handler

    # systemd journal handler (if available and running as service)
    try:
        from systemd import journal

        if _is_running_as_service():
            journal_handler = journal.JournalHandler(SYSLOG_IDENTIFIER="geo-blackhole")
            journal_handler.setLevel(numeric_level)
            journal_handler.setFormatter(BlackholeFormatter(use_colors=False))
            root_logger.addHandler(journal_handler)
            handlers["journal"] = journal_handler
    except ImportError:
        pass

    logger = logging.getLogger("geo-blackhole.logging")
    logger.debug(f"Logging configured: level={level}, handlers={list(handlers.keys())}")

    return handlers


def _is_running_as_service() -> bool:
    """Check if running as a systemd service"""
    return (
        os.getenv("INVOCATION_ID") is not None
        or os.getenv("JOURNAL_STREAM") is not None
    )


def log_batch_summary(logger: logging.Logger, operation: str, total: int,
                      successful: int, duration: float):
    """Log batch operation summary"""
    failed = total - successful
    success_rate = (successful / total * 100) if total > 0 else 100.0

    message = f"Batch {operation}: {successful}/{total} successful ({success_rate:.1f}%) in {duration:.2f}s"

    if failed > 0:
        logger.warning(message + f" - {failed} failed")
    else:
        logger.info(message)


class LoggingTimer:
    """Context manager for timing operations with logging"""

    def __init__(
        self, logger: logging.Logger, operation: str, level: int = logging.INFO
    ):
        self.logger = logger
        self.operation = operation
        self.level = level
        self.start_time = None
        self.duration = 0.0

    def __enter__(self):
        self.start_time = time.time()
        self.logger.log(self.level, f"Starting {self.operation}")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.duration = time.time() - self.start_time

        if exc_type is None:
            self.logger.log(
                self.level, f"Completed {self.operation} in {self.duration:.3f}s"
            )
        else:
            self.logger.error(
                f"Failed {self.operation} after {self.duration:.3f}s: {exc_val}"
            )

        return False
