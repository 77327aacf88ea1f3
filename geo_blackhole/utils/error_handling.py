#!/usr/bin/env python3
"""
geo-blackhole Error Handling Utilities

Provides standardized error formatting and exit-code mapping for consistent
error reporting across the application.

Error Format Standards:
- INFO: "✓ {message}"                    # Success messages
- WARNING: "⚠ {message}"                 # Warning messages
- ERROR: "✗ {message}"                   # Error messages
- FATAL: "✗ Fatal: {message}"            # Critical errors
"""

import logging
from functools import wraps
from typing import Optional, Union

from geo_blackhole.utils.exit_codes import BlackholeExitCodes


class ErrorSeverity:
    """Error severity levels for consistent classification"""
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    FATAL = "fatal"


class GeoBlackholeError(Exception):
    """Base exception class for geo-blackhole with standardized error handling"""

    exit_code = BlackholeExitCodes.GENERAL_ERROR

    def __init__(self, message: str, severity: str = ErrorSeverity.FATAL,
                 guidance: Optional[str] = None, technical_details: Optional[str] = None):
        self.message = message
        self.severity = severity
        self.guidance = guidance
        self.technical_details = technical_details
        super().__init__(message)


class ConfigurationError(GeoBlackholeError):
    """Raised when configuration is invalid or missing"""

    exit_code = BlackholeExitCodes.CONFIG_ERROR


class GeoDatabaseError(GeoBlackholeError):
    """Raised when the country database cannot be opened or has the wrong type"""

    exit_code = BlackholeExitCodes.NO_INPUT


class DaemonConnectionError(GeoBlackholeError):
    """Raised when the routing daemon cannot be reached"""

    exit_code = BlackholeExitCodes.UNAVAILABLE


class SnapshotError(GeoBlackholeError):
    """Raised when the active route table cannot be listed"""

    exit_code = BlackholeExitCodes.SNAPSHOT_FAILED


class RouteSubmissionError(GeoBlackholeError):
    """Raised when a single announce or withdraw call fails"""

    def __init__(self, message: str, technical_details: Optional[str] = None):
        super().__init__(message, ErrorSeverity.ERROR, technical_details=technical_details)


class ErrorFormatter:
    """Centralized error message formatting with consistent symbols"""

    SYMBOLS = {
        ErrorSeverity.INFO: "✓",
        ErrorSeverity.WARNING: "⚠",
        ErrorSeverity.ERROR: "✗",
        ErrorSeverity.FATAL: "✗ Fatal:",
    }

    @classmethod
    def format_message(cls, message: str, severity: str = ErrorSeverity.ERROR,
                       guidance: Optional[str] = None) -> str:
        """Format a message with the appropriate symbol and structure"""
        symbol = cls.SYMBOLS.get(severity, "•")
        formatted = f"{symbol} {message}"

        if guidance:
            formatted += f"\n  Suggestion: {guidance}"

        return formatted

    @classmethod
    def format_error(cls, error: Union[Exception, GeoBlackholeError],
                     hide_technical: bool = True) -> str:
        """Format an exception with appropriate level of detail"""
        if isinstance(error, GeoBlackholeError):
            formatted = cls.format_message(error.message, error.severity, error.guidance)
            if not hide_technical and error.technical_details:
                formatted += f"\n  Technical: {error.technical_details}"
            return formatted

        message = str(error)

        if isinstance(error, FileNotFoundError):
            return cls.format_message(f"File not found: {message}", ErrorSeverity.ERROR,
                                      "Check that the file path is correct and the file exists")
        elif isinstance(error, PermissionError):
            return cls.format_message(f"Permission denied: {message}", ErrorSeverity.ERROR,
                                      "Check file permissions or run with appropriate privileges")
        elif isinstance(error, KeyboardInterrupt):
            return cls.format_message("Operation interrupted by user", ErrorSeverity.WARNING)
        elif hide_technical:
            return cls.format_message("Unexpected error occurred", ErrorSeverity.ERROR,
                                      "Check logs for details or run with --verbose")
        else:
            return cls.format_message(f"Unexpected {type(error).__name__}: {message}",
                                      ErrorSeverity.ERROR)


def handle_errors(logger_name: str = None, hide_technical: bool = True):
    """Decorator for standardized error handling in command functions"""
    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            logger = logging.getLogger(logger_name or f'geo-blackhole.{func.__name__}')

            try:
                return func(*args, **kwargs)
            except GeoBlackholeError as e:
                logger.error(f"{e.severity.title()} in {func.__name__}: {e.message}")
                if e.technical_details:
                    logger.debug(f"Details: {e.technical_details}")
                print(ErrorFormatter.format_error(e, hide_technical))
                return int(e.exit_code)

            except KeyboardInterrupt:
                logger.info(f"Command {func.__name__} interrupted by user")
                print(ErrorFormatter.format_message("Operation interrupted by user",
                                                    ErrorSeverity.WARNING))
                return int(BlackholeExitCodes.SIGINT_TERMINATION)

            except Exception as e:
                logger.exception(f"Unexpected error in {func.__name__}: {e}")
                print(ErrorFormatter.format_error(e, hide_technical))
                return int(BlackholeExitCodes.UNEXPECTED_ERROR)

        return wrapper
    return decorator


def print_success(message: str):
    """Print a success message with consistent formatting"""
    print(ErrorFormatter.format_message(message, ErrorSeverity.INFO))


def print_warning(message: str, guidance: str = None):
    """Print a warning message with consistent formatting"""
    print(ErrorFormatter.format_message(message, ErrorSeverity.WARNING, guidance))


def print_error(message: str, guidance: str = None):
    """Print an error message with consistent formatting"""
    print(ErrorFormatter.format_message(message, ErrorSeverity.ERROR, guidance))


__all__ = [
    'ErrorSeverity', 'GeoBlackholeError', 'ConfigurationError', 'GeoDatabaseError',
    'DaemonConnectionError', 'SnapshotError', 'RouteSubmissionError', 'ErrorFormatter', 'handle_errors',
    'print_success', 'print_warning', 'print_error',
]
