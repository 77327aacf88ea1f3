"""
geo-blackhole Exit Codes - Standardized Exit Codes for Monitoring Integration

A scheduled run (cron or systemd timer) is judged by its exit status, so every
fatal condition maps to its own code.
"""

from enum import IntEnum


class BlackholeExitCodes(IntEnum):
    """
    Standardized exit codes for geo-blackhole runs

    Exit codes follow UNIX conventions:
    - 0: Success
    - 1-2: User/configuration errors
    - 3-63: Application-specific errors
    - 64-113: System errors (sysexits.h convention)
    - 128+: Signal termination
    """

    # Success
    SUCCESS = 0

    # User/Configuration Errors (1-2)
    GENERAL_ERROR = 1
    INVALID_USAGE = 2

    # Application Errors (3-63)
    PARTIAL_FAILURE = 3
    SNAPSHOT_FAILED = 4
    UNEXPECTED_ERROR = 22

    # System Errors (64-113, following sysexits.h)
    NO_INPUT = 66              # Cannot open input
    UNAVAILABLE = 69           # Service unavailable
    CONFIG_ERROR = 78          # Configuration error

    # Signal Termination (128+)
    SIGINT_TERMINATION = 130   # Ctrl+C (SIGINT = 2, 128+2)
    SIGTERM_TERMINATION = 143  # SIGTERM = 15, 128+15


EXIT_CODE_DESCRIPTIONS = {
    BlackholeExitCodes.SUCCESS: "Reconciliation completed successfully",
    BlackholeExitCodes.GENERAL_ERROR: "General error occurred",
    BlackholeExitCodes.INVALID_USAGE: "Invalid command line usage",
    BlackholeExitCodes.PARTIAL_FAILURE: "One or more announce/withdraw operations failed",
    BlackholeExitCodes.SNAPSHOT_FAILED: "Active route table could not be listed",
    BlackholeExitCodes.UNEXPECTED_ERROR: "Unexpected error occurred",
    BlackholeExitCodes.NO_INPUT: "Country database could not be opened",
    BlackholeExitCodes.UNAVAILABLE: "Routing daemon unavailable",
    BlackholeExitCodes.CONFIG_ERROR: "Configuration error",
    BlackholeExitCodes.SIGINT_TERMINATION: "Interrupted by user (Ctrl+C)",
    BlackholeExitCodes.SIGTERM_TERMINATION: "Terminated by system signal",
}


def get_exit_code_description(exit_code: BlackholeExitCodes) -> str:
    """
    Get human-readable description for exit code

    Args:
        exit_code: geo-blackhole exit code

    Returns:
        Description string
    """
    return EXIT_CODE_DESCRIPTIONS.get(exit_code, f"Unknown exit code: {exit_code.value}")
