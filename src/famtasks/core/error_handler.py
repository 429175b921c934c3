"""Global Error Handling for FamTasks

Centralized error types and severity-based error logging.
"""

import logging
import sys
from enum import Enum
from typing import Callable, Dict, Optional, Type


class ErrorSeverity(Enum):
    """Error severity levels."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class FamTasksError(Exception):
    """Base exception class for FamTasks."""

    def __init__(self, message: str, severity: ErrorSeverity = ErrorSeverity.MEDIUM):
        self.message = message
        self.severity = severity
        super().__init__(self.message)


class ConfigurationError(FamTasksError):
    """Error raised when configuration is invalid."""
    pass


class LLMError(FamTasksError):
    """Error raised when LLM processing fails."""
    pass


class ParseError(FamTasksError):
    """Error raised when a caller hands the parser an unusable request."""
    pass


class ErrorHandler:
    """Global error handler for the application."""

    def __init__(self):
        """Initialize error handler."""
        self.logger = logging.getLogger(__name__)
        self.error_callbacks: Dict[Type[Exception], Callable] = {}

    def register_error_callback(self, exception_type: Type[Exception],
                              callback: Callable[[Exception], None]):
        """Register a callback for specific exception types.

        Args:
            exception_type: The exception type to handle
            callback: Function to call when this exception occurs
        """
        self.error_callbacks[exception_type] = callback

    def handle_error(self, error: Exception, context: Optional[str] = None) -> bool:
        """Handle an error with appropriate logging.

        Args:
            error: The exception that occurred
            context: Additional context about where the error occurred

        Returns:
            True if error was handled successfully, False otherwise
        """
        try:
            severity = self._get_error_severity(error)
            error_message = self._format_error_message(error, context)

            self._log_error(error_message, severity)

            # Calling registered callbacks
            error_type = type(error)
            if error_type in self.error_callbacks:
                self.error_callbacks[error_type](error)

            return True

        except Exception as handler_error:
            # If error handler itself fails, log to stderr
            print(f"Error handler failed: {handler_error}", file=sys.stderr)
            return False

    def _get_error_severity(self, error: Exception) -> ErrorSeverity:
        """Determine error severity based on exception type.

        Args:
            error: The exception to analyze

        Returns:
            Appropriate severity level
        """
        if isinstance(error, FamTasksError):
            return error.severity

        # Mapping standard exceptions to severity levels
        severity_map = {
            FileNotFoundError: ErrorSeverity.MEDIUM,
            PermissionError: ErrorSeverity.HIGH,
            ConnectionError: ErrorSeverity.HIGH,
            TimeoutError: ErrorSeverity.MEDIUM,
            ValueError: ErrorSeverity.MEDIUM,
            MemoryError: ErrorSeverity.CRITICAL,
            KeyboardInterrupt: ErrorSeverity.LOW,
        }

        return severity_map.get(type(error), ErrorSeverity.MEDIUM)

    def _format_error_message(self, error: Exception, context: Optional[str] = None) -> str:
        message = str(error)
        if context:
            message = f"{context}: {message}"

        return message

    def _log_error(self, message: str, severity: ErrorSeverity):
        """Log error with appropriate level.

        Args:
            message: Formatted error message
            severity: Error severity
        """
        log_methods = {
            ErrorSeverity.LOW: self.logger.info,
            ErrorSeverity.MEDIUM: self.logger.warning,
            ErrorSeverity.HIGH: self.logger.error,
            ErrorSeverity.CRITICAL: self.logger.critical,
        }

        log_method = log_methods[severity]
        log_method(message, exc_info=severity in (ErrorSeverity.HIGH, ErrorSeverity.CRITICAL))
