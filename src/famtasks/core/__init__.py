"""Core modules for FamTasks.

Configuration, logging and error handling shared by the parser and its
collaborators.
"""

from .config_manager import (
    AppConfig,
    ConfigManager,
    FamilyMember,
    KnownPlace,
    LLMConfig,
    LoggingConfig,
    ParserConfig,
)
from .error_handler import (
    FamTasksError,
    ConfigurationError,
    LLMError,
    ParseError,
    ErrorHandler,
    ErrorSeverity
)
from .logging_manager import LoggingManager

__all__ = [
    "AppConfig",
    "ConfigManager",
    "FamilyMember",
    "KnownPlace",
    "LLMConfig",
    "LoggingConfig",
    "ParserConfig",
    "FamTasksError",
    "ConfigurationError",
    "LLMError",
    "ParseError",
    "ErrorHandler",
    "ErrorSeverity",
    "LoggingManager"
]
