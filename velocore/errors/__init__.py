"""Error handling module for content extraction and merge operations."""

from .handlers import (
    ErrorHandler,
    ErrorContext,
    ErrorSeverity,
    ErrorCategory,
    BaseContentError,
    ExtractionError,
    RecordValidationError,
    MergeError,
    OutputDirectoryError,
    ConfigurationError,
)

__all__ = [
    "ErrorHandler",
    "ErrorContext",
    "ErrorSeverity",
    "ErrorCategory",
    "BaseContentError",
    "ExtractionError",
    "RecordValidationError",
    "MergeError",
    "OutputDirectoryError",
    "ConfigurationError",
]
