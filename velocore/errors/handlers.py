"""Error handlers with context preservation for the content pipeline."""

import traceback
from typing import Any, Dict, Optional, List
from datetime import datetime, timezone
from contextlib import contextmanager
from dataclasses import dataclass, field
from enum import Enum
import logging


class ErrorSeverity(Enum):
    """Error severity levels."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ErrorCategory(Enum):
    """Error categories for classification."""
    EXTRACTION = "extraction"
    VALIDATION = "validation"
    MERGE = "merge"
    OUTPUT = "output"
    CONFIGURATION = "configuration"
    UNKNOWN = "unknown"


@dataclass
class ErrorContext:
    """Context information for an error."""
    operation: str
    content_type: Optional[str] = None
    source_path: Optional[str] = None
    record_id: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> Dict[str, Any]:
        """Convert context to dictionary."""
        return {
            "operation": self.operation,
            "content_type": self.content_type,
            "source_path": self.source_path,
            "record_id": self.record_id,
            "metadata": self.metadata,
            "timestamp": self.timestamp.isoformat(),
        }


class BaseContentError(Exception):
    """Base exception for all content pipeline errors."""

    def __init__(
        self,
        message: str,
        context: Optional[ErrorContext] = None,
        cause: Optional[Exception] = None,
        severity: ErrorSeverity = ErrorSeverity.MEDIUM,
        category: ErrorCategory = ErrorCategory.UNKNOWN,
    ):
        super().__init__(message)
        self.message = message
        self.context = context
        self.cause = cause
        self.severity = severity
        self.category = category
        self.timestamp = datetime.now(timezone.utc)

        self.stack_trace = traceback.format_exc()

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dictionary for logging."""
        return {
            "error_type": self.__class__.__name__,
            "error_message": self.message,  # "message" clashes with LogRecord attributes
            "context": self.context.to_dict() if self.context else None,
            "cause": str(self.cause) if self.cause else None,
            "severity": self.severity.value,
            "category": self.category.value,
            "timestamp": self.timestamp.isoformat(),
        }


class ExtractionError(BaseContentError):
    """A source file could not be read or parsed."""

    def __init__(
        self,
        message: str,
        source_path: Optional[str] = None,
        context: Optional[ErrorContext] = None,
        cause: Optional[Exception] = None,
    ):
        super().__init__(
            message,
            context=context,
            cause=cause,
            severity=ErrorSeverity.HIGH,
            category=ErrorCategory.EXTRACTION,
        )
        self.source_path = source_path


class RecordValidationError(BaseContentError):
    """A record failed ingest validation."""

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        value: Optional[Any] = None,
        context: Optional[ErrorContext] = None,
    ):
        super().__init__(
            message,
            context=context,
            severity=ErrorSeverity.LOW,
            category=ErrorCategory.VALIDATION,
        )
        self.field = field
        self.value = value


class MergeError(BaseContentError):
    """Two records could not be merged."""

    def __init__(
        self,
        message: str,
        record_ids: Optional[List[str]] = None,
        context: Optional[ErrorContext] = None,
        cause: Optional[Exception] = None,
    ):
        super().__init__(
            message,
            context=context,
            cause=cause,
            severity=ErrorSeverity.HIGH,
            category=ErrorCategory.MERGE,
        )
        self.record_ids = record_ids or []


class OutputDirectoryError(BaseContentError):
    """The output directory could not be created. Fatal for a run."""

    def __init__(
        self,
        message: str,
        path: Optional[str] = None,
        context: Optional[ErrorContext] = None,
        cause: Optional[Exception] = None,
    ):
        super().__init__(
            message,
            context=context,
            cause=cause,
            severity=ErrorSeverity.CRITICAL,
            category=ErrorCategory.OUTPUT,
        )
        self.path = path


class ConfigurationError(BaseContentError):
    """Invalid or unreadable configuration."""

    def __init__(
        self,
        message: str,
        key: Optional[str] = None,
        context: Optional[ErrorContext] = None,
        cause: Optional[Exception] = None,
    ):
        super().__init__(
            message,
            context=context,
            cause=cause,
            severity=ErrorSeverity.CRITICAL,
            category=ErrorCategory.CONFIGURATION,
        )
        self.key = key


class ErrorHandler:
    """Centralized error handler with context preservation."""

    def __init__(self, logger: Optional[logging.Logger] = None):
        """Initialize error handler.

        Args:
            logger: Logger used for error output, defaults to this module's logger
        """
        self.logger = logger or logging.getLogger(__name__)
        self._contexts: List[ErrorContext] = []

        self._error_counts: Dict[str, int] = {}
        self._error_history: List[BaseContentError] = []
        self._max_history_size = 1000

    @contextmanager
    def error_context(self, **kwargs):
        """Context manager for error context.

        Usage:
            with error_handler.error_context(operation="extract", source_path="cols.js"):
                # Operations that might raise errors
                pass
        """
        context = ErrorContext(**kwargs)
        self._contexts.append(context)

        try:
            yield context
        finally:
            if self._contexts:
                self._contexts.pop()

    def get_current_context(self) -> Optional[ErrorContext]:
        """Get current error context."""
        if self._contexts:
            return self._contexts[-1]
        return None

    def handle_error(
        self,
        error: Exception,
        operation: Optional[str] = None,
        reraise: bool = True,
    ) -> BaseContentError:
        """Handle an error with context preservation.

        Args:
            error: The error to handle
            operation: Operation being performed
            reraise: Whether to re-raise the error

        Returns:
            Wrapped error when not re-raised
        """
        context = self.get_current_context()
        if operation and context:
            context.operation = operation

        if isinstance(error, BaseContentError):
            wrapped_error = error
            if not wrapped_error.context and context:
                wrapped_error.context = context
        else:
            wrapped_error = self._wrap_error(error, context)

        self._log_error(wrapped_error)
        self._update_error_stats(wrapped_error)

        if reraise:
            raise wrapped_error from error if wrapped_error is not error else None

        return wrapped_error

    def _wrap_error(self, error: Exception, context: Optional[ErrorContext]) -> BaseContentError:
        """Wrap a generic exception in appropriate error type."""
        error_str = f"{type(error).__name__}: {error}"
        operation = context.operation if context else ""

        if isinstance(error, (OSError, ValueError)) and operation.startswith("extract"):
            return ExtractionError(
                error_str,
                source_path=context.source_path if context else None,
                context=context,
                cause=error,
            )
        elif operation.startswith("merge"):
            record_ids = context.metadata.get("record_ids") if context else None
            if not record_ids and context and context.record_id:
                record_ids = [context.record_id]
            return MergeError(error_str, record_ids=record_ids, context=context, cause=error)
        elif isinstance(error, OSError) and operation.startswith("write"):
            return OutputDirectoryError(
                error_str,
                path=context.source_path if context else None,
                context=context,
                cause=error,
            )
        else:
            return BaseContentError(
                error_str,
                context=context,
                cause=error,
            )

    def _log_error(self, error: BaseContentError) -> None:
        """Log error with appropriate severity."""
        error_dict = error.to_dict()

        if error.severity == ErrorSeverity.CRITICAL:
            self.logger.critical(f"Critical error: {error.message}", extra=error_dict)
        elif error.severity == ErrorSeverity.HIGH:
            self.logger.error(f"Error: {error.message}", extra=error_dict)
        elif error.severity == ErrorSeverity.MEDIUM:
            self.logger.warning(f"Warning: {error.message}", extra=error_dict)
        else:
            self.logger.info(f"Info: {error.message}", extra=error_dict)

    def _update_error_stats(self, error: BaseContentError) -> None:
        """Update error statistics."""
        error_type = error.__class__.__name__

        if error_type not in self._error_counts:
            self._error_counts[error_type] = 0
        self._error_counts[error_type] += 1

        self._error_history.append(error)

        if len(self._error_history) > self._max_history_size:
            self._error_history = self._error_history[-self._max_history_size:]

    def get_error_statistics(self) -> Dict[str, Any]:
        """Get error statistics."""
        severity_dist = {severity.value: 0 for severity in ErrorSeverity}
        for error in self._error_history:
            severity_dist[error.severity.value] += 1

        return {
            "total_errors": sum(self._error_counts.values()),
            "error_counts": self._error_counts.copy(),
            "severity_distribution": severity_dist,
        }

    def create_user_friendly_message(self, error: BaseContentError) -> str:
        """Create user-friendly error message."""
        if isinstance(error, ExtractionError):
            if error.source_path:
                return f"Could not read records from {error.source_path}: {error.message}"
            return f"Extraction failed: {error.message}"
        elif isinstance(error, RecordValidationError):
            if error.field:
                return f"Invalid value for field '{error.field}': {error.message}"
            return f"Invalid record: {error.message}"
        elif isinstance(error, OutputDirectoryError):
            return f"Cannot create output directory {error.path}: {error.message}"
        elif isinstance(error, ConfigurationError):
            if error.key:
                return f"Invalid configuration for '{error.key}': {error.message}"
            return f"Invalid configuration: {error.message}"

        return f"An error occurred: {error.message}"
