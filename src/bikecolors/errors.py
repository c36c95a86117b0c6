"""
Error classification and handling for bikecolors.

Client-input errors carry their message through to the browser; storage and
decoding failures are logged in full and shown to the browser only as an
opaque message.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any

from google.cloud.exceptions import GoogleCloudError

from .logging_config import get_logger, log_error

logger = get_logger(__name__)


class ErrorCategory(Enum):
    """Error categories for classification and handling."""

    VALIDATION = "validation"
    UPLOAD = "upload"
    STORAGE = "storage"
    SYSTEM = "system"
    UNKNOWN = "unknown"


class ErrorSeverity(Enum):
    """Error severity levels."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


@dataclass
class ErrorInfo:
    """Structured error information."""

    category: ErrorCategory
    severity: ErrorSeverity
    code: str
    message: str
    user_message: str
    status_code: int
    details: dict[str, Any]
    timestamp: datetime


class BikeColorsError(Exception):
    """Base exception class for bikecolors."""

    status_code = 500

    def __init__(
        self,
        message: str,
        category: ErrorCategory = ErrorCategory.UNKNOWN,
        severity: ErrorSeverity = ErrorSeverity.MEDIUM,
        code: str | None = None,
        user_message: str | None = None,
        details: dict[str, Any] | None = None,
        original_exception: Exception | None = None,
    ):
        super().__init__(message)
        self.category = category
        self.severity = severity
        self.code = code or f"{category.value}_error"
        self.user_message = user_message or "Internal Server Error"
        self.details = details or {}
        self.original_exception = original_exception
        self.timestamp = datetime.now()

        self._log_error()

    def _log_error(self) -> None:
        """Log the error with appropriate level."""
        error_context = {
            "category": self.category.value,
            "severity": self.severity.value,
            "code": self.code,
            "status_code": self.status_code,
            **self.details,
        }

        if self.original_exception:
            error_context["original_exception"] = str(self.original_exception)

        if self.severity is ErrorSeverity.LOW:
            logger.info("client_error", error_message=str(self), **error_context)
        else:
            log_error(self, error_context)

    def get_error_info(self) -> ErrorInfo:
        """Get structured error information."""
        return ErrorInfo(
            category=self.category,
            severity=self.severity,
            code=self.code,
            message=str(self),
            user_message=self.user_message,
            status_code=self.status_code,
            details=self.details,
            timestamp=self.timestamp,
        )


class ValidationError(BikeColorsError):
    """A submitted form field is missing or malformed."""

    status_code = 400

    def __init__(
        self,
        message: str,
        code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(
            message=message,
            category=ErrorCategory.VALIDATION,
            severity=ErrorSeverity.LOW,
            code=code or "validation_failed",
            user_message=message,
            details=details,
        )


class MissingFileError(BikeColorsError):
    """The upload form arrived without an image file."""

    status_code = 400

    def __init__(self, message: str = "image file missing from upload", details: dict[str, Any] | None = None):
        super().__init__(
            message=message,
            category=ErrorCategory.UPLOAD,
            severity=ErrorSeverity.LOW,
            code="missing_file",
            user_message="Image not found",
            details=details,
        )


class RequestTooLargeError(BikeColorsError):
    """The upload exceeds the configured size bound."""

    status_code = 413

    def __init__(self, size: int | None, limit: int):
        super().__init__(
            message=f"upload of {size if size is not None else 'unknown'} bytes exceeds limit of {limit} bytes",
            category=ErrorCategory.UPLOAD,
            severity=ErrorSeverity.LOW,
            code="request_too_large",
            user_message="Request Entity Too Large",
            details={"size": size, "limit": limit},
        )


class NotFoundError(BikeColorsError):
    """The requested object does not exist in the store."""

    status_code = 404

    def __init__(self, key: str, original_exception: Exception | None = None):
        super().__init__(
            message=f"object not found: {key}",
            category=ErrorCategory.STORAGE,
            severity=ErrorSeverity.LOW,
            code="not_found",
            user_message="Not Found",
            details={"key": key},
            original_exception=original_exception,
        )
        self.key = key


class DecodeError(BikeColorsError):
    """A stored sidecar could not be decoded."""

    def __init__(self, message: str, key: str | None = None, original_exception: Exception | None = None):
        super().__init__(
            message=message,
            category=ErrorCategory.STORAGE,
            severity=ErrorSeverity.HIGH,
            code="decode_error",
            details={"key": key} if key else None,
            original_exception=original_exception,
        )
        self.key = key


class StorageError(BikeColorsError):
    """Any other object store failure."""

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
        original_exception: Exception | None = None,
    ):
        super().__init__(
            message=message,
            category=ErrorCategory.STORAGE,
            severity=ErrorSeverity.HIGH,
            code="storage_error",
            details=details,
            original_exception=original_exception,
        )


class ErrorHandler:
    """Wraps unexpected exceptions and tracks error frequency."""

    def __init__(self) -> None:
        self.error_counts: dict[str, int] = {}
        self.logger = get_logger(__name__)

    def handle_error(self, error: Exception, context: dict[str, Any] | None = None) -> ErrorInfo:
        """
        Classify an error and return its structured information.

        Args:
            error: Exception to handle
            context: Additional context information (e.g. request path)

        Returns:
            ErrorInfo: Structured error information
        """
        context = context or {}

        if isinstance(error, BikeColorsError):
            error_info = error.get_error_info()
        else:
            error_info = self._classify_error(error, context).get_error_info()

        self._track_error(error_info.code)
        return error_info

    def _classify_error(self, error: Exception, context: dict[str, Any]) -> BikeColorsError:
        details = {"original_type": type(error).__name__, **context}
        if isinstance(error, GoogleCloudError):
            return StorageError(str(error), details=details, original_exception=error)
        return BikeColorsError(
            message=str(error),
            category=ErrorCategory.SYSTEM,
            severity=ErrorSeverity.CRITICAL,
            details=details,
            original_exception=error,
        )

    def _track_error(self, error_code: str) -> None:
        self.error_counts[error_code] = self.error_counts.get(error_code, 0) + 1

        if self.error_counts[error_code] % 10 == 0:
            self.logger.warning("frequent_error_detected", error_code=error_code, count=self.error_counts[error_code])

    def get_error_statistics(self) -> dict[str, int]:
        """Get error occurrence statistics."""
        return self.error_counts.copy()
