"""Error taxonomy and error handling service for the requirements engine.

This module provides:
- Exception classes for transport, file system, validation and configuration errors
- User-friendly error messages with suggested actions
- A centralized service that classifies, logs and remembers errors

"Not found" and "could not parse" are deliberately absent: they are normal
return values (``LookupResult.not_found()`` and ``None`` fields), never
exceptions.
"""

import json
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any

import httpx
import structlog

log = structlog.stdlib.get_logger()


class ErrorCategory(Enum):
    """Categories of errors for classification and handling."""
    NETWORK = "network"
    FILE_SYSTEM = "file_system"
    VALIDATION = "validation"
    CONFIGURATION = "configuration"
    CACHE = "cache"
    UNEXPECTED = "unexpected"


class ErrorSeverity(Enum):
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


@dataclass(frozen=True)
class UserFriendlyError:
    """User-friendly error representation with suggested actions."""
    message: str
    category: ErrorCategory
    severity: ErrorSeverity
    suggested_actions: list[str]
    technical_details: str | None = None
    recoverable: bool = True


class AppError(Exception):
    """Base exception class for application errors."""

    def __init__(
        self,
        message: str,
        category: ErrorCategory = ErrorCategory.UNEXPECTED,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
        suggested_actions: list[str] | None = None,
        technical_details: str | None = None,
        recoverable: bool = True,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.category = category
        self.severity = severity
        self.suggested_actions = suggested_actions or []
        self.technical_details = technical_details
        self.recoverable = recoverable

    def to_user_friendly(self) -> UserFriendlyError:
        return UserFriendlyError(
            message=self.message,
            category=self.category,
            severity=self.severity,
            suggested_actions=self.suggested_actions,
            technical_details=self.technical_details,
            recoverable=self.recoverable,
        )


class NetworkError(AppError):
    """Transport failure talking to an external requirements source.

    Covers connection errors, timeouts, unexpected HTTP statuses and
    malformed response bodies.
    """

    def __init__(
        self,
        message: str,
        original_error: Exception | None = None,
        url: str | None = None,
        status_code: int | None = None,
        source: str | None = None,
    ) -> None:
        suggested_actions = [
            "Check your internet connection",
            "Try again in a few moments",
        ]
        if status_code == 429:
            suggested_actions = [
                "Wait a few minutes before retrying",
                "Increase request_delay or batch_delay in the configuration",
            ]
        elif status_code is not None and status_code >= 500:
            suggested_actions = [
                "The source is experiencing issues",
                "Try again later",
            ]

        details = []
        if source:
            details.append(f"Source: {source}")
        if status_code:
            details.append(f"Status: {status_code}")
        if url:
            details.append(f"URL: {url}")
        if original_error:
            details.append(f"{type(original_error).__name__}: {original_error}")

        super().__init__(
            message=message,
            category=ErrorCategory.NETWORK,
            severity=ErrorSeverity.WARNING,
            suggested_actions=suggested_actions,
            technical_details="\n".join(details) or None,
            recoverable=True,
        )
        self.original_error = original_error
        self.url = url
        self.status_code = status_code
        self.source = source


class FileSystemError(AppError):
    """Exception for file system-related errors."""

    def __init__(
        self,
        message: str,
        original_error: Exception | None = None,
        path: str | None = None,
        operation: str | None = None,
        category: ErrorCategory = ErrorCategory.FILE_SYSTEM,
    ) -> None:
        if isinstance(original_error, PermissionError):
            suggested_actions = [
                "Check file/directory permissions",
                "Choose a different cache directory",
            ]
        elif isinstance(original_error, FileNotFoundError):
            suggested_actions = [
                "Verify the file path is correct",
                "Create the file or directory first",
            ]
        else:
            suggested_actions = [
                "Check the file path and permissions",
                "Ensure sufficient disk space",
            ]

        technical_details = None
        if original_error:
            technical_details = f"{type(original_error).__name__}: {original_error}"
        if path:
            technical_details = f"Path: {path}" + (f"\n{technical_details}" if technical_details else "")

        super().__init__(
            message=message,
            category=category,
            severity=ErrorSeverity.ERROR,
            suggested_actions=suggested_actions,
            technical_details=technical_details,
            recoverable=True,
        )
        self.original_error = original_error
        self.path = path
        self.operation = operation


class CacheWriteError(FileSystemError):
    """A resolved result could not be stored. Never blocks returning it."""

    def __init__(self, game_id: str, original_error: Exception | None = None, path: str | None = None) -> None:
        super().__init__(
            message=f"Could not cache requirements for game {game_id}",
            original_error=original_error,
            path=path,
            operation="cache_write",
            category=ErrorCategory.CACHE,
        )
        self.game_id = game_id


class ValidationError(AppError):
    """Exception for validation-related errors."""

    def __init__(
        self,
        message: str,
        field: str | None = None,
        value: Any = None,
        constraints: list[str] | None = None,
    ) -> None:
        suggested_actions = ["Review the input requirements"]
        if constraints:
            suggested_actions.extend(f"Ensure: {c}" for c in constraints)

        technical_details = None
        if field:
            technical_details = f"Field: {field}"
        if value is not None:
            technical_details = (technical_details or "") + f"\nValue: {str(value)[:100]}"

        super().__init__(
            message=message,
            category=ErrorCategory.VALIDATION,
            severity=ErrorSeverity.WARNING,
            suggested_actions=suggested_actions,
            technical_details=technical_details,
            recoverable=True,
        )
        self.field = field
        self.value = value
        self.constraints = constraints or []


class InvalidGameError(ValidationError):
    """A resolve call without the game id or name."""

    def __init__(self, field: str, value: Any = None) -> None:
        super().__init__(
            message=f"Game {field} is required to resolve requirements",
            field=field,
            value=value,
            constraints=["game.id and game.name must be non-empty"],
        )


class ConfigurationError(AppError):
    """Exception for configuration-related errors."""

    def __init__(
        self,
        message: str,
        setting: str | None = None,
        current_value: Any = None,
        expected: str | None = None,
    ) -> None:
        suggested_actions = [
            "Check the configuration settings",
            "Reset to default values if needed",
        ]
        if expected:
            suggested_actions.append(f"Expected: {expected}")

        technical_details = None
        if setting:
            technical_details = f"Setting: {setting}"
        if current_value is not None:
            technical_details = (technical_details or "") + f"\nCurrent: {current_value}"

        super().__init__(
            message=message,
            category=ErrorCategory.CONFIGURATION,
            severity=ErrorSeverity.ERROR,
            suggested_actions=suggested_actions,
            technical_details=technical_details,
            recoverable=True,
        )
        self.setting = setting
        self.current_value = current_value
        self.expected = expected


class ErrorHandlingService:
    """Centralized error handling with classification and history.

    Converts arbitrary exceptions into :class:`AppError` instances, logs them
    with their technical details and keeps a bounded history for reporting.
    """

    def __init__(self, max_history_size: int = 100) -> None:
        self._error_history: list[tuple[float, AppError]] = []
        self._max_history_size = max_history_size
        log.debug("Error handling service initialized")

    def handle_error(
        self,
        error: Exception,
        operation: str,
        component: str,
        context: dict[str, Any] | None = None,
    ) -> UserFriendlyError:
        """Handle an error and return a user-friendly representation.

        Args:
            error: The exception that occurred
            operation: The operation being performed
            component: The component where the error occurred
            context: Additional context information

        Returns:
            User-friendly error representation
        """
        app_error = self.convert(error, context)
        self._log_error(app_error, operation, component, context)

        self._error_history.append((time.time(), app_error))
        if len(self._error_history) > self._max_history_size:
            self._error_history.pop(0)

        return app_error.to_user_friendly()

    def convert(self, error: Exception, context: dict[str, Any] | None = None) -> AppError:
        """Convert a standard exception to an AppError."""
        context = context or {}

        if isinstance(error, AppError):
            return error

        if isinstance(error, httpx.TimeoutException):
            return NetworkError(
                message="The request timed out. The source may be slow or unavailable.",
                original_error=error,
                url=context.get("url"),
            )
        if isinstance(error, httpx.HTTPStatusError):
            status_code = error.response.status_code
            return NetworkError(
                message=self._get_http_error_message(status_code),
                original_error=error,
                url=str(error.request.url) if error.request else None,
                status_code=status_code,
            )
        if isinstance(error, httpx.RequestError):
            return NetworkError(
                message="A network error occurred. Please check your connection.",
                original_error=error,
                url=context.get("url"),
            )

        if isinstance(error, json.JSONDecodeError):
            return ValidationError(
                message="Invalid JSON format. The data could not be parsed.",
                field=context.get("field", "json_content"),
            )
        if isinstance(error, OSError):
            return FileSystemError(
                message=f"A file system error occurred: {error}",
                original_error=error,
                path=context.get("path"),
            )
        if isinstance(error, (ValueError, TypeError)):
            return ValidationError(
                message=str(error),
                field=context.get("field"),
                value=context.get("value"),
            )

        return AppError(
            message="An unexpected error occurred. Please try again.",
            technical_details=f"{type(error).__name__}: {error}",
        )

    def _get_http_error_message(self, status_code: int) -> str:
        messages = {
            400: "The request was invalid.",
            401: "Authentication required. Check the API key.",
            403: "Access denied. Check the API key or request rate.",
            404: "The requested resource was not found.",
            429: "Too many requests. Please wait before trying again.",
            500: "The source encountered an internal error.",
            502: "The source is temporarily unavailable.",
            503: "The source is under maintenance or overloaded.",
            504: "The source took too long to respond.",
        }
        return messages.get(status_code, f"HTTP error {status_code} occurred.")

    def _log_error(
        self,
        error: AppError,
        operation: str,
        component: str,
        context: dict[str, Any] | None,
    ) -> None:
        log_method = log.warning if error.severity == ErrorSeverity.WARNING else log.error
        log_method(
            "Error occurred",
            error_message=error.message,
            category=error.category.value,
            severity=error.severity.value,
            operation=operation,
            component=component,
            technical_details=error.technical_details,
            context=context,
        )

    def get_recent_errors(self, count: int = 10) -> list[AppError]:
        recent = self._error_history[-count:] if self._error_history else []
        return [error for _, error in recent]

    def get_error_count_by_category(self) -> dict[ErrorCategory, int]:
        counts: dict[ErrorCategory, int] = {}
        for _, error in self._error_history:
            counts[error.category] = counts.get(error.category, 0) + 1
        return counts

    def create_user_message(self, error: UserFriendlyError, include_suggestions: bool = True) -> str:
        """Create a formatted user message from an error."""
        parts = [error.message]
        if include_suggestions and error.suggested_actions:
            parts.append("\nSuggested actions:")
            for action in error.suggested_actions[:3]:
                parts.append(f"  • {action}")
        return "\n".join(parts)


_error_service: ErrorHandlingService | None = None


def get_error_service() -> ErrorHandlingService:
    """Get the global error handling service instance."""
    global _error_service
    if _error_service is None:
        _error_service = ErrorHandlingService()
    return _error_service


def handle_error(
    error: Exception,
    operation: str,
    component: str,
    context: dict[str, Any] | None = None,
) -> UserFriendlyError:
    """Convenience function to handle errors using the global service."""
    return get_error_service().handle_error(error, operation, component, context)
