"""Specific error types for the Moya application."""

from typing import Any

from .base import (
    AIServiceErrorDetails,
    ApplicationError,
    ErrorCode,
    ErrorDetails,
    ErrorLevel,
    ResourceErrorDetails,
    ServiceErrorDetails,
    StorageErrorDetails,
    ValidationErrorDetails,
)


class ConfigurationError(ApplicationError):
    """A required credential or setting is missing."""

    def __init__(self, message: str, setting: str | None = None, details: ErrorDetails | dict | None = None):
        self.setting = setting
        super().__init__(
            message=message,
            code=ErrorCode.CONFIG_MISSING,
            level=ErrorLevel.CRITICAL,
            details=details
            or ValidationErrorDetails(
                source="settings",
                operation="require",
                field=setting,
                constraint="must be configured",
            ),
        )


class ValidationError(ApplicationError):
    """Caller-supplied input is insufficient; the operation does not proceed."""

    def __init__(self, message: str, details: ValidationErrorDetails | dict | None = None):
        super().__init__(
            message=message,
            code=ErrorCode.INVALID_INPUT,
            level=ErrorLevel.WARNING,
            details=details,
        )


class EmbeddingError(ApplicationError):
    """Embedding computation or embedding model initialisation failed."""

    def __init__(self, message: str, details: ServiceErrorDetails | dict | None = None):
        super().__init__(
            message=message,
            code=ErrorCode.EMBEDDING_FAILED,
            level=ErrorLevel.ERROR,
            details=details
            or ServiceErrorDetails(source="embeddings", operation="embed", service_name="embedding"),
        )


class EmbeddingInitializationError(EmbeddingError):
    """The embedding model/client could not be initialised."""

    def __init__(self, message: str, details: ServiceErrorDetails | dict | None = None):
        super().__init__(message=message, details=details)
        self.code = ErrorCode.MODEL_INITIALIZATION_ERROR
        self.level = ErrorLevel.CRITICAL


class StorageError(ApplicationError):
    """Memory or document store read/write failure."""

    def __init__(self, message: str, details: StorageErrorDetails | dict | None = None):
        super().__init__(
            message=message,
            code=ErrorCode.STORAGE_ERROR,
            level=ErrorLevel.ERROR,
            details=details,
        )


class StreamError(ApplicationError):
    """Completion stream failed or was cancelled mid-way.

    Increments emitted before the failure stay applied; ``partial`` counts them.
    """

    def __init__(
        self,
        message: str,
        cancelled: bool = False,
        partial: int = 0,
        details: AIServiceErrorDetails | dict | None = None,
    ):
        self.cancelled = cancelled
        self.partial = partial
        super().__init__(
            message=message,
            code=ErrorCode.STREAM_FAILED,
            level=ErrorLevel.INFO if cancelled else ErrorLevel.ERROR,
            details=details,
        )


class ContinuationInProgressError(ApplicationError):
    """A continuation is already streaming into the same chapter."""

    def __init__(self, chapter_id: str):
        self.chapter_id = chapter_id
        super().__init__(
            message=f"A continuation is already running for chapter {chapter_id}",
            code=ErrorCode.CONFLICT,
            level=ErrorLevel.WARNING,
            details=ResourceErrorDetails(
                source="continuation",
                operation="continue_chapter",
                resource_id=chapter_id,
                resource_type="chapter",
            ),
        )


class NotFoundError(ApplicationError):
    """A requested novel, chapter or fragment does not exist."""

    def __init__(self, resource_type: str, resource_id: Any):
        super().__init__(
            message=f"{resource_type.capitalize()} {resource_id} not found",
            code=ErrorCode.NOT_FOUND,
            level=ErrorLevel.WARNING,
            details=ResourceErrorDetails(
                source="library",
                operation="get",
                resource_id=str(resource_id),
                resource_type=resource_type,
            ),
        )


class AuthenticationError(ApplicationError):
    """Authentication-related errors."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(
            message=message,
            code=ErrorCode.AUTHENTICATION_FAILED,
            level=ErrorLevel.WARNING,
            details=details,
        )
