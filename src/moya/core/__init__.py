from .base import ApplicationError, ErrorCode, ErrorLevel
from .errors import (
    AuthenticationError,
    ConfigurationError,
    ContinuationInProgressError,
    EmbeddingError,
    EmbeddingInitializationError,
    NotFoundError,
    StorageError,
    StreamError,
    ValidationError,
)
