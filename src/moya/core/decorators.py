"""Error handling decorators"""

import inspect
from collections.abc import Awaitable, Callable
from functools import wraps
from typing import Any, ParamSpec, TypeVar, cast

from .base import ApplicationError, ErrorLevel
from .error_context import ErrorContextManager
from .logging import get_logger

logger = get_logger(__name__)
P = ParamSpec("P")
T = TypeVar("T")


def _log_error(func: Callable[..., Any], error: Exception, fallback_level: ErrorLevel) -> None:
    level = error.level if isinstance(error, ApplicationError) else fallback_level
    with ErrorContextManager(error) as ctx:
        logger.log(
            level.to_logging_level(),
            f"Error in {func.__name__}: {error!s}",
            error_context=ctx.to_dict(),
            # Only unexpected errors carry a traceback
            exc_info=not isinstance(error, ApplicationError),
        )


def with_error_handling(
    error_level: ErrorLevel = ErrorLevel.ERROR,
    reraise: bool = True,
) -> Callable[[Callable[P, T]], Callable[P, T]]:
    """Decorator for logging errors raised by a function.

    Application errors are logged at their own level, anything else at
    ``error_level``.

    Args:
        error_level: Severity level for unexpected errors
        reraise: Whether to re-raise the error after logging; when False the
            function returns None
    """

    def decorator(func: Callable[P, T]) -> Callable[P, T]:
        original_signature = inspect.signature(func)

        if inspect.iscoroutinefunction(func):

            @wraps(func)
            async def async_wrapper(*args: P.args, **kwargs: P.kwargs) -> T:
                try:
                    return await cast("Callable[P, Awaitable[T]]", func)(*args, **kwargs)
                except Exception as e:
                    _log_error(func, e, error_level)
                    if reraise:
                        raise
                    return cast("T", None)

            async_wrapper.__signature__ = original_signature  # type: ignore[attr-defined]
            return cast("Callable[P, T]", async_wrapper)

        @wraps(func)
        def sync_wrapper(*args: P.args, **kwargs: P.kwargs) -> T:
            try:
                return func(*args, **kwargs)
            except Exception as e:
                _log_error(func, e, error_level)
                if reraise:
                    raise
                return cast("T", None)

        sync_wrapper.__signature__ = original_signature  # type: ignore[attr-defined]
        return sync_wrapper

    return decorator
