"""API dependencies."""

from fastapi import Header

from moya.core.base import ApplicationError
from moya.core.errors import AuthenticationError, ConfigurationError
from moya.domain.services import Authenticator
from moya.services.continuation import ContinuationService
from moya.services.library import LibraryService
from moya.services.memory_store import MemoryStore

# These will be set by the main.py lifespan
library: LibraryService | None = None
memory_store: MemoryStore | None = None
continuation: ContinuationService | None = None
authenticator: Authenticator | None = None

# Why a component could not be built at startup, keyed by component name
startup_errors: dict[str, ApplicationError] = {}


def reset() -> None:
    global library, memory_store, continuation, authenticator
    library = memory_store = continuation = authenticator = None
    startup_errors.clear()


def _unavailable(component: str) -> ApplicationError:
    return startup_errors.get(component) or ConfigurationError(f"{component} is not initialised", setting=component)


def get_library() -> LibraryService:
    if library is None:
        raise _unavailable("storage")
    return library


def get_memory_store() -> MemoryStore:
    if memory_store is None:
        raise _unavailable("embeddings")
    return memory_store


def get_continuation_service() -> ContinuationService:
    if continuation is None:
        raise _unavailable("completion")
    return continuation


def get_authenticator() -> Authenticator:
    if authenticator is None:
        raise _unavailable("storage")
    return authenticator


async def get_current_user(authorization: str | None = Header(default=None)) -> str:
    """Resolve the ``Authorization: Bearer <token>`` header to a user id."""
    if not authorization or not authorization.startswith("Bearer "):
        raise AuthenticationError("Missing or invalid authorization header")
    token = authorization.split(" ", 1)[1].strip()
    return await get_authenticator().resolve_user(token)


def get_running_continuations() -> ContinuationService | None:
    """The continuation service if it was built; editing works without it."""
    return continuation
