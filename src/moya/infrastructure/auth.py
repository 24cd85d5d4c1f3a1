"""Bearer token to user id resolution.

Moya does not implement authentication itself: the hosted Supabase auth
service owns sessions, and everything downstream only sees the opaque user id.
"""

from supabase import AsyncClient

from moya.core.errors import AuthenticationError
from moya.core.logging import get_logger

logger = get_logger(__name__)


class SupabaseAuthenticator:
    """Validates a Supabase session access token."""

    def __init__(self, client: AsyncClient):
        self.client = client

    async def resolve_user(self, token: str) -> str:
        if not token:
            raise AuthenticationError("Missing bearer token")
        try:
            response = await self.client.auth.get_user(token)
        except Exception as e:
            logger.warning("Session lookup failed", error=str(e))
            raise AuthenticationError(
                "Invalid or expired session",
                details={"source": "SupabaseAuthenticator", "operation": "get_user"},
            ) from e
        user = getattr(response, "user", None)
        if user is None:
            raise AuthenticationError("Invalid or expired session")
        return str(user.id)


class StaticAuthenticator:
    """Treats the bearer token as the user id; used with in-memory storage."""

    async def resolve_user(self, token: str) -> str:
        if not token:
            raise AuthenticationError("Missing bearer token")
        return token
