"""Supabase client initialization."""

from supabase import AsyncClient, acreate_client

from moya.core.config import Settings
from moya.core.logging import get_logger

logger = get_logger(__name__)


async def create_supabase(settings: Settings) -> AsyncClient:
    """Create the async Supabase client shared by the storage backends.

    Raises:
        ConfigurationError: If the project URL or key is missing
    """
    url = settings.require("supabase_url")
    key = settings.require("supabase_key")
    client = await acreate_client(url, key)
    logger.info("Supabase client created", url=url, key_prefix=key[:6])
    return client
