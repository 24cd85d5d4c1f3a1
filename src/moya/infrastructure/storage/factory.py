"""Storage backend selection, done once at construction time."""

from dataclasses import dataclass

from supabase import AsyncClient

from moya.core.config import Settings
from moya.core.logging import get_logger
from moya.domain.services import DocumentBackend, FragmentBackend
from moya.infrastructure.storage.documents import SupabaseDocumentBackend
from moya.infrastructure.storage.fragments import SupabaseFragmentBackend
from moya.infrastructure.storage.memory import InMemoryDocumentBackend, InMemoryFragmentBackend
from moya.infrastructure.storage.supabase_client import create_supabase

logger = get_logger(__name__)


@dataclass
class StorageBackends:
    fragments: FragmentBackend
    documents: DocumentBackend
    supabase: AsyncClient | None = None


async def create_storage_backends(settings: Settings) -> StorageBackends:
    """Build the configured backends.

    Raises:
        ConfigurationError: If the Supabase backend is selected without credentials
    """
    if settings.storage_backend == "memory":
        logger.warning("Using in-memory storage, nothing will be persisted")
        return StorageBackends(fragments=InMemoryFragmentBackend(), documents=InMemoryDocumentBackend())

    client = await create_supabase(settings)
    return StorageBackends(
        fragments=SupabaseFragmentBackend(client),
        documents=SupabaseDocumentBackend(client),
        supabase=client,
    )
