from .documents import SupabaseDocumentBackend
from .factory import StorageBackends, create_storage_backends
from .fragments import SupabaseFragmentBackend, rank
from .memory import InMemoryDocumentBackend, InMemoryFragmentBackend

__all__ = [
    "InMemoryDocumentBackend",
    "InMemoryFragmentBackend",
    "StorageBackends",
    "SupabaseDocumentBackend",
    "SupabaseFragmentBackend",
    "create_storage_backends",
    "rank",
]
