"""Supabase-backed memory fragment storage.

Fragments live in the ``documents`` table (pgvector ``embedding`` column).
Similarity search goes through the ``match_documents`` function::

    match_documents(query_embedding vector, match_threshold float,
                    match_count int, filter_novel_id text
                    [, filter_type text])

which returns rows of the table plus a ``similarity`` column.
"""

from typing import Any

from supabase import AsyncClient

from moya.core.base import StorageErrorDetails
from moya.core.errors import StorageError
from moya.core.logging import get_logger
from moya.domain.models import FragmentKind, MemoryFragment, ScoredFragment

logger = get_logger(__name__)

TABLE = "documents"
MATCH_RPC = "match_documents"


def _storage_error(operation: str, error: Exception, table: str = TABLE, query_type: str | None = None) -> StorageError:
    return StorageError(
        message=f"Memory store {operation} failed: {error!s}",
        details=StorageErrorDetails(
            source="SupabaseFragmentBackend",
            operation=operation,
            service_name="supabase",
            table=table,
            query_type=query_type,
        ),
    )


def rank(matches: list[ScoredFragment], threshold: float, count: int) -> list[ScoredFragment]:
    """Keep matches at or above ``threshold``, best first, newest first on ties."""
    kept = [m for m in matches if m.similarity >= threshold]
    kept.sort(key=lambda m: (-m.similarity, -m.fragment.created_at.timestamp()))
    return kept[:count]


class SupabaseFragmentBackend:
    """Fragment persistence against a hosted Supabase project."""

    def __init__(self, client: AsyncClient):
        self.client = client

    async def upsert(self, fragments: list[MemoryFragment]) -> None:
        if not fragments:
            return
        rows = [fragment.to_record() for fragment in fragments]
        try:
            await self.client.table(TABLE).upsert(rows).execute()
        except Exception as e:
            raise _storage_error("upsert", e, query_type="upsert") from e
        logger.debug("Upserted fragments", count=len(rows))

    async def get(self, fragment_id: str) -> MemoryFragment | None:
        try:
            response = await self.client.table(TABLE).select("*").eq("id", fragment_id).limit(1).execute()
        except Exception as e:
            raise _storage_error("get", e, query_type="select") from e
        rows = response.data or []
        return MemoryFragment.from_record(rows[0]) if rows else None

    async def delete(self, fragment_id: str) -> bool:
        try:
            response = await self.client.table(TABLE).delete().eq("id", fragment_id).execute()
        except Exception as e:
            raise _storage_error("delete", e, query_type="delete") from e
        return bool(response.data)

    async def delete_by_chapter(self, chapter_id: str) -> int:
        try:
            response = await self.client.table(TABLE).delete().eq("chapter_id", chapter_id).execute()
        except Exception as e:
            raise _storage_error("delete_by_chapter", e, query_type="delete") from e
        return len(response.data or [])

    async def list_fragments(self, novel_id: str, kind: FragmentKind | None = None) -> list[MemoryFragment]:
        query = self.client.table(TABLE).select("*").eq("novel_id", novel_id)
        if kind is not None:
            query = query.contains("metadata", {"type": kind.value})
        try:
            response = await query.order("created_at", desc=True).execute()
        except Exception as e:
            raise _storage_error("list", e, query_type="select") from e
        return [MemoryFragment.from_record(row) for row in response.data or []]

    async def match(
        self,
        query_embedding: list[float],
        match_threshold: float,
        match_count: int,
        filter_novel_id: str,
        filter_type: FragmentKind | None = None,
    ) -> list[ScoredFragment]:
        params: dict[str, Any] = {
            "query_embedding": query_embedding,
            "match_threshold": match_threshold,
            "match_count": match_count,
            "filter_novel_id": filter_novel_id,
        }
        if filter_type is not None:
            params["filter_type"] = filter_type.value

        try:
            response = await self.client.rpc(MATCH_RPC, params).execute()
        except Exception as e:
            raise _storage_error("match", e, table=MATCH_RPC, query_type="rpc") from e

        matches = []
        for row in response.data or []:
            record = {"novel_id": filter_novel_id, **row}
            matches.append(
                ScoredFragment(
                    fragment=MemoryFragment.from_record(record),
                    similarity=float(row.get("similarity", 0.0)),
                )
            )
        return rank(matches, match_threshold, match_count)
