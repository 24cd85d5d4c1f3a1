"""Supabase-backed novel and chapter storage (``novels`` and ``chapters`` tables)."""

from typing import Any

from supabase import AsyncClient

from moya.core.base import StorageErrorDetails
from moya.core.errors import StorageError
from moya.core.logging import get_logger
from moya.domain.models import Chapter, Novel

logger = get_logger(__name__)

NOVELS = "novels"
CHAPTERS = "chapters"


def _storage_error(operation: str, table: str, error: Exception) -> StorageError:
    return StorageError(
        message=f"{table} {operation} failed: {error!s}",
        details=StorageErrorDetails(
            source="SupabaseDocumentBackend",
            operation=operation,
            service_name="supabase",
            table=table,
        ),
    )


class SupabaseDocumentBackend:
    def __init__(self, client: AsyncClient):
        self.client = client

    async def _execute(self, query: Any, operation: str, table: str) -> list[dict[str, Any]]:
        try:
            response = await query.execute()
        except Exception as e:
            raise _storage_error(operation, table, e) from e
        return response.data or []

    async def insert_novel(self, novel: Novel) -> Novel:
        rows = await self._execute(
            self.client.table(NOVELS).insert(novel.model_dump(mode="json")), "insert", NOVELS
        )
        return Novel.model_validate(rows[0]) if rows else novel

    async def get_novel(self, novel_id: str) -> Novel | None:
        rows = await self._execute(
            self.client.table(NOVELS).select("*").eq("id", novel_id).limit(1), "select", NOVELS
        )
        return Novel.model_validate(rows[0]) if rows else None

    async def list_novels(self, user_id: str) -> list[Novel]:
        rows = await self._execute(
            self.client.table(NOVELS).select("*").eq("user_id", user_id).order("created_at", desc=True),
            "select",
            NOVELS,
        )
        return [Novel.model_validate(row) for row in rows]

    async def insert_chapter(self, chapter: Chapter) -> Chapter:
        rows = await self._execute(
            self.client.table(CHAPTERS).insert(chapter.model_dump(mode="json")), "insert", CHAPTERS
        )
        return Chapter.model_validate(rows[0]) if rows else chapter

    async def get_chapter(self, chapter_id: str) -> Chapter | None:
        rows = await self._execute(
            self.client.table(CHAPTERS).select("*").eq("id", chapter_id).limit(1), "select", CHAPTERS
        )
        return Chapter.model_validate(rows[0]) if rows else None

    async def list_chapters(self, novel_id: str) -> list[Chapter]:
        rows = await self._execute(
            self.client.table(CHAPTERS).select("*").eq("novel_id", novel_id).order("position"),
            "select",
            CHAPTERS,
        )
        return [Chapter.model_validate(row) for row in rows]

    async def update_chapter(self, chapter_id: str, values: dict[str, Any]) -> Chapter | None:
        payload = {key: value.isoformat() if hasattr(value, "isoformat") else value for key, value in values.items()}
        rows = await self._execute(
            self.client.table(CHAPTERS).update(payload).eq("id", chapter_id), "update", CHAPTERS
        )
        if rows:
            logger.debug("Chapter saved", chapter_id=chapter_id, fields=sorted(values))
        return Chapter.model_validate(rows[0]) if rows else None
