"""Novels and chapters owned by a user."""

from __future__ import annotations

from typing import Any

from moya.core.base import ValidationErrorDetails
from moya.core.errors import NotFoundError, ValidationError
from moya.core.logging import get_logger
from moya.domain.models import Chapter, Novel, count_words, empty_document, utc_now
from moya.domain.services import DocumentBackend

logger = get_logger(__name__)


def _require_title(title: str, operation: str) -> str:
    if not title or not title.strip():
        raise ValidationError(
            message="Title must not be empty",
            details=ValidationErrorDetails(
                source="LibraryService",
                operation=operation,
                field="title",
                actual_value=title,
                constraint="non-blank",
            ),
        )
    return title.strip()


class LibraryService:
    def __init__(self, backend: DocumentBackend):
        self.backend = backend

    async def create_novel(self, user_id: str, title: str) -> Novel:
        novel = await self.backend.insert_novel(Novel(user_id=user_id, title=_require_title(title, "create_novel")))
        logger.info("Novel created", novel_id=novel.id, user_id=user_id)
        return novel

    async def list_novels(self, user_id: str) -> list[Novel]:
        """The user's novels, newest first."""
        return await self.backend.list_novels(user_id)

    async def get_novel(self, novel_id: str, user_id: str | None = None) -> Novel:
        """Load a novel; with ``user_id`` it must also belong to that user.

        A novel owned by someone else is reported as not found.
        """
        novel = await self.backend.get_novel(novel_id)
        if novel is None or (user_id is not None and novel.user_id != user_id):
            raise NotFoundError("novel", novel_id)
        return novel

    async def create_chapter(self, novel_id: str, title: str) -> Chapter:
        """Append a chapter with an empty document after the existing ones."""
        title = _require_title(title, "create_chapter")
        existing = await self.backend.list_chapters(novel_id)
        position = max((c.position for c in existing), default=-1) + 1

        chapter = await self.backend.insert_chapter(
            Chapter(novel_id=novel_id, title=title, content=empty_document(), position=position)
        )
        logger.info("Chapter created", novel_id=novel_id, chapter_id=chapter.id, position=position)
        return chapter

    async def list_chapters(self, novel_id: str) -> list[Chapter]:
        return await self.backend.list_chapters(novel_id)

    async def get_chapter(self, chapter_id: str, user_id: str | None = None) -> Chapter:
        chapter = await self.backend.get_chapter(chapter_id)
        if chapter is None:
            raise NotFoundError("chapter", chapter_id)
        if user_id is not None:
            novel = await self.backend.get_novel(chapter.novel_id)
            if novel is None or novel.user_id != user_id:
                raise NotFoundError("chapter", chapter_id)
        return chapter

    async def save_chapter(self, chapter_id: str, content: dict[str, Any], plain_text: str) -> Chapter:
        values = {
            "content": content,
            "plain_text": plain_text,
            "word_count": count_words(plain_text),
            "updated_at": utc_now(),
        }
        chapter = await self.backend.update_chapter(chapter_id, values)
        if chapter is None:
            raise NotFoundError("chapter", chapter_id)
        logger.debug("Chapter saved", chapter_id=chapter_id, word_count=values["word_count"])
        return chapter
