"""Memory store service: setting entries, chapter sync and similarity search."""

from __future__ import annotations

from uuid import UUID

from moya.core.base import ErrorLevel, ValidationErrorDetails
from moya.core.config import Settings
from moya.core.decorators import with_error_handling
from moya.core.errors import NotFoundError, ValidationError
from moya.core.logging import get_logger
from moya.domain.models import (
    FragmentKind,
    FragmentMetadata,
    MemoryFragment,
    ScoredFragment,
    format_setting,
)
from moya.domain.services import EmbeddingProvider, FragmentBackend
from moya.services.chunking import chunk_text

logger = get_logger(__name__)

# Extra candidates requested when kind weights may reorder results
WEIGHTED_OVERFETCH = 3


def _require_text(value: str, field: str) -> str:
    if not value or not value.strip():
        raise ValidationError(
            message=f"{field} must not be empty",
            details=ValidationErrorDetails(
                source="memory_store",
                operation="remember_setting",
                field=field,
                actual_value=value,
                constraint="non-blank",
            ),
        )
    return value.strip()


class MemoryStore:
    """Owns persistence of memory fragments for every novel.

    Search failures raise StorageError; an empty list always means nothing
    cleared the threshold.
    """

    def __init__(self, backend: FragmentBackend, embeddings: EmbeddingProvider, settings: Settings):
        self.backend = backend
        self.embeddings = embeddings
        self.chunk_size = settings.chunk_size
        self.kind_weights = {FragmentKind(kind): weight for kind, weight in settings.rag_kind_weights.items()}

    async def upsert(self, fragment: MemoryFragment) -> MemoryFragment:
        await self.backend.upsert([fragment])
        logger.debug("Stored fragment", fragment_id=str(fragment.id), kind=fragment.kind.value)
        return fragment

    async def delete(self, fragment_id: UUID | str) -> None:
        """Delete one fragment, raising NotFoundError when it does not exist."""
        if not await self.backend.delete(str(fragment_id)):
            raise NotFoundError("fragment", fragment_id)
        logger.warning("Deleted fragment", fragment_id=str(fragment_id))

    async def get(self, fragment_id: UUID | str) -> MemoryFragment:
        fragment = await self.backend.get(str(fragment_id))
        if fragment is None:
            raise NotFoundError("fragment", fragment_id)
        return fragment

    async def forget_setting(self, fragment: MemoryFragment) -> None:
        """Delete a setting entry. Chapter slices are only replaced by chapter sync."""
        if not fragment.kind.is_setting:
            raise ValidationError(
                message="Chapter fragments are removed by chapter sync, not deleted as settings",
                details=ValidationErrorDetails(
                    source="memory_store",
                    operation="forget_setting",
                    field="kind",
                    actual_value=fragment.kind.value,
                ),
            )
        await self.delete(fragment.id)

    async def delete_by_chapter(self, chapter_id: str) -> int:
        removed = await self.backend.delete_by_chapter(chapter_id)
        logger.debug("Removed chapter fragments", chapter_id=chapter_id, count=removed)
        return removed

    async def search(
        self,
        query_vector: list[float],
        novel_id: str,
        kind: FragmentKind | None = None,
        top_k: int = 3,
        threshold: float = 0.3,
    ) -> list[ScoredFragment]:
        """Up to ``top_k`` fragments of the novel with similarity >= ``threshold``.

        Ordered by descending similarity, most recent first on ties. With kind
        weights configured the weighted similarity is what gets thresholded
        and ordered.
        """
        weights = {k: w for k, w in self.kind_weights.items() if w != 1.0}
        if not weights:
            return await self.backend.match(query_vector, threshold, top_k, novel_id, kind)

        max_weight = max(1.0, *weights.values())
        candidates = await self.backend.match(
            query_vector, threshold / max_weight, top_k * WEIGHTED_OVERFETCH, novel_id, kind
        )
        rescored = [
            ScoredFragment(fragment=m.fragment, similarity=m.similarity * weights.get(m.fragment.kind, 1.0))
            for m in candidates
        ]
        kept = [m for m in rescored if m.similarity >= threshold]
        kept.sort(key=lambda m: (-m.similarity, -m.fragment.created_at.timestamp()))
        return kept[:top_k]

    @with_error_handling(error_level=ErrorLevel.ERROR, reraise=True)
    async def remember_setting(
        self,
        novel_id: str,
        kind: FragmentKind,
        name: str,
        description: str,
        section: str | None = None,
    ) -> MemoryFragment:
        """Format, embed and store a character/world/item/outline entry."""
        if not kind.is_setting:
            raise ValidationError(
                message="Chapter fragments are created by chapter sync, not as settings",
                details=ValidationErrorDetails(
                    source="memory_store", operation="remember_setting", field="kind", actual_value=kind.value
                ),
            )
        name = _require_text(name, "name")
        description = _require_text(description, "description")
        section = section.strip() if section and kind is FragmentKind.OUTLINE else None

        content = format_setting(kind, name, description, section)
        logger.info("Creating setting", novel_id=novel_id, kind=kind.value, name=name)
        vector = await self.embeddings.embed(content)

        fragment = MemoryFragment(
            novel_id=novel_id,
            content=content,
            embedding=vector,
            metadata=FragmentMetadata(type=kind, name=name, section=section),
        )
        return await self.upsert(fragment)

    async def list_settings(self, novel_id: str, kind: FragmentKind) -> list[MemoryFragment]:
        fragments = await self.backend.list_fragments(novel_id, kind)
        logger.debug("Fetched settings", novel_id=novel_id, kind=kind.value, count=len(fragments))
        return fragments

    @with_error_handling(error_level=ErrorLevel.ERROR, reraise=True)
    async def sync_chapter(self, novel_id: str, chapter_id: str, text: str, title: str | None = None) -> list[MemoryFragment]:
        """Replace the chapter's fragments with fresh slices of ``text``.

        All slices are embedded before anything is deleted, so an embedding
        failure leaves the previous fragments untouched. Whitespace-only
        slices are skipped and keep no fragment.
        """
        chunks = chunk_text(text, self.chunk_size) if text.strip() else []
        name = title or chapter_id

        fragments = []
        for chunk in chunks:
            if not chunk.content.strip():
                # Slice indices stay those of the full chapter
                continue
            vector = await self.embeddings.embed(chunk.content)
            fragments.append(
                MemoryFragment(
                    novel_id=novel_id,
                    chapter_id=chapter_id,
                    content=chunk.content,
                    embedding=vector,
                    metadata=FragmentMetadata(type=FragmentKind.CHAPTER, name=name, index=chunk.index),
                )
            )

        removed = await self.backend.delete_by_chapter(chapter_id)
        await self.backend.upsert(fragments)
        logger.info(
            "Chapter synced to memory",
            novel_id=novel_id,
            chapter_id=chapter_id,
            removed=removed,
            stored=len(fragments),
        )
        return fragments
