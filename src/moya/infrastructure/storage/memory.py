"""In-memory storage backends.

Selected with ``MOYA_STORAGE_BACKEND=memory``. They implement the same
protocols as the Supabase backends, including thresholded cosine search,
so the rest of the application cannot tell them apart.
"""

import asyncio
from typing import Any

import numpy as np

from moya.core.logging import get_logger
from moya.domain.models import Chapter, FragmentKind, MemoryFragment, Novel, ScoredFragment
from moya.infrastructure.embeddings.similarity import cosine_similarities
from moya.infrastructure.storage.fragments import rank

logger = get_logger(__name__)


class InMemoryFragmentBackend:
    def __init__(self) -> None:
        self._fragments: dict[str, MemoryFragment] = {}
        self._lock = asyncio.Lock()

    async def upsert(self, fragments: list[MemoryFragment]) -> None:
        async with self._lock:
            for fragment in fragments:
                self._fragments[str(fragment.id)] = fragment.model_copy(deep=True)

    async def get(self, fragment_id: str) -> MemoryFragment | None:
        fragment = self._fragments.get(str(fragment_id))
        return fragment.model_copy(deep=True) if fragment else None

    async def delete(self, fragment_id: str) -> bool:
        async with self._lock:
            return self._fragments.pop(str(fragment_id), None) is not None

    async def delete_by_chapter(self, chapter_id: str) -> int:
        async with self._lock:
            doomed = [key for key, f in self._fragments.items() if f.chapter_id == chapter_id]
            for key in doomed:
                del self._fragments[key]
            return len(doomed)

    async def list_fragments(self, novel_id: str, kind: FragmentKind | None = None) -> list[MemoryFragment]:
        async with self._lock:
            found = [
                f.model_copy(deep=True)
                for f in self._fragments.values()
                if f.novel_id == novel_id and (kind is None or f.kind is kind)
            ]
        found.sort(key=lambda f: f.created_at, reverse=True)
        return found

    async def match(
        self,
        query_embedding: list[float],
        match_threshold: float,
        match_count: int,
        filter_novel_id: str,
        filter_type: FragmentKind | None = None,
    ) -> list[ScoredFragment]:
        async with self._lock:
            candidates = [
                f
                for f in self._fragments.values()
                if f.novel_id == filter_novel_id
                and (filter_type is None or f.kind is filter_type)
                and len(f.embedding) == len(query_embedding)
            ]
        if not candidates:
            return []

        matrix = np.asarray([f.embedding for f in candidates], dtype=np.float64)
        scores = cosine_similarities(query_embedding, matrix)
        matches = [
            ScoredFragment(fragment=f.model_copy(deep=True), similarity=float(score))
            for f, score in zip(candidates, scores, strict=True)
        ]
        return rank(matches, match_threshold, match_count)

    def __len__(self) -> int:
        return len(self._fragments)


class InMemoryDocumentBackend:
    def __init__(self) -> None:
        self._novels: dict[str, Novel] = {}
        self._chapters: dict[str, Chapter] = {}

    async def insert_novel(self, novel: Novel) -> Novel:
        self._novels[novel.id] = novel.model_copy(deep=True)
        return novel

    async def get_novel(self, novel_id: str) -> Novel | None:
        novel = self._novels.get(novel_id)
        return novel.model_copy(deep=True) if novel else None

    async def list_novels(self, user_id: str) -> list[Novel]:
        novels = [n.model_copy(deep=True) for n in self._novels.values() if n.user_id == user_id]
        novels.sort(key=lambda n: n.created_at, reverse=True)
        return novels

    async def insert_chapter(self, chapter: Chapter) -> Chapter:
        self._chapters[chapter.id] = chapter.model_copy(deep=True)
        return chapter

    async def get_chapter(self, chapter_id: str) -> Chapter | None:
        chapter = self._chapters.get(chapter_id)
        return chapter.model_copy(deep=True) if chapter else None

    async def list_chapters(self, novel_id: str) -> list[Chapter]:
        chapters = [c.model_copy(deep=True) for c in self._chapters.values() if c.novel_id == novel_id]
        chapters.sort(key=lambda c: c.position)
        return chapters

    async def update_chapter(self, chapter_id: str, values: dict[str, Any]) -> Chapter | None:
        chapter = self._chapters.get(chapter_id)
        if chapter is None:
            return None
        updated = chapter.model_copy(update=values, deep=True)
        self._chapters[chapter_id] = updated
        return updated.model_copy(deep=True)
