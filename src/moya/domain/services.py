"""Domain service protocols."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from .models import Chapter, FragmentKind, MemoryFragment, Novel, ScoredFragment, StreamOutcome

IncrementCallback = Callable[[str], None]
ErrorCallback = Callable[[Exception], None]


@runtime_checkable
class EmbeddingProvider(Protocol):
    """Turns text into a fixed-length vector."""

    @property
    def model(self) -> str: ...

    @property
    def dimensions(self) -> int: ...

    async def embed(self, text: str) -> list[float]:
        """Generate an embedding for a single text."""
        ...


@runtime_checkable
class CompletionStreamer(Protocol):
    """Streams a chat completion as text increments."""

    async def stream(
        self,
        prompt: str,
        on_increment: IncrementCallback,
        on_error: ErrorCallback,
        cancel: asyncio.Event | None = None,
    ) -> StreamOutcome: ...


@runtime_checkable
class FragmentBackend(Protocol):
    """Persistence for memory fragments."""

    async def upsert(self, fragments: list[MemoryFragment]) -> None: ...

    async def get(self, fragment_id: str) -> MemoryFragment | None: ...

    async def delete(self, fragment_id: str) -> bool: ...

    async def delete_by_chapter(self, chapter_id: str) -> int: ...

    async def list_fragments(self, novel_id: str, kind: FragmentKind | None = None) -> list[MemoryFragment]: ...

    async def match(
        self,
        query_embedding: list[float],
        match_threshold: float,
        match_count: int,
        filter_novel_id: str,
        filter_type: FragmentKind | None = None,
    ) -> list[ScoredFragment]: ...


@runtime_checkable
class DocumentBackend(Protocol):
    """Persistence for novels and chapters."""

    async def insert_novel(self, novel: Novel) -> Novel: ...

    async def get_novel(self, novel_id: str) -> Novel | None: ...

    async def list_novels(self, user_id: str) -> list[Novel]: ...

    async def insert_chapter(self, chapter: Chapter) -> Chapter: ...

    async def get_chapter(self, chapter_id: str) -> Chapter | None: ...

    async def list_chapters(self, novel_id: str) -> list[Chapter]: ...

    async def update_chapter(self, chapter_id: str, values: dict[str, Any]) -> Chapter | None: ...


@runtime_checkable
class Authenticator(Protocol):
    """Resolves a bearer token to an opaque user id."""

    async def resolve_user(self, token: str) -> str: ...
