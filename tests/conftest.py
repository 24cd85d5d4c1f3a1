"""Pytest configuration and fixtures."""

import asyncio
import hashlib

import pytest

from moya.core.config import Settings
from moya.core.errors import EmbeddingError, StreamError
from moya.domain.models import StreamOutcome, StreamState
from moya.infrastructure.storage import InMemoryDocumentBackend, InMemoryFragmentBackend
from moya.services import LibraryService, MemoryStore, PromptAssembler


class FakeEmbeddingProvider:
    """Deterministic embeddings; explicit vectors win over the hashed default."""

    def __init__(self, vectors: dict[str, list[float]] | None = None, dimensions: int = 8, fail: bool = False):
        self.vectors = vectors or {}
        self._dimensions = dimensions
        self.fail = fail
        self.calls: list[str] = []

    @property
    def model(self) -> str:
        return "fake-embedding"

    @property
    def dimensions(self) -> int:
        return self._dimensions

    async def embed(self, text: str) -> list[float]:
        self.calls.append(text)
        if self.fail:
            raise EmbeddingError("embedding service unreachable")
        if text in self.vectors:
            return list(self.vectors[text])
        digest = hashlib.sha256(text.encode("utf-8")).digest()
        return [digest[i] / 255 + 0.01 for i in range(self._dimensions)]


class FakeStreamer:
    """Completion streamer that replays fixed pieces.

    ``gate`` holds the stream before its first piece; ``fail_after`` reports a
    dropped connection once that many pieces were delivered.
    """

    def __init__(self, pieces: list[str], fail_after: int | None = None, gate: asyncio.Event | None = None):
        self.pieces = pieces
        self.fail_after = fail_after
        self.gate = gate
        self.prompts: list[str] = []

    async def stream(self, prompt, on_increment, on_error, cancel=None) -> StreamOutcome:
        self.prompts.append(prompt)
        outcome = StreamOutcome(state=StreamState.STREAMING)
        if self.gate is not None:
            await self.gate.wait()

        for index, piece in enumerate(self.pieces):
            error = None
            if cancel is not None and cancel.is_set():
                error = StreamError("Continuation cancelled", cancelled=True, partial=index)
            elif self.fail_after is not None and index == self.fail_after:
                error = StreamError("connection reset by peer", partial=index)
            if error is not None:
                outcome.state = StreamState.FAILED
                outcome.error = error
                on_error(error)
                return outcome
            on_increment(piece)
            outcome.increments += 1
            await asyncio.sleep(0)

        outcome.state = StreamState.COMPLETED
        return outcome


def doc_with_text(*paragraphs: str) -> dict:
    return {
        "type": "doc",
        "content": [
            {"type": "paragraph", "content": [{"type": "text", "text": p}]} if p else {"type": "paragraph"}
            for p in paragraphs
        ],
    }


@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,
        storage_backend="memory",
        voyage_api_key="test-voyage-key",
        zhipu_api_key="test-key-id.test-key-secret",
        autosave_window=0.01,
    )


@pytest.fixture
def embeddings() -> FakeEmbeddingProvider:
    return FakeEmbeddingProvider()


@pytest.fixture
def fragment_backend() -> InMemoryFragmentBackend:
    return InMemoryFragmentBackend()


@pytest.fixture
def document_backend() -> InMemoryDocumentBackend:
    return InMemoryDocumentBackend()


@pytest.fixture
def memory_store(fragment_backend, embeddings, settings) -> MemoryStore:
    return MemoryStore(backend=fragment_backend, embeddings=embeddings, settings=settings)


@pytest.fixture
def library(document_backend) -> LibraryService:
    return LibraryService(document_backend)


@pytest.fixture
def assembler(embeddings, memory_store, settings) -> PromptAssembler:
    return PromptAssembler(embeddings, memory_store, settings)
