"""Tests for the memory store: search policy, settings and chapter sync."""

from datetime import UTC, datetime, timedelta
from types import SimpleNamespace

import pytest

from moya.core.errors import EmbeddingError, NotFoundError, StorageError, ValidationError
from moya.domain.models import FragmentKind, FragmentMetadata, MemoryFragment
from moya.infrastructure.embeddings import VoyageEmbeddingProvider
from moya.services import MemoryStore

NOVEL = "novel-1"


def fragment(content, embedding, kind=FragmentKind.CHAPTER, novel_id=NOVEL, created_at=None, chapter_id=None):
    return MemoryFragment(
        novel_id=novel_id,
        chapter_id=chapter_id,
        content=content,
        embedding=embedding,
        metadata=FragmentMetadata(type=kind, name=content[:10]),
        created_at=created_at or datetime.now(UTC),
    )


class FailingBackend:
    async def match(self, *args, **kwargs):
        raise StorageError("relation \"documents\" does not exist")


async def test_identical_vector_ranks_first(memory_store, fragment_backend):
    await fragment_backend.upsert(
        [
            fragment("exact", [1.0, 0.0]),
            fragment("close", [0.9, 0.1]),
            fragment("far", [0.2, 1.0]),
        ]
    )

    results = await memory_store.search([1.0, 0.0], NOVEL, top_k=3, threshold=0.3)

    assert results[0].fragment.content == "exact"
    assert results[0].similarity >= 0.999
    assert [r.similarity for r in results] == sorted((r.similarity for r in results), reverse=True)


async def test_search_respects_top_k_and_threshold(memory_store, fragment_backend):
    await fragment_backend.upsert([fragment(f"f{i}", [1.0, i * 0.2]) for i in range(10)])

    results = await memory_store.search([1.0, 0.0], NOVEL, top_k=3, threshold=0.9)

    assert len(results) <= 3
    assert all(r.similarity >= 0.9 for r in results)


async def test_search_ties_newest_first(memory_store, fragment_backend):
    old = datetime(2024, 1, 1, tzinfo=UTC)
    await fragment_backend.upsert(
        [
            fragment("older", [0.0, 1.0], created_at=old),
            fragment("newer", [0.0, 1.0], created_at=old + timedelta(days=1)),
        ]
    )

    results = await memory_store.search([0.0, 1.0], NOVEL)

    assert [r.fragment.content for r in results] == ["newer", "older"]


async def test_search_empty_when_nothing_clears_threshold(memory_store, fragment_backend):
    await fragment_backend.upsert([fragment("orthogonal", [0.0, 1.0])])

    assert await memory_store.search([1.0, 0.0], NOVEL, threshold=0.3) == []


async def test_search_scoped_to_novel_and_kind(memory_store, fragment_backend):
    await fragment_backend.upsert(
        [
            fragment("mine", [1.0, 0.0], kind=FragmentKind.CHARACTER),
            fragment("theirs", [1.0, 0.0], novel_id="novel-2"),
            fragment("chapter", [1.0, 0.0]),
        ]
    )

    everything = await memory_store.search([1.0, 0.0], NOVEL)
    characters = await memory_store.search([1.0, 0.0], NOVEL, kind=FragmentKind.CHARACTER)

    assert {r.fragment.content for r in everything} == {"mine", "chapter"}
    assert [r.fragment.content for r in characters] == ["mine"]


async def test_kind_weights_reorder_results(fragment_backend, embeddings, settings):
    settings = settings.model_copy(update={"rag_kind_weights": {"character": 2.0}})
    store = MemoryStore(fragment_backend, embeddings, settings)
    await fragment_backend.upsert(
        [
            fragment("prose", [0.8, 0.6]),
            fragment("hero", [0.5, 0.866], kind=FragmentKind.CHARACTER),
        ]
    )

    results = await store.search([1.0, 0.0], NOVEL, top_k=2, threshold=0.3)

    assert [r.fragment.content for r in results] == ["hero", "prose"]
    assert results[0].similarity == pytest.approx(1.0, abs=1e-3)


async def test_search_storage_failure_propagates(embeddings, settings):
    store = MemoryStore(FailingBackend(), embeddings, settings)

    with pytest.raises(StorageError):
        await store.search([1.0, 0.0], NOVEL)


async def test_remember_setting_formats_and_embeds(memory_store, embeddings):
    stored = await memory_store.remember_setting(NOVEL, FragmentKind.CHARACTER, " Lin Wei ", "A swordsman who hates rain")

    assert stored.content == "[Character] Lin Wei: A swordsman who hates rain"
    assert embeddings.calls == [stored.content]
    listed = await memory_store.list_settings(NOVEL, FragmentKind.CHARACTER)
    assert [f.id for f in listed] == [stored.id]
    assert listed[0].description == "A swordsman who hates rain"


async def test_remember_outline_keeps_section(memory_store):
    stored = await memory_store.remember_setting(
        NOVEL, FragmentKind.OUTLINE, "Act one", "The flood arrives", section="Part I"
    )

    assert stored.content == "[Outline/Part I] Act one: The flood arrives"
    assert stored.metadata.section == "Part I"


@pytest.mark.parametrize(("name", "description"), [("", "something"), ("Lin", "   ")])
async def test_remember_setting_rejects_blank_fields(memory_store, embeddings, name, description):
    with pytest.raises(ValidationError):
        await memory_store.remember_setting(NOVEL, FragmentKind.ITEM, name, description)

    assert embeddings.calls == []


async def test_remember_setting_rejects_chapter_kind(memory_store):
    with pytest.raises(ValidationError):
        await memory_store.remember_setting(NOVEL, FragmentKind.CHAPTER, "Chapter 1", "text")


async def test_sync_chapter_chunks_in_order(memory_store, fragment_backend):
    text = "a" * 500 + "b" * 500 + "c" * 200

    stored = await memory_store.sync_chapter(NOVEL, "ch-1", text, title="The Flood")

    assert [len(f.content) for f in stored] == [500, 500, 200]
    assert [f.metadata.index for f in stored] == [0, 1, 2]
    assert all(f.metadata.name == "The Flood" and f.chapter_id == "ch-1" for f in stored)
    assert len(fragment_backend) == 3


async def test_sync_chapter_twice_replaces_fragments(memory_store, fragment_backend):
    await memory_store.sync_chapter(NOVEL, "ch-1", "x" * 1200)
    await memory_store.sync_chapter(NOVEL, "ch-1", "y" * 1200)

    chapter_fragments = await fragment_backend.list_fragments(NOVEL, FragmentKind.CHAPTER)
    assert len(chapter_fragments) == 3
    assert all(set(f.content) == {"y"} for f in chapter_fragments)


async def test_sync_chapter_leaves_other_chapters(memory_store, fragment_backend):
    await memory_store.sync_chapter(NOVEL, "ch-1", "x" * 600)
    await memory_store.sync_chapter(NOVEL, "ch-2", "z" * 600)
    await memory_store.sync_chapter(NOVEL, "ch-1", "w" * 100)

    chapter_fragments = await fragment_backend.list_fragments(NOVEL, FragmentKind.CHAPTER)
    assert sorted(f.chapter_id for f in chapter_fragments) == ["ch-1", "ch-2", "ch-2"]


async def test_sync_chapter_embedding_failure_keeps_previous(memory_store, fragment_backend, embeddings):
    await memory_store.sync_chapter(NOVEL, "ch-1", "x" * 700)
    embeddings.fail = True

    with pytest.raises(EmbeddingError):
        await memory_store.sync_chapter(NOVEL, "ch-1", "y" * 700)

    remaining = await fragment_backend.list_fragments(NOVEL, FragmentKind.CHAPTER)
    assert len(remaining) == 2
    assert all(set(f.content) == {"x"} for f in remaining)


async def test_sync_blank_chapter_clears_fragments(memory_store, fragment_backend):
    await memory_store.sync_chapter(NOVEL, "ch-1", "x" * 700)

    assert await memory_store.sync_chapter(NOVEL, "ch-1", "  \n ") == []
    assert len(fragment_backend) == 0


async def test_delete_setting(memory_store, fragment_backend):
    stored = await memory_store.remember_setting(NOVEL, FragmentKind.WORLD, "Qing Valley", "Fog all year")

    await memory_store.delete(stored.id)

    assert len(fragment_backend) == 0
    with pytest.raises(NotFoundError):
        await memory_store.delete(stored.id)


async def test_forget_setting_rejects_chapter_slices(memory_store, fragment_backend):
    stored = await memory_store.sync_chapter(NOVEL, "ch-1", "x" * 100)
    chapter_slice = await memory_store.get(stored[0].id)

    with pytest.raises(ValidationError):
        await memory_store.forget_setting(chapter_slice)
    assert len(fragment_backend) == 1


async def test_get_missing_fragment(memory_store):
    with pytest.raises(NotFoundError):
        await memory_store.get("5f0c6c8e-8f1e-4c55-9c43-3f0a3f9b8d11")


class EchoVoyageClient:
    def __init__(self):
        self.texts: list[str] = []

    async def embed(self, texts, model):
        self.texts.extend(texts)
        return SimpleNamespace(embeddings=[[float(len(t.strip())), 1.0] for t in texts])


async def test_sync_chapter_skips_whitespace_slices(fragment_backend, settings):
    client = EchoVoyageClient()
    provider = VoyageEmbeddingProvider(api_key="key", client_factory=lambda key: client)
    store = MemoryStore(backend=fragment_backend, embeddings=provider, settings=settings)
    text = "a" * 500 + "\n" * 500 + "b" * 200

    stored = await store.sync_chapter(NOVEL, "ch-1", text)

    assert [f.metadata.index for f in stored] == [0, 2]
    assert [f.content for f in stored] == ["a" * 500, "b" * 200]
    assert all(t.strip() for t in client.texts)
    assert len(fragment_backend) == 2
