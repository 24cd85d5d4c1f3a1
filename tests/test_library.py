"""Tests for the novel and chapter library."""

from datetime import UTC, datetime, timedelta

import pytest

from moya.core.errors import NotFoundError, ValidationError
from moya.domain.models import Novel

from .conftest import doc_with_text


async def test_create_novel(library):
    novel = await library.create_novel("user-1", "  The Flood  ")

    assert novel.title == "The Flood"
    assert (await library.get_novel(novel.id, "user-1")).id == novel.id


async def test_blank_title_rejected(library):
    with pytest.raises(ValidationError):
        await library.create_novel("user-1", "   ")


async def test_list_novels_newest_first(library, document_backend):
    base = datetime(2024, 1, 1, tzinfo=UTC)
    for days, title in [(0, "oldest"), (2, "newest"), (1, "middle")]:
        await document_backend.insert_novel(Novel(user_id="user-1", title=title, created_at=base + timedelta(days=days)))
    await document_backend.insert_novel(Novel(user_id="user-2", title="someone else"))

    novels = await library.list_novels("user-1")

    assert [n.title for n in novels] == ["newest", "middle", "oldest"]


async def test_other_users_novel_is_not_found(library):
    novel = await library.create_novel("user-1", "Private")

    with pytest.raises(NotFoundError):
        await library.get_novel(novel.id, "user-2")


async def test_chapters_appended_in_order(library):
    novel = await library.create_novel("user-1", "Book")
    for title in ["One", "Two", "Three"]:
        await library.create_chapter(novel.id, title)

    chapters = await library.list_chapters(novel.id)

    assert [c.title for c in chapters] == ["One", "Two", "Three"]
    assert [c.position for c in chapters] == [0, 1, 2]
    assert chapters[0].content == {"type": "doc", "content": [{"type": "paragraph"}]}


async def test_get_chapter_checks_owner(library):
    novel = await library.create_novel("user-1", "Book")
    chapter = await library.create_chapter(novel.id, "One")

    assert (await library.get_chapter(chapter.id, "user-1")).id == chapter.id
    with pytest.raises(NotFoundError):
        await library.get_chapter(chapter.id, "user-2")
    with pytest.raises(NotFoundError):
        await library.get_chapter("missing")


async def test_save_chapter_recomputes_word_count(library):
    novel = await library.create_novel("user-1", "Book")
    chapter = await library.create_chapter(novel.id, "One")

    saved = await library.save_chapter(chapter.id, doc_with_text("The rain stopped.", "他走了"), "The rain stopped.\n他走了")

    assert saved.word_count == 6
    assert saved.plain_text == "The rain stopped.\n他走了"
    assert saved.updated_at >= chapter.updated_at


async def test_save_missing_chapter(library):
    with pytest.raises(NotFoundError):
        await library.save_chapter("missing", doc_with_text("x"), "x")
