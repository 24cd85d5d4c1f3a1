"""Tests for chapter text chunking."""

import pytest

from moya.services.chunking import chunk_text


def test_chunk_text_fixed_slices():
    text = "a" * 500 + "b" * 500 + "c" * 200
    chunks = chunk_text(text, size=500)

    assert [len(c.content) for c in chunks] == [500, 500, 200]
    assert [c.index for c in chunks] == [0, 1, 2]
    assert chunks[1].content == "b" * 500
    assert chunks[2].start_char == 1000
    assert chunks[2].end_char == 1200


def test_chunk_text_preserves_text():
    text = "The river ran north that year. " * 40
    chunks = chunk_text(text, size=97)

    assert "".join(c.content for c in chunks) == text


def test_chunk_text_empty():
    assert chunk_text("") == []


def test_chunk_text_shorter_than_size():
    chunks = chunk_text("Short text", size=500)

    assert len(chunks) == 1
    assert chunks[0].content == "Short text"
    assert chunks[0].index == 0


@pytest.mark.parametrize("size", [0, -5])
def test_chunk_text_invalid_size(size):
    with pytest.raises(ValueError, match="must be positive"):
        chunk_text("anything", size=size)
