"""Tests for retrieval-augmented prompt assembly."""

import pytest

from moya.core.errors import EmbeddingError, StorageError, ValidationError
from moya.domain.models import FragmentKind, FragmentMetadata, MemoryFragment
from moya.services import MemoryStore, PromptAssembler, render_prompt

NOVEL = "novel-1"


class FailingBackend:
    async def match(self, *args, **kwargs):
        raise StorageError("connection refused")


def test_render_prompt_without_context():
    assert render_prompt("She opened the door.", []) == "She opened the door."


def test_render_prompt_with_context_and_instruction():
    prompt = render_prompt(
        "She opened the door.",
        ["[Character] Lin: A swordsman", "[World] Qing: Foggy"],
        instruction="Introduce a stranger",
    )

    assert prompt == (
        "【Recalled context】\n"
        "[Character] Lin: A swordsman\n---\n[World] Qing: Foggy"
        "\n\n【Current text】\nShe opened the door."
        "\n\n【Instruction】\nIntroduce a stranger"
        "\n\nContinue the story following the instruction above."
    )


def test_render_prompt_blank_instruction_ignored():
    assert render_prompt("text here", [], instruction="   ") == "text here"


async def test_short_text_rejected_before_embedding(assembler, embeddings):
    with pytest.raises(ValidationError):
        await assembler.build_prompt("  too few  ", None, NOVEL)

    assert embeddings.calls == []


async def test_trailing_window_is_last_thousand_chars(assembler, embeddings):
    text = "a" * 500 + "b" * 1000

    prompt = await assembler.build_prompt(text, None, NOVEL)

    assert prompt.trailing_text == "b" * 1000
    assert embeddings.calls == ["b" * 1000]
    assert prompt.text == "b" * 1000
    assert prompt.matches == []


async def test_prompt_includes_recalled_context(assembler, embeddings, fragment_backend):
    text = "Lin Wei walked into the rain again."
    embeddings.vectors[text] = [1.0, 0.0]
    await fragment_backend.upsert(
        [
            MemoryFragment(
                novel_id=NOVEL,
                content="[Character] Lin Wei: A swordsman who hates rain",
                embedding=[0.95, 0.05],
                metadata=FragmentMetadata(type=FragmentKind.CHARACTER, name="Lin Wei"),
            ),
            MemoryFragment(
                novel_id=NOVEL,
                content="[Item] Umbrella: Unrelated",
                embedding=[0.0, 1.0],
                metadata=FragmentMetadata(type=FragmentKind.ITEM, name="Umbrella"),
            ),
        ]
    )

    prompt = await assembler.build_prompt(text, "Make it thunder", NOVEL)

    assert len(prompt.matches) == 1
    assert prompt.text.startswith("【Recalled context】\n[Character] Lin Wei: A swordsman who hates rain")
    assert "\n\n【Current text】\nLin Wei walked into the rain again." in prompt.text
    assert prompt.text.endswith("【Instruction】\nMake it thunder\n\nContinue the story following the instruction above.")


async def test_embedding_failure_propagates(assembler, embeddings):
    embeddings.fail = True

    with pytest.raises(EmbeddingError):
        await assembler.build_prompt("Plenty of text to continue from.", None, NOVEL)


async def test_storage_failure_propagates_by_default(embeddings, settings):
    memory = MemoryStore(FailingBackend(), embeddings, settings)
    assembler = PromptAssembler(embeddings, memory, settings)

    with pytest.raises(StorageError):
        await assembler.build_prompt("Plenty of text to continue from.", None, NOVEL)


async def test_storage_failure_skipped_when_allowed(embeddings, settings):
    settings = settings.model_copy(update={"rag_allow_missing_context": True})
    memory = MemoryStore(FailingBackend(), embeddings, settings)
    assembler = PromptAssembler(embeddings, memory, settings)

    prompt = await assembler.build_prompt("Plenty of text to continue from.", None, NOVEL)

    assert prompt.context_skipped
    assert prompt.matches == []
    assert prompt.text == "Plenty of text to continue from."
