"""Retrieval-augmented prompt assembly for story continuation."""

from __future__ import annotations

from dataclasses import dataclass, field

from moya.core.base import ValidationErrorDetails
from moya.core.config import Settings
from moya.core.errors import StorageError, ValidationError
from moya.core.logging import get_logger
from moya.domain.models import ScoredFragment
from moya.domain.services import EmbeddingProvider
from moya.services.memory_store import MemoryStore

logger = get_logger(__name__)

CONTEXT_HEADER = "【Recalled context】\n"
CURRENT_HEADER = "\n\n【Current text】\n"
INSTRUCTION_HEADER = "\n\n【Instruction】\n"
INSTRUCTION_FOOTER = "\n\nContinue the story following the instruction above."
MATCH_SEPARATOR = "\n---\n"


@dataclass
class AssembledPrompt:
    text: str
    trailing_text: str
    matches: list[ScoredFragment] = field(default_factory=list)
    context_skipped: bool = False


def render_prompt(trailing_text: str, contents: list[str], instruction: str | None = None) -> str:
    """Lay out recalled context, the current text and an optional instruction."""
    if contents:
        prompt = CONTEXT_HEADER + MATCH_SEPARATOR.join(contents) + CURRENT_HEADER + trailing_text
    else:
        prompt = trailing_text

    if instruction and instruction.strip():
        prompt += INSTRUCTION_HEADER + instruction.strip() + INSTRUCTION_FOOTER
    return prompt


class PromptAssembler:
    """Builds the model prompt from the tail of a chapter and recalled memory.

    The order is fixed: embed the trailing window, search the novel's memory,
    then lay the prompt out. Nothing is embedded for text that is too short
    to continue.
    """

    def __init__(self, embeddings: EmbeddingProvider, memory: MemoryStore, settings: Settings):
        self.embeddings = embeddings
        self.memory = memory
        self.trailing_window = settings.trailing_window
        self.min_context_chars = settings.min_context_chars
        self.top_k = settings.rag_top_k
        self.threshold = settings.rag_threshold
        self.allow_missing_context = settings.rag_allow_missing_context

    def _validate(self, document_text: str) -> None:
        length = len(document_text.strip())
        if length < self.min_context_chars:
            raise ValidationError(
                message=f"Need at least {self.min_context_chars} characters of text to continue from",
                details=ValidationErrorDetails(
                    source="PromptAssembler",
                    operation="build_prompt",
                    field="document_text",
                    actual_value=length,
                    constraint=f"min_length={self.min_context_chars}",
                ),
            )

    async def build_prompt(self, document_text: str, instruction: str | None, novel_id: str) -> AssembledPrompt:
        """Assemble the prompt for one continuation.

        Raises:
            ValidationError: If the text is shorter than ``min_context_chars``
            EmbeddingError: If the trailing window cannot be embedded
            StorageError: If the search fails and missing context is not allowed
        """
        self._validate(document_text)

        trailing_text = document_text[-self.trailing_window :]
        query_vector = await self.embeddings.embed(trailing_text)

        context_skipped = False
        try:
            matches = await self.memory.search(
                query_vector, novel_id, top_k=self.top_k, threshold=self.threshold
            )
        except StorageError as e:
            if not self.allow_missing_context:
                raise
            logger.warning("Memory search failed, continuing without recalled context", error=str(e))
            matches = []
            context_skipped = True

        text = render_prompt(trailing_text, [m.fragment.content for m in matches], instruction)
        logger.info(
            "Prompt assembled",
            novel_id=novel_id,
            matches=len(matches),
            trailing_chars=len(trailing_text),
            instruction=bool(instruction and instruction.strip()),
        )
        return AssembledPrompt(
            text=text,
            trailing_text=trailing_text,
            matches=matches,
            context_skipped=context_skipped,
        )
