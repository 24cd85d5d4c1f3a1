"""AI continuation of a chapter, streamed into its live document."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any

from moya.core.config import Settings
from moya.core.errors import ContinuationInProgressError
from moya.core.logging import bind_log_context, get_logger
from moya.domain.models import Document, StreamOutcome
from moya.domain.services import CompletionStreamer, ErrorCallback, IncrementCallback
from moya.services.autosave import AutosaveScheduler
from moya.services.library import LibraryService
from moya.services.prompt import AssembledPrompt, PromptAssembler

logger = get_logger(__name__)


@dataclass
class ContinuationResult:
    outcome: StreamOutcome
    prompt: AssembledPrompt
    inserted_text: str

    @property
    def succeeded(self) -> bool:
        return self.outcome.succeeded


class ContinuationService:
    """Runs at most one continuation per chapter.

    The chapter's document receives every increment at its caret as it
    arrives and autosaves through the library. Anything that fails before
    streaming starts (validation, embedding, search) propagates with the
    document untouched. Failures during streaming are reported on the
    returned outcome and keep the text already inserted.
    """

    def __init__(
        self,
        assembler: PromptAssembler,
        streamer: CompletionStreamer,
        library: LibraryService,
        settings: Settings,
    ):
        self.assembler = assembler
        self.streamer = streamer
        self.library = library
        self.autosave_window = settings.autosave_window
        self._running: set[str] = set()
        self._cancel_events: dict[str, asyncio.Event] = {}

    def is_running(self, chapter_id: str) -> bool:
        return chapter_id in self._running

    def cancel(self, chapter_id: str) -> bool:
        """Ask the in-flight continuation of a chapter to stop.

        Returns False when nothing is running for the chapter.
        """
        event = self._cancel_events.get(chapter_id)
        if event is None:
            return False
        logger.info("Cancelling continuation", chapter_id=chapter_id)
        event.set()
        return True

    def _claim(self, chapter_id: str, cancel: asyncio.Event | None) -> asyncio.Event:
        # No await between the check and the claim
        if chapter_id in self._running:
            raise ContinuationInProgressError(chapter_id)
        self._running.add(chapter_id)
        event = cancel or asyncio.Event()
        self._cancel_events[chapter_id] = event
        return event

    def _release(self, chapter_id: str) -> None:
        self._running.discard(chapter_id)
        self._cancel_events.pop(chapter_id, None)

    async def continue_chapter(
        self,
        chapter_id: str,
        instruction: str | None = None,
        on_increment: IncrementCallback | None = None,
        cancel: asyncio.Event | None = None,
        on_error: ErrorCallback | None = None,
        user_id: str | None = None,
    ) -> ContinuationResult:
        """Continue the chapter from the end of its text.

        Raises:
            ContinuationInProgressError: If the chapter is already being continued
            NotFoundError: If the chapter does not exist (or is not the user's)
            ValidationError: If there is too little text to continue from
            EmbeddingError: If the prompt context cannot be embedded
            StorageError: If memory search fails and missing context is not allowed
        """
        cancel_event = self._claim(chapter_id, cancel)
        try:
            chapter = await self.library.get_chapter(chapter_id, user_id)
            with bind_log_context(novel_id=chapter.novel_id, chapter_id=chapter_id):
                return await self._run(
                    chapter.novel_id,
                    chapter_id,
                    chapter.content,
                    instruction,
                    on_increment,
                    on_error,
                    cancel_event,
                )
        finally:
            self._release(chapter_id)

    async def _run(
        self,
        novel_id: str,
        chapter_id: str,
        content: dict[str, Any],
        instruction: str | None,
        on_increment: IncrementCallback | None,
        on_error: ErrorCallback | None,
        cancel: asyncio.Event,
    ) -> ContinuationResult:
        document = Document(content)

        async def persist(state: tuple[dict[str, Any], str]) -> None:
            tree, text = state
            await self.library.save_chapter(chapter_id, tree, text)

        autosave: AutosaveScheduler[tuple[dict[str, Any], str]] = AutosaveScheduler(
            persist=persist,
            snapshot=lambda: (document.to_json(), document.plain_text),
            window=self.autosave_window,
        )
        unsubscribe = document.on_change(lambda tree, text: autosave.touch())
        inserted: list[str] = []

        def apply(text: str) -> None:
            document.apply_increment(text)
            inserted.append(text)
            if on_increment is not None:
                on_increment(text)

        def report(error: Exception) -> None:
            logger.warning("Continuation stopped early", error=str(error), increments=len(inserted))
            if on_error is not None:
                on_error(error)

        try:
            prompt = await self.assembler.build_prompt(document.plain_text, instruction, novel_id)
            logger.info("Starting continuation", matches=len(prompt.matches))
            outcome = await self.streamer.stream(prompt.text, apply, report, cancel)
        finally:
            unsubscribe()
            await autosave.close()

        logger.info(
            "Continuation finished",
            state=outcome.state.value,
            increments=outcome.increments,
            cancelled=outcome.cancelled,
        )
        return ContinuationResult(outcome=outcome, prompt=prompt, inserted_text="".join(inserted))
