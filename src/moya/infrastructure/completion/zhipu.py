"""Streaming chat completions from Zhipu BigModel."""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from typing import Any

import httpx

from moya.core.base import AIServiceErrorDetails
from moya.core.config import Settings
from moya.core.errors import StreamError
from moya.core.logging import get_logger
from moya.domain.models import Delta, Done, Malformed, StreamOutcome, StreamState
from moya.domain.services import ErrorCallback, IncrementCallback
from moya.infrastructure.completion.frames import parse_frame
from moya.infrastructure.completion.token import generate_token, split_api_key

logger = get_logger(__name__)


class ZhipuCompletionStreamer:
    """One streamed chat completion per ``stream`` call.

    Every delta is handed to ``on_increment`` as soon as its frame arrives,
    in arrival order. A failure after some increments reports through
    ``on_error`` exactly once and leaves those increments where they are.
    """

    def __init__(
        self,
        api_key: str,
        model: str = "glm-4.5-flash",
        url: str = "https://open.bigmodel.cn/api/paas/v4/chat/completions",
        system_prompt: str = "",
        temperature: float = 0.7,
        top_p: float = 0.9,
        timeout: float = 60.0,
        token_ttl_seconds: int = 3600,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        # Fail at construction on a missing or malformed key
        split_api_key(api_key)
        self._api_key = api_key
        self.model = model
        self.url = url
        self.system_prompt = system_prompt
        self.temperature = temperature
        self.top_p = top_p
        self.timeout = timeout
        self.token_ttl_seconds = token_ttl_seconds
        self._client = client

    @classmethod
    def from_settings(cls, settings: Settings, client: httpx.AsyncClient | None = None) -> ZhipuCompletionStreamer:
        """Raises ConfigurationError when MOYA_ZHIPU_API_KEY is missing or malformed."""
        return cls(
            api_key=settings.require("zhipu_api_key"),
            model=settings.completion_model,
            url=settings.completion_url,
            system_prompt=settings.system_prompt,
            temperature=settings.completion_temperature,
            top_p=settings.completion_top_p,
            timeout=settings.completion_timeout,
            token_ttl_seconds=settings.token_ttl_seconds,
            client=client,
        )

    def build_payload(self, prompt: str) -> dict[str, Any]:
        messages = []
        if self.system_prompt:
            messages.append({"role": "system", "content": self.system_prompt})
        messages.append({"role": "user", "content": prompt})
        return {
            "model": self.model,
            "messages": messages,
            "stream": True,
            "temperature": self.temperature,
            "top_p": self.top_p,
        }

    def _details(self, outcome: StreamOutcome, status_code: int | None = None) -> AIServiceErrorDetails:
        return AIServiceErrorDetails(
            source="ZhipuCompletionStreamer",
            operation="stream",
            service_name="zhipu",
            endpoint=self.url,
            status_code=status_code,
            model_name=self.model,
            increments=outcome.increments,
        )

    @staticmethod
    def _transition(outcome: StreamOutcome, state: StreamState) -> None:
        logger.debug("Stream state", previous=outcome.state.value, state=state.value)
        outcome.state = state

    async def stream(
        self,
        prompt: str,
        on_increment: IncrementCallback,
        on_error: ErrorCallback,
        cancel: asyncio.Event | None = None,
    ) -> StreamOutcome:
        outcome = StreamOutcome()
        self._transition(outcome, StreamState.REQUESTING)

        # Credentials are cheap and short-lived: never reused across calls
        headers = {
            "Authorization": f"Bearer {generate_token(self._api_key, self.token_ttl_seconds)}",
            "Content-Type": "application/json",
        }

        client = self._client or httpx.AsyncClient(timeout=self.timeout)
        try:
            async with client.stream("POST", self.url, headers=headers, json=self.build_payload(prompt)) as response:
                if response.status_code >= 400:
                    body = (await response.aread()).decode("utf-8", errors="replace")
                    raise StreamError(
                        f"API Error: {response.status_code} - {body[:500]}",
                        details=self._details(outcome, response.status_code),
                    )

                self._transition(outcome, StreamState.STREAMING)
                lines = response.aiter_lines()
                while True:
                    line = await self._next_line(lines, cancel, outcome)
                    if line is None:
                        break
                    event = parse_frame(line)
                    if event is None:
                        continue
                    if isinstance(event, Done):
                        break
                    if isinstance(event, Malformed):
                        outcome.skipped_frames += 1
                        logger.warning("Skipping malformed stream frame", reason=event.reason, raw=event.raw[:200])
                        continue
                    if isinstance(event, Delta):
                        on_increment(event.text)
                        outcome.increments += 1

            self._transition(outcome, StreamState.COMPLETED)
            logger.info("Completion stream finished", increments=outcome.increments, skipped=outcome.skipped_frames)
        except StreamError as e:
            e.partial = outcome.increments
            self._fail(outcome, e, on_error)
        except httpx.HTTPError as e:
            error = StreamError(
                f"Completion stream transport failed: {e!s}",
                partial=outcome.increments,
                details=self._details(outcome),
            )
            error.__cause__ = e
            self._fail(outcome, error, on_error)
        finally:
            if self._client is None:
                await client.aclose()

        return outcome

    async def _next_line(
        self,
        lines: AsyncIterator[str],
        cancel: asyncio.Event | None,
        outcome: StreamOutcome,
    ) -> str | None:
        """Next line of the body, or None at the end; raises StreamError when cancelled."""
        if cancel is None:
            return await anext(lines, None)

        if cancel.is_set():
            raise self._cancelled(outcome)

        reader = asyncio.ensure_future(anext(lines, None))
        waiter = asyncio.ensure_future(cancel.wait())
        try:
            done, _ = await asyncio.wait({reader, waiter}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            waiter.cancel()
        if reader not in done:
            reader.cancel()
            raise self._cancelled(outcome)
        return reader.result()

    def _cancelled(self, outcome: StreamOutcome) -> StreamError:
        return StreamError(
            "Continuation cancelled",
            cancelled=True,
            partial=outcome.increments,
            details=self._details(outcome),
        )

    def _fail(self, outcome: StreamOutcome, error: StreamError, on_error: ErrorCallback) -> None:
        self._transition(outcome, StreamState.FAILED)
        outcome.error = error
        if error.cancelled:
            logger.info("Completion stream cancelled", increments=outcome.increments)
        else:
            logger.error("Completion stream failed", error=str(error), increments=outcome.increments)
        on_error(error)
