"""Story continuation endpoints (Server-Sent Events)."""

import asyncio
import json
from collections.abc import AsyncGenerator
from typing import Any

from fastapi import APIRouter, Depends
from fastapi.responses import StreamingResponse
from pydantic import BaseModel, Field

from moya.api.dependencies import get_continuation_service, get_current_user, get_library
from moya.core.base import ApplicationError
from moya.core.logging import get_logger
from moya.services.continuation import ContinuationResult, ContinuationService
from moya.services.library import LibraryService

logger = get_logger(__name__)
router = APIRouter()

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",  # Disable nginx buffering
}


class ContinueRequest(BaseModel):
    instruction: str | None = Field(None, description="Optional direction for the next passage")


def sse(payload: dict[str, Any]) -> str:
    return f"data: {json.dumps(payload, ensure_ascii=False)}\n\n"


def _final_event(result: ContinuationResult) -> dict[str, Any]:
    outcome = result.outcome
    if outcome.succeeded:
        return {
            "type": "done",
            "increments": outcome.increments,
            "skipped_frames": outcome.skipped_frames,
            "context_matches": len(result.prompt.matches),
            "context_skipped": result.prompt.context_skipped,
        }
    return {
        "type": "error",
        "error": str(outcome.error) if outcome.error else "Continuation failed",
        "cancelled": outcome.cancelled,
        "increments": outcome.increments,
    }


async def _events(
    task: "asyncio.Task[ContinuationResult]",
    queue: "asyncio.Queue[str]",
    cancel: asyncio.Event,
    head: str | None = None,
) -> AsyncGenerator[str]:
    getter: "asyncio.Future[str] | None" = None
    try:
        if head is not None:
            yield sse({"type": "delta", "text": head})
        while True:
            getter = asyncio.ensure_future(queue.get())
            await asyncio.wait({getter, task}, return_when=asyncio.FIRST_COMPLETED)
            if getter.done():
                yield sse({"type": "delta", "text": getter.result()})
                continue
            getter.cancel()
            while not queue.empty():
                yield sse({"type": "delta", "text": queue.get_nowait()})
            break

        try:
            result = task.result()
        except ApplicationError as e:
            yield sse({"type": "error", "error": e.message, "error_code": e.code.value, "cancelled": False})
            return
        yield sse(_final_event(result))
    finally:
        if getter is not None:
            getter.cancel()
        if not task.done():
            # Client went away mid-stream
            logger.info("Client disconnected, cancelling continuation")
            cancel.set()
            await asyncio.wait({task})


@router.post("/chapters/{chapter_id}/continue")
async def continue_chapter(
    chapter_id: str,
    request: ContinueRequest | None = None,
    user_id: str = Depends(get_current_user),
    service: ContinuationService = Depends(get_continuation_service),
) -> StreamingResponse:
    """Stream a continuation of the chapter.

    SSE Event Types:
    - type: 'delta' - Generated text, already applied to the chapter
    - type: 'done' - Stream complete, chapter saved
    - type: 'error' - The stream failed or was cancelled; earlier deltas are kept

    Errors before the first delta (chapter busy, too little text, missing
    context) are returned as regular JSON error responses.
    """
    queue: asyncio.Queue[str] = asyncio.Queue()
    cancel = asyncio.Event()
    task = asyncio.create_task(
        service.continue_chapter(
            chapter_id,
            request.instruction if request else None,
            on_increment=queue.put_nowait,
            cancel=cancel,
            user_id=user_id,
        )
    )

    # Wait until streaming has started so setup failures keep their status code
    first = asyncio.ensure_future(queue.get())
    await asyncio.wait({first, task}, return_when=asyncio.FIRST_COMPLETED)
    head = None
    if first.done():
        head = first.result()
    else:
        first.cancel()
        error = task.exception()
        if error is not None:
            raise error

    return StreamingResponse(
        _events(task, queue, cancel, head),
        media_type="text/event-stream",
        headers=SSE_HEADERS,
    )


@router.post("/chapters/{chapter_id}/continue/cancel")
async def cancel_continuation(
    chapter_id: str,
    user_id: str = Depends(get_current_user),
    library: LibraryService = Depends(get_library),
    service: ContinuationService = Depends(get_continuation_service),
):
    await library.get_chapter(chapter_id, user_id)
    return {"chapter_id": chapter_id, "cancelled": service.cancel(chapter_id)}
