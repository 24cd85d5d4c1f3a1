"""Debounced persistence of an editable document."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from typing import Generic, TypeVar

from moya.core.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


class AutosaveScheduler(Generic[T]):
    """Coalesces bursts of changes into a single write of the latest state.

    ``touch`` (re)arms a timer on the running loop. When it fires, the state
    is read through ``snapshot`` at that moment, never captured at touch
    time, and handed to ``persist``. A failed write leaves the scheduler
    dirty so the next flush retries with whatever the state is by then.
    """

    def __init__(
        self,
        persist: Callable[[T], Awaitable[None]],
        snapshot: Callable[[], T],
        window: float = 1.0,
    ):
        self._persist = persist
        self._snapshot = snapshot
        self.window = window
        self._timer: asyncio.TimerHandle | None = None
        self._pending: asyncio.Task[None] | None = None
        self._lock = asyncio.Lock()
        self._dirty = False
        self._closed = False
        self.writes = 0

    @property
    def dirty(self) -> bool:
        return self._dirty

    @property
    def closed(self) -> bool:
        return self._closed

    def touch(self) -> None:
        """Mark the state changed and restart the quiet-period timer."""
        if self._closed:
            logger.debug("Ignoring change on closed autosave")
            return
        self._dirty = True
        if self._timer is not None:
            self._timer.cancel()
        self._timer = asyncio.get_running_loop().call_later(self.window, self._fire)

    def _fire(self) -> None:
        self._timer = None
        self._pending = asyncio.ensure_future(self._write())

    async def _write(self) -> None:
        async with self._lock:
            if not self._dirty:
                return
            self._dirty = False
            state = self._snapshot()
            try:
                await self._persist(state)
            except Exception as e:
                self._dirty = True
                logger.error("Autosave failed, will retry on next flush", error=str(e), exc_info=True)
                return
            self.writes += 1
            logger.debug("Autosaved", writes=self.writes)

    async def flush(self) -> None:
        """Persist now if anything changed since the last successful write."""
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        if self._pending is not None:
            await self._pending
            self._pending = None
        await self._write()

    async def close(self) -> None:
        await self.flush()
        self._closed = True
