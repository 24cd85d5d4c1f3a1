"""Completion stream events and outcomes."""

from enum import Enum
from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field


class Delta(BaseModel):
    """An incremental piece of generated text."""

    kind: Literal["delta"] = "delta"
    text: str


class Done(BaseModel):
    """Terminal sentinel; no further increments follow."""

    kind: Literal["done"] = "done"


class Malformed(BaseModel):
    """A frame that could not be decoded; skipped by the consumer."""

    kind: Literal["malformed"] = "malformed"
    raw: str
    reason: str


StreamEvent = Annotated[Delta | Done | Malformed, Field(discriminator="kind")]


class StreamState(str, Enum):
    IDLE = "idle"
    REQUESTING = "requesting"
    STREAMING = "streaming"
    COMPLETED = "completed"
    FAILED = "failed"


class StreamOutcome(BaseModel):
    """Final state of one streamed completion."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    state: StreamState = StreamState.IDLE
    increments: int = 0
    skipped_frames: int = 0
    error: Exception | None = None

    @property
    def cancelled(self) -> bool:
        return bool(getattr(self.error, "cancelled", False))

    @property
    def succeeded(self) -> bool:
        return self.state is StreamState.COMPLETED
