"""Memory fragment models.

A fragment is one retrievable unit of knowledge about a novel: either a
setting entry (character, world, item, outline) written by the author, or a
slice of chapter prose produced by a chapter sync.
"""

from datetime import datetime
from enum import Enum
from typing import Any
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

from .utils import utc_now


class FragmentKind(str, Enum):
    """Semantic type of a fragment, stored as ``metadata.type``."""

    CHARACTER = "character"
    WORLD = "world"
    ITEM = "item"
    OUTLINE = "outline"
    CHAPTER = "chapter"

    @property
    def label(self) -> str:
        return _LABELS[self]

    @property
    def is_setting(self) -> bool:
        return self is not FragmentKind.CHAPTER


_LABELS = {
    FragmentKind.CHARACTER: "Character",
    FragmentKind.WORLD: "World",
    FragmentKind.ITEM: "Item",
    FragmentKind.OUTLINE: "Outline",
    FragmentKind.CHAPTER: "Chapter",
}


class FragmentMetadata(BaseModel):
    type: FragmentKind
    name: str
    section: str | None = None
    index: int | None = Field(default=None, ge=0)


class MemoryFragment(BaseModel):
    """A (content, vector, metadata) triple scoped to a novel and optionally a chapter."""

    id: UUID = Field(default_factory=uuid4)
    novel_id: str
    chapter_id: str | None = None
    content: str
    embedding: list[float]
    metadata: FragmentMetadata
    created_at: datetime = Field(default_factory=utc_now)

    @property
    def kind(self) -> FragmentKind:
        return self.metadata.type

    @property
    def name(self) -> str:
        return self.metadata.name

    @property
    def description(self) -> str:
        """Setting description recovered from formatted content."""
        _, sep, description = self.content.partition(": ")
        return description if sep else self.content

    def to_record(self) -> dict[str, Any]:
        """Row for the ``documents`` table."""
        return {
            "id": str(self.id),
            "novel_id": self.novel_id,
            "chapter_id": self.chapter_id,
            "content": self.content,
            "embedding": self.embedding,
            "metadata": self.metadata.model_dump(mode="json", exclude_none=True),
            "created_at": self.created_at.isoformat(),
        }

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> "MemoryFragment":
        data = dict(record)
        data.pop("similarity", None)
        embedding = data.get("embedding")
        # pgvector columns come back from PostgREST as "[0.1,0.2,...]"
        if isinstance(embedding, str):
            data["embedding"] = [float(v) for v in embedding.strip("[]").split(",") if v]
        elif embedding is None:
            data["embedding"] = []
        if data.get("created_at") is None:
            data.pop("created_at", None)
        return cls.model_validate(data)

    def __str__(self) -> str:
        return f"MemoryFragment({self.kind.value}, name='{self.name}', content='{self.content[:30]}...')"


class ScoredFragment(BaseModel):
    fragment: MemoryFragment
    similarity: float


def format_setting(kind: FragmentKind, name: str, description: str, section: str | None = None) -> str:
    """Render a setting entry as ``[Label] Name: Description``."""
    label = kind.label
    if kind is FragmentKind.OUTLINE and section:
        label = f"{label}/{section}"
    return f"[{label}] {name}: {description}"
