"""Novel and chapter records."""

import re
from datetime import datetime
from typing import Any
from uuid import uuid4

from pydantic import BaseModel, Field

from .utils import utc_now

# CJK ideographs count as one word each; everything else is whitespace separated
_CJK = r"㐀-䶿一-鿿豈-﫿"
_WORD_RE = re.compile(rf"[{_CJK}]|[^\s{_CJK}]+")


def count_words(text: str) -> int:
    return len(_WORD_RE.findall(text))


def empty_document() -> dict[str, Any]:
    return {"type": "doc", "content": [{"type": "paragraph"}]}


def _new_id() -> str:
    return str(uuid4())


class Novel(BaseModel):
    id: str = Field(default_factory=_new_id)
    user_id: str
    title: str
    created_at: datetime = Field(default_factory=utc_now)


class Chapter(BaseModel):
    id: str = Field(default_factory=_new_id)
    novel_id: str
    title: str
    content: dict[str, Any] = Field(default_factory=empty_document)
    plain_text: str = ""
    word_count: int = 0
    position: int = 0
    updated_at: datetime = Field(default_factory=utc_now)
