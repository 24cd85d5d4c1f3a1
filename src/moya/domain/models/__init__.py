from .document import Caret, Document
from .fragment import (
    FragmentKind,
    FragmentMetadata,
    MemoryFragment,
    ScoredFragment,
    format_setting,
)
from .library import Chapter, Novel, count_words, empty_document
from .stream import Delta, Done, Malformed, StreamEvent, StreamOutcome, StreamState
from .utils import utc_now

__all__ = [
    "Caret",
    "Chapter",
    "Delta",
    "Document",
    "Done",
    "FragmentKind",
    "FragmentMetadata",
    "Malformed",
    "MemoryFragment",
    "Novel",
    "ScoredFragment",
    "StreamEvent",
    "StreamOutcome",
    "StreamState",
    "count_words",
    "empty_document",
    "format_setting",
    "utc_now",
]
