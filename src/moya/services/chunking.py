"""Chapter text chunking for memory sync."""

from dataclasses import dataclass


@dataclass(frozen=True)
class TextChunk:
    index: int
    content: str
    start_char: int

    @property
    def end_char(self) -> int:
        return self.start_char + len(self.content)


def chunk_text(text: str, size: int = 500) -> list[TextChunk]:
    """Split text into consecutive fixed-size slices, in order, without overlap.

    The last slice holds the remainder. Indices start at 0 and only give a
    stable order.

    Raises:
        ValueError: If size is not positive
    """
    if size <= 0:
        raise ValueError(f"chunk size must be positive, got {size}")
    return [
        TextChunk(index=index, content=text[start : start + size], start_char=start)
        for index, start in enumerate(range(0, len(text), size))
    ]
