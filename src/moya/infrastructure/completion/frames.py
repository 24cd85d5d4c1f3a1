"""Server-sent event frame parsing for chat-completion streams."""

import json

from moya.domain.models import Delta, Done, Malformed, StreamEvent

DONE_SENTINEL = "[DONE]"


def parse_frame(line: str) -> StreamEvent | None:
    """Parse one line of the stream.

    Returns None for lines that carry no data (blank keep-alives, comments,
    ``event:``/``id:`` fields) and for deltas with empty content.
    """
    line = line.strip()
    if not line.startswith("data:"):
        return None

    payload = line[len("data:") :].strip()
    if payload == DONE_SENTINEL:
        return Done()

    try:
        body = json.loads(payload)
    except json.JSONDecodeError as e:
        return Malformed(raw=payload, reason=f"invalid JSON: {e.msg}")

    try:
        content = body["choices"][0]["delta"].get("content")
    except (KeyError, IndexError, TypeError, AttributeError):
        return Malformed(raw=payload, reason="missing choices[0].delta")

    if content is None or content == "":
        return None
    if not isinstance(content, str):
        return Malformed(raw=payload, reason="delta content is not a string")
    return Delta(text=content)

