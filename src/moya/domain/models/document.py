"""Live editable chapter document.

The structured content follows the TipTap/ProseMirror JSON shape used by the
browser editor::

    {"type": "doc", "content": [
        {"type": "paragraph", "content": [{"type": "text", "text": "..."}]},
    ]}

Text is inserted at a caret that addresses a top-level text block and a
character offset inside it. Every mutation, typed or streamed, notifies the
registered change listeners with the full tree and its plain-text projection.
"""

from __future__ import annotations

import copy
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from .library import count_words, empty_document

ChangeListener = Callable[[dict[str, Any], str], None]

TEXT_BLOCKS = frozenset({"paragraph", "heading", "codeBlock"})


@dataclass(frozen=True)
class Caret:
    block: int
    offset: int


def _inline_length(node: dict[str, Any]) -> int:
    if node.get("type") == "text":
        return len(node.get("text", ""))
    # hardBreak and inline atoms occupy one position
    return 1


def _block_length(block: dict[str, Any]) -> int:
    """Caret positions in a block; atoms count even though they have no text."""
    if block.get("type") not in TEXT_BLOCKS:
        return len(_node_text(block))
    return sum(_inline_length(node) for node in block.get("content") or [])


def _node_text(node: dict[str, Any]) -> str:
    node_type = node.get("type")
    if node_type == "text":
        return node.get("text", "")
    if node_type == "hardBreak":
        return "\n"
    children = node.get("content") or []
    if node_type in TEXT_BLOCKS:
        return "".join(_node_text(child) for child in children)
    return "\n".join(_node_text(child) for child in children)


class Document:
    """Rich-text chapter content with caret-continuous insertion."""

    def __init__(self, content: dict[str, Any] | None = None, caret: Caret | None = None):
        self._tree: dict[str, Any] = copy.deepcopy(content) if content else empty_document()
        if not self._tree.get("content"):
            self._tree["content"] = [{"type": "paragraph"}]
        self._listeners: list[ChangeListener] = []
        self._caret = caret or self._end_caret()

    @property
    def blocks(self) -> list[dict[str, Any]]:
        return self._tree["content"]

    @property
    def caret(self) -> Caret:
        return self._caret

    @property
    def plain_text(self) -> str:
        return "\n".join(_node_text(block) for block in self.blocks)

    @property
    def word_count(self) -> int:
        return count_words(self.plain_text)

    def to_json(self) -> dict[str, Any]:
        return copy.deepcopy(self._tree)

    def on_change(self, listener: ChangeListener) -> Callable[[], None]:
        """Register a listener; returns a callable that unregisters it."""
        self._listeners.append(listener)
        return lambda: self._listeners.remove(listener)

    def move_caret(self, block: int, offset: int) -> None:
        if not 0 <= block < len(self.blocks):
            raise IndexError(f"block {block} out of range")
        length = _block_length(self.blocks[block])
        self._caret = Caret(block, max(0, min(offset, length)))

    def move_caret_to_end(self) -> None:
        self._caret = self._end_caret()

    def apply_increment(self, text: str) -> None:
        """Insert streamed text at the caret, advancing the caret past it."""
        if not text:
            return
        self._insert(text)
        self._notify()

    def insert_text(self, text: str) -> None:
        """Typed insertion; same path as streamed increments."""
        self.apply_increment(text)

    def replace_content(self, content: dict[str, Any]) -> None:
        """Replace the whole tree (an editor update) and park the caret at the end."""
        self._tree = copy.deepcopy(content) if content else empty_document()
        if not self._tree.get("content"):
            self._tree["content"] = [{"type": "paragraph"}]
        self._caret = self._end_caret()
        self._notify()

    def _end_caret(self) -> Caret:
        last = len(self.blocks) - 1
        return Caret(last, _block_length(self.blocks[last]))

    def _ensure_text_block(self) -> None:
        block = self.blocks[self._caret.block]
        if block.get("type") not in TEXT_BLOCKS:
            self.blocks.insert(self._caret.block + 1, {"type": "paragraph"})
            self._caret = Caret(self._caret.block + 1, 0)

    def _insert(self, text: str) -> None:
        self._ensure_text_block()
        for i, piece in enumerate(text.split("\n")):
            if i:
                self._split_block()
            if piece:
                self._insert_inline(piece)

    def _insert_inline(self, text: str) -> None:
        block = self.blocks[self._caret.block]
        nodes = block.setdefault("content", [])
        offset = self._caret.offset
        position = 0
        for index, node in enumerate(nodes):
            length = _inline_length(node)
            if node.get("type") == "text" and position <= offset <= position + length:
                cut = offset - position
                node["text"] = node["text"][:cut] + text + node["text"][cut:]
                break
            if position + length > offset:
                nodes.insert(index, {"type": "text", "text": text})
                break
            position += length
        else:
            nodes.append({"type": "text", "text": text})
        self._caret = Caret(self._caret.block, offset + len(text))

    def _split_block(self) -> None:
        block = self.blocks[self._caret.block]
        offset = self._caret.offset
        left: list[dict[str, Any]] = []
        right: list[dict[str, Any]] = []
        position = 0
        for node in block.get("content") or []:
            length = _inline_length(node)
            if position + length <= offset:
                left.append(node)
            elif position >= offset:
                right.append(node)
            else:
                cut = offset - position
                left.append({**node, "text": node["text"][:cut]})
                right.append({**node, "text": node["text"][cut:]})
            position += length

        if left:
            block["content"] = left
        else:
            block.pop("content", None)
        new_block: dict[str, Any] = {"type": "paragraph"}
        if right:
            new_block["content"] = right
        self.blocks.insert(self._caret.block + 1, new_block)
        self._caret = Caret(self._caret.block + 1, 0)

    def _notify(self) -> None:
        if not self._listeners:
            return
        tree = self.to_json()
        text = self.plain_text
        for listener in list(self._listeners):
            listener(tree, text)
