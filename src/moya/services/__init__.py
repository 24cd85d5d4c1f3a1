from .autosave import AutosaveScheduler
from .chunking import TextChunk, chunk_text
from .continuation import ContinuationResult, ContinuationService
from .library import LibraryService
from .memory_store import MemoryStore
from .prompt import AssembledPrompt, PromptAssembler, render_prompt

__all__ = [
    "AssembledPrompt",
    "AutosaveScheduler",
    "ContinuationResult",
    "ContinuationService",
    "LibraryService",
    "MemoryStore",
    "PromptAssembler",
    "TextChunk",
    "chunk_text",
    "render_prompt",
]
