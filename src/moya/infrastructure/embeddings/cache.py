import asyncio
import hashlib
from collections import OrderedDict


class EmbeddingCache:
    """In-process LRU cache for embedding vectors with model awareness.

    The model name is part of every key, so switching models never serves a
    vector produced by a different model.
    """

    def __init__(self, max_entries: int = 2048):
        self.max_entries = max_entries
        self._entries: OrderedDict[str, list[float]] = OrderedDict()
        self._lock = asyncio.Lock()
        self.hits = 0
        self.misses = 0

    @staticmethod
    def cache_key(text: str, model: str) -> str:
        return hashlib.md5(f"{model}::{text}".encode()).hexdigest()

    async def get_cached(self, text: str, model: str) -> list[float] | None:
        """Retrieve a cached embedding produced by ``model`` for ``text``."""
        key = self.cache_key(text, model)
        async with self._lock:
            vector = self._entries.get(key)
            if vector is None:
                self.misses += 1
                return None
            self._entries.move_to_end(key)
            self.hits += 1
            return list(vector)

    async def store(self, text: str, model: str, embedding: list[float]) -> None:
        if self.max_entries <= 0:
            return
        key = self.cache_key(text, model)
        async with self._lock:
            self._entries[key] = list(embedding)
            self._entries.move_to_end(key)
            while len(self._entries) > self.max_entries:
                self._entries.popitem(last=False)

    def __len__(self) -> int:
        return len(self._entries)
