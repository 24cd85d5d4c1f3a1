"""Voyage AI embedding provider."""

import asyncio
from collections.abc import Callable
from typing import Any, cast

import voyageai

from moya.core.base import ServiceErrorDetails
from moya.core.errors import EmbeddingError, EmbeddingInitializationError
from moya.core.logging import get_logger
from moya.infrastructure.embeddings.cache import EmbeddingCache

logger = get_logger(__name__)

MODEL_DIMENSIONS = {
    "voyage-3-large": 1024,
    "voyage-3": 1024,
    "voyage-3-lite": 512,
    "voyage-3.5": 1024,
    "voyage-3.5-lite": 1024,
    "voyage-multilingual-2": 1024,
}


def _details(operation: str, **kwargs: Any) -> ServiceErrorDetails:
    return ServiceErrorDetails(
        source="VoyageEmbeddingProvider",
        operation=operation,
        service_name="Voyage AI",
        endpoint="/embeddings",
        **kwargs,
    )


class VoyageEmbeddingProvider:
    """Voyage AI embeddings with a lazily created, shared client.

    The client is created on the first ``embed`` call and reused for the
    lifetime of the provider; concurrent first calls wait on the same
    initialisation. Queries and stored fragments are embedded the same way
    so their vectors stay comparable.
    """

    def __init__(
        self,
        api_key: str,
        model: str = "voyage-3",
        cache: EmbeddingCache | None = None,
        client_factory: Callable[[str], Any] | None = None,
    ) -> None:
        self._api_key = api_key
        self._model = model
        self.cache = cache
        self._client_factory = client_factory or (lambda key: voyageai.AsyncClient(api_key=key))
        # voyageai client doesn't expose a public type
        self._client: Any | None = None
        self._init_lock = asyncio.Lock()
        self.initializations = 0

    @property
    def model(self) -> str:
        return self._model

    @property
    def dimensions(self) -> int:
        return MODEL_DIMENSIONS.get(self._model, 1024)

    async def _get_client(self) -> Any:
        if self._client is not None:
            return self._client

        async with self._init_lock:
            if self._client is None:
                if not self._api_key:
                    raise EmbeddingInitializationError(
                        message="Voyage API key is empty, cannot initialise the embedding client",
                        details=_details("initialization"),
                    )
                logger.info("Loading embedding client", model=self._model)
                try:
                    self._client = self._client_factory(self._api_key)
                except Exception as e:
                    raise EmbeddingInitializationError(
                        message=f"Failed to initialise Voyage client: {e!s}",
                        details=_details("initialization"),
                    ) from e
                self.initializations += 1
                logger.info("Embedding client ready", model=self._model, dimensions=self.dimensions)
        return self._client

    async def embed(self, text: str) -> list[float]:
        """Generate an embedding vector for ``text``, consulting the cache first."""
        if not text.strip():
            raise EmbeddingError(
                message="Cannot embed empty text",
                details=_details("embed"),
            )

        if self.cache:
            cached = await self.cache.get_cached(text, self._model)
            if cached:
                logger.debug("Embedding cache hit", model=self._model, preview=text[:50])
                return cached

        client = await self._get_client()
        try:
            response = await client.embed(texts=[text], model=self._model)
        except Exception as e:
            raise EmbeddingError(
                message=f"Failed to generate embedding: {e!s}",
                details=_details("embed"),
            ) from e

        embeddings = getattr(response, "embeddings", None) or []
        if not embeddings or not embeddings[0]:
            raise EmbeddingError(
                message="Voyage API returned no embedding",
                details=_details("embed", status_code=200),
            )

        embedding = [float(v) for v in cast("list[float]", embeddings[0])]
        if self.cache:
            await self.cache.store(text, self._model, embedding)
        return embedding
