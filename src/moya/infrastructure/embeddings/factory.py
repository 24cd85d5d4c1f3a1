"""Dependency injection for the embedding provider.

One provider is built per process and injected into the services that need
it, rather than being read as ambient state inside them.
"""

from __future__ import annotations

from moya.core.config import Settings
from moya.core.decorators import with_error_handling
from moya.core.logging import get_logger
from moya.domain.services import EmbeddingProvider
from moya.infrastructure.embeddings.cache import EmbeddingCache
from moya.infrastructure.embeddings.voyage import VoyageEmbeddingProvider

logger = get_logger(__name__)


class EmbeddingProviderBuilder:
    """Builder for a configured embedding provider."""

    def __init__(self, settings: Settings):
        self.settings = settings
        self._use_cache = True
        self._api_key: str | None = None
        self._model: str | None = None

    def with_cache(self, enabled: bool = True) -> EmbeddingProviderBuilder:
        self._use_cache = enabled
        return self

    def with_api_key(self, api_key: str) -> EmbeddingProviderBuilder:
        self._api_key = api_key
        return self

    def with_model(self, model: str) -> EmbeddingProviderBuilder:
        self._model = model
        return self

    @with_error_handling(reraise=True)
    def build(self) -> EmbeddingProvider:
        """Build the provider.

        Raises:
            ConfigurationError: If no Voyage API key is configured
        """
        api_key = self._api_key or self.settings.require("voyage_api_key")
        model = self._model or self.settings.embedding_model

        cache = None
        if self._use_cache and self.settings.embedding_cache_size > 0:
            cache = EmbeddingCache(max_entries=self.settings.embedding_cache_size)

        logger.info("Creating embedding provider", model=model, cache=cache is not None)
        return VoyageEmbeddingProvider(api_key=api_key, model=model, cache=cache)


def create_embedding_provider(settings: Settings, use_cache: bool = True) -> EmbeddingProvider:
    """Convenience function used by the application lifespan.

    Example:
        ```python
        embeddings = create_embedding_provider(settings)
        memory = MemoryStore(backend=fragments, embeddings=embeddings, settings=settings)
        ```
    """
    return EmbeddingProviderBuilder(settings).with_cache(use_cache).build()
