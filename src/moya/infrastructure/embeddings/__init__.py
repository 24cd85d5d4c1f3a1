from .cache import EmbeddingCache
from .factory import EmbeddingProviderBuilder, create_embedding_provider
from .similarity import cosine_similarities, cosine_similarity
from .voyage import VoyageEmbeddingProvider

__all__ = [
    "EmbeddingCache",
    "EmbeddingProviderBuilder",
    "VoyageEmbeddingProvider",
    "cosine_similarities",
    "cosine_similarity",
    "create_embedding_provider",
]
