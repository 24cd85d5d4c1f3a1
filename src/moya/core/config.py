"""Configuration management."""

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .errors import ConfigurationError

DEFAULT_SYSTEM_PROMPT = (
    "You are a professional fiction continuation assistant. Continue the story from the text "
    "the user provides with one new passage. Keep the established voice and style, make the "
    "scene vivid, and never repeat the text you were given."
)


class Settings(BaseSettings):
    # Storage
    storage_backend: Literal["supabase", "memory"] = "supabase"
    supabase_url: str = ""
    supabase_key: str = ""

    # Embeddings
    voyage_api_key: str = ""
    embedding_model: str = "voyage-3"
    embedding_cache_size: int = Field(default=2048, ge=0)

    # Chat completion (Zhipu BigModel)
    zhipu_api_key: str = ""
    completion_model: str = "glm-4.5-flash"
    completion_url: str = "https://open.bigmodel.cn/api/paas/v4/chat/completions"
    completion_temperature: float = 0.7
    completion_top_p: float = 0.9
    completion_timeout: float = 60.0
    token_ttl_seconds: int = 3600
    system_prompt: str = DEFAULT_SYSTEM_PROMPT

    # Retrieval-augmented prompt assembly
    trailing_window: int = Field(default=1000, gt=0)
    min_context_chars: int = Field(default=10, ge=0)
    rag_top_k: int = Field(default=3, gt=0)
    rag_threshold: float = 0.3
    rag_kind_weights: dict[str, float] = Field(default_factory=dict)
    rag_allow_missing_context: bool = False

    # Editing
    chunk_size: int = Field(default=500, gt=0)
    autosave_window: float = Field(default=1.0, ge=0.0)

    # App config
    debug: bool = True
    logfire_token: str | None = None

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",  # Ignore extra fields in .env file
        env_prefix="MOYA_",
    )

    def require(self, name: str) -> str:
        """Return a string setting, raising ConfigurationError when it is empty."""
        value = getattr(self, name)
        if not value:
            env_name = f"{self.model_config.get('env_prefix', '')}{name}".upper()
            raise ConfigurationError(f"{env_name} is not configured", setting=name)
        return value

    @property
    def integrations(self) -> dict[str, bool]:
        """Which external integrations have credentials."""
        return {
            "supabase": bool(self.supabase_url and self.supabase_key),
            "embeddings": bool(self.voyage_api_key),
            "completion": bool(self.zhipu_api_key),
        }


settings = Settings()


def get_settings() -> Settings:
    return settings
