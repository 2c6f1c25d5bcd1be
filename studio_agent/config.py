"""
Studio Agent Configuration

Environment-based configuration for the conversation engine.
"""
import logging
from functools import lru_cache
from typing import Optional

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


# OpenRouter's OpenAI-compatible chat completions endpoint.
OPENROUTER_API_URL = "https://openrouter.ai/api/v1/chat/completions"

# Tempo shown to the model when the host application cannot report one.
DEFAULT_TEMPO: int = 140


class Settings(BaseSettings):
    """Engine settings loaded from environment variables."""

    # Chat completions endpoint (OpenRouter only)
    api_url: str = OPENROUTER_API_URL
    api_key: Optional[str] = None  # used when the config store holds no key
    default_model: str = "anthropic/claude-4-5-sonnet"

    # Attribution headers OpenRouter shows on its dashboard
    http_referer: str = "https://lmms.io"
    app_title: str = "LMMS AI Producer"

    # Transport
    request_timeout: float = 120.0  # seconds between stream fragments
    connect_timeout: float = 10.0

    # Prompt context
    default_tempo: int = DEFAULT_TEMPO

    # Orchestration
    max_tool_rounds: int = 25  # streaming rounds per exchange; 0 = unbounded
    config_namespace: str = "agent"

    @model_validator(mode="after")
    def _warn_unbounded_rounds(self) -> "Settings":
        """Warn when the tool-round cap is disabled."""
        if self.max_tool_rounds < 0:
            raise ValueError("max_tool_rounds must be >= 0")
        if self.max_tool_rounds == 0:
            logging.getLogger(__name__).warning(
                "STUDIO_AGENT_MAX_TOOL_ROUNDS=0: tool-calling rounds are unbounded. "
                "A model that keeps requesting tools will never finish the exchange."
            )
        return self

    model_config = SettingsConfigDict(
        env_prefix="STUDIO_AGENT_",
        env_file=".env",
        env_file_encoding="utf-8",
    )


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# Convenience access
settings = get_settings()
