"""Pydantic Settings: typed configuration with .env auto-loading."""

from __future__ import annotations

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict

from config.llm_config import LLMConfig


class Settings(BaseSettings):
    """Application configuration loaded from environment / .env file."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # ── Service ──────────────────────────────────────────────
    service_port: int = 3001
    cors_origins: list[str] = ["http://localhost:3000"]
    debug: bool = False

    # ── Patch generation ─────────────────────────────────────
    default_model: str = "openai/gpt-4o-mini"
    generation_model: str = ""  # Empty = default_model
    llm_base_url: str = ""  # Empty = provider default endpoint
    generation_timeout: float = 90.0  # seconds; timeout is a request failure, never retried
    generation_max_tokens: int = 4096
    use_mock_ai: bool = False  # Deterministic offline generator (no API key needed)

    # Provider API keys
    openai_api_key: str = ""
    anthropic_api_key: str = ""
    dashscope_api_key: str = ""
    zai_api_key: str = ""
    gemini_api_key: str = ""

    # ── Provider key verification ────────────────────────────
    provider_verify_timeout: float = 20.0  # seconds, clamped to [8, 40]

    # ── Documents / history ──────────────────────────────────
    pages_dir: str = "data/pages"
    history_max_entries: int = 20

    # ── Helpers ───────────────────────────────────────────────

    def get_generation_llm_config(self) -> LLMConfig:
        """Build the :class:`LLMConfig` used for patch generation."""
        return LLMConfig(
            model=self.generation_model or self.default_model,
            max_tokens=self.generation_max_tokens,
        )

    def api_key_for(self, model_name: str) -> str:
        """Configured key for the provider prefix of *model_name*."""
        prefix = model_name.split("/", 1)[0] if "/" in model_name else "openai"
        return {
            "openai": self.openai_api_key,
            "anthropic": self.anthropic_api_key,
            "dashscope": self.dashscope_api_key,
            "zai": self.zai_api_key,
            "gemini": self.gemini_api_key,
        }.get(prefix, self.openai_api_key)


@lru_cache
def get_settings() -> Settings:
    """Singleton accessor for application settings."""
    return Settings()
