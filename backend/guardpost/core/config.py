"""Application configuration using pydantic-settings."""
from functools import lru_cache
from pathlib import Path
from urllib.parse import urlparse

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""
    model_config = SettingsConfigDict(
        env_file=str(Path(__file__).resolve().parents[3] / ".env"),
        case_sensitive=False,
    )

    # Application
    log_level: str = "INFO"
    log_json: bool = False
    security_db_path: str = "./data/security_state.db"
    app_mode: str = "demo"

    # Completion provider: auto|openai|gemini|none
    completion_provider: str = "auto"

    # OpenAI-compatible endpoint
    openai_api_key: str = ""
    openai_base_url: str | None = None
    llm_model: str = "gpt-4o-mini"
    llm_temperature: float = 0.2
    llm_max_tokens: int = 600

    # Google Generative Language API
    gemini_api_key: str = ""
    gemini_base_url: str = "https://generativelanguage.googleapis.com/v1beta"
    gemini_model: str = "gemini-2.0-flash"

    # Analyst pipeline controls
    analyst_timeout_seconds: float = 20.0
    analyst_context_char_limit: int = 6000
    analyst_selection_cap: int = 5
    analyst_recent_event_hours: int = 24
    analyst_apology_text: str = (
        "I'm sorry, the security analysis service is unavailable right now. "
        "Please try again shortly, or check the dashboard panels for live status."
    )
    analyst_metrics_window_size: int = 200

    def resolved_openai_api_key(self) -> str | None:
        """
        Resolve API key for OpenAI-compatible clients.

        Local endpoints (e.g. Ollama) often do not require a real key, but the
        OpenAI SDK still expects a non-empty value.
        """
        key = (self.openai_api_key or "").strip()
        if key and key != "sk-your-key-here":
            return key
        if self._is_local_base_url():
            return "local-dev"
        return None

    def _is_local_base_url(self) -> bool:
        if not self.openai_base_url:
            return False
        try:
            host = (urlparse(self.openai_base_url).hostname or "").lower()
        except Exception:
            return False
        return host in {"localhost", "127.0.0.1", "::1"} or host.endswith(".local")

    def normalized_completion_provider(self) -> str:
        provider = (self.completion_provider or "").strip().lower()
        return provider if provider in {"auto", "openai", "gemini", "none"} else "auto"

    def secret_values(self) -> list[str]:
        """Configured credentials that must never appear in an answer."""
        return [
            value.strip()
            for value in (self.openai_api_key, self.gemini_api_key)
            if value and len(value.strip()) >= 8
        ]

    def normalized_app_mode(self) -> str:
        mode = (self.app_mode or "").strip().lower()
        return mode if mode in {"demo", "production"} else "production"

    def is_demo_mode(self) -> bool:
        return self.normalized_app_mode() == "demo"


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
