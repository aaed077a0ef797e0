from __future__ import annotations

from functools import lru_cache

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings validated via Pydantic.

    Values are loaded from environment variables and/or a .env file.
    """

    # API Keys
    anthropic_api_key: str = ""  # Optional: AI extraction falls back to rules if absent

    # AI extraction source
    llm_model: str = "claude-sonnet-4-20250514"
    ai_extraction_enabled: bool = True
    ai_timeout_seconds: float = 30.0
    ai_max_transcript_chars: int = 30000

    # Rule-based extraction
    default_due_days: int = 7
    title_max_length: int = 50
    known_names: list[str] = [
        "Aman",
        "Rajeev",
        "Shreya",
        "John",
        "Jane",
        "Alex",
        "Sarah",
        "Mike",
    ]

    # App config
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    log_level: str = "INFO"

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached Settings instance.

    Gracefully handles missing .env files (e.g. in CI/testing) by falling
    back to environment variables and defaults.
    """
    try:
        return Settings()
    except Exception:
        # If .env is missing or unreadable, build settings from env vars only.
        return Settings(_env_file=None)  # type: ignore[call-arg]


settings = get_settings()
