"""Application configuration using Pydantic Settings."""

from __future__ import annotations

from functools import lru_cache

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """PromptMedia application settings.

    Loaded from environment variables or .env file.
    """

    # --- Application ---
    APP_NAME: str = "PromptMedia"
    DEBUG: bool = False
    USE_MOCK_API: bool = False
    CORS_ORIGINS: str = "*"

    # --- Google Generative AI ---
    GOOGLE_API_KEY: str = ""
    IMAGE_MODEL: str = "gemini-3-pro-image-preview"
    DESCRIBE_MODEL: str = "gemini-1.5-flash"
    IMAGE_ASPECT_RATIO: str = "1:1"
    VIDEO_MODEL: str = "veo-3.1-generate-preview"

    # --- Video operation polling ---
    VIDEO_POLL_INTERVAL: float = 5.0
    VIDEO_POLL_TIMEOUT: float = 600.0
    VIDEO_MAX_POLLS: int = 0  # 0 = no attempt cap, timeout still applies
    VIDEO_DOWNLOAD_TIMEOUT: float = 300.0

    # --- Source images ---
    IMAGE_DOWNLOAD_TIMEOUT: float = 30.0
    MAX_UPLOAD_BYTES: int = 10 * 1024 * 1024
    MAX_REFERENCE_IMAGES: int = 5

    # --- Task registry retention ---
    TASK_REGISTRY_CAPACITY: int = 500
    TASK_TTL_SECONDS: float = 86400.0  # 0 disables the TTL sweep

    @property
    def cors_origin_list(self) -> list[str]:
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings singleton."""
    return Settings()
