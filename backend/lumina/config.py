"""
Configuration Settings

Environment variables and application configuration.
Includes LangSmith tracing setup for agent observability.
"""

import os
import logging
from pydantic_settings import BaseSettings
from pydantic import field_validator
from functools import lru_cache


logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # App settings
    app_name: str = "Lumina API"
    app_version: str = "1.0.0"
    debug: bool = True
    log_level: str = "INFO"

    # API settings
    api_prefix: str = "/api/v1"

    # CORS
    cors_origins: list[str] = ["http://localhost:3000", "http://127.0.0.1:3000"]

    @field_validator("cors_origins", mode="before")
    @classmethod
    def parse_cors_origins(cls, v):
        """Accept comma-separated string or list for CORS origins."""
        if isinstance(v, str):
            return [origin.strip() for origin in v.split(",") if origin.strip()]
        return v

    # Google AI
    google_api_key: str = ""
    # Room analysis (vision, structured JSON)
    analysis_model_name: str = "gemini-2.5-flash"
    # Designer chat (Director backing model)
    chat_model_name: str = "gemini-2.5-flash"
    # Image editing (redesign + chat refinements)
    edit_image_model_name: str = "gemini-2.5-flash-image"
    # Text-to-image concepts
    generation_model_name: str = "imagen-4.0-generate-001"
    generation_aspect_ratio: str = "16:9"

    # Input limits
    max_image_bytes: int = 10 * 1024 * 1024
    min_prompt_length: int = 10
    max_prompt_length: int = 2000
    max_chat_message_length: int = 500

    # Director
    history_max_chars: int = 2000

    # Seconds a client should wait after the backend reports quota exhaustion
    quota_retry_after_seconds: float = 60.0

    # LangSmith Tracing
    langchain_tracing_v2: bool = True
    langchain_api_key: str = ""
    langchain_project: str = "lumina"
    langchain_endpoint: str = "https://api.smith.langchain.com"

    class Config:
        env_file = (".env", "../.env", "../../.env")
        env_file_encoding = "utf-8"
        extra = "ignore"


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


def setup_langsmith() -> bool:
    """
    Setup LangSmith tracing environment variables.

    Call this at application startup to enable tracing.
    Returns True if tracing is enabled, False otherwise.
    """
    settings = get_settings()

    if settings.langchain_api_key and settings.langchain_tracing_v2:
        # Set environment variables for LangSmith
        os.environ["LANGCHAIN_TRACING_V2"] = "true"
        os.environ["LANGCHAIN_API_KEY"] = settings.langchain_api_key
        os.environ["LANGCHAIN_PROJECT"] = settings.langchain_project
        os.environ["LANGCHAIN_ENDPOINT"] = settings.langchain_endpoint

        logger.info(
            "LangSmith tracing enabled (project=%s, endpoint=%s)",
            settings.langchain_project,
            settings.langchain_endpoint,
        )
        return True
    else:
        logger.warning("LangSmith tracing NOT configured. Set LANGCHAIN_API_KEY in your .env file")
        return False
