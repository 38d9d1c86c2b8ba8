"""
Application configuration using Pydantic Settings.

Automatically loads environment variables from .env files.
"""

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # OpenAI
    openai_api_key: str | None = None
    openai_model: str = "gpt-4o-2024-08-06"

    # PDF text extraction
    pdf_parser: Literal["pdfplumber", "llamaparse"] = "pdfplumber"
    llama_cloud_api_key: str | None = None
    # Transcribe scanned PDFs (no text layer) with the vision model
    vision_fallback: bool = True

    max_upload_mb: int = 20

    cors_origins: list[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
        "http://localhost:5173",
        "http://127.0.0.1:5173",
    ]

    debug: bool = False

    model_config = SettingsConfigDict(
        # Load from .env file in the backend directory
        env_file=Path(__file__).parent / ".env",
        env_file_encoding="utf-8",
        extra="ignore",
        # Case insensitive environment variable names
        case_sensitive=False,
    )


@lru_cache
def get_settings() -> Settings:
    """
    Get cached application settings.

    Returns:
        Settings: Application configuration loaded from environment.
    """
    return Settings()
