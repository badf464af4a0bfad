"""Application configuration.

Values come from the process environment or a ``.env`` file in the working
directory and are read once at process start.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings"""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Hosted row store (Supabase)
    supabase_url: str = ""
    supabase_anon_key: str = ""

    # Chatbot webhook (n8n workflow)
    chat_webhook_url: str = "https://n8n.findyourwave.uk/webhook/chatbot"

    # Seconds for every outgoing HTTP call
    request_timeout: float = 10.0

    # Timestamp key (YYYYMMDDHH) used to list beaches; latest when unset
    listing_date: Optional[str] = None

    # Beach page poll interval, 0 disables
    refresh_seconds: int = 60

    log_level: str = "INFO"
    environment: str = "development"


@lru_cache()
def get_settings() -> Settings:
    return Settings()
