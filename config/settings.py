from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv


load_dotenv()

PROJECT_ROOT = Path(__file__).resolve().parent.parent

DEFAULT_ALLOWED_ORIGINS = [
    "https://www.billybear.fun",
    "https://billybear.fun",
    "https://billybear-chat-server.vercel.app",
    "http://localhost:80",
    "http://localhost:5500",
    "http://127.0.0.1:5500",
    "http://127.0.0.1:80",
    "null",
]


def _split_csv(value: Optional[str]) -> List[str]:
    if not value:
        return []
    return [item.strip() for item in value.split(",") if item.strip()]


class Settings:
    """Application settings loaded from environment variables.

    Keep all credentials and config centralized here. Values are read when
    the object is built, so tests can set env vars and construct a fresh one.
    """

    def __init__(self) -> None:
        self.app_env: str = os.getenv("APP_ENV", "development")
        self.host: str = os.getenv("HOST", "0.0.0.0")
        self.port: int = int(os.getenv("PORT", "4000"))
        self.log_level: str = os.getenv("LOG_LEVEL", "INFO").upper()

        self.google_api_key: Optional[str] = os.getenv("GOOGLE_API_KEY") or os.getenv("TOKEN")
        self.gemini_model: str = os.getenv("GEMINI_MODEL", "gemini-2.0-flash")
        self.temperature: float = float(os.getenv("MODEL_TEMPERATURE", "0.7"))
        self.top_p: float = float(os.getenv("MODEL_TOP_P", "0.7"))
        self.top_k: int = int(os.getenv("MODEL_TOP_K", "20"))
        self.max_output_tokens: int = int(os.getenv("MODEL_MAX_OUTPUT_TOKENS", "1000"))
        self.max_history_length: int = int(os.getenv("MAX_HISTORY_LENGTH", "10"))

        self.retry_max_attempts: int = int(os.getenv("RETRY_MAX_ATTEMPTS", "3"))
        self.retry_base_delay: float = float(os.getenv("RETRY_BASE_DELAY", "1.0"))

        self.allowed_origins: List[str] = (
            _split_csv(os.getenv("ALLOWED_ORIGINS")) or list(DEFAULT_ALLOWED_ORIGINS)
        )
        self.rate_limit_window_seconds: float = float(os.getenv("RATE_LIMIT_WINDOW_SECONDS", "60"))
        self.rate_limit_max: int = int(os.getenv("RATE_LIMIT_MAX", "60"))

        self.persona_path: Path = Path(
            os.getenv("PERSONA_PATH", str(PROJECT_ROOT / "prompts" / "billybear.json"))
        )
        self.persona_name: str = os.getenv("PERSONA_NAME", "BillyBear")

        self.validate()

    def validate(self) -> None:
        if self.max_history_length < 1:
            raise ValueError("MAX_HISTORY_LENGTH must be at least 1")
        if self.retry_max_attempts < 1:
            raise ValueError("RETRY_MAX_ATTEMPTS must be at least 1")
        if self.retry_base_delay < 0:
            raise ValueError("RETRY_BASE_DELAY must not be negative")
        if self.rate_limit_max < 1 or self.rate_limit_window_seconds <= 0:
            raise ValueError("Rate limit window and max must be positive")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
