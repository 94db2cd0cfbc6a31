"""Configuration helpers for environment-driven settings."""
from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Tuple

from dotenv import load_dotenv

if os.getenv("PYTEST_CURRENT_TEST") is None:
    load_dotenv()

API_FORMATS = ("lines", "json")


def _split_csv(value: str) -> Tuple[str, ...]:
    return tuple(entry.strip() for entry in value.split(",") if entry.strip())


@dataclass(slots=True)
class Settings:
    """Runtime application settings sourced from environment variables."""

    BOT_TOKEN: str = field(init=False)
    ADMIN_CHAT_IDS: Tuple[int, ...] = field(init=False)
    API_BASE_URL: str = field(init=False)
    API_FORMAT: str = field(init=False)
    REQUEST_TIMEOUT: float = field(init=False)
    MAX_IMAGE_BYTES: int = field(init=False)
    CURRENCY_SYMBOL: str = field(init=False)

    def __post_init__(self) -> None:
        self.reload()

    def reload(self) -> None:
        self.BOT_TOKEN = os.getenv("BOT_TOKEN", "").strip()

        try:
            self.ADMIN_CHAT_IDS = tuple(
                int(chat_id)
                for chat_id in _split_csv(os.getenv("ADMIN_CHAT_IDS", ""))
            )
        except ValueError as exc:
            raise ValueError("ADMIN_CHAT_IDS must be a comma separated list of integers") from exc

        base_url = os.getenv("API_BASE_URL", "http://localhost:8090/api").strip().rstrip("/")
        if not base_url.startswith(("http://", "https://")):
            raise ValueError("API_BASE_URL must be an http(s) URL")
        self.API_BASE_URL = base_url

        api_format = os.getenv("API_FORMAT", "lines").strip().lower()
        if api_format not in API_FORMATS:
            raise ValueError(f"API_FORMAT must be one of: {', '.join(API_FORMATS)}")
        self.API_FORMAT = api_format

        try:
            timeout = float(os.getenv("REQUEST_TIMEOUT", "60"))
        except ValueError as exc:
            raise ValueError("REQUEST_TIMEOUT must be a number") from exc
        if timeout <= 0:
            raise ValueError("REQUEST_TIMEOUT must be positive")
        self.REQUEST_TIMEOUT = timeout

        try:
            max_image = int(os.getenv("MAX_IMAGE_BYTES", str(10 << 20)))
        except ValueError as exc:
            raise ValueError("MAX_IMAGE_BYTES must be an integer") from exc
        if max_image <= 0:
            raise ValueError("MAX_IMAGE_BYTES must be positive")
        self.MAX_IMAGE_BYTES = max_image

        self.CURRENCY_SYMBOL = os.getenv("CURRENCY_SYMBOL", "৳")

    def validate(self) -> None:
        if not self.BOT_TOKEN:
            raise ValueError("BOT_TOKEN is required in .env file")

settings = Settings()
