"""Application settings loaded from the environment."""

import os
from functools import lru_cache
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel

DEFAULT_HF_MODEL = "openai/gpt-oss-120b:groq"
DEFAULT_HF_BASE_URL = "https://router.huggingface.co/v1"
DEFAULT_SERP_API_URL = "https://serpapi.com/search.json"


def _first_env(*names: str) -> Optional[str]:
    """Return the first non-empty environment variable among names."""
    for name in names:
        value = os.getenv(name)
        if value:
            return value
    return None


class Settings(BaseModel):
    """Runtime configuration."""

    port: int = 3000
    hf_api_key: Optional[str] = None
    hf_model: str = DEFAULT_HF_MODEL
    hf_base_url: str = DEFAULT_HF_BASE_URL
    serp_api_key: Optional[str] = None
    serp_api_url: str = DEFAULT_SERP_API_URL
    search_timeout: float = 30.0
    database_url: Optional[str] = None

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from environment variables (and a .env file if present)."""
        load_dotenv()
        return cls(
            port=int(os.getenv("PORT", "3000")),
            hf_api_key=_first_env("HF_ACCESS_TOKEN", "HUGGINGFACE_API_KEY"),
            hf_model=_first_env("HF_MODEL", "HUGGINGFACE_MODEL") or DEFAULT_HF_MODEL,
            hf_base_url=os.getenv("HF_BASE_URL", DEFAULT_HF_BASE_URL),
            serp_api_key=os.getenv("SERP_API_KEY") or None,
            serp_api_url=os.getenv("SERP_API_URL", DEFAULT_SERP_API_URL),
            search_timeout=float(os.getenv("SEARCH_TIMEOUT", "30")),
            database_url=os.getenv("DATABASE_URL") or None,
        )


@lru_cache
def get_settings() -> Settings:
    """Return the process-wide settings."""
    return Settings.from_env()
