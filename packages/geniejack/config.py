"""
Settings loaded from the environment (and a .env file, if present).

Usage:
    from packages.geniejack.config import load_settings
    settings = load_settings()
    if settings.api_key: ...
"""

import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

DEFAULT_BASE_URL = "https://openrouter.ai/api/v1"
DEFAULT_MODEL = "google/gemini-2.0-flash-001"
DEFAULT_TIMEOUT = 20.0


@dataclass
class Settings:
    api_key: Optional[str] = None
    model: str = DEFAULT_MODEL
    base_url: str = DEFAULT_BASE_URL
    timeout: float = DEFAULT_TIMEOUT
    log_level: str = "INFO"


def _float_env(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}") from None


def load_settings(dotenv_path: Optional[str] = None) -> Settings:
    """Read GENIEJACK_* variables; existing environment values win over .env."""
    load_dotenv(dotenv_path)
    return Settings(
        api_key=os.environ.get("GENIEJACK_API_KEY") or os.environ.get("OPENROUTER_API_KEY"),
        model=os.environ.get("GENIEJACK_MODEL", DEFAULT_MODEL),
        base_url=os.environ.get("GENIEJACK_BASE_URL", DEFAULT_BASE_URL),
        timeout=_float_env("GENIEJACK_TIMEOUT", DEFAULT_TIMEOUT),
        log_level=os.environ.get("GENIEJACK_LOG_LEVEL", "INFO").upper(),
    )
