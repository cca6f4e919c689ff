"""
Environment-driven settings for the importer and its store.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from .errors import ConfigurationError


def load_env_files(project_root: Optional[Path] = None) -> None:
    """
    Load `.env` and `.env.local` (if present) into the process environment.
    Existing process environment variables are not overwritten.
    """

    root = project_root or Path(__file__).resolve().parents[1]
    for filename in (".env", ".env.local"):
        load_dotenv(root / filename, override=False)


@lru_cache(maxsize=1)
def _load_env_once() -> None:
    load_env_files()


def _get_str_env(name: str, default: str) -> str:
    _load_env_once()
    value = os.getenv(name)
    if value is None:
        return default
    stripped = value.strip()
    return stripped if stripped else default


def _get_optional_str_env(name: str) -> Optional[str]:
    _load_env_once()
    value = os.getenv(name)
    if value is None:
        return None
    stripped = value.strip()
    return stripped if stripped else None


def _get_float_env(name: str, default: float) -> float:
    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    try:
        return float(raw_value)
    except ValueError:
        return default


@dataclass(frozen=True)
class ImportSettings:
    """
    Runtime settings for person imports.
    """

    supabase_url: Optional[str] = None
    supabase_anon_key: Optional[str] = None
    table: str = "pessoas"
    placeholder_email_domain: str = "cbnkerigma"
    store_timeout_seconds: float = 15.0
    log_level: str = "INFO"

    def require_store(self) -> tuple[str, str]:
        """
        Return ``(url, anon_key)`` or raise ConfigurationError naming what is missing.
        """

        missing = [
            name
            for name, value in (
                ("SUPABASE_URL", self.supabase_url),
                ("SUPABASE_ANON_KEY", self.supabase_anon_key),
            )
            if not value
        ]
        if missing:
            raise ConfigurationError(f"Missing store settings: {', '.join(missing)}")
        return self.supabase_url.rstrip("/"), self.supabase_anon_key


@lru_cache(maxsize=1)
def get_settings() -> ImportSettings:
    """
    Return cached import settings from environment variables.
    """

    return ImportSettings(
        supabase_url=_get_optional_str_env("SUPABASE_URL"),
        supabase_anon_key=_get_optional_str_env("SUPABASE_ANON_KEY"),
        table=_get_str_env("PESSOAS_TABLE", "pessoas"),
        placeholder_email_domain=_get_str_env("PLACEHOLDER_EMAIL_DOMAIN", "cbnkerigma"),
        store_timeout_seconds=max(1.0, _get_float_env("STORE_TIMEOUT_SECONDS", 15.0)),
        log_level=_get_str_env("LOG_LEVEL", "INFO").upper(),
    )


def configure_logging(level: Optional[str] = None) -> None:
    """
    Configure root logging once for the process.
    """

    log_level = (level or get_settings().log_level).strip().upper()
    logging.basicConfig(
        level=getattr(logging, log_level, logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
