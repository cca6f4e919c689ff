"""
Person-records store collaborators.

The importer only needs "insert one row"; a rejected insert raises StoreError
carrying the backend's own message.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Protocol

import requests

from .config import ImportSettings

logger = logging.getLogger(__name__)


class StoreError(RuntimeError):
    """
    Raised when the store rejects or cannot receive one insert.
    """


class PessoaStore(Protocol):
    def insert(self, payload: Dict[str, Any]) -> None:
        ...


class SupabaseStore:
    """
    Inserts rows through Supabase's PostgREST endpoint.

    The caller's ``Authorization`` header is forwarded as-is so row level
    security is evaluated for the importing user. Falls back to the anon key
    when no caller credential is given.
    """

    def __init__(
        self,
        *,
        settings: ImportSettings,
        authorization: Optional[str] = None,
        session: Optional[requests.Session] = None,
    ) -> None:
        base_url, anon_key = settings.require_store()
        self._url = f"{base_url}/rest/v1/{settings.table}"
        self._timeout_seconds = settings.store_timeout_seconds
        self._session = session or requests.Session()
        self._headers = {
            "apikey": anon_key,
            "Authorization": authorization or f"Bearer {anon_key}",
            "Content-Type": "application/json",
            "Prefer": "return=minimal",
        }

    def insert(self, payload: Dict[str, Any]) -> None:
        try:
            response = self._session.post(
                self._url,
                json=[payload],
                headers=self._headers,
                timeout=self._timeout_seconds,
            )
        except requests.RequestException as exc:
            logger.error("Store request failed url=%s error=%s", self._url, exc)
            raise StoreError(f"Falha de comunicação com o banco: {exc}") from exc

        if response.ok:
            return
        raise StoreError(_error_message(response))

    def close(self) -> None:
        self._session.close()


def _error_message(response: requests.Response) -> str:
    """Prefer PostgREST's ``message`` field, fall back to the raw body."""
    try:
        body = response.json()
    except ValueError:
        body = None

    if isinstance(body, dict) and body.get("message"):
        return str(body["message"])
    text = (response.text or "").strip()
    return text or f"HTTP {response.status_code}"


class InMemoryStore:
    """
    Collects payloads instead of writing them (dry runs).
    """

    def __init__(self) -> None:
        self.rows: List[Dict[str, Any]] = []

    def insert(self, payload: Dict[str, Any]) -> None:
        self.rows.append(dict(payload))
