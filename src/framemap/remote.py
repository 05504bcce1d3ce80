"""HTTP client for the remote data store (`/api/data`)."""

from __future__ import annotations

import logging
from typing import Any

import requests

from .config import RemoteConfig
from .models import CountryRecord, HeaderConfig, PersistencePayload, ValidationError

_LOGGER = logging.getLogger("framemap.remote")
_DATA_ENDPOINT = "/api/data"


class RemoteUnavailable(RuntimeError):
    """The remote store could not be read or written."""


class RemoteStore:
    """Thin wrapper around the store's read and write endpoints."""

    def __init__(self, cfg: RemoteConfig, *, session: requests.Session | None = None) -> None:
        self.cfg = cfg
        self.url = cfg.base_url.rstrip("/") + _DATA_ENDPOINT
        self._session = session if session is not None else requests.Session()
        self._session.headers.update({"User-Agent": cfg.user_agent})

    def fetch(self) -> tuple[tuple[CountryRecord, ...] | None, HeaderConfig | None]:
        """Return the stored countries and headers; either may be None when unset."""
        body = self._request("GET")
        try:
            return PersistencePayload.parse_remote(body)
        except ValidationError as exc:
            raise RemoteUnavailable(f"Remote store returned an invalid payload: {exc}") from exc

    def push(self, payload: PersistencePayload) -> None:
        body = self._request("POST", json=payload.to_dict())
        if isinstance(body, dict) and body.get("success") is False:
            raise RemoteUnavailable("Remote store rejected the write.")

    def _request(self, method: str, **kwargs: Any) -> Any:
        try:
            response = self._session.request(
                method,
                self.url,
                timeout=self.cfg.timeout_s,
                **kwargs,
            )
            response.raise_for_status()
            return response.json()
        except (requests.RequestException, ValueError) as exc:
            _LOGGER.warning("Remote store %s %s failed: %s", method, self.url, exc)
            raise RemoteUnavailable(f"{method} {self.url} failed: {exc}") from exc
