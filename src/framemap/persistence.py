"""Startup hydration, cache mirroring, and explicit save across the storage tiers."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Protocol, TypeVar

from .cache import COUNTRIES_SLOT, HEADERS_SLOT
from .models import (
    CountryRecord,
    HeaderConfig,
    PersistencePayload,
    parse_countries,
)
from .remote import RemoteUnavailable
from .store import EntityStore

_LOGGER = logging.getLogger("framemap.persistence")

_T = TypeVar("_T")


class SlotCache(Protocol):
    def read(self, key: str) -> str | None: ...

    def write(self, key: str, value: str) -> None: ...


class RemoteBackend(Protocol):
    def fetch(self) -> tuple[tuple[CountryRecord, ...] | None, HeaderConfig | None]: ...

    def push(self, payload: PersistencePayload) -> None: ...


class HydrationSource(str, Enum):
    REMOTE = "remote"
    SEEDED = "seeded"
    LOCAL_CACHE = "local_cache"
    DEFAULTS = "defaults"


@dataclass(frozen=True, slots=True)
class SaveResult:
    """Outcome of `save()`. `ok` reflects the remote push only."""

    ok: bool
    error: RemoteUnavailable | None = None
    cache_error: OSError | None = None

    @property
    def message(self) -> str:
        if self.ok:
            text = "All changes were saved to the remote store."
        elif self.cache_error is None:
            text = (
                "Saving to the remote store failed; changes were kept in the local cache: "
                f"{self.error}"
            )
        else:
            text = f"Saving to the remote store failed: {self.error}"
        if self.cache_error is not None:
            text += f" The local cache could not be updated: {self.cache_error}"
        return text


class PersistenceCoordinator:
    """Keep an EntityStore consistent with the remote store and the local cache.

    `init()` adopts data by precedence (remote, then local cache, then the
    defaults the store was built with). Afterwards every store mutation is
    mirrored to the cache before the mutating call returns. The remote is
    written only by `save()`.
    """

    def __init__(
        self,
        store: EntityStore,
        *,
        remote: RemoteBackend | None,
        cache: SlotCache,
    ) -> None:
        self.store = store
        self.remote = remote
        self.cache = cache
        self._unsubscribe: Callable[[], None] | None = None
        self._hydrated_from: HydrationSource | None = None

    @property
    def hydrated_from(self) -> HydrationSource | None:
        return self._hydrated_from

    def init(self) -> HydrationSource:
        if self._hydrated_from is not None:
            return self._hydrated_from
        source = self._hydrate()
        self._hydrated_from = source
        self._unsubscribe = self.store.subscribe(self._mirror)
        _LOGGER.info(
            "Store hydrated from %s (%d countries)",
            source.value,
            len(self.store.countries),
        )
        return source

    def close(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def save(self, payload: PersistencePayload | None = None) -> SaveResult:
        """Push to the remote; the local cache is refreshed whatever the outcome."""
        target = payload if payload is not None else self.store.snapshot()
        error: RemoteUnavailable | None = None
        if self.remote is None:
            error = RemoteUnavailable("No remote store configured.")
        else:
            try:
                self.remote.push(target)
            except RemoteUnavailable as exc:
                error = exc
        cache_error = self._write_cache(target)
        if error is not None:
            _LOGGER.error("Remote save failed: %s", error)
            return SaveResult(ok=False, error=error, cache_error=cache_error)
        _LOGGER.info("Saved %d countries to the remote store", len(target.countries))
        return SaveResult(ok=True, cache_error=cache_error)

    def _hydrate(self) -> HydrationSource:
        defaults = self.store.snapshot()
        if self.remote is not None:
            try:
                remote_countries, remote_headers = self.remote.fetch()
            except RemoteUnavailable as exc:
                _LOGGER.warning("Remote store unreachable, falling back to local cache: %s", exc)
            else:
                return self._adopt_remote(self.remote, defaults, remote_countries, remote_headers)
        return self._adopt_cache(defaults)

    def _adopt_remote(
        self,
        remote: RemoteBackend,
        defaults: PersistencePayload,
        remote_countries: tuple[CountryRecord, ...] | None,
        remote_headers: HeaderConfig | None,
    ) -> HydrationSource:
        headers = remote_headers if remote_headers is not None else defaults.headers
        if remote_countries:
            adopted = PersistencePayload(countries=remote_countries, headers=headers)
            self.store.replace_all(adopted)
            self._mirror(adopted)
            return HydrationSource.REMOTE

        seeded = PersistencePayload(countries=defaults.countries, headers=headers)
        if remote_headers is not None:
            self.store.replace_all(seeded)
        try:
            remote.push(seeded)
        except RemoteUnavailable as exc:
            _LOGGER.warning("Seeding the empty remote store failed: %s", exc)
        self._mirror(seeded)
        return HydrationSource.SEEDED

    def _adopt_cache(self, defaults: PersistencePayload) -> HydrationSource:
        countries = self._read_slot(COUNTRIES_SLOT, parse_countries)
        headers = self._read_slot(HEADERS_SLOT, HeaderConfig.from_mapping)
        if countries is None and headers is None:
            return HydrationSource.DEFAULTS
        self.store.replace_all(
            PersistencePayload(
                countries=countries if countries is not None else defaults.countries,
                headers=headers if headers is not None else defaults.headers,
            )
        )
        return HydrationSource.LOCAL_CACHE

    def _read_slot(self, key: str, parse: Callable[[Any], _T]) -> _T | None:
        try:
            raw = self.cache.read(key)
            if raw is None:
                return None
            return parse(json.loads(raw))
        except (OSError, ValueError) as exc:
            _LOGGER.warning("Ignoring unreadable cache slot '%s': %s", key, exc)
            return None

    def _mirror(self, payload: PersistencePayload) -> None:
        self._write_cache(payload)

    def _write_cache(self, payload: PersistencePayload) -> OSError | None:
        countries = [record.to_dict() for record in payload.countries]
        try:
            self.cache.write(COUNTRIES_SLOT, json.dumps(countries, ensure_ascii=False))
            self.cache.write(HEADERS_SLOT, json.dumps(payload.headers.to_dict(), ensure_ascii=False))
        except OSError as exc:
            _LOGGER.warning("Local cache write failed; in-memory data is unaffected: %s", exc)
            return exc
        return None
