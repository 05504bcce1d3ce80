"""In-memory entity store for country records and column labels."""

from __future__ import annotations

import logging
from typing import Any, Callable, Iterable, Mapping

from .models import CountryRecord, HeaderConfig, PersistencePayload, ValidationError

_LOGGER = logging.getLogger("framemap.store")

Listener = Callable[[PersistencePayload], None]
Predicate = Callable[[CountryRecord], bool]


def _coerce_record(record: CountryRecord | Mapping[str, Any]) -> CountryRecord:
    if isinstance(record, CountryRecord):
        # Instances are built unchecked; re-validate them like wire input.
        record = {
            "id": record.id,
            "name": record.name,
            "formerNetwork": record.former_network,
            "currentNetwork": record.current_network,
            "referenceFrame": record.reference_frame,
            "epoch": record.epoch,
            "status": record.status,
        }
    return CountryRecord.from_mapping(record)


def _coerce_headers(config: HeaderConfig | Mapping[str, Any]) -> HeaderConfig:
    if isinstance(config, HeaderConfig):
        config = config.to_dict()
    return HeaderConfig.from_mapping(config)


class EntityStore:
    """Authoritative in-memory table.

    Every mutation swaps in a new immutable snapshot and then notifies the
    subscribed listeners synchronously, in registration order.
    """

    def __init__(
        self,
        countries: Iterable[CountryRecord] = (),
        headers: HeaderConfig | None = None,
    ) -> None:
        initial = tuple(_coerce_record(record) for record in countries)
        ids = [record.id for record in initial]
        if len(ids) != len(set(ids)):
            raise ValidationError("Initial country list contains duplicate ids.")
        self._countries: tuple[CountryRecord, ...] = initial
        self._headers = headers if headers is not None else HeaderConfig.default()
        self._listeners: list[Listener] = []

    @property
    def countries(self) -> tuple[CountryRecord, ...]:
        return self._countries

    @property
    def headers(self) -> HeaderConfig:
        return self._headers

    def snapshot(self) -> PersistencePayload:
        return PersistencePayload(countries=self._countries, headers=self._headers)

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def get(self, record_id: str) -> CountryRecord | None:
        key = record_id.strip().upper()
        for record in self._countries:
            if record.id == key:
                return record
        return None

    def query(self, predicate: Predicate | None = None) -> tuple[CountryRecord, ...]:
        if predicate is None:
            return self._countries
        return tuple(record for record in self._countries if predicate(record))

    def upsert(self, record: CountryRecord | Mapping[str, Any]) -> CountryRecord:
        """Replace the record with the same id, or append a new one."""
        validated = _coerce_record(record)
        updated = list(self._countries)
        for idx, existing in enumerate(updated):
            if existing.id == validated.id:
                updated[idx] = validated
                break
        else:
            updated.append(validated)
        self._commit(countries=tuple(updated))
        return validated

    def create(self, record: CountryRecord | Mapping[str, Any]) -> CountryRecord:
        """Add a new record; ids are immutable, so an existing id is rejected."""
        validated = _coerce_record(record)
        if self.get(validated.id) is not None:
            raise ValidationError(f"Country id '{validated.id}' already exists.")
        self._commit(countries=(*self._countries, validated))
        return validated

    def remove(self, record_id: str) -> bool:
        key = record_id.strip().upper()
        remaining = tuple(record for record in self._countries if record.id != key)
        if len(remaining) == len(self._countries):
            return False
        self._commit(countries=remaining)
        return True

    def set_headers(self, config: HeaderConfig | Mapping[str, Any]) -> HeaderConfig:
        validated = _coerce_headers(config)
        self._commit(headers=validated)
        return validated

    def replace_all(self, payload: PersistencePayload) -> None:
        countries = tuple(_coerce_record(record) for record in payload.countries)
        ids = [record.id for record in countries]
        if len(ids) != len(set(ids)):
            raise ValidationError("Payload contains duplicate country ids.")
        self._commit(countries=countries, headers=_coerce_headers(payload.headers))

    def _commit(
        self,
        *,
        countries: tuple[CountryRecord, ...] | None = None,
        headers: HeaderConfig | None = None,
    ) -> None:
        if countries is not None:
            self._countries = countries
        if headers is not None:
            self._headers = headers
        snapshot = self.snapshot()
        for listener in tuple(self._listeners):
            listener(snapshot)
        _LOGGER.debug("Store updated: %d countries", len(snapshot.countries))


def search_predicate(text: str) -> Predicate:
    """Case-insensitive substring match used by the table search."""
    needle = text.strip().casefold()

    def _matches(record: CountryRecord) -> bool:
        if not needle:
            return True
        return (
            needle in record.name.casefold()
            or needle in record.reference_frame.casefold()
            or needle in record.current_network.casefold()
        )

    return _matches
