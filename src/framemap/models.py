"""Domain models shared across the store, persistence, and rendering layers."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterable, Mapping


class ValidationError(ValueError):
    """Rejected record or header input; the target state is left unchanged."""


class Status(str, Enum):
    COMPLETE = "COMPLETE"
    NO_EPOCH = "NO_EPOCH"
    MISSING_INFO = "MISSING_INFO"
    LOCAL_NETWORK = "LOCAL_NETWORK"
    ACTIVE = "ACTIVE"

    @classmethod
    def parse(cls, value: Any) -> Status:
        if isinstance(value, Status):
            return value
        if not isinstance(value, str) or not value.strip():
            raise ValidationError(f"Invalid status: {value!r}")
        key = value.strip().upper()
        key = _LEGACY_STATUS.get(key, key)
        try:
            return cls(key)
        except ValueError as exc:
            raise ValidationError(f"Invalid status: {value!r}") from exc


# Spellings written by the first deployments of the map.
_LEGACY_STATUS = {
    "COMPLET": "COMPLETE",
    "SANS_EPOQUE": "NO_EPOCH",
    "MANQUE_INFO": "MISSING_INFO",
    "CANEVA_LOCAL": "LOCAL_NETWORK",
    "ACTIF": "ACTIVE",
}


def _require_str(value: Any, field_name: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"Expected non-empty string for '{field_name}'")
    return value.strip()


def _optional_str(value: Any, field_name: str) -> str:
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ValidationError(f"Expected string for '{field_name}'")
    return value


def _first_present(data: Mapping[str, Any], keys: Iterable[str]) -> Any:
    for key in keys:
        if key in data:
            return data[key]
    return None


@dataclass(frozen=True, slots=True)
class CountryRecord:
    """Reference frame status of one territory, keyed by its ISO3 code."""

    id: str
    name: str
    former_network: str = ""
    current_network: str = ""
    reference_frame: str = ""
    epoch: str = ""
    status: Status = Status.MISSING_INFO

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> CountryRecord:
        if not isinstance(data, Mapping):
            raise ValidationError("Expected mapping for country record")
        record_id = _require_str(data.get("id"), "id").upper()
        name = _require_str(_first_present(data, ("name", "pays")), "name")
        status_raw = data.get("status")
        status = Status.MISSING_INFO if status_raw is None else Status.parse(status_raw)
        return cls(
            id=record_id,
            name=name,
            former_network=_optional_str(
                _first_present(data, ("formerNetwork", "reseauAncien")), "formerNetwork"
            ),
            current_network=_optional_str(
                _first_present(data, ("currentNetwork", "reseauActuel")), "currentNetwork"
            ),
            reference_frame=_optional_str(
                _first_present(data, ("referenceFrame", "itrf")), "referenceFrame"
            ),
            epoch=_optional_str(_first_present(data, ("epoch", "epoque")), "epoch"),
            status=status,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "formerNetwork": self.former_network,
            "currentNetwork": self.current_network,
            "referenceFrame": self.reference_frame,
            "epoch": self.epoch,
            "status": self.status.value,
        }


_HEADER_FIELDS = (
    ("country", ("country",)),
    ("former_network", ("formerNetwork",)),
    ("current_network", ("currentNetwork",)),
    ("reference_frame", ("referenceFrame", "itrf")),
    ("epoch", ("epoch",)),
    ("status", ("status",)),
)


@dataclass(frozen=True, slots=True)
class HeaderConfig:
    """Display labels for the six table columns. Always complete."""

    country: str
    former_network: str
    current_network: str
    reference_frame: str
    epoch: str
    status: str

    @classmethod
    def default(cls) -> HeaderConfig:
        return cls(
            country="Country",
            former_network="Former Network",
            current_network="Current Network",
            reference_frame="ITRF",
            epoch="Epoch",
            status="Status",
        )

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> HeaderConfig:
        if not isinstance(data, Mapping):
            raise ValidationError("Expected mapping for headers")
        values: dict[str, str] = {}
        for attr, keys in _HEADER_FIELDS:
            values[attr] = _require_str(_first_present(data, keys), f"headers.{keys[0]}")
        return cls(**values)

    def to_dict(self) -> dict[str, str]:
        return {
            "country": self.country,
            "formerNetwork": self.former_network,
            "currentNetwork": self.current_network,
            "referenceFrame": self.reference_frame,
            "epoch": self.epoch,
            "status": self.status,
        }


def parse_countries(raw: Any) -> tuple[CountryRecord, ...]:
    """Validate a serialized country list, rejecting duplicate ids."""
    if not isinstance(raw, list):
        raise ValidationError("Expected list of country records")
    records: list[CountryRecord] = []
    seen: set[str] = set()
    for idx, item in enumerate(raw):
        if not isinstance(item, Mapping):
            raise ValidationError(f"Expected mapping at index {idx}")
        record = CountryRecord.from_mapping(item)
        if record.id in seen:
            raise ValidationError(f"Duplicate country id '{record.id}'")
        seen.add(record.id)
        records.append(record)
    return tuple(records)


@dataclass(frozen=True, slots=True)
class PersistencePayload:
    """Unit of read/write for both the remote store and the local cache."""

    countries: tuple[CountryRecord, ...]
    headers: HeaderConfig

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> PersistencePayload:
        countries, headers = cls.parse_remote(data)
        if countries is None or headers is None:
            raise ValidationError("Payload requires both 'countries' and 'headers'")
        return cls(countries=countries, headers=headers)

    @staticmethod
    def parse_remote(
        data: Any,
    ) -> tuple[tuple[CountryRecord, ...] | None, HeaderConfig | None]:
        """Split a store body into its parts; `null` parts come back as None."""
        if not isinstance(data, Mapping):
            raise ValidationError("Expected JSON object for payload")
        countries_raw = data.get("countries")
        headers_raw = data.get("headers")
        countries = parse_countries(countries_raw) if countries_raw is not None else None
        headers = HeaderConfig.from_mapping(headers_raw) if headers_raw is not None else None
        return (countries, headers)

    def to_dict(self) -> dict[str, Any]:
        return {
            "countries": [record.to_dict() for record in self.countries],
            "headers": self.headers.to_dict(),
        }
