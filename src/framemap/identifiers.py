"""Territory identifier normalization for topology joins."""

from __future__ import annotations

from typing import Any, Mapping


# Codes seen in open topology sources that EntityStore keys differently.
DEFAULT_ID_ALIASES: Mapping[str, str] = {
    "SDS": "SSD",
    "SS": "SSD",
    "SZL": "SWZ",
    "ZAR": "COD",
    "DRC": "COD",
    "KM": "COM",
    "MU": "MUS",
    "SC": "SYC",
    "CV": "CPV",
    "ST": "STP",
    "MYT": "COM",
}


def _clean_code(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip().upper()


class IdentifierNormalizer:
    """Map raw territory codes onto the canonical ISO3 space.

    Unknown codes pass through unchanged: they simply fail to match a record
    and render as unknown territory.
    """

    def __init__(self, overrides: Mapping[str, str] | None = None) -> None:
        table = {_clean_code(k): _clean_code(v) for k, v in DEFAULT_ID_ALIASES.items()}
        if overrides:
            for raw, canonical in overrides.items():
                key = _clean_code(raw)
                value = _clean_code(canonical)
                if not key or not value:
                    raise ValueError(f"Invalid identifier alias: {raw!r} -> {canonical!r}")
                table[key] = value
        self._aliases = table

    @property
    def aliases(self) -> Mapping[str, str]:
        return dict(self._aliases)

    def normalize(self, raw_id: Any) -> str:
        code = _clean_code(raw_id)
        return self._aliases.get(code, code)

    def __call__(self, raw_id: Any) -> str:
        return self.normalize(raw_id)
