"""Seed country list loading."""

from __future__ import annotations

from pathlib import Path

import yaml

from .models import CountryRecord, ValidationError


def load_seed_countries(path: Path) -> list[CountryRecord]:
    """Load and validate the built-in country records used as defaults."""
    if not path.exists():
        raise FileNotFoundError(f"Seed countries file not found: {path}")
    with path.open("r", encoding="utf-8") as fh:
        raw = yaml.safe_load(fh)
    if not isinstance(raw, list):
        raise ValueError(f"Expected list in {path}")

    countries: list[CountryRecord] = []
    seen: set[str] = set()
    for idx, item in enumerate(raw):
        if not isinstance(item, dict):
            raise ValueError(f"Expected mapping at index {idx} in {path}")
        try:
            country = CountryRecord.from_mapping(item)
        except ValidationError as exc:
            raise ValueError(f"Invalid seed record at index {idx} in {path}: {exc}") from exc
        if country.id in seen:
            raise ValueError(f"Duplicate country id '{country.id}' in {path}")
        seen.add(country.id)
        countries.append(country)
    return countries
