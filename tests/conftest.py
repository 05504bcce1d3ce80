"""Shared fixtures for framemap tests."""
from __future__ import annotations

import json
from pathlib import Path

import pytest

from framemap.models import CountryRecord, HeaderConfig, Status


def square_feature(feature_id: str, lon: float, lat: float, size: float = 10.0, **props) -> dict:
    ring = [
        [lon, lat],
        [lon + size, lat],
        [lon + size, lat + size],
        [lon, lat + size],
        [lon, lat],
    ]
    return {
        "type": "Feature",
        "id": feature_id,
        "properties": {"name": props.get("name", f"Land {feature_id}")},
        "geometry": {"type": "Polygon", "coordinates": [ring]},
    }


@pytest.fixture
def make_square():
    return square_feature


@pytest.fixture
def sample_records() -> list[CountryRecord]:
    return [
        CountryRecord(
            id="AAA",
            name="Alpha",
            current_network="AlphaNet",
            reference_frame="ITRF2014",
            epoch="2010.0",
            status=Status.COMPLETE,
        ),
        CountryRecord(id="BBB", name="Bravo", reference_frame="ITRF2008", status=Status.NO_EPOCH),
        CountryRecord(id="CCC", name="Charlie", current_network="Clarke 1880", status=Status.LOCAL_NETWORK),
    ]


@pytest.fixture
def custom_headers() -> HeaderConfig:
    return HeaderConfig(
        country="Pays",
        former_network="Ancien",
        current_network="Actuel",
        reference_frame="Repere",
        epoch="Epoque",
        status="Statut",
    )


@pytest.fixture
def topology_document() -> dict:
    return {
        "type": "FeatureCollection",
        "features": [
            square_feature("AAA", 0.0, 0.0),
            square_feature("BBB", 20.0, 0.0),
            square_feature("CCC", 0.0, 20.0),
        ],
    }


@pytest.fixture
def topology_file(tmp_path: Path, topology_document: dict) -> Path:
    path = tmp_path / "topology.geojson"
    path.write_text(json.dumps(topology_document), encoding="utf-8")
    return path


@pytest.fixture
def seed_file(tmp_path: Path) -> Path:
    path = tmp_path / "seed.yaml"
    path.write_text(
        "- id: AAA\n  name: Alpha\n  status: COMPLETE\n"
        "- id: BBB\n  name: Bravo\n"
        "- id: CCC\n  name: Charlie\n  status: LOCAL_NETWORK\n",
        encoding="utf-8",
    )
    return path


@pytest.fixture
def config_file(tmp_path: Path, seed_file: Path, topology_file: Path) -> Path:
    path = tmp_path / "config.yaml"
    path.write_text(
        f"""
paths:
  seed_countries: {seed_file.name}
  cache_dir: build/cache
  output_dir: build/output
  logs_dir: build/logs
remote:
  base_url: http://localhost:3000
  enabled: false
topology:
  path: {topology_file.name}
render:
  width_px: 200
  height_px: 200
  padding_px: 10
  dpi: 50
  format: png
""",
        encoding="utf-8",
    )
    return path


class MemoryCache:
    """Dict-backed stand-in for LocalCache."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self.slots: dict[str, str] = dict(initial or {})

    def read(self, key: str) -> str | None:
        return self.slots.get(key)

    def write(self, key: str, value: str) -> None:
        self.slots[key] = value


@pytest.fixture
def memory_cache() -> MemoryCache:
    return MemoryCache()
