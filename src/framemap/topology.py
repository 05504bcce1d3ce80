"""Topology document loading and validation into typed features."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping, Sequence

import requests

from .config import TopologyConfig

_LOGGER = logging.getLogger("framemap.topology")

_POLYGON_TYPES = {"Polygon", "MultiPolygon"}


class TopologyFetchFailed(RuntimeError):
    """The topology document could not be fetched or decoded."""


@dataclass(frozen=True, slots=True)
class TopologyFeature:
    """One territory polygon with its source identifier, in lon/lat degrees."""

    id: str
    name: str
    geometry: Any

    def with_id(self, new_id: str) -> TopologyFeature:
        return TopologyFeature(id=new_id, name=self.name, geometry=self.geometry)


def _first_existing_key(data: Mapping[str, Any], candidates: Sequence[str]) -> Any:
    existing = {str(key).lower(): key for key in data}
    for candidate in candidates:
        match = existing.get(candidate.lower())
        if match is not None:
            value = data[match]
            if value is not None and str(value).strip():
                return value
    return None


class TopologySource:
    """Fetch a GeoJSON-like FeatureCollection from a URL or a local file."""

    FEATURE_ID_PROPERTIES = ("id", "ISO_A3", "ADM0_A3", "ISO3", "A3")
    FEATURE_NAME_PROPERTIES = ("name", "NAME", "ADMIN", "NAME_EN")

    def __init__(
        self,
        cfg: TopologyConfig,
        *,
        session: requests.Session | None = None,
    ) -> None:
        self.cfg = cfg
        self._session = session

    def fetch(self) -> list[TopologyFeature]:
        if self.cfg.path is not None:
            return load_topology_file(self.cfg.path)
        return parse_topology(self._download(str(self.cfg.url)))

    def _download(self, url: str) -> Any:
        session = self._session
        if session is None:
            session = requests.Session()
            session.headers.update({"User-Agent": self.cfg.user_agent})
            self._session = session
        try:
            response = session.get(url, timeout=self.cfg.timeout_s)
            response.raise_for_status()
            return response.json()
        except (requests.RequestException, ValueError) as exc:
            raise TopologyFetchFailed(f"Failed fetching topology {url}: {exc}") from exc


def fetch_topology_or_empty(source: TopologySource) -> list[TopologyFeature]:
    """Render-path entry point: a failed fetch degrades to an empty map."""
    try:
        features = source.fetch()
    except TopologyFetchFailed as exc:
        _LOGGER.warning("Topology unavailable, rendering an empty map: %s", exc)
        return []
    _LOGGER.info("Loaded %d topology features", len(features))
    return features


def parse_topology(document: Any) -> list[TopologyFeature]:
    """Validate a FeatureCollection; malformed features are skipped, not raised."""
    if not isinstance(document, Mapping):
        _LOGGER.warning("Topology document is not a JSON object; ignoring it")
        return []
    raw_features = document.get("features")
    if document.get("type") != "FeatureCollection" or not isinstance(raw_features, list):
        _LOGGER.warning("Topology document is not a FeatureCollection; ignoring it")
        return []

    features: list[TopologyFeature] = []
    skipped = 0
    for idx, raw in enumerate(raw_features):
        feature = _parse_feature(raw)
        if feature is None:
            skipped += 1
            _LOGGER.debug("Skipping malformed topology feature at index %d", idx)
            continue
        features.append(feature)
    if skipped:
        _LOGGER.info("Skipped %d malformed topology features", skipped)
    return features


def _parse_feature(raw: Any) -> TopologyFeature | None:
    if not isinstance(raw, Mapping):
        return None
    properties = raw.get("properties")
    if not isinstance(properties, Mapping):
        properties = {}

    id_raw = raw.get("id")
    if id_raw is None or not str(id_raw).strip():
        id_raw = _first_existing_key(properties, TopologySource.FEATURE_ID_PROPERTIES)
    if id_raw is None:
        return None
    feature_id = str(id_raw).strip()

    geometry = _parse_geometry(raw.get("geometry"))
    if geometry is None:
        return None

    name_raw = _first_existing_key(properties, TopologySource.FEATURE_NAME_PROPERTIES)
    name = str(name_raw).strip() if name_raw is not None else feature_id
    return TopologyFeature(id=feature_id, name=name, geometry=geometry)


def _parse_geometry(raw: Any) -> Any | None:
    if not isinstance(raw, Mapping) or raw.get("type") not in _POLYGON_TYPES:
        return None
    shape, shapely_error = _require_shapely_shape()
    try:
        geometry = shape(raw)
    except (shapely_error, ValueError, TypeError, AttributeError, IndexError) as exc:
        _LOGGER.debug("Invalid topology geometry: %s", exc)
        return None
    if geometry.is_empty:
        return None
    return geometry


def load_topology_file(path: Path) -> list[TopologyFeature]:
    try:
        document = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        raise TopologyFetchFailed(f"Failed reading topology {path}: {exc}") from exc
    return parse_topology(document)


def _require_shapely_shape() -> tuple[Any, type[Exception]]:
    try:
        from shapely.errors import ShapelyError
        from shapely.geometry import shape
    except ImportError as exc:  # pragma: no cover
        raise RuntimeError("shapely is required for topology parsing") from exc
    return (shape, ShapelyError)
