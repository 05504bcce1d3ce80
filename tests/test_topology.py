"""Tests for topology parsing and fetching."""
from __future__ import annotations

from unittest.mock import Mock

import pytest
import requests

from framemap.config import TopologyConfig
from framemap.topology import (
    TopologyFetchFailed,
    TopologySource,
    fetch_topology_or_empty,
    load_topology_file,
    parse_topology,
)


class TestParseTopology:
    """FeatureCollection validation."""

    def test_parses_polygons(self, topology_document):
        features = parse_topology(topology_document)
        assert [f.id for f in features] == ["AAA", "BBB", "CCC"]
        assert features[0].name == "Land AAA"
        assert features[0].geometry.geom_type == "Polygon"

    def test_skips_malformed_features(self, make_square):
        document = {
            "type": "FeatureCollection",
            "features": [
                make_square("AAA", 0, 0),
                {"type": "Feature", "properties": {}, "geometry": None},
                {"type": "Feature", "id": "PT", "geometry": {"type": "Point", "coordinates": [0, 0]}},
                {"type": "Feature", "id": "BAD", "geometry": {"type": "Polygon", "coordinates": [[[0, 0]]]}},
                "not a feature",
            ],
        }
        assert [f.id for f in parse_topology(document)] == ["AAA"]

    def test_id_from_properties(self, make_square):
        raw = make_square("", 0, 0)
        raw["properties"] = {"ISO_A3": "GHA", "ADMIN": "Ghana"}
        feature = parse_topology({"type": "FeatureCollection", "features": [raw]})[0]
        assert feature.id == "GHA"
        assert feature.name == "Ghana"

    def test_name_falls_back_to_id(self, make_square):
        raw = make_square("TGO", 0, 0)
        raw["properties"] = None
        assert parse_topology({"type": "FeatureCollection", "features": [raw]})[0].name == "TGO"

    def test_multipolygon(self):
        square = [[[0, 0], [1, 0], [1, 1], [0, 1], [0, 0]]]
        other = [[[5, 5], [6, 5], [6, 6], [5, 6], [5, 5]]]
        raw = {
            "type": "Feature",
            "id": "CPV",
            "properties": {"name": "Cabo Verde"},
            "geometry": {"type": "MultiPolygon", "coordinates": [square, other]},
        }
        feature = parse_topology({"type": "FeatureCollection", "features": [raw]})[0]
        assert feature.geometry.geom_type == "MultiPolygon"

    @pytest.mark.parametrize("document", [[], {"type": "Feature"}, {"type": "FeatureCollection"}])
    def test_not_a_feature_collection(self, document):
        assert parse_topology(document) == []


class TestTopologySource:
    """Fetching from files and URLs."""

    def test_loads_from_path(self, topology_file):
        source = TopologySource(TopologyConfig(url=None, path=topology_file))
        assert len(source.fetch()) == 3

    def test_missing_file_raises(self, tmp_path):
        with pytest.raises(TopologyFetchFailed):
            load_topology_file(tmp_path / "missing.json")

    def test_invalid_json_raises(self, tmp_path):
        path = tmp_path / "broken.json"
        path.write_text("{", encoding="utf-8")
        with pytest.raises(TopologyFetchFailed):
            load_topology_file(path)

    def test_downloads_from_url(self, topology_document):
        session = Mock()
        session.get.return_value.json.return_value = topology_document
        source = TopologySource(
            TopologyConfig(url="http://example.test/world.geojson", path=None, timeout_s=5.0),
            session=session,
        )
        assert len(source.fetch()) == 3
        session.get.assert_called_once_with("http://example.test/world.geojson", timeout=5.0)

    def test_download_failure(self):
        session = Mock()
        session.get.side_effect = requests.Timeout("slow")
        source = TopologySource(
            TopologyConfig(url="http://example.test/world.geojson", path=None),
            session=session,
        )
        with pytest.raises(TopologyFetchFailed):
            source.fetch()
        assert fetch_topology_or_empty(source) == []
