"""Tests for the topology join, screen projection, and selection."""
from __future__ import annotations

import math

import pytest

from framemap.geojoin import (
    MANUAL_MARKERS,
    STATUS_COLORS,
    UNKNOWN_FILL,
    ManualMarker,
    RenderModelCache,
    Viewport,
    build_render_model,
    fit_projection,
    resolve_selection,
    stroke_for,
    svg_path,
)
from framemap.identifiers import IdentifierNormalizer
from framemap.models import CountryRecord, Status
from framemap.topology import parse_topology

TOLERANCE = 1e-6


@pytest.fixture
def topology(topology_document):
    return parse_topology(topology_document)


@pytest.fixture
def viewport():
    return Viewport(width=400.0, height=300.0, padding=10.0)


def assert_inside(model, viewport):
    for feature in model.features:
        min_x, min_y, max_x, max_y = feature.geometry.bounds
        assert min_x >= viewport.padding - TOLERANCE
        assert min_y >= viewport.padding - TOLERANCE
        assert max_x <= viewport.width - viewport.padding + TOLERANCE
        assert max_y <= viewport.height - viewport.padding + TOLERANCE


class TestBuildRenderModel:
    """Joining features with records."""

    def test_allow_list_filters_features(self, topology, sample_records, viewport):
        model = build_render_model(
            topology, sample_records, viewport, allow_list={"AAA", "CCC"}, markers=()
        )
        assert sorted(f.id for f in model.features) == ["AAA", "CCC"]
        assert_inside(model, viewport)

    def test_fit_touches_padding_on_limiting_axis(self, topology, sample_records, viewport):
        model = build_render_model(topology, sample_records, viewport, markers=())
        min_y = min(f.geometry.bounds[1] for f in model.features)
        max_y = max(f.geometry.bounds[3] for f in model.features)
        assert min_y == pytest.approx(viewport.padding)
        assert max_y == pytest.approx(viewport.height - viewport.padding)

    def test_default_allow_list_is_record_ids(self, topology, sample_records, viewport):
        model = build_render_model(topology, sample_records[:2], viewport, markers=())
        assert sorted(f.id for f in model.features) == ["AAA", "BBB"]

    def test_fill_and_status_from_record(self, topology, sample_records, viewport):
        model = build_render_model(topology, sample_records, viewport, markers=())
        by_id = {f.id: f for f in model.features}
        assert by_id["AAA"].fill == STATUS_COLORS[Status.COMPLETE]
        assert by_id["CCC"].status is Status.LOCAL_NETWORK
        assert by_id["AAA"].record is sample_records[0]

    def test_unmatched_feature_renders_unknown(self, topology, sample_records, viewport):
        model = build_render_model(
            topology, sample_records[:1], viewport, allow_list=["AAA", "BBB"], markers=()
        )
        unknown = next(f for f in model.features if f.id == "BBB")
        assert unknown.record is None
        assert unknown.status is None
        assert unknown.fill == UNKNOWN_FILL
        assert unknown.label == "Land BBB"

    def test_aliases_are_normalized(self, make_square, viewport):
        topology = parse_topology(
            {"type": "FeatureCollection", "features": [make_square("SDS", 25, 5)]}
        )
        records = [CountryRecord(id="SSD", name="South Sudan", status=Status.NO_EPOCH)]
        model = build_render_model(
            topology, records, viewport, normalizer=IdentifierNormalizer(), markers=()
        )
        assert [f.id for f in model.features] == ["SSD"]
        assert model.features[0].fill == STATUS_COLORS[Status.NO_EPOCH]

    def test_marker_without_topology_is_projected(self, topology, sample_records, viewport):
        marker = ManualMarker(id="MUS", name="Mauritius", lon=5.0, lat=5.0)
        records = [*sample_records, CountryRecord(id="MUS", name="Mauritius", status=Status.COMPLETE)]
        model = build_render_model(topology, records, viewport, markers=(marker,))
        assert "MUS" not in {f.id for f in model.features}
        (projected,) = model.markers
        assert math.isfinite(projected.x) and math.isfinite(projected.y)
        assert viewport.padding <= projected.x <= viewport.width - viewport.padding
        assert viewport.padding <= projected.y <= viewport.height - viewport.padding
        assert projected.fill == STATUS_COLORS[Status.COMPLETE]

    def test_default_markers_without_records(self, topology, sample_records, viewport):
        model = build_render_model(topology, sample_records, viewport)
        assert {m.id for m in model.markers} == {m.id for m in MANUAL_MARKERS}
        assert all(m.fill == UNKNOWN_FILL for m in model.markers)

    def test_marker_label_uses_record_name(self, topology, viewport):
        marker = ManualMarker(id="MUS", name="Mauritius", lon=5.0, lat=5.0)
        records = [CountryRecord(id="MUS", name="Republic of Mauritius")]
        model = build_render_model(topology, records, viewport, allow_list=["AAA"], markers=(marker,))
        assert model.markers[0].label.endswith("Republic of Mauritius")
        assert model.markers[0].name == "Mauritius"

    def test_empty_topology_fits_markers(self, sample_records, viewport):
        model = build_render_model([], sample_records, viewport)
        assert model.projected
        assert model.features == ()
        assert len(model.markers) == len(MANUAL_MARKERS)
        for marker in model.markers:
            assert viewport.padding - TOLERANCE <= marker.x <= viewport.width - viewport.padding + TOLERANCE

    @pytest.mark.parametrize(
        "width, height, padding",
        [(0.0, 0.0, 10.0), (0.0, 300.0, 10.0), (20.0, 20.0, 10.0)],
    )
    def test_undrawable_viewport_gives_empty_model(self, topology, sample_records, width, height, padding):
        model = build_render_model(topology, sample_records, Viewport(width, height, padding))
        assert model.is_empty
        assert not model.projected

    def test_north_is_up(self, topology, sample_records, viewport):
        model = build_render_model(topology, sample_records, viewport, markers=())
        by_id = {f.id: f for f in model.features}
        assert by_id["CCC"].centroid[1] < by_id["AAA"].centroid[1]
        assert by_id["BBB"].centroid[0] > by_id["AAA"].centroid[0]

    def test_svg_path_is_closed(self, topology, sample_records, viewport):
        model = build_render_model(topology, sample_records, viewport, markers=())
        path = model.features[0].path
        assert path.startswith("M")
        assert path.endswith("Z")
        assert svg_path(None) == ""


class TestSelection:
    """Highlighting and detail resolution."""

    def test_selected_feature_stroke(self, topology, sample_records, viewport):
        model = build_render_model(topology, sample_records, viewport, selected_id="aaa")
        by_id = {f.id: f for f in model.features}
        assert by_id["AAA"].selected
        assert by_id["AAA"].stroke == stroke_for(True)
        assert by_id["BBB"].stroke == stroke_for(False)
        assert model.selected_id == "AAA"

    def test_select_returns_new_model(self, topology, sample_records, viewport):
        model = build_render_model(topology, sample_records, viewport)
        selected = model.select("MUS")
        assert [m.id for m in selected.markers if m.selected] == ["MUS"]
        assert not any(f.selected for f in selected.features)
        assert not any(m.selected for m in model.markers)

    def test_select_none_clears(self, topology, sample_records, viewport):
        model = build_render_model(topology, sample_records, viewport, selected_id="AAA")
        cleared = model.select(None)
        assert cleared.selected_id is None
        assert not any(f.selected for f in cleared.features)

    def test_resolve_selection(self, sample_records):
        assert resolve_selection(sample_records, "bbb") is sample_records[1]
        assert resolve_selection(sample_records, "ZZZ") is None
        assert resolve_selection(sample_records, None) is None


class TestProjectionAndCache:
    """Projection fitting and model memoization."""

    def test_fit_projection_none_without_inputs(self, viewport):
        assert fit_projection([], viewport) is None

    def test_cache_reuses_model_for_same_inputs(self, topology, sample_records, viewport):
        cache = RenderModelCache()
        first = cache.get(topology, sample_records, viewport)
        assert cache.get(topology, sample_records, viewport) is first
        assert cache.get(topology, sample_records, viewport, selected_id="AAA") is not first

    def test_cache_rebuilds_when_markers_change(self, topology, sample_records, viewport):
        cache = RenderModelCache()
        assert cache.get(topology, sample_records, viewport, markers=()).markers == ()
        marker = ManualMarker(id="MUS", name="Mauritius", lon=5.0, lat=5.0)
        assert len(cache.get(topology, sample_records, viewport, markers=(marker,)).markers) == 1

    def test_cache_rebuilds_for_new_normalizer(self, make_square, viewport):
        topology = parse_topology(
            {"type": "FeatureCollection", "features": [make_square("RSA", 20, -30)]}
        )
        records = [CountryRecord(id="ZAF", name="South Africa")]
        cache = RenderModelCache()
        assert cache.get(topology, records, viewport, markers=()).features == ()
        remapped = cache.get(
            topology, records, viewport, normalizer=IdentifierNormalizer({"RSA": "ZAF"}), markers=()
        )
        assert [f.id for f in remapped.features] == ["ZAF"]

    def test_cache_compares_inputs_by_identity(self, topology, sample_records, viewport):
        cache = RenderModelCache()
        first = cache.get(topology, sample_records, viewport)
        assert cache.get(topology, list(sample_records), viewport) is not first
