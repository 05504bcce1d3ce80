"""Join topology features with country records and project them to screen space."""

from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Iterable, Mapping, Sequence

from .flags import with_flag
from .identifiers import IdentifierNormalizer
from .models import CountryRecord, Status
from .topology import TopologyFeature

_LOGGER = logging.getLogger("framemap.geojoin")

STATUS_COLORS: Mapping[Status, str] = {
    Status.COMPLETE: "#93c5fd",
    Status.NO_EPOCH: "#fde047",
    Status.MISSING_INFO: "#fca5a5",
    Status.LOCAL_NETWORK: "#c084fc",
    Status.ACTIVE: "#cbd5e1",
}
UNKNOWN_FILL = "#f1f5f9"

STATUS_LEGEND: Mapping[Status, str] = {
    Status.COMPLETE: "ITRF with Epoch",
    Status.NO_EPOCH: "ITRF without Epoch",
    Status.MISSING_INFO: "Missing Information",
    Status.LOCAL_NETWORK: "Local Network",
}

_DEFAULT_STROKE = ("#ffffff", 1.0)
_SELECTED_STROKE = ("#475569", 2.0)
_MARKER_RADIUS = 5.0


@dataclass(frozen=True, slots=True)
class Viewport:
    width: float
    height: float
    padding: float = 10.0

    @property
    def drawable(self) -> bool:
        return (
            self.width > 0
            and self.height > 0
            and self.width - 2 * self.padding > 0
            and self.height - 2 * self.padding > 0
        )


@dataclass(frozen=True, slots=True)
class ManualMarker:
    """Point stand-in for a territory too small or missing in the topology."""

    id: str
    name: str
    lon: float
    lat: float


MANUAL_MARKERS: tuple[ManualMarker, ...] = (
    ManualMarker(id="MUS", name="Mauritius", lon=57.5522, lat=-20.3484),
    ManualMarker(id="SYC", name="Seychelles", lon=55.4920, lat=-4.6796),
    ManualMarker(id="COM", name="Comoros", lon=43.3333, lat=-11.6450),
    ManualMarker(id="CPV", name="Cape Verde", lon=-23.0418, lat=16.0020),
    ManualMarker(id="STP", name="Sao Tome and Principe", lon=6.7333, lat=0.1864),
)


@dataclass(frozen=True, slots=True)
class ScreenProjection:
    """Web Mercator followed by a uniform scale/translate into the viewport.

    Screen y grows downwards.
    """

    scale: float
    offset_x: float
    offset_y: float
    min_x: float
    max_y: float

    def project(self, lon: float, lat: float) -> tuple[float, float]:
        mx, my = _mercator(float(lon), float(lat))
        return self._to_screen(mx, my)

    def project_geometry(self, geometry: Any) -> Any:
        shapely_transform = _require_shapely_transform()
        transformer = _require_pyproj_transformer()

        def _apply(xs: Any, ys: Any, zs: Any = None) -> tuple[Any, Any]:
            mxs, mys = transformer.transform(xs, ys)
            return (
                [self.offset_x + (float(x) - self.min_x) * self.scale for x in mxs],
                [self.offset_y + (self.max_y - float(y)) * self.scale for y in mys],
            )

        return shapely_transform(_apply, geometry)

    def _to_screen(self, mx: float, my: float) -> tuple[float, float]:
        x = self.offset_x + (mx - self.min_x) * self.scale
        y = self.offset_y + (self.max_y - my) * self.scale
        return (x, y)


@dataclass(frozen=True, slots=True)
class ProjectedFeature:
    id: str
    name: str
    label: str
    fill: str
    status: Status | None
    record: CountryRecord | None
    geometry: Any
    path: str
    centroid: tuple[float, float]
    selected: bool = False

    @property
    def stroke(self) -> tuple[str, float]:
        return stroke_for(self.selected)


@dataclass(frozen=True, slots=True)
class ProjectedMarker:
    id: str
    name: str
    label: str
    fill: str
    status: Status | None
    record: CountryRecord | None
    x: float
    y: float
    radius: float = _MARKER_RADIUS
    selected: bool = False

    @property
    def stroke(self) -> tuple[str, float]:
        return stroke_for(self.selected)


@dataclass(frozen=True, slots=True)
class RenderModel:
    features: tuple[ProjectedFeature, ...]
    markers: tuple[ProjectedMarker, ...]
    viewport: Viewport
    projection: ScreenProjection | None = None
    selected_id: str | None = None

    @property
    def projected(self) -> bool:
        return self.projection is not None

    @property
    def is_empty(self) -> bool:
        return not self.features and not self.markers

    def select(self, record_id: str | None) -> RenderModel:
        """Return a copy where only `record_id` carries the selected stroke."""
        key = record_id.strip().upper() if record_id else None
        return dataclasses.replace(
            self,
            features=tuple(
                dataclasses.replace(item, selected=item.id == key) for item in self.features
            ),
            markers=tuple(
                dataclasses.replace(item, selected=item.id == key) for item in self.markers
            ),
            selected_id=key,
        )


def stroke_for(selected: bool) -> tuple[str, float]:
    return _SELECTED_STROKE if selected else _DEFAULT_STROKE


def fill_for(record: CountryRecord | None) -> str:
    if record is None:
        return UNKNOWN_FILL
    return STATUS_COLORS.get(record.status, UNKNOWN_FILL)


def resolve_selection(
    records: Iterable[CountryRecord],
    record_id: str | None,
) -> CountryRecord | None:
    """Record shown in the detail panel for a clicked territory, if any."""
    if not record_id:
        return None
    key = record_id.strip().upper()
    for record in records:
        if record.id == key:
            return record
    return None


def fit_projection(
    geometries: Sequence[Any],
    viewport: Viewport,
    *,
    points: Sequence[tuple[float, float]] = (),
) -> ScreenProjection | None:
    """Fit Web Mercator bounds of the inputs into the padded viewport."""
    if not viewport.drawable:
        return None
    bounds = _mercator_bounds(geometries, points)
    if bounds is None:
        return None
    min_x, min_y, max_x, max_y = bounds
    span_x = max_x - min_x
    span_y = max_y - min_y
    avail_w = viewport.width - 2 * viewport.padding
    avail_h = viewport.height - 2 * viewport.padding

    candidates = []
    if span_x > 0:
        candidates.append(avail_w / span_x)
    if span_y > 0:
        candidates.append(avail_h / span_y)
    scale = min(candidates) if candidates else 1.0

    offset_x = viewport.padding + (avail_w - span_x * scale) / 2.0
    offset_y = viewport.padding + (avail_h - span_y * scale) / 2.0
    return ScreenProjection(
        scale=scale,
        offset_x=offset_x,
        offset_y=offset_y,
        min_x=min_x,
        max_y=max_y,
    )


def build_render_model(
    topology: Sequence[TopologyFeature],
    records: Sequence[CountryRecord],
    viewport: Viewport,
    *,
    allow_list: Iterable[str] | None = None,
    normalizer: IdentifierNormalizer | None = None,
    markers: Sequence[ManualMarker] = MANUAL_MARKERS,
    selected_id: str | None = None,
) -> RenderModel:
    """Merge topology with records and resolve screen geometry and styling.

    Features outside the allow-list (the record ids by default) are dropped.
    Identifiers with no record render with the unknown fill. Manual markers
    go through the same projection whether or not the topology has them.
    """
    normalize = normalizer or IdentifierNormalizer()
    by_id = {record.id: record for record in records}
    allowed = (
        {normalize(item) for item in allow_list}
        if allow_list is not None
        else set(by_id)
    )

    retained: list[TopologyFeature] = []
    for feature in topology:
        canonical = normalize(feature.id)
        if canonical not in allowed:
            continue
        retained.append(feature.with_id(canonical))

    selected_key = selected_id.strip().upper() if selected_id else None
    marker_points = [(marker.lon, marker.lat) for marker in markers]
    projection = fit_projection(
        [feature.geometry for feature in retained],
        viewport,
        points=() if retained else marker_points,
    )
    if projection is None:
        if not viewport.drawable:
            _LOGGER.debug("Viewport %sx%s not drawable yet", viewport.width, viewport.height)
        return RenderModel(features=(), markers=(), viewport=viewport, selected_id=selected_key)

    projected_features: list[ProjectedFeature] = []
    unmatched: list[str] = []
    for feature in retained:
        record = by_id.get(feature.id)
        if record is None:
            unmatched.append(feature.id)
        screen_geometry = projection.project_geometry(feature.geometry)
        centroid = screen_geometry.centroid
        projected_features.append(
            ProjectedFeature(
                id=feature.id,
                name=feature.name,
                label=with_flag(record.id, record.name) if record is not None else feature.name,
                fill=fill_for(record),
                status=record.status if record is not None else None,
                record=record,
                geometry=screen_geometry,
                path=svg_path(screen_geometry),
                centroid=(float(centroid.x), float(centroid.y)),
                selected=feature.id == selected_key,
            )
        )
    if unmatched:
        _LOGGER.debug("Topology features without records: %s", ", ".join(sorted(unmatched)))

    projected_markers: list[ProjectedMarker] = []
    for marker in markers:
        record = by_id.get(marker.id)
        x, y = projection.project(marker.lon, marker.lat)
        projected_markers.append(
            ProjectedMarker(
                id=marker.id,
                name=marker.name,
                label=with_flag(marker.id, record.name if record is not None else marker.name),
                fill=fill_for(record),
                status=record.status if record is not None else None,
                record=record,
                x=x,
                y=y,
                selected=marker.id == selected_key,
            )
        )

    return RenderModel(
        features=tuple(projected_features),
        markers=tuple(projected_markers),
        viewport=viewport,
        projection=projection,
        selected_id=selected_key,
    )


class RenderModelCache:
    """Memoize the last render model while its inputs are the same objects.

    Inputs are held by reference and compared with `is`, so a rebuilt list
    or a new normalizer always yields a fresh model.
    """

    def __init__(self) -> None:
        self._inputs: tuple[Any, ...] | None = None
        self._viewport: Viewport | None = None
        self._selected_id: str | None = None
        self._model: RenderModel | None = None

    def get(
        self,
        topology: Sequence[TopologyFeature],
        records: Sequence[CountryRecord],
        viewport: Viewport,
        *,
        allow_list: Iterable[str] | None = None,
        normalizer: IdentifierNormalizer | None = None,
        markers: Sequence[ManualMarker] = MANUAL_MARKERS,
        selected_id: str | None = None,
    ) -> RenderModel:
        inputs = (topology, records, allow_list, normalizer, markers)
        if (
            self._model is not None
            and self._inputs is not None
            and all(new is old for new, old in zip(inputs, self._inputs))
            and self._viewport == viewport
            and self._selected_id == selected_id
        ):
            return self._model
        self._model = build_render_model(
            topology,
            records,
            viewport,
            allow_list=allow_list,
            normalizer=normalizer,
            markers=markers,
            selected_id=selected_id,
        )
        self._inputs = inputs
        self._viewport = viewport
        self._selected_id = selected_id
        return self._model


def svg_path(geometry: Any) -> str:
    """SVG path data for a (multi)polygon already in screen coordinates."""
    parts: list[str] = []
    for ring in iter_rings(geometry):
        if len(ring) < 2:
            continue
        head, *tail = ring
        commands = [f"M{head[0]:.2f},{head[1]:.2f}"]
        commands.extend(f"L{x:.2f},{y:.2f}" for x, y in tail)
        commands.append("Z")
        parts.append("".join(commands))
    return "".join(parts)


def iter_rings(geometry: Any) -> list[list[tuple[float, float]]]:
    geom_type = getattr(geometry, "geom_type", "")
    if geom_type == "Polygon":
        rings = [geometry.exterior, *geometry.interiors]
        return [[(float(x), float(y)) for x, y, *_ in ring.coords] for ring in rings]
    if geom_type in {"MultiPolygon", "GeometryCollection"}:
        out: list[list[tuple[float, float]]] = []
        for part in geometry.geoms:
            out.extend(iter_rings(part))
        return out
    return []


def _mercator(lon: float, lat: float) -> tuple[float, float]:
    x, y = _require_pyproj_transformer().transform(lon, lat)
    return (float(x), float(y))


def _mercator_bounds(
    geometries: Sequence[Any],
    points: Sequence[tuple[float, float]],
) -> tuple[float, float, float, float] | None:
    xs: list[float] = []
    ys: list[float] = []
    for geometry in geometries:
        if geometry is None or geometry.is_empty:
            continue
        min_lon, min_lat, max_lon, max_lat = [float(item) for item in geometry.bounds]
        for lon, lat in ((min_lon, min_lat), (max_lon, max_lat)):
            x, y = _mercator(lon, lat)
            xs.append(x)
            ys.append(y)
    for lon, lat in points:
        x, y = _mercator(lon, lat)
        xs.append(x)
        ys.append(y)
    if not xs:
        return None
    return (min(xs), min(ys), max(xs), max(ys))


def _require_shapely_transform() -> Any:
    try:
        from shapely.ops import transform
    except ImportError as exc:  # pragma: no cover
        raise RuntimeError("shapely is required for geometry projection") from exc
    return transform


@lru_cache(maxsize=1)
def _require_pyproj_transformer() -> Any:
    try:
        from pyproj import Transformer
    except ImportError as exc:  # pragma: no cover
        raise RuntimeError("pyproj is required for Web Mercator projection") from exc
    return Transformer.from_crs("EPSG:4326", "EPSG:3857", always_xy=True)
