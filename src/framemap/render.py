"""Choropleth map rendering of reference frame statuses."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path
from typing import Any, Sequence

from .config import AppConfig, RenderConfig
from .flags import strip_flag
from .geojoin import (
    STATUS_COLORS,
    STATUS_LEGEND,
    RenderModel,
    Viewport,
    build_render_model,
    iter_rings,
)
from .identifiers import IdentifierNormalizer
from .models import CountryRecord, HeaderConfig
from .stats import TRACKED_STATUSES, aggregate, format_stats_lines
from .topology import TopologySource, fetch_topology_or_empty

_LOGGER = logging.getLogger("framemap.render")

_LABEL_COLOR = "#000000"
_OVERLAY_FACE = "#ffffff"
_OVERLAY_EDGE = "#e2e8f0"
_SMALL_VIEWPORT_PX = 500


@dataclass(slots=True)
class RenderMapReport:
    output_path: Path | None = None
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    infos: list[str] = field(default_factory=list)
    summary: dict[str, int] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.errors

    def add_error(self, msg: str) -> None:
        self.errors.append(msg)

    def add_warning(self, msg: str) -> None:
        self.warnings.append(msg)

    def add_info(self, msg: str) -> None:
        self.infos.append(msg)


class MapRenderer:
    """Draw a RenderModel into a PNG or SVG file of the viewport's pixel size."""

    def __init__(self, cfg: RenderConfig, *, legend_title: str = "Legend") -> None:
        self.cfg = cfg
        self.legend_title = legend_title

    def viewport(self) -> Viewport:
        return Viewport(
            width=float(self.cfg.width_px),
            height=float(self.cfg.height_px),
            padding=self.cfg.padding_px,
        )

    def render(
        self,
        model: RenderModel,
        records: Sequence[CountryRecord],
        output_path: Path,
    ) -> Path:
        plt = _require_matplotlib()
        width = max(model.viewport.width, 1.0)
        height = max(model.viewport.height, 1.0)
        dpi = self.cfg.dpi

        fig = plt.figure(figsize=(width / dpi, height / dpi), dpi=dpi)
        try:
            fig.patch.set_facecolor(self.cfg.background)
            ax = fig.add_axes((0.0, 0.0, 1.0, 1.0))
            ax.set_xlim(0.0, width)
            ax.set_ylim(height, 0.0)
            ax.set_aspect("equal", adjustable="box")
            ax.axis("off")

            font_size = 6 if width < _SMALL_VIEWPORT_PX else 8
            _draw_features(ax=ax, model=model, font_size=font_size)
            _draw_markers(ax=ax, model=model, font_size=font_size - 1)
            self._draw_title(ax=ax, width=width)
            _draw_legend(ax=ax, title=self.legend_title)
            _draw_stats_overlay(ax=ax, records=records, width=width)

            output_path.parent.mkdir(parents=True, exist_ok=True)
            fig.savefig(output_path, dpi=dpi, format=self.cfg.format)
            return output_path
        finally:
            plt.close(fig)

    def _draw_title(self, *, ax: Any, width: float) -> None:
        ax.text(
            width / 2.0,
            4.0,
            self.cfg.title.upper(),
            ha="center",
            va="top",
            fontsize=9,
            fontweight="black",
            color="#0f172a",
            zorder=10,
        )


def run_render_map(
    cfg: AppConfig,
    *,
    records: Sequence[CountryRecord],
    headers: HeaderConfig,
    output_path: Path | None = None,
    selected_id: str | None = None,
    topology_source: TopologySource | None = None,
) -> RenderMapReport:
    """Fetch topology, join it with `records`, and write the map image."""
    target = output_path or cfg.paths.output_dir / f"africa_reference_frames.{cfg.render.format}"
    report = RenderMapReport(output_path=target)
    renderer = MapRenderer(cfg.render, legend_title=headers.status)
    viewport = renderer.viewport()

    source = topology_source or TopologySource(cfg.topology)
    topology = fetch_topology_or_empty(source)
    if not topology:
        report.add_warning("Topology unavailable or empty; only island markers are drawn.")

    model = build_render_model(
        topology,
        records,
        viewport,
        normalizer=IdentifierNormalizer(cfg.identifier_aliases),
        selected_id=selected_id,
    )
    if not model.projected:
        report.add_warning(
            f"Viewport {cfg.render.width_px}x{cfg.render.height_px} is not drawable; "
            "no geometry rendered."
        )
    matched = sum(1 for feature in model.features if feature.record is not None)
    report.summary = {
        "records": len(records),
        "features_rendered": len(model.features),
        "features_matched": matched,
        "features_unknown": len(model.features) - matched,
        "markers_rendered": len(model.markers),
    }
    report.add_info(
        "Render summary: "
        f"records={len(records)}, "
        f"features={len(model.features)}, "
        f"matched={matched}, "
        f"markers={len(model.markers)}"
    )
    missing = sorted(
        {record.id for record in records}
        - {feature.id for feature in model.features}
        - {marker.id for marker in model.markers}
    )
    if missing:
        report.add_info("Records without map geometry: " + _format_code_list(missing))

    if selected_id and model.selected_id is not None:
        if not any(item.selected for item in (*model.features, *model.markers)):
            report.add_warning(f"Selected id '{model.selected_id}' is not on the map.")

    try:
        renderer.render(model, records, target)
    except (OSError, ValueError, RuntimeError) as exc:
        report.add_error(f"Failed writing map image {target}: {exc}")
        return report
    _LOGGER.info("[render] map written to %s", target)
    report.add_info(f"Map written to {target}")
    return report


def format_render_lines(report: RenderMapReport) -> Sequence[str]:
    lines: list[str] = []
    lines.extend(f"[INFO] {msg}" for msg in report.infos)
    lines.extend(f"[WARN] {msg}" for msg in report.warnings)
    lines.extend(f"[ERROR] {msg}" for msg in report.errors)
    if report.ok:
        lines.append("[OK] Map rendering completed with no errors.")
    return lines


def _draw_features(*, ax: Any, model: RenderModel, font_size: int) -> None:
    patches, path_cls = _require_matplotlib_paths()
    for feature in model.features:
        path = _geometry_to_path(feature.geometry, path_cls)
        if path is None:
            continue
        edge_color, line_width = feature.stroke
        ax.add_patch(
            patches.PathPatch(
                path,
                facecolor=feature.fill,
                edgecolor=edge_color,
                linewidth=line_width,
                zorder=3 if feature.selected else 2,
            )
        )
        ax.text(
            feature.centroid[0],
            feature.centroid[1],
            strip_flag(feature.label),
            ha="center",
            va="center",
            fontsize=font_size,
            fontweight="bold",
            color=_LABEL_COLOR,
            zorder=5,
        )


def _draw_markers(*, ax: Any, model: RenderModel, font_size: int) -> None:
    patches, _ = _require_matplotlib_paths()
    for marker in model.markers:
        edge_color, line_width = marker.stroke
        ax.add_patch(
            patches.Circle(
                (marker.x, marker.y),
                radius=marker.radius,
                facecolor=marker.fill,
                edgecolor=edge_color,
                linewidth=max(line_width, 1.5),
                zorder=6,
            )
        )
        ax.text(
            marker.x,
            marker.y - 8.0,
            strip_flag(marker.label),
            ha="center",
            va="bottom",
            fontsize=max(font_size, 4),
            fontweight="heavy",
            color=_LABEL_COLOR,
            zorder=7,
        )


def _draw_legend(*, ax: Any, title: str) -> None:
    patches, _ = _require_matplotlib_paths()
    handles = [
        patches.Patch(facecolor=STATUS_COLORS[status], edgecolor="#94a3b8", label=STATUS_LEGEND[status])
        for status in TRACKED_STATUSES
    ]
    legend = ax.legend(
        handles=handles,
        title=title,
        loc="lower left",
        fontsize=6,
        title_fontsize=7,
        frameon=True,
    )
    legend.get_frame().set_facecolor(_OVERLAY_FACE)
    legend.get_frame().set_edgecolor(_OVERLAY_EDGE)


def _draw_stats_overlay(*, ax: Any, records: Sequence[CountryRecord], width: float) -> None:
    stats = aggregate(records)
    lines = ["Statistics", *format_stats_lines(stats, STATUS_LEGEND)]
    ax.text(
        width - 8.0,
        24.0,
        "\n".join(lines),
        ha="right",
        va="top",
        fontsize=6,
        family="monospace",
        zorder=10,
        bbox={"boxstyle": "round", "facecolor": _OVERLAY_FACE, "edgecolor": _OVERLAY_EDGE},
    )


def _geometry_to_path(geometry: Any, path_cls: Any) -> Any | None:
    vertices: list[tuple[float, float]] = []
    codes: list[int] = []
    for ring in iter_rings(geometry):
        if len(ring) < 3:
            continue
        vertices.extend(ring)
        codes.append(path_cls.MOVETO)
        codes.extend([path_cls.LINETO] * (len(ring) - 2))
        codes.append(path_cls.CLOSEPOLY)
    if not vertices:
        return None
    return path_cls(vertices, codes)


@lru_cache(maxsize=1)
def _require_matplotlib() -> Any:
    try:
        import matplotlib

        matplotlib.use("Agg", force=False)
        import matplotlib.pyplot as plt
    except ImportError as exc:  # pragma: no cover
        raise RuntimeError("matplotlib is required for map rendering") from exc
    return plt


def _require_matplotlib_paths() -> tuple[Any, Any]:
    try:
        import matplotlib.patches as patches
        from matplotlib.path import Path as MplPath
    except ImportError as exc:  # pragma: no cover
        raise RuntimeError("matplotlib is required for map rendering") from exc
    return (patches, MplPath)


def _format_code_list(values: list[str], limit: int = 12) -> str:
    if len(values) <= limit:
        return ", ".join(values)
    shown = ", ".join(values[:limit])
    return f"{shown}, ... (+{len(values) - limit} more)"
