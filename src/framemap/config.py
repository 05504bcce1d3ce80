"""Typed configuration loader for `config.yaml`."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping, cast

import yaml

from .models import HeaderConfig, ValidationError


def _mapping(value: Any, field_name: str) -> Mapping[str, Any]:
    if not isinstance(value, Mapping):
        raise ValueError(f"Expected mapping for '{field_name}'")
    return cast(Mapping[str, Any], value)


def _optional_mapping(value: Any, field_name: str) -> Mapping[str, Any]:
    if value is None:
        return {}
    return _mapping(value, field_name)


def _str(value: Any, field_name: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"Expected non-empty string for '{field_name}'")
    return value.strip()


def _int(value: Any, field_name: str) -> int:
    if not isinstance(value, int) or isinstance(value, bool):
        raise ValueError(f"Expected integer for '{field_name}'")
    return value


def _float(value: Any, field_name: str) -> float:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return float(value)
    raise ValueError(f"Expected float for '{field_name}'")


def _bool(value: Any, field_name: str) -> bool:
    if not isinstance(value, bool):
        raise ValueError(f"Expected bool for '{field_name}'")
    return value


def _path_from_cfg(value: Any, field_name: str, root_dir: Path) -> Path:
    raw = _str(value, field_name)
    p = Path(raw)
    return p if p.is_absolute() else root_dir / p


@dataclass(frozen=True, slots=True)
class PathsConfig:
    seed_countries: Path
    cache_dir: Path
    output_dir: Path
    logs_dir: Path

    @property
    def build_directories(self) -> tuple[Path, ...]:
        return (self.cache_dir, self.output_dir, self.logs_dir)

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any], root_dir: Path) -> PathsConfig:
        return cls(
            seed_countries=_path_from_cfg(
                raw.get("seed_countries"), "paths.seed_countries", root_dir
            ),
            cache_dir=_path_from_cfg(raw.get("cache_dir"), "paths.cache_dir", root_dir),
            output_dir=_path_from_cfg(raw.get("output_dir"), "paths.output_dir", root_dir),
            logs_dir=_path_from_cfg(raw.get("logs_dir"), "paths.logs_dir", root_dir),
        )


@dataclass(frozen=True, slots=True)
class RemoteConfig:
    base_url: str
    timeout_s: float = 10.0
    user_agent: str = "framemap/0.1"
    enabled: bool = True

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> RemoteConfig:
        timeout_s = _float(raw.get("timeout_s", 10.0), "remote.timeout_s")
        if timeout_s <= 0:
            raise ValueError("remote.timeout_s must be > 0")
        return cls(
            base_url=_str(raw.get("base_url"), "remote.base_url"),
            timeout_s=timeout_s,
            user_agent=_str(raw.get("user_agent", "framemap/0.1"), "remote.user_agent"),
            enabled=_bool(raw.get("enabled", True), "remote.enabled"),
        )


@dataclass(frozen=True, slots=True)
class TopologyConfig:
    url: str | None
    path: Path | None
    timeout_s: float = 30.0
    user_agent: str = "framemap/0.1"

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any], root_dir: Path) -> TopologyConfig:
        url_raw = raw.get("url")
        path_raw = raw.get("path")
        url = _str(url_raw, "topology.url") if url_raw is not None else None
        path = _path_from_cfg(path_raw, "topology.path", root_dir) if path_raw is not None else None
        if url is None and path is None:
            raise ValueError("topology requires 'url' or 'path'")
        timeout_s = _float(raw.get("timeout_s", 30.0), "topology.timeout_s")
        if timeout_s <= 0:
            raise ValueError("topology.timeout_s must be > 0")
        return cls(
            url=url,
            path=path,
            timeout_s=timeout_s,
            user_agent=_str(raw.get("user_agent", "framemap/0.1"), "topology.user_agent"),
        )


@dataclass(frozen=True, slots=True)
class RenderConfig:
    width_px: int
    height_px: int
    padding_px: float
    dpi: int
    format: str
    background: str
    title: str

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> RenderConfig:
        width_px = _int(raw.get("width_px"), "render.width_px")
        height_px = _int(raw.get("height_px"), "render.height_px")
        padding_px = _float(raw.get("padding_px", 10), "render.padding_px")
        dpi = _int(raw.get("dpi", 100), "render.dpi")
        fmt = _str(raw.get("format", "png"), "render.format").casefold()
        if width_px < 0 or height_px < 0:
            raise ValueError("render.width_px and render.height_px must be >= 0")
        if padding_px < 0:
            raise ValueError("render.padding_px must be >= 0")
        if dpi <= 0:
            raise ValueError("render.dpi must be > 0")
        if fmt not in {"png", "svg"}:
            raise ValueError("render.format must be one of: png, svg")
        return cls(
            width_px=width_px,
            height_px=height_px,
            padding_px=padding_px,
            dpi=dpi,
            format=fmt,
            background=_str(raw.get("background", "white"), "render.background"),
            title=_str(
                raw.get("title", "Cartography of reference systems in Africa"),
                "render.title",
            ),
        )


@dataclass(frozen=True, slots=True)
class AppConfig:
    source_path: Path
    paths: PathsConfig
    remote: RemoteConfig | None
    topology: TopologyConfig
    render: RenderConfig
    default_headers: HeaderConfig
    identifier_aliases: Mapping[str, str]

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any], source_path: Path) -> AppConfig:
        root_dir = source_path.parent.resolve()
        remote_raw = raw.get("remote")
        remote = (
            RemoteConfig.from_mapping(_mapping(remote_raw, "remote"))
            if remote_raw is not None
            else None
        )
        if remote is not None and not remote.enabled:
            remote = None

        headers_raw = raw.get("headers")
        try:
            default_headers = (
                HeaderConfig.from_mapping(_mapping(headers_raw, "headers"))
                if headers_raw is not None
                else HeaderConfig.default()
            )
        except ValidationError as exc:
            raise ValueError(f"Invalid 'headers' section: {exc}") from exc

        identifiers = _optional_mapping(raw.get("identifiers"), "identifiers")
        aliases_raw = _optional_mapping(identifiers.get("aliases"), "identifiers.aliases")
        aliases = {
            _str(key, "identifiers.aliases key"): _str(value, "identifiers.aliases value")
            for key, value in aliases_raw.items()
        }

        return cls(
            source_path=source_path.resolve(),
            paths=PathsConfig.from_mapping(_mapping(raw.get("paths"), "paths"), root_dir),
            remote=remote,
            topology=TopologyConfig.from_mapping(
                _mapping(raw.get("topology"), "topology"), root_dir
            ),
            render=RenderConfig.from_mapping(_mapping(raw.get("render"), "render")),
            default_headers=default_headers,
            identifier_aliases=aliases,
        )


def load_config(path: str | Path) -> AppConfig:
    """Load and validate the YAML config file into typed settings."""
    cfg_path = Path(path).resolve()
    if not cfg_path.exists():
        raise FileNotFoundError(f"Config file not found: {cfg_path}")
    with cfg_path.open("r", encoding="utf-8") as fh:
        raw = yaml.safe_load(fh)
    if not isinstance(raw, Mapping):
        raise ValueError("Top-level config must be a YAML mapping")
    return AppConfig.from_mapping(cast(Mapping[str, Any], raw), cfg_path)
