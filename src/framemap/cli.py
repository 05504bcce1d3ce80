"""CLI entrypoint for the geodetic reference frame map."""

from __future__ import annotations

import argparse
import dataclasses
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Sequence

from .cache import LocalCache
from .config import AppConfig, load_config
from .flags import flag_url, with_flag
from .geojoin import STATUS_LEGEND, resolve_selection
from .models import CountryRecord, Status, ValidationError
from .persistence import PersistenceCoordinator
from .remote import RemoteStore
from .render import format_render_lines, run_render_map
from .seed import load_seed_countries
from .stats import aggregate, format_stats_lines
from .store import EntityStore, search_predicate
from .util import ensure_directories, setup_logging, write_json

LOGGER = logging.getLogger("framemap.cli")

_RECORD_FIELDS = (
    ("name", "--name", "Country display name."),
    ("former_network", "--former-network", "Former geodetic network."),
    ("current_network", "--current-network", "Current geodetic network."),
    ("reference_frame", "--reference-frame", "ITRF designator, e.g. ITRF2014."),
    ("epoch", "--epoch", "Reference epoch, free text."),
)
_HEADER_FIELDS = (
    "country",
    "former_network",
    "current_network",
    "reference_frame",
    "epoch",
    "status",
)


@dataclass(slots=True)
class _Session:
    store: EntityStore
    coordinator: PersistenceCoordinator


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="framemap",
        description="Map and edit geodetic reference frame statuses across Africa.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    def add_common(p: argparse.ArgumentParser) -> None:
        p.add_argument("--config", default="config.yaml", help="Path to YAML config.")
        p.add_argument("--verbose", action="store_true", help="Enable debug logs.")

    def add_save(p: argparse.ArgumentParser) -> None:
        p.add_argument(
            "--save",
            action="store_true",
            help="Also push the result to the remote store.",
        )

    def add_record_fields(p: argparse.ArgumentParser) -> None:
        for _, flag, help_text in _RECORD_FIELDS:
            p.add_argument(flag, default=None, help=help_text)
        p.add_argument(
            "--status",
            default=None,
            choices=[status.value for status in Status],
            help="Reference frame status.",
        )

    render_p = subparsers.add_parser("render", help="Render the status map to an image.")
    add_common(render_p)
    render_p.add_argument("--output", default=None, help="Output image path.")
    render_p.add_argument("--select", default=None, help="ISO3 of the highlighted territory.")

    stats_p = subparsers.add_parser("stats", help="Print status counts and shares.")
    add_common(stats_p)

    list_p = subparsers.add_parser("list", help="List country records.")
    add_common(list_p)
    list_p.add_argument(
        "--search",
        default="",
        help="Case-insensitive match on name, reference frame, or current network.",
    )

    show_p = subparsers.add_parser("show", help="Show one country record.")
    add_common(show_p)
    show_p.add_argument("id", help="ISO3 identifier.")

    add_p = subparsers.add_parser("add", help="Create a new country record.")
    add_common(add_p)
    add_save(add_p)
    add_p.add_argument("--id", required=True, help="ISO3 identifier (immutable once created).")
    add_record_fields(add_p)

    edit_p = subparsers.add_parser("edit", help="Edit fields of an existing country record.")
    add_common(edit_p)
    add_save(edit_p)
    edit_p.add_argument("id", help="ISO3 identifier.")
    add_record_fields(edit_p)

    remove_p = subparsers.add_parser("remove", help="Delete a country record.")
    add_common(remove_p)
    add_save(remove_p)
    remove_p.add_argument("id", help="ISO3 identifier.")

    headers_p = subparsers.add_parser("headers", help="Change table column labels.")
    add_common(headers_p)
    add_save(headers_p)
    for name in _HEADER_FIELDS:
        headers_p.add_argument(f"--{name.replace('_', '-')}", default=None, help=f"Label for '{name}'.")

    save_p = subparsers.add_parser("save", help="Push all data to the remote store.")
    add_common(save_p)

    export_p = subparsers.add_parser("export-json", help="Write the current data to a JSON file.")
    add_common(export_p)
    export_p.add_argument("--output", required=True, help="Destination JSON path.")

    return parser


def _load_and_setup(args: argparse.Namespace) -> AppConfig:
    cfg = load_config(args.config)
    log_path = cfg.paths.logs_dir / "framemap.log"
    setup_logging(log_path, verbose=args.verbose)
    ensure_directories(cfg.paths.build_directories)
    return cfg


def _open_session(cfg: AppConfig) -> _Session:
    store = EntityStore(load_seed_countries(cfg.paths.seed_countries), cfg.default_headers)
    remote = RemoteStore(cfg.remote) if cfg.remote is not None else None
    coordinator = PersistenceCoordinator(
        store,
        remote=remote,
        cache=LocalCache(cfg.paths.cache_dir),
    )
    coordinator.init()
    return _Session(store=store, coordinator=coordinator)


def _finish_mutation(session: _Session, *, save: bool) -> int:
    if not save:
        LOGGER.info("Change kept in the local cache. Run 'save' to push it to the remote store.")
        return 0
    result = session.coordinator.save()
    if result.ok:
        LOGGER.info(result.message)
        return 0
    LOGGER.error(result.message)
    return 1


def _field_overrides(args: argparse.Namespace) -> dict[str, Any]:
    overrides: dict[str, Any] = {}
    for attr, _, _ in _RECORD_FIELDS:
        value = getattr(args, attr)
        if value is not None:
            overrides[attr] = value
    if args.status is not None:
        overrides["status"] = Status.parse(args.status)
    return overrides


def _format_record_line(record: CountryRecord) -> str:
    return (
        f"{record.id:<4} {with_flag(record.id, record.name):<34} "
        f"{record.reference_frame or '-':<12} {record.epoch or '-':<10} "
        f"{record.current_network or '-':<20} {record.status.value}"
    )


def _run_render(cfg: AppConfig, *, output: str | None, select: str | None) -> int:
    session = _open_session(cfg)
    report = run_render_map(
        cfg,
        records=session.store.countries,
        headers=session.store.headers,
        output_path=Path(output) if output else None,
        selected_id=select,
    )
    for line in format_render_lines(report):
        LOGGER.info(line)
    return 0 if report.ok else 1


def _run_stats(cfg: AppConfig) -> int:
    session = _open_session(cfg)
    records = session.store.countries
    LOGGER.info("%s (%d countries)", session.store.headers.status, len(records))
    for line in format_stats_lines(aggregate(records), STATUS_LEGEND):
        LOGGER.info(line)
    return 0


def _run_list(cfg: AppConfig, *, search: str) -> int:
    session = _open_session(cfg)
    headers = session.store.headers
    rows = session.store.query(search_predicate(search))
    LOGGER.info(
        "%-4s %-34s %-12s %-10s %-20s %s",
        "ID",
        headers.country,
        headers.reference_frame,
        headers.epoch,
        headers.current_network,
        headers.status,
    )
    for record in rows:
        LOGGER.info(_format_record_line(record))
    LOGGER.info("%d of %d countries shown.", len(rows), len(session.store.countries))
    return 0


def _run_show(cfg: AppConfig, *, record_id: str) -> int:
    session = _open_session(cfg)
    record = resolve_selection(session.store.countries, record_id)
    if record is None:
        LOGGER.error("No country record for '%s'.", record_id)
        return 1
    headers = session.store.headers
    LOGGER.info("%s: %s", headers.country, with_flag(record.id, record.name))
    LOGGER.info("%s: %s", headers.former_network, record.former_network or "-")
    LOGGER.info("%s: %s", headers.current_network, record.current_network or "-")
    LOGGER.info("%s: %s", headers.reference_frame, record.reference_frame or "-")
    LOGGER.info("%s: %s", headers.epoch, record.epoch or "-")
    LOGGER.info("%s: %s", headers.status, STATUS_LEGEND.get(record.status, record.status.value))
    url = flag_url(record.id)
    if url:
        LOGGER.info("Flag: %s", url)
    return 0


def _run_add(cfg: AppConfig, args: argparse.Namespace) -> int:
    session = _open_session(cfg)
    overrides = _field_overrides(args)
    try:
        record = session.store.create(
            CountryRecord(
                id=str(args.id).strip().upper(),
                name=str(overrides.pop("name", "")),
                **overrides,
            )
        )
    except ValidationError as exc:
        LOGGER.error("Country not added: %s", exc)
        return 1
    LOGGER.info("Added %s", _format_record_line(record))
    return _finish_mutation(session, save=bool(args.save))


def _run_edit(cfg: AppConfig, args: argparse.Namespace) -> int:
    session = _open_session(cfg)
    existing = session.store.get(str(args.id))
    if existing is None:
        LOGGER.error("No country record for '%s'. Use 'add' to create it.", args.id)
        return 1
    try:
        record = session.store.upsert(dataclasses.replace(existing, **_field_overrides(args)))
    except ValidationError as exc:
        LOGGER.error("Country not updated: %s", exc)
        return 1
    LOGGER.info("Updated %s", _format_record_line(record))
    return _finish_mutation(session, save=bool(args.save))


def _run_remove(cfg: AppConfig, args: argparse.Namespace) -> int:
    session = _open_session(cfg)
    if not session.store.remove(str(args.id)):
        LOGGER.info("No country record for '%s'; nothing removed.", args.id)
        return 0
    LOGGER.info("Removed %s", str(args.id).strip().upper())
    return _finish_mutation(session, save=bool(args.save))


def _run_headers(cfg: AppConfig, args: argparse.Namespace) -> int:
    session = _open_session(cfg)
    changes = {
        name: getattr(args, name) for name in _HEADER_FIELDS if getattr(args, name) is not None
    }
    if not changes:
        for name in _HEADER_FIELDS:
            LOGGER.info("%s: %s", name, getattr(session.store.headers, name))
        return 0
    updated = dataclasses.replace(session.store.headers, **changes)
    try:
        session.store.set_headers(updated.to_dict())
    except ValidationError as exc:
        LOGGER.error("Headers not updated: %s", exc)
        return 1
    LOGGER.info("Headers updated: %s", ", ".join(sorted(changes)))
    return _finish_mutation(session, save=bool(args.save))


def _run_save(cfg: AppConfig) -> int:
    session = _open_session(cfg)
    return _finish_mutation(session, save=True)


def _run_export(cfg: AppConfig, *, output: str) -> int:
    session = _open_session(cfg)
    path = Path(output)
    write_json(path, session.store.snapshot().to_dict())
    LOGGER.info("Exported %d countries to %s", len(session.store.countries), path)
    return 0


def _dispatch(args: argparse.Namespace) -> int:
    cfg = _load_and_setup(args)
    command = str(args.command)
    if command == "render":
        return _run_render(cfg, output=args.output, select=args.select)
    if command == "stats":
        return _run_stats(cfg)
    if command == "list":
        return _run_list(cfg, search=str(args.search))
    if command == "show":
        return _run_show(cfg, record_id=str(args.id))
    if command == "add":
        return _run_add(cfg, args)
    if command == "edit":
        return _run_edit(cfg, args)
    if command == "remove":
        return _run_remove(cfg, args)
    if command == "headers":
        return _run_headers(cfg, args)
    if command == "save":
        return _run_save(cfg)
    if command == "export-json":
        return _run_export(cfg, output=str(args.output))
    raise ValueError(f"Unknown command: {command}")


def main(argv: Sequence[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    return _dispatch(args)


if __name__ == "__main__":
    raise SystemExit(main())
