"""CLI: ¿cuándo fue la última vez que pesaste lo mismo que hoy?"""

from __future__ import annotations

import argparse
import logging
from dataclasses import replace
from datetime import date
from pathlib import Path

from last_weight.clock import Clock, system_clock
from last_weight.display import format_date, insight_lines
from last_weight.excel_writer import ExcelLayout, write_history_xlsx
from last_weight.model import DateDisplayMode
from last_weight.photos import PhotoLibrary
from last_weight.session import WeightSession
from last_weight.sources.apple_health import AppleHealthPaths, AppleHealthSource
from last_weight.sources.base import WeightSource
from last_weight.sources.csv_scale import CsvWeightPaths, CsvWeightSource
from last_weight.storage import AppSettings, SQLiteStore
from last_weight.units import WeightUnit

DEFAULT_DB = Path.home() / ".last_weight" / "last_weight.sqlite3"


def _non_negative_int(raw: str) -> int:
    value = int(raw)
    if value < 0:
        raise argparse.ArgumentTypeError(f"must be >= 0, got {value}")
    return value


def parse_args() -> argparse.Namespace:
    """Parse command-line arguments.

    Returns:
        Parsed argparse namespace.
    """
    parser = argparse.ArgumentParser(
        description="Última vez que pesaste lo mismo que hoy."
    )
    parser.add_argument(
        "--source",
        help="export.xml de Apple Health (o su carpeta) o CSV de balanza.",
    )
    parser.add_argument(
        "--cutoff-days",
        type=_non_negative_int,
        help="Días recientes a ignorar al buscar coincidencias (default: 14).",
    )
    parser.add_argument("--unit", choices=["kg", "lb"], help="Unidad de salida.")
    parser.add_argument(
        "--dob",
        type=date.fromisoformat,
        help="Fecha de nacimiento YYYY-MM-DD (para el modo edad).",
    )
    parser.add_argument(
        "--mode",
        choices=[m.value for m in DateDisplayMode],
        help="Mostrar 'days' (hace N días) o 'age' (edad en ese momento).",
    )
    parser.add_argument("--photos-dir", help="Carpeta con selfies fechadas.")
    parser.add_argument(
        "--history", action="store_true", help="Imprime el historial completo."
    )
    parser.add_argument("--export-dir", help="Carpeta donde escribir el Excel.")
    parser.add_argument(
        "--db",
        default=str(DEFAULT_DB),
        help="Base SQLite de preferencias (default: ~/.last_weight/).",
    )
    parser.add_argument("-v", "--verbose", action="store_true")
    return parser.parse_args()


def merge_settings(stored: AppSettings, ns: argparse.Namespace) -> AppSettings:
    """Override stored settings with the values given on the command line."""
    settings = stored
    if ns.source:
        settings = replace(settings, source_path=ns.source)
    if ns.cutoff_days is not None:
        settings = replace(settings, cutoff_days=ns.cutoff_days)
    if ns.unit:
        settings = replace(settings, weight_unit=WeightUnit(ns.unit))
    if ns.dob is not None:
        settings = replace(settings, date_of_birth=ns.dob)
    if ns.mode:
        settings = replace(settings, display_mode=DateDisplayMode(ns.mode))
    if ns.photos_dir:
        settings = replace(settings, photos_dir=ns.photos_dir)
    if ns.export_dir:
        settings = replace(settings, export_dir=ns.export_dir)
    return settings


def build_source(path: Path, clock: Clock = system_clock) -> WeightSource:
    """Pick the reader for ``path``: CSV by extension, Apple Health otherwise."""
    if path.suffix.lower() == ".csv":
        return CsvWeightSource(CsvWeightPaths(root=path), clock=clock)
    return AppleHealthSource(AppleHealthPaths(root=path), clock=clock)


def main() -> int:
    """Run the CLI.

    Returns:
        Exit code (0 with data, 1 without data, 2 without a source).
    """
    ns = parse_args()
    logging.basicConfig(
        level=logging.DEBUG if ns.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    store = SQLiteStore(Path(ns.db).expanduser())
    settings = merge_settings(store.load_settings(), ns)
    store.save_settings(settings)
    if not settings.source_path:
        print("ERROR: falta --source (export.xml de Apple Health o CSV).")
        return 2

    clock = system_clock
    source = build_source(Path(settings.source_path).expanduser(), clock)
    session = WeightSession(source, settings, clock=clock, cache=store)
    outcome = session.refresh()
    if outcome.error is not None:
        print(f"Sin datos en este ciclo: {outcome.error}")

    now = clock()
    insight = session.insight
    for line in insight_lines(
        insight,
        unit=settings.weight_unit,
        mode=settings.display_mode,
        now=now,
        date_of_birth=settings.date_of_birth,
    ):
        print(line)

    if insight is not None and settings.photos_dir:
        library = PhotoLibrary(Path(settings.photos_dir).expanduser())
        photo = library.find_nearest_image(insight.match.timestamp)
        if photo is not None:
            print(f"Photo from {format_date(insight.match.timestamp)}: {photo}")

    if ns.history:
        history = session.history()
        if not history.empty:
            print(history[["date", "weight", "unit"]].to_string(index=False))

    if settings.export_dir and len(session.snapshot):
        ts = now.strftime("%Y-%m-%d_%H-%M-%S")
        out_path = Path(settings.export_dir).expanduser() / f"last_weight_{ts}.xlsx"
        write_history_xlsx(
            session.snapshot, out_path, ExcelLayout(), settings.weight_unit
        )
        print(f"OK: Output: {out_path}")

    return 0 if len(session.snapshot) else 1
