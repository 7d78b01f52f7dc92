"""Persistencia SQLite para preferencias y copia local de los pesos."""

from __future__ import annotations

import json
import logging
import sqlite3
from dataclasses import dataclass
from datetime import date, datetime
from hashlib import sha256
from pathlib import Path

import pandas as pd

from last_weight.matching import DEFAULT_CUTOFF_DAYS
from last_weight.model import DateDisplayMode, Observation
from last_weight.sample_store import WeightSnapshot, frame_to_observations
from last_weight.units import WeightUnit

logger = logging.getLogger(__name__)

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS app_config (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS weight_samples (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    row_hash TEXT NOT NULL,
    datetime TEXT NOT NULL,
    weight_kg REAL NOT NULL,
    stored_at TEXT NOT NULL
);

CREATE UNIQUE INDEX IF NOT EXISTS idx_weight_samples_row_hash
ON weight_samples(row_hash);
"""


@dataclass(frozen=True)
class AppSettings:
    """Configuracion persistida de la app."""

    source_path: str = ""
    photos_dir: str = ""
    export_dir: str = ""
    weight_unit: WeightUnit = WeightUnit.KG
    date_of_birth: date | None = None
    cutoff_days: int = DEFAULT_CUTOFF_DAYS
    display_mode: DateDisplayMode = DateDisplayMode.DAYS_AGO


class SQLiteStore:
    """Repositorio SQLite para la app."""

    def __init__(self, db_path: Path) -> None:
        """Create store and ensure schema exists."""
        self._db_path = db_path
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_schema()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._db_path)
        conn.row_factory = sqlite3.Row
        return conn

    def _init_schema(self) -> None:
        with self._connect() as conn:
            conn.executescript(SCHEMA_SQL)
            conn.commit()

    def load_settings(self) -> AppSettings:
        """Devuelve configuracion guardada o defaults.

        Stored values that cannot be parsed fall back to their default.
        """
        with self._connect() as conn:
            rows = conn.execute("SELECT key, value FROM app_config").fetchall()
        values = {row["key"]: row["value"] for row in rows}
        d = AppSettings()
        return AppSettings(
            source_path=values.get("source_path", d.source_path),
            photos_dir=values.get("photos_dir", d.photos_dir),
            export_dir=values.get("export_dir", d.export_dir),
            weight_unit=_parse_unit(values.get("weight_unit"), d.weight_unit),
            date_of_birth=_parse_date(values.get("date_of_birth")),
            cutoff_days=_parse_cutoff(values.get("cutoff_days"), d.cutoff_days),
            display_mode=_parse_mode(values.get("display_mode"), d.display_mode),
        )

    def save_settings(self, settings: AppSettings) -> None:
        """Guarda la configuracion en tabla key/value."""
        payload = {
            "source_path": settings.source_path,
            "photos_dir": settings.photos_dir,
            "export_dir": settings.export_dir,
            "weight_unit": settings.weight_unit.value,
            "date_of_birth": (
                settings.date_of_birth.isoformat() if settings.date_of_birth else ""
            ),
            "cutoff_days": str(settings.cutoff_days),
            "display_mode": settings.display_mode.value,
        }
        with self._connect() as conn:
            conn.executemany(
                """
                INSERT INTO app_config(key, value) VALUES(?, ?)
                ON CONFLICT(key) DO UPDATE SET value=excluded.value
                """,
                payload.items(),
            )
            conn.commit()

    def save_samples(self, snapshot: WeightSnapshot) -> int:
        """Guarda las observaciones nuevas. Devuelve cuántas se insertaron."""
        stored_at = datetime.now().isoformat(timespec="seconds")
        rows = [_sample_row(o) for o in snapshot.all()]
        if not rows:
            return 0
        with self._connect() as conn:
            before = conn.total_changes
            conn.executemany(
                """
                INSERT OR IGNORE INTO weight_samples(
                    row_hash, datetime, weight_kg, stored_at
                ) VALUES (?, ?, ?, ?)
                """,
                [(*row, stored_at) for row in rows],
            )
            inserted = conn.total_changes - before
            conn.commit()
        logger.debug("Cached %d new weight samples", inserted)
        return inserted

    def load_samples(self) -> WeightSnapshot:
        """Carga todas las observaciones guardadas, la más reciente primero."""
        with self._connect() as conn:
            df = pd.read_sql(
                "SELECT datetime, weight_kg FROM weight_samples", conn
            )
        return WeightSnapshot.from_samples(frame_to_observations(df))

    def sample_count(self) -> int:
        with self._connect() as conn:
            row = conn.execute("SELECT COUNT(*) AS n FROM weight_samples").fetchone()
        return int(row["n"])


def _sample_row(obs: Observation) -> tuple[str, str, float]:
    ts = obs.timestamp.isoformat()
    return _row_hash((ts, obs.weight_kg)), ts, obs.weight_kg


def _row_hash(values: tuple[object, ...]) -> str:
    payload = json.dumps(values, ensure_ascii=True, sort_keys=False, default=str)
    return sha256(payload.encode("utf-8")).hexdigest()


def _parse_unit(raw: str | None, default: WeightUnit) -> WeightUnit:
    if not raw:
        return default
    try:
        return WeightUnit.parse(raw)
    except ValueError:
        return default


def _parse_date(raw: str | None) -> date | None:
    if not raw:
        return None
    try:
        return date.fromisoformat(raw)
    except ValueError:
        return None


def _parse_cutoff(raw: str | None, default: int) -> int:
    if raw is None:
        return default
    try:
        value = int(raw)
    except ValueError:
        return default
    return value if value >= 0 else default


def _parse_mode(raw: str | None, default: DateDisplayMode) -> DateDisplayMode:
    try:
        return DateDisplayMode(raw)
    except ValueError:
        return default
