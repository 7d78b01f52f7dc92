from __future__ import annotations

import sqlite3
from datetime import date, datetime, timezone
from pathlib import Path

from last_weight.model import DateDisplayMode, Observation
from last_weight.sample_store import WeightSnapshot
from last_weight.storage import AppSettings, SQLiteStore
from last_weight.units import WeightUnit


def _obs(day: int, weight: float) -> Observation:
    return Observation(
        timestamp=datetime(2026, 1, day, 8, 0, tzinfo=timezone.utc), weight_kg=weight
    )


def test_defaults_when_empty(tmp_path: Path) -> None:
    store = SQLiteStore(tmp_path / "app.sqlite3")
    assert store.load_settings() == AppSettings()
    assert store.load_settings().cutoff_days == 14


def test_settings_round_trip(tmp_path: Path) -> None:
    store = SQLiteStore(tmp_path / "nested" / "app.sqlite3")
    settings = AppSettings(
        source_path="/data/export.xml",
        photos_dir="/data/selfies",
        export_dir="/data/out",
        weight_unit=WeightUnit.LB,
        date_of_birth=date(1980, 1, 18),
        cutoff_days=7,
        display_mode=DateDisplayMode.AGE_AT_TIME,
    )
    store.save_settings(settings)
    assert store.load_settings() == settings

    store.save_settings(AppSettings(source_path="/other.csv"))
    loaded = store.load_settings()
    assert loaded.source_path == "/other.csv"
    assert loaded.date_of_birth is None
    assert loaded.weight_unit is WeightUnit.KG


def test_malformed_settings_fall_back_to_defaults(tmp_path: Path) -> None:
    db = tmp_path / "app.sqlite3"
    store = SQLiteStore(db)
    with sqlite3.connect(db) as conn:
        conn.executemany(
            "INSERT INTO app_config(key, value) VALUES(?, ?)",
            [
                ("weight_unit", "stone"),
                ("date_of_birth", "18/01/1980"),
                ("cutoff_days", "-4"),
                ("display_mode", "weeks"),
            ],
        )
        conn.commit()
    loaded = store.load_settings()
    assert loaded.weight_unit is WeightUnit.KG
    assert loaded.date_of_birth is None
    assert loaded.cutoff_days == 14
    assert loaded.display_mode is DateDisplayMode.DAYS_AGO


def test_save_samples_skips_duplicates(tmp_path: Path) -> None:
    store = SQLiteStore(tmp_path / "app.sqlite3")
    first = WeightSnapshot.from_samples([_obs(1, 82.0), _obs(2, 81.0)])
    second = WeightSnapshot.from_samples([_obs(2, 81.0), _obs(3, 80.0)])
    assert store.save_samples(first) == 2
    assert store.save_samples(second) == 1
    assert store.save_samples(WeightSnapshot()) == 0
    assert store.sample_count() == 3

    cached = store.load_samples()
    assert cached.latest() == _obs(3, 80.0)
    assert [o.weight_kg for o in cached.all()] == [80.0, 81.0, 82.0]


def test_load_samples_skips_unreadable_rows(tmp_path: Path) -> None:
    db = tmp_path / "app.sqlite3"
    store = SQLiteStore(db)
    store.save_samples(WeightSnapshot.from_samples([_obs(5, 81.5)]))
    with sqlite3.connect(db) as conn:
        conn.executemany(
            """
            INSERT INTO weight_samples(row_hash, datetime, weight_kg, stored_at)
            VALUES (?, ?, ?, ?)
            """,
            [
                ("a", "2026-01-07T09:00:00+01:00", 81.0, "2026-01-08T00:00:00"),
                ("b", "not a date", 80.0, "2026-01-08T00:00:00"),
            ],
        )
        conn.commit()
    cached = store.load_samples()
    assert [o.weight_kg for o in cached.all()] == [81.0, 81.5]
    assert cached.latest() == Observation(
        timestamp=datetime(2026, 1, 7, 8, 0, tzinfo=timezone.utc), weight_kg=81.0
    )
