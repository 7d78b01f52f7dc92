from __future__ import annotations

from datetime import date, datetime
from pathlib import Path

import pandas as pd
import pytest

from last_weight.app import (
    export_path,
    history_text,
    parse_settings_form,
    settings_form_values,
)
from last_weight.storage import AppSettings


def test_history_text() -> None:
    df = pd.DataFrame(
        {
            "date": [date(2025, 3, 28), date(2025, 3, 1)],
            "weight": [72.3, 73.0],
            "unit": ["kg", "kg"],
        }
    )
    assert history_text(df) == "Mar 28, 2025: 72.3 kg\nMar 1, 2025: 73.0 kg"
    assert history_text(pd.DataFrame()) == ""


def test_settings_form_round_trip() -> None:
    settings = AppSettings(
        source_path="/data/export.xml",
        date_of_birth=date(1980, 1, 18),
        cutoff_days=7,
    )
    values = settings_form_values(settings)
    assert values["date_of_birth"] == "1980-01-18"
    assert values["cutoff_days"] == "7"
    assert parse_settings_form(values, AppSettings()) == settings


def test_parse_settings_form_blank_values() -> None:
    base = AppSettings(cutoff_days=10, date_of_birth=date(1990, 1, 1))
    out = parse_settings_form(
        {"source_path": " /x.csv ", "date_of_birth": "", "cutoff_days": ""}, base
    )
    assert out.source_path == "/x.csv"
    assert out.date_of_birth is None
    assert out.cutoff_days == 10


@pytest.mark.parametrize(
    "values",
    [
        {"date_of_birth": "18/01/1980"},
        {"cutoff_days": "abc"},
        {"cutoff_days": "-1"},
    ],
)
def test_parse_settings_form_invalid(values: dict[str, str]) -> None:
    with pytest.raises(ValueError):
        parse_settings_form(values, AppSettings())


def test_export_path_uses_export_dir(tmp_path: Path) -> None:
    settings = AppSettings(export_dir=str(tmp_path / "out"))
    out = export_path(settings, datetime(2026, 3, 1, 12, 30, 5))
    assert out == tmp_path / "out" / "last_weight_2026-03-01_12-30-05.xlsx"


def test_export_path_defaults_to_salidas(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> None:
    monkeypatch.chdir(tmp_path)
    out = export_path(AppSettings(), datetime(2026, 3, 1, 12, 30, 5))
    assert out.parent == tmp_path / "salidas"
