from __future__ import annotations

import xml.etree.ElementTree as ET
from datetime import datetime, timezone
from pathlib import Path

import pytest

from last_weight.clock import fixed_clock
from last_weight.matching import find_last_closest_weight
from last_weight.sample_store import SampleStore
from last_weight.sources import apple_health
from last_weight.sources.apple_health import (
    AppleHealthPaths,
    AppleHealthSource,
    _parse_timestamp,
    _record_to_observation,
)

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)

EXPORT_XML = """<?xml version="1.0" encoding="UTF-8"?>
<HealthData locale="en_US">
 <ExportDate value="2026-03-01 12:00:00 +0000"/>
 <Record type="HKQuantityTypeIdentifierBodyMass" sourceName="Scale" unit="kg"
  startDate="2026-02-28 07:30:00 +0000" endDate="2026-02-28 07:30:00 +0000"
  value="80.4"/>
 <Record type="HKQuantityTypeIdentifierBodyMass" sourceName="Health" unit="lb"
  startDate="2025-12-01 07:00:00 +0000" endDate="2025-12-01 07:00:00 +0000"
  value="176.4">
  <MetadataEntry key="HKWasUserEntered" value="1"/>
 </Record>
 <Record type="HKQuantityTypeIdentifierStepCount" sourceName="Phone" unit="count"
  startDate="2026-02-28 07:30:00 +0000" endDate="2026-02-28 07:45:00 +0000"
  value="1200"/>
 <Record type="HKQuantityTypeIdentifierBodyMass" sourceName="Scale" unit="kg"
  startDate="2005-01-01 07:00:00 +0000" endDate="2005-01-01 07:00:00 +0000"
  value="95.0"/>
 <Record type="HKQuantityTypeIdentifierBodyMass" sourceName="Scale" unit="kg"
  startDate="not a date" value="81.0"/>
</HealthData>
"""


def _write_export(root: Path) -> Path:
    path = root / "export.xml"
    path.write_text(EXPORT_XML, encoding="utf-8")
    return path


def test_load_observations_reads_body_mass_only(tmp_path: Path) -> None:
    path = _write_export(tmp_path)
    source = AppleHealthSource(AppleHealthPaths(root=path))
    out = source.load_observations()
    assert len(out) == 3
    assert out[0].weight_kg == 80.4
    assert out[1].weight_kg == pytest.approx(80.01, abs=0.01)


def test_fetch_filters_by_window(tmp_path: Path) -> None:
    _write_export(tmp_path)
    source = AppleHealthSource(
        AppleHealthPaths(root=tmp_path), clock=fixed_clock(NOW)
    )
    out = source.fetch(15)
    assert sorted(o.weight_kg for o in out) == pytest.approx([80.01, 80.4], abs=0.01)
    assert len(source.fetch(25)) == 3


def test_fetch_rejects_non_positive_window(tmp_path: Path) -> None:
    source = AppleHealthSource(AppleHealthPaths(root=_write_export(tmp_path)))
    with pytest.raises(ValueError, match="window_years"):
        source.fetch(0)


def test_validate_raises_when_missing(tmp_path: Path) -> None:
    missing = tmp_path / "noexiste.xml"
    source = AppleHealthSource(AppleHealthPaths(root=missing))
    with pytest.raises(FileNotFoundError, match="noexiste"):
        source.validate()


def test_folder_without_export_raises(tmp_path: Path) -> None:
    source = AppleHealthSource(AppleHealthPaths(root=tmp_path))
    with pytest.raises(FileNotFoundError, match="export.xml"):
        source.export_file()


def test_malformed_xml_raises(tmp_path: Path) -> None:
    path = tmp_path / "export.xml"
    path.write_text("<HealthData><Record", encoding="utf-8")
    source = AppleHealthSource(AppleHealthPaths(root=path))
    with pytest.raises(ET.ParseError):
        source.load_observations()


def test_record_to_observation_units() -> None:
    base = {"startDate": "2026-01-01 08:00:00 +0100"}
    grams = _record_to_observation({**base, "unit": "g", "value": "80000"})
    assert grams is not None
    assert grams.weight_kg == pytest.approx(80.0)
    assert _record_to_observation({**base, "unit": "oz", "value": "1"}) is None
    assert _record_to_observation({**base, "unit": "kg"}) is None
    assert _record_to_observation({**base, "unit": "kg", "value": "x"}) is None


def test_parse_timestamp() -> None:
    ts = _parse_timestamp("2026-01-01 08:00:00 +0100")
    assert ts == datetime(2026, 1, 1, 7, 0, tzinfo=timezone.utc)
    assert _parse_timestamp("2026-01-01 08:00:00").tzinfo is not None
    with pytest.raises(ValueError):
        _parse_timestamp(None)


@pytest.mark.parametrize("raw", ["nan", "NaN", "inf", "-inf", "0", "-80.0"])
def test_record_to_observation_rejects_non_finite_or_non_positive(raw: str) -> None:
    attrs = {"startDate": "2026-01-01 08:00:00 +0100", "unit": "kg", "value": raw}
    assert _record_to_observation(attrs) is None


def test_record_to_observation_skips_overflowing_dates(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    def overflow(*_args: object, **_kwargs: object) -> datetime:
        raise OverflowError("date value out of range")

    monkeypatch.setattr(apple_health.date_parser, "parse", overflow)
    attrs = {"startDate": "99999999999-01-01", "unit": "kg", "value": "80.0"}
    assert _record_to_observation(attrs) is None


def test_nan_record_never_becomes_the_closest_match(tmp_path: Path) -> None:
    path = tmp_path / "export.xml"
    path.write_text(
        """<?xml version="1.0" encoding="UTF-8"?>
<HealthData>
 <Record type="HKQuantityTypeIdentifierBodyMass" unit="kg"
  startDate="2026-03-01 08:00:00 +0000" value="80.0"/>
 <Record type="HKQuantityTypeIdentifierBodyMass" unit="kg"
  startDate="2026-02-01 08:00:00 +0000" value="nan"/>
 <Record type="HKQuantityTypeIdentifierBodyMass" unit="kg"
  startDate="2026-01-20 08:00:00 +0000" value="80.1"/>
</HealthData>
""",
        encoding="utf-8",
    )
    source = AppleHealthSource(AppleHealthPaths(root=path), clock=fixed_clock(NOW))
    store = SampleStore()
    store.replace(source.fetch(15))
    assert len(store) == 2
    match = find_last_closest_weight(store, 14, now=NOW)
    assert match is not None
    assert match.weight_kg == 80.1
