from __future__ import annotations

import os
from datetime import datetime, timezone
from pathlib import Path

import pytest

from last_weight.photos import PhotoLibrary, _date_from_filename


def _touch(path: Path) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(b"\x89PNG")
    return path


def test_date_from_filename_valid_and_invalid() -> None:
    parsed = _date_from_filename(Path("2025-03-27_selfie.jpg"))
    assert parsed is not None
    assert parsed.date().isoformat() == "2025-03-27"
    assert _date_from_filename(Path("2025-13-99.jpg")) is None
    assert _date_from_filename(Path("selfie.jpg")) is None


def test_find_nearest_image(tmp_path: Path) -> None:
    near = _touch(tmp_path / "2025-03-27_selfie.jpg")
    _touch(tmp_path / "2025-04-10.png")
    _touch(tmp_path / "2025-03-28.txt")
    library = PhotoLibrary(tmp_path)
    target = datetime(2025, 3, 28, 9, 0)
    assert library.find_nearest_image(target, tolerance_days=3) == near
    assert library.find_nearest_image(target, tolerance_days=0) is None


def test_find_nearest_image_searches_subfolders(tmp_path: Path) -> None:
    nested = _touch(tmp_path / "2025" / "2025-04-09.HEIC")
    library = PhotoLibrary(tmp_path)
    assert library.find_nearest_image(datetime(2025, 4, 10), 2) == nested


def test_mtime_fallback(tmp_path: Path) -> None:
    photo = _touch(tmp_path / "IMG_0001.jpg")
    taken = datetime(2024, 6, 1, 10, 0, tzinfo=timezone.utc).timestamp()
    os.utime(photo, (taken, taken))
    library = PhotoLibrary(tmp_path)
    target = datetime(2024, 6, 2, 10, 0, tzinfo=timezone.utc)
    assert library.find_nearest_image(target, 1) == photo


def test_missing_folder_and_bad_tolerance(tmp_path: Path) -> None:
    library = PhotoLibrary(tmp_path / "missing")
    assert library.photos() == []
    assert library.find_nearest_image(datetime(2025, 1, 1)) is None
    with pytest.raises(ValueError):
        library.find_nearest_image(datetime(2025, 1, 1), -1)
