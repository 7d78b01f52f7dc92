"""Búsqueda de la foto más cercana a una fecha en una carpeta de imágenes."""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime, timedelta
from pathlib import Path

from dateutil import parser as date_parser

from last_weight.clock import LOCAL_TZ, ensure_aware

IMAGE_SUFFIXES = (".jpg", ".jpeg", ".png", ".heic")
DEFAULT_TOLERANCE_DAYS = 3


@dataclass(frozen=True)
class Photo:
    """An image file and the moment it was taken."""

    path: Path
    taken_at: datetime


class PhotoLibrary:
    """Folder of selfies, searched by capture date."""

    def __init__(self, root: Path) -> None:
        self._root = root

    def photos(self) -> list[Photo]:
        """Return every image under the root, sorted by path.

        A missing folder yields an empty list.
        """
        if not self._root.is_dir():
            return []
        files = sorted(
            p
            for p in self._root.rglob("*")
            if p.is_file() and p.suffix.lower() in IMAGE_SUFFIXES
        )
        return [Photo(path=p, taken_at=_taken_at(p)) for p in files]

    def find_nearest_image(
        self, target: datetime, tolerance_days: int = DEFAULT_TOLERANCE_DAYS
    ) -> Path | None:
        """Return the image closest in time to ``target``.

        Only images within ``tolerance_days`` of the target are considered.

        Raises:
            ValueError: If ``tolerance_days`` is negative.
        """
        if tolerance_days < 0:
            raise ValueError(f"tolerance_days must be >= 0, got {tolerance_days}")
        moment = ensure_aware(target)
        tolerance = timedelta(days=tolerance_days)
        best: Photo | None = None
        best_gap: timedelta | None = None
        for photo in self.photos():
            gap = abs(photo.taken_at - moment)
            if gap > tolerance:
                continue
            if best_gap is None or gap < best_gap:
                best, best_gap = photo, gap
        return best.path if best is not None else None


def _taken_at(path: Path) -> datetime:
    """Date from a ``YYYY-MM-DD`` filename prefix, else the file mtime."""
    from_name = _date_from_filename(path)
    if from_name is not None:
        return from_name
    return datetime.fromtimestamp(path.stat().st_mtime, tz=LOCAL_TZ)


def _date_from_filename(path: Path) -> datetime | None:
    match = re.match(r"(\d{4}-\d{2}-\d{2})", path.stem)
    if not match:
        return None
    try:
        parsed = date_parser.isoparse(match.group(1))
    except ValueError:
        return None
    return ensure_aware(parsed)
