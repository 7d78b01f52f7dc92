"""Reloj inyectable para que los cálculos dependan de un "ahora" explícito."""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime

from dateutil import tz

LOCAL_TZ = tz.tzlocal()

Clock = Callable[[], datetime]


def system_clock() -> datetime:
    """Return the current local time (timezone-aware)."""
    return datetime.now(tz=LOCAL_TZ)


def fixed_clock(moment: datetime) -> Clock:
    """Build a clock that always returns ``moment``."""
    frozen = ensure_aware(moment)

    def _now() -> datetime:
        return frozen

    return _now


def ensure_aware(moment: datetime) -> datetime:
    """Attach the local timezone to naive datetimes."""
    if moment.tzinfo is None:
        return moment.replace(tzinfo=LOCAL_TZ)
    return moment
