from __future__ import annotations

from datetime import datetime, timezone

from last_weight.clock import LOCAL_TZ, ensure_aware, fixed_clock, system_clock


def test_fixed_clock_is_frozen_and_aware() -> None:
    clock = fixed_clock(datetime(2026, 3, 1, 12, 0))
    assert clock() == clock()
    assert clock().tzinfo is LOCAL_TZ


def test_ensure_aware_keeps_existing_zone() -> None:
    moment = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)
    assert ensure_aware(moment) is moment


def test_system_clock_is_aware() -> None:
    assert system_clock().tzinfo is not None
