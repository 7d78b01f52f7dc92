"""Colección ordenada (más reciente primero) de observaciones de peso."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime

import pandas as pd

from last_weight.clock import ensure_aware
from last_weight.model import Observation

FRAME_COLUMNS = ["datetime", "date", "weight_kg"]


def _sort_descending(samples: Iterable[Observation]) -> tuple[Observation, ...]:
    # sorted() is stable: duplicates keep their delivery order.
    return tuple(
        sorted(samples, key=lambda o: ensure_aware(o.timestamp), reverse=True)
    )


@dataclass(frozen=True)
class WeightSnapshot:
    """Immutable view of the observations fetched in one cycle."""

    observations: tuple[Observation, ...] = ()
    fetched_at: datetime | None = None

    @classmethod
    def from_samples(
        cls, samples: Iterable[Observation], fetched_at: datetime | None = None
    ) -> WeightSnapshot:
        """Build a snapshot, sorting ``samples`` newest first."""
        return cls(observations=_sort_descending(samples), fetched_at=fetched_at)

    def latest(self) -> Observation | None:
        return self.observations[0] if self.observations else None

    def all(self) -> tuple[Observation, ...]:
        return self.observations

    def __len__(self) -> int:
        return len(self.observations)


@dataclass
class SampleStore:
    """Holder of the current snapshot; replaced wholesale on every fetch."""

    _snapshot: WeightSnapshot = field(default_factory=WeightSnapshot)

    def replace(
        self, samples: Iterable[Observation], fetched_at: datetime | None = None
    ) -> WeightSnapshot:
        """Store ``samples`` sorted newest first and return the new snapshot.

        The swap is a single attribute rebind, so a reader holding the
        previous snapshot keeps a complete, consistent view.
        """
        snapshot = WeightSnapshot.from_samples(samples, fetched_at=fetched_at)
        self._snapshot = snapshot
        return snapshot

    def latest(self) -> Observation | None:
        """Return the most recent observation, or None if empty."""
        return self._snapshot.latest()

    def all(self) -> tuple[Observation, ...]:
        """Return every observation, newest first."""
        return self._snapshot.all()

    def snapshot(self) -> WeightSnapshot:
        return self._snapshot

    def __len__(self) -> int:
        return len(self._snapshot)


def observations_to_frame(observations: Iterable[Observation]) -> pd.DataFrame:
    """Convert observations to a DataFrame ordered newest first.

    Returns DataFrame columns:
        datetime, date, weight_kg
    """
    rows = [
        {
            "datetime": o.timestamp,
            "date": o.timestamp.date(),
            "weight_kg": o.weight_kg,
        }
        for o in _sort_descending(observations)
    ]
    if not rows:
        return pd.DataFrame(columns=FRAME_COLUMNS)
    return pd.DataFrame(rows, columns=FRAME_COLUMNS)


def frame_to_observations(df: pd.DataFrame) -> list[Observation]:
    """Convert a ``datetime``/``weight_kg`` frame back into observations.

    Rows with a missing timestamp or weight are skipped.
    """
    if df.empty:
        return []
    timestamps = pd.to_datetime(df["datetime"], errors="coerce", utc=True)
    weights = pd.to_numeric(df["weight_kg"], errors="coerce")
    out: list[Observation] = []
    for ts, weight in zip(timestamps, weights):
        if pd.isna(ts) or pd.isna(weight):
            continue
        out.append(Observation(timestamp=ts.to_pydatetime(), weight_kg=float(weight)))
    return out
