"""Clases base para fuentes de datos de peso."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

from dateutil.relativedelta import relativedelta

from last_weight.clock import Clock, ensure_aware, system_clock
from last_weight.model import Observation

DEFAULT_WINDOW_YEARS = 15


@dataclass(frozen=True)
class SourcePaths:
    """Container for source locations."""

    root: Path


class WeightSource(ABC):
    """Abstract provider of historical weight samples."""

    def __init__(self, paths: SourcePaths, *, clock: Clock = system_clock) -> None:
        """Create a weight source.

        Args:
            paths: Source paths configuration.
            clock: Time source used to compute the fetch window.
        """
        self._paths = paths
        self._clock = clock

    def validate(self) -> None:
        """Validate that the source file exists.

        Raises:
            FileNotFoundError: If the file is missing.
        """
        if not self._paths.root.exists():
            raise FileNotFoundError(str(self._paths.root))

    def fetch(self, window_years: int = DEFAULT_WINDOW_YEARS) -> list[Observation]:
        """Return observations from the last ``window_years`` years.

        Samples are not guaranteed to be sorted.

        Raises:
            ValueError: If ``window_years`` is not positive.
        """
        if window_years <= 0:
            raise ValueError(f"window_years must be > 0, got {window_years}")
        self.validate()
        end = ensure_aware(self._clock())
        start = end - relativedelta(years=window_years)
        return [
            o
            for o in self.load_observations()
            if within_window(o.timestamp, start, end)
        ]

    @abstractmethod
    def load_observations(self) -> list[Observation]:
        """Parse every weight sample available in the source."""


def within_window(moment: datetime, start: datetime, end: datetime) -> bool:
    return start <= ensure_aware(moment) <= end
