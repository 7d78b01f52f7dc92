"""Modelos tipados para observaciones de peso."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


@dataclass(frozen=True)
class Observation:
    """One body-weight measurement, always in kilograms."""

    timestamp: datetime
    weight_kg: float


MatchResult = Observation | None
MilestoneResult = Observation | None


class DateDisplayMode(Enum):
    """How the date of a match is shown."""

    DAYS_AGO = "days"
    AGE_AT_TIME = "age"

    def toggled(self) -> DateDisplayMode:
        if self is DateDisplayMode.DAYS_AGO:
            return DateDisplayMode.AGE_AT_TIME
        return DateDisplayMode.DAYS_AGO
