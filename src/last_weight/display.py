"""Textos derivados del resultado: hace cuántos días, edad en ese momento, etc."""

from __future__ import annotations

from datetime import date, datetime

from dateutil.relativedelta import relativedelta

from last_weight.clock import ensure_aware
from last_weight.matching import Insight
from last_weight.model import DateDisplayMode
from last_weight.units import WeightUnit, format_weight

NO_MATCH_TEXT = "No past weight close to today's was found yet."
HEADLINE = "Weight déjà vu achieved"


def days_ago(moment: datetime, now: datetime) -> int:
    """Whole days elapsed between ``moment`` and ``now`` (never negative)."""
    delta = ensure_aware(now) - ensure_aware(moment)
    return max(delta.days, 0)


def age_at(date_of_birth: date, moment: datetime) -> tuple[int, int]:
    """Return (years, months) of age at ``moment``."""
    diff = relativedelta(moment.date(), date_of_birth)
    return diff.years, diff.months


def format_date(moment: datetime) -> str:
    """Medium date style, e.g. ``Mar 28, 2025``."""
    return f"{moment:%b} {moment.day}, {moment.year}"


def format_date_with_days_ago(moment: datetime, now: datetime) -> str:
    return f"{format_date(moment)} ({days_ago(moment, now)} days ago)"


def display_string(
    moment: datetime,
    mode: DateDisplayMode,
    *,
    now: datetime,
    date_of_birth: date | None = None,
) -> str:
    """Render the match date as days ago or as the age at that time.

    Age mode needs a date of birth; without one it falls back to days ago.
    """
    if mode is DateDisplayMode.AGE_AT_TIME and date_of_birth is not None:
        years, months = age_at(date_of_birth, moment)
        return f"Age: {years}y {months}m"
    return f"{days_ago(moment, now)} days ago"


def insight_lines(
    insight: Insight | None,
    *,
    unit: WeightUnit,
    mode: DateDisplayMode,
    now: datetime,
    date_of_birth: date | None = None,
) -> list[str]:
    """Build the text lines of the result screen."""
    if insight is None:
        return [NO_MATCH_TEXT]

    when = display_string(
        insight.match.timestamp, mode, now=now, date_of_birth=date_of_birth
    )
    lines = [
        HEADLINE,
        f"{when}: {format_weight(insight.match.weight_kg, unit)} "
        f"(today {format_weight(insight.current.weight_kg, unit)})",
    ]
    if insight.show_difference:
        gap = format_weight(abs(insight.difference_kg), unit)
        lines.append(f"You're {gap} away from matching that weight.")
    milestone = insight.milestone
    gap_kg = insight.milestone_gap_kg
    if milestone is not None and gap_kg is not None:
        lines.append(
            f"Lose {format_weight(gap_kg, unit)} to match your weight from "
            f"{format_date_with_days_ago(milestone.timestamp, now)}"
        )
    return lines
