"""Búsqueda de la última vez que pesaste lo mismo que hoy, y del siguiente hito."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Protocol

from last_weight.clock import Clock, ensure_aware, system_clock
from last_weight.model import MatchResult, MilestoneResult, Observation

DEFAULT_CUTOFF_DAYS = 14
DEFAULT_MILESTONE_EPSILON_KG = 0.1
DEFAULT_DIFFERENCE_THRESHOLD_KG = 0.1


class ObservationSource(Protocol):
    """Anything exposing newest-first observations (store or snapshot)."""

    def latest(self) -> Observation | None: ...

    def all(self) -> tuple[Observation, ...]: ...


@dataclass(frozen=True)
class MatchConfig:
    """Thresholds shared by every caller of the matcher."""

    cutoff_days: int = DEFAULT_CUTOFF_DAYS
    milestone_epsilon_kg: float = DEFAULT_MILESTONE_EPSILON_KG
    difference_threshold_kg: float = DEFAULT_DIFFERENCE_THRESHOLD_KG

    def __post_init__(self) -> None:
        _check_cutoff(self.cutoff_days)
        _check_epsilon(self.milestone_epsilon_kg)
        if self.difference_threshold_kg < 0:
            raise ValueError(
                "difference_threshold_kg must be >= 0, "
                f"got {self.difference_threshold_kg}"
            )


@dataclass(frozen=True)
class Insight:
    """Everything the result screen shows for one snapshot."""

    current: Observation
    match: Observation
    milestone: MilestoneResult
    show_difference: bool

    @property
    def difference_kg(self) -> float:
        """Current weight minus the matched weight."""
        return self.current.weight_kg - self.match.weight_kg

    @property
    def milestone_gap_kg(self) -> float | None:
        """Kilograms to lose to reach the milestone."""
        if self.milestone is None:
            return None
        return self.current.weight_kg - self.milestone.weight_kg


def _check_cutoff(cutoff_days: int) -> None:
    if cutoff_days < 0:
        raise ValueError(f"cutoff_days must be >= 0, got {cutoff_days}")


def _check_epsilon(epsilon_kg: float) -> None:
    if epsilon_kg < 0:
        raise ValueError(f"epsilon_kg must be >= 0, got {epsilon_kg}")


def find_last_closest_weight(
    store: ObservationSource,
    cutoff_days: int = DEFAULT_CUTOFF_DAYS,
    *,
    now: datetime | None = None,
    clock: Clock = system_clock,
) -> MatchResult:
    """Find the past observation closest in weight to the latest one.

    Observations from the last ``cutoff_days`` days are ignored so recent
    entries do not trivially match the current weight. Among equally close
    candidates the most recent wins.

    Args:
        store: Newest-first observations.
        cutoff_days: Size of the recency exclusion window in days.
        now: Reference time; defaults to ``clock()``.
        clock: Time source used when ``now`` is not given.

    Returns:
        The matching observation, or None if there is no past data.

    Raises:
        ValueError: If ``cutoff_days`` is negative.
    """
    _check_cutoff(cutoff_days)
    latest = store.latest()
    if latest is None:
        return None

    reference_time = ensure_aware(now) if now is not None else ensure_aware(clock())
    cutoff = reference_time - timedelta(days=cutoff_days)
    candidates = [o for o in store.all() if ensure_aware(o.timestamp) < cutoff]
    if not candidates:
        return None

    target = latest.weight_kg
    return min(
        candidates,
        key=lambda o: (
            abs(o.weight_kg - target),
            -ensure_aware(o.timestamp).timestamp(),
        ),
    )


def find_next_lower_milestone(
    store: ObservationSource,
    reference: Observation,
    *,
    epsilon_kg: float = DEFAULT_MILESTONE_EPSILON_KG,
) -> MilestoneResult:
    """Find the most recent earlier observation with a lower weight.

    "Lower" means below ``reference.weight_kg - epsilon_kg``. The most recent
    qualifying observation is returned, not the lightest one.

    Raises:
        ValueError: If ``epsilon_kg`` is negative.
    """
    _check_epsilon(epsilon_kg)
    ref_time = ensure_aware(reference.timestamp)
    threshold = reference.weight_kg - epsilon_kg
    candidates = [
        o
        for o in store.all()
        if ensure_aware(o.timestamp) < ref_time and o.weight_kg < threshold
    ]
    if not candidates:
        return None
    return max(candidates, key=lambda o: ensure_aware(o.timestamp))


def build_insight(
    store: ObservationSource,
    config: MatchConfig | None = None,
    *,
    now: datetime | None = None,
    clock: Clock = system_clock,
) -> Insight | None:
    """Compute the match and the milestone that follows it.

    The milestone is searched before the match date, relative to the
    current weight.
    """
    config = config or MatchConfig()
    current = store.latest()
    match = find_last_closest_weight(
        store, config.cutoff_days, now=now, clock=clock
    )
    if current is None or match is None:
        return None

    reference = Observation(timestamp=match.timestamp, weight_kg=current.weight_kg)
    milestone = find_next_lower_milestone(
        store, reference, epsilon_kg=config.milestone_epsilon_kg
    )
    gap = abs(current.weight_kg - match.weight_kg)
    return Insight(
        current=current,
        match=match,
        milestone=milestone,
        show_difference=gap > config.difference_threshold_kg,
    )
