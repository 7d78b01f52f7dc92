"""Estado de la sesión: última instantánea, resultado y error del último pedido."""

from __future__ import annotations

import logging
from dataclasses import replace

import pandas as pd

from last_weight.clock import Clock, system_clock
from last_weight.matching import Insight, MatchConfig, build_insight
from last_weight.sample_store import (
    SampleStore,
    WeightSnapshot,
    observations_to_frame,
)
from last_weight.sources.base import DEFAULT_WINDOW_YEARS, WeightSource
from last_weight.sources.fetch import (
    FetchOutcome,
    fetch_snapshot,
    fetch_snapshot_async,
)
from last_weight.storage import AppSettings, SQLiteStore

logger = logging.getLogger(__name__)


class WeightSession:
    """View-model tying a source, the sample store and the matcher together."""

    def __init__(
        self,
        source: WeightSource,
        settings: AppSettings,
        *,
        clock: Clock = system_clock,
        cache: SQLiteStore | None = None,
        window_years: int = DEFAULT_WINDOW_YEARS,
    ) -> None:
        self._source = source
        self._settings = settings
        self._clock = clock
        self._cache = cache
        self._window_years = window_years
        self._store = SampleStore()
        self._insight: Insight | None = None
        self._last_error: Exception | None = None

    @property
    def settings(self) -> AppSettings:
        return self._settings

    @property
    def snapshot(self) -> WeightSnapshot:
        return self._store.snapshot()

    @property
    def insight(self) -> Insight | None:
        return self._insight

    @property
    def last_error(self) -> Exception | None:
        return self._last_error

    def match_config(self) -> MatchConfig:
        return MatchConfig(cutoff_days=self._settings.cutoff_days)

    def refresh(self) -> FetchOutcome:
        """Fetch from the source and recompute the insight.

        A failed fetch keeps the previous snapshot. When a cache is
        configured, successful fetches are saved to it and a failed fetch
        with an empty session falls back to the cached samples.
        """
        outcome = fetch_snapshot(self._source, self._window_years, clock=self._clock)
        self._apply_outcome(outcome)
        return outcome

    async def refresh_async(self) -> FetchOutcome:
        """Same as :meth:`refresh`, with the source read in a worker thread."""
        outcome = await fetch_snapshot_async(
            self._source, self._window_years, clock=self._clock
        )
        self._apply_outcome(outcome)
        return outcome

    def _apply_outcome(self, outcome: FetchOutcome) -> None:
        self._last_error = outcome.error
        if outcome.ok:
            self.apply_snapshot(outcome.snapshot)
            if self._cache is not None:
                self._cache.save_samples(outcome.snapshot)
        elif self._cache is not None and len(self._store) == 0:
            cached = self._cache.load_samples()
            logger.info("Using %d cached weight samples", len(cached))
            self.apply_snapshot(cached)

    def apply_snapshot(self, snapshot: WeightSnapshot) -> None:
        """Swap in ``snapshot`` and recompute the insight from scratch."""
        self._store.replace(snapshot.all(), fetched_at=snapshot.fetched_at)
        self._recompute()

    def update_settings(self, settings: AppSettings) -> None:
        """Apply new settings; the match is recomputed when the cutoff changes."""
        cutoff_changed = settings.cutoff_days != self._settings.cutoff_days
        self._settings = settings
        if cutoff_changed:
            self._recompute()

    def toggle_unit(self) -> AppSettings:
        settings = replace(
            self._settings, weight_unit=self._settings.weight_unit.toggled()
        )
        self.update_settings(settings)
        return settings

    def toggle_display_mode(self) -> AppSettings:
        settings = replace(
            self._settings, display_mode=self._settings.display_mode.toggled()
        )
        self.update_settings(settings)
        return settings

    def history(self) -> pd.DataFrame:
        """Snapshot as a frame with an extra ``weight`` column in the display unit."""
        df = observations_to_frame(self.snapshot.all())
        unit = self._settings.weight_unit
        df["weight"] = df["weight_kg"].map(lambda w: round(unit.convert(w), 1))
        df["unit"] = unit.value
        return df

    def _recompute(self) -> None:
        self._insight = build_insight(
            self._store, self.match_config(), clock=self._clock
        )
