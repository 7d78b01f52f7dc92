"""Pedido único de datos: devuelve una instantánea completa o el error."""

from __future__ import annotations

import asyncio
import logging
import xml.etree.ElementTree as ET
from dataclasses import dataclass

from last_weight.clock import Clock, system_clock
from last_weight.sample_store import WeightSnapshot
from last_weight.sources.base import DEFAULT_WINDOW_YEARS, WeightSource

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FetchOutcome:
    """Result of one fetch cycle.

    On failure ``snapshot`` is empty and ``error`` holds the exception.
    """

    snapshot: WeightSnapshot
    error: Exception | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


def fetch_snapshot(
    source: WeightSource,
    window_years: int = DEFAULT_WINDOW_YEARS,
    *,
    clock: Clock = system_clock,
) -> FetchOutcome:
    """Fetch samples and wrap them in an immutable snapshot.

    Source errors (missing files, unreadable exports) are reported through
    the outcome instead of being raised; the caller treats them as "no data
    this cycle".
    """
    try:
        samples = source.fetch(window_years)
    except (OSError, ValueError, ET.ParseError) as exc:
        logger.warning("Weight fetch failed: %s", exc)
        return FetchOutcome(snapshot=WeightSnapshot(), error=exc)

    snapshot = WeightSnapshot.from_samples(samples, fetched_at=clock())
    logger.info("Fetched %d weight samples", len(snapshot))
    latest = snapshot.latest()
    if latest is not None:
        logger.debug("Most recent: %.1f kg on %s", latest.weight_kg, latest.timestamp)
    return FetchOutcome(snapshot=snapshot)


async def fetch_snapshot_async(
    source: WeightSource,
    window_years: int = DEFAULT_WINDOW_YEARS,
    *,
    clock: Clock = system_clock,
) -> FetchOutcome:
    """Run :func:`fetch_snapshot` in a worker thread."""
    return await asyncio.to_thread(fetch_snapshot, source, window_years, clock=clock)
