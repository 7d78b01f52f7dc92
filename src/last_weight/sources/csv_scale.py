"""Lectura de pesos desde CSV de balanzas o Google Fit."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass

import pandas as pd

from last_weight.clock import LOCAL_TZ
from last_weight.model import Observation
from last_weight.sources.base import SourcePaths, WeightSource
from last_weight.units import WeightUnit

logger = logging.getLogger(__name__)

_DATETIME_PATTERNS = [
    r"^date\s*time$",
    r"\btimestamp\b",
    r"\bfecha\b",
    r"\bdate\b",
    r"\btime\b",
]
_KG_PATTERNS = [r"\bweight\s*\(kg\)", r"\bpeso\b", r"\bkg\b", r"\bweight_kg\b"]
_LB_PATTERNS = [r"\bweight\s*\(lbs?\)", r"\blbs?\b", r"\bweight_lbs?\b"]
_GENERIC_PATTERNS = [r"\bweight\b"]


@dataclass(frozen=True)
class CsvWeightPaths(SourcePaths):
    """Path to a CSV file with one weight per row."""

    unit: WeightUnit = WeightUnit.KG


class CsvWeightSource(WeightSource):
    """CSV weight export reader."""

    def load_observations(self) -> list[Observation]:
        """Load weights from the CSV.

        Columns are detected by name; weights in a pounds column are
        converted to kilograms. A bare ``weight`` column uses the unit from
        the paths configuration.

        Raises:
            ValueError: If no date or weight column can be found.
        """
        df = pd.read_csv(self._paths.root)
        df = df.rename(columns={c: str(c).strip() for c in df.columns})
        return frame_observations(df, self._default_unit())

    def _default_unit(self) -> WeightUnit:
        paths = self._paths
        if isinstance(paths, CsvWeightPaths):
            return paths.unit
        return WeightUnit.KG


def frame_observations(
    df: pd.DataFrame, default_unit: WeightUnit
) -> list[Observation]:
    """Extract observations from a raw CSV frame."""
    cols = list(df.columns)
    date_col = _find_col(cols, _DATETIME_PATTERNS)
    if date_col is None:
        raise ValueError(f"No date column in {cols}")

    unit = WeightUnit.KG
    weight_col = _find_col(cols, _KG_PATTERNS)
    if weight_col is None:
        weight_col = _find_col(cols, _LB_PATTERNS)
        unit = WeightUnit.LB
    if weight_col is None:
        weight_col = _find_col(cols, _GENERIC_PATTERNS)
        unit = default_unit
    if weight_col is None:
        raise ValueError(f"No weight column in {cols}")

    # Per value: exports can mix UTC offsets across rows.
    timestamps = df[date_col].map(lambda v: pd.to_datetime(v, errors="coerce"))
    weights = pd.to_numeric(df[weight_col], errors="coerce")

    out: list[Observation] = []
    for ts, weight in zip(timestamps, weights):
        if pd.isna(ts) or pd.isna(weight):
            continue
        moment = ts.to_pydatetime()
        if moment.tzinfo is None:
            moment = moment.replace(tzinfo=LOCAL_TZ)
        out.append(Observation(timestamp=moment, weight_kg=unit.to_kg(float(weight))))

    dropped = len(df) - len(out)
    if dropped:
        logger.info("Dropped %d CSV rows without a date or weight", dropped)
    return out


def _find_col(columns: list[str], patterns: list[str]) -> str | None:
    for pat in patterns:
        rx = re.compile(pat, re.IGNORECASE)
        for c in columns:
            if rx.search(c):
                return c
    return None
