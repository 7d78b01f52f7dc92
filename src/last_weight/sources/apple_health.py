"""Lectura de pesos desde una exportación de Apple Health (export.xml)."""

from __future__ import annotations

import logging
import math
import xml.etree.ElementTree as ET
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

from dateutil import parser as date_parser

from last_weight.clock import ensure_aware
from last_weight.model import Observation
from last_weight.sources.base import SourcePaths, WeightSource
from last_weight.units import KG_TO_LB

logger = logging.getLogger(__name__)

BODY_MASS_TYPE = "HKQuantityTypeIdentifierBodyMass"

_KG_PER_UNIT: dict[str, float] = {
    "kg": 1.0,
    "g": 0.001,
    "lb": 1 / KG_TO_LB,
    "st": 6.35029318,
}


@dataclass(frozen=True)
class AppleHealthPaths(SourcePaths):
    """Path to an Apple Health export."""

    # root: .../apple_health_export/export.xml (or its folder)


class AppleHealthSource(WeightSource):
    """Apple Health export reader (body mass records)."""

    def export_file(self) -> Path:
        """Return the export.xml path, accepting the export folder as root."""
        root = self._paths.root
        if root.is_dir():
            candidate = root / "export.xml"
            if not candidate.exists():
                raise FileNotFoundError(str(candidate))
            return candidate
        return root

    def load_observations(self) -> list[Observation]:
        """Stream body mass records out of export.xml.

        Raises:
            ET.ParseError: If the XML is malformed.
        """
        path = self.export_file()
        out: list[Observation] = []
        skipped = 0
        for _event, elem in ET.iterparse(path, events=("end",)):
            if elem.tag != "Record":
                continue
            if elem.get("type") == BODY_MASS_TYPE:
                obs = _record_to_observation(elem.attrib)
                if obs is None:
                    skipped += 1
                else:
                    out.append(obs)
            elem.clear()
        if skipped:
            logger.warning(
                "Skipped %d unreadable body mass records in %s", skipped, path
            )
        logger.debug("Loaded %d body mass records from %s", len(out), path)
        return out


def _record_to_observation(attrs: dict[str, str]) -> Observation | None:
    """Convierte atributos de un Record en Observation; None si falta algo."""
    factor = _KG_PER_UNIT.get(attrs.get("unit", "kg").strip().lower())
    raw_value = attrs.get("value")
    if factor is None or raw_value is None:
        return None
    try:
        value = float(raw_value)
        raw_ts = attrs.get("startDate") or attrs.get("creationDate")
        timestamp = _parse_timestamp(raw_ts)
    except (ValueError, OverflowError):
        return None
    if not math.isfinite(value) or value <= 0:
        return None
    return Observation(timestamp=timestamp, weight_kg=value * factor)


def _parse_timestamp(raw: str | None) -> datetime:
    """Parse ``2024-03-28 07:45:12 +0100`` style timestamps."""
    if raw is None or not raw.strip():
        raise ValueError("Missing startDate")
    return ensure_aware(date_parser.parse(raw))
