"""Conversión de unidades de peso (solo presentación)."""

from __future__ import annotations

from enum import Enum

KG_TO_LB = 2.20462


class WeightUnit(Enum):
    """Display unit for weights."""

    KG = "kg"
    LB = "lb"

    @property
    def conversion_factor(self) -> float:
        if self is WeightUnit.LB:
            return KG_TO_LB
        return 1.0

    def convert(self, weight_kg: float) -> float:
        """Convert a weight in kilograms to this unit."""
        return weight_kg * self.conversion_factor

    def to_kg(self, value: float) -> float:
        """Convert a value expressed in this unit back to kilograms."""
        return value / self.conversion_factor

    def toggled(self) -> WeightUnit:
        return WeightUnit.LB if self is WeightUnit.KG else WeightUnit.KG

    @classmethod
    def parse(cls, raw: str) -> WeightUnit:
        """Parse ``kg``/``lb`` (also ``lbs``/``pound``), case-insensitive.

        Raises:
            ValueError: If the unit is unknown.
        """
        text = raw.strip().lower()
        if text in ("kg", "kgs", "kilogram", "kilograms"):
            return cls.KG
        if text in ("lb", "lbs", "pound", "pounds"):
            return cls.LB
        raise ValueError(f"Unknown weight unit: {raw!r}")


def convert(weight_kg: float, unit: WeightUnit) -> float:
    """Convert kilograms to ``unit``."""
    return unit.convert(weight_kg)


def format_weight(weight_kg: float, unit: WeightUnit) -> str:
    """Format a weight with one decimal and its unit label."""
    return f"{unit.convert(weight_kg):.1f} {unit.value}"
