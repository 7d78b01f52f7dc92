"""Exportación del historial de peso a Excel."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any

import pandas as pd
from openpyxl.styles import Alignment, Border, Font, Side

from last_weight.clock import LOCAL_TZ, ensure_aware
from last_weight.sample_store import WeightSnapshot
from last_weight.units import WeightUnit

_DAY_NAMES: tuple[str, ...] = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")

_DATE_HEADER = "Date / Time"
_DAY_HEADER = "Day"


@dataclass(frozen=True)
class ExcelLayout:
    """Layout/formatting configuration for the history sheet."""

    sheet_name: str = "Weight history"


def _weight_header(unit: WeightUnit) -> str:
    return f"Weight ({unit.value})"


def history_frame(snapshot: WeightSnapshot, unit: WeightUnit) -> pd.DataFrame:
    """Build the export table: day name, naive local datetime, weight in ``unit``."""
    header = _weight_header(unit)
    rows = []
    for obs in snapshot.all():
        local = ensure_aware(obs.timestamp).astimezone(LOCAL_TZ).replace(tzinfo=None)
        rows.append(
            {
                _DAY_HEADER: _DAY_NAMES[local.weekday()],
                _DATE_HEADER: local,
                header: round(unit.convert(obs.weight_kg), 1),
            }
        )
    return pd.DataFrame(rows, columns=[_DAY_HEADER, _DATE_HEADER, header])


def write_history_xlsx(
    snapshot: WeightSnapshot,
    out_path: Path,
    layout: ExcelLayout,
    unit: WeightUnit = WeightUnit.KG,
) -> None:
    """Write a formatted Excel file with every observation, newest first.

    Args:
        snapshot: Observations to export.
        out_path: Output path for the XLSX file.
        layout: Excel layout parameters.
        unit: Display unit for the weight column.
    """
    out_path.parent.mkdir(parents=True, exist_ok=True)
    export_df = history_frame(snapshot, unit)

    with pd.ExcelWriter(out_path, engine="openpyxl") as writer:
        export_df.to_excel(writer, index=False, sheet_name=layout.sheet_name)
        ws = writer.book[layout.sheet_name]
        _format_sheet(ws, unit)


def _style_header_row(ws: Any) -> None:
    """Aplica fuente negrita, alineación y borde a la fila de cabecera."""
    thin = Side(style="thin")
    border = Border(left=thin, right=thin, top=thin, bottom=thin)
    center = Alignment(horizontal="center", vertical="center", wrap_text=True)
    for cell in ws[1]:
        cell.font = Font(bold=True)
        cell.alignment = center
        cell.border = border


def _style_body_rows(ws: Any) -> None:
    thin = Side(style="thin")
    border = Border(left=thin, right=thin, top=thin, bottom=thin)
    center = Alignment(horizontal="center", vertical="center")
    for row in ws.iter_rows(min_row=2):
        for cell in row:
            cell.alignment = center
            cell.border = border


def _format_sheet(ws: Any, unit: WeightUnit) -> None:
    """Apply borders, widths and number formats to a worksheet."""
    _style_header_row(ws)
    _style_body_rows(ws)
    headers = {str(cell.value): idx + 1 for idx, cell in enumerate(ws[1])}
    widths = [(_DAY_HEADER, 6), (_DATE_HEADER, 18), (_weight_header(unit), 14)]
    formats = {_DATE_HEADER: "dd/mm/yyyy hh:mm", _weight_header(unit): "0.0"}
    for header, width in widths:
        idx = headers.get(header)
        if idx is not None:
            letter = ws.cell(row=1, column=idx).column_letter
            ws.column_dimensions[letter].width = width
    for row in ws.iter_rows(min_row=2):
        for header, fmt in formats.items():
            idx = headers.get(header)
            if idx is not None:
                row[idx - 1].number_format = fmt
