"""Generacion de Excel formateado con la semana de pasos."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any

import pandas as pd
from openpyxl.styles import Alignment, Border, Font, Side

_DIA_SEMANA: tuple[str, ...] = ("lun", "mar", "mie", "jue", "vie", "sab", "dom")

_HEADER_MAP: dict[str, str] = {
    "weekday": "Día",
    "date": "Fecha",
    "steps": "Pasos",
    "distance_km": "Distancia (km)",
    "calories_kcal": "Calorías\n(kcal)",
}


@dataclass(frozen=True)
class ExcelLayout:
    """Layout/formatting configuration for the weekly sheet."""

    sheet_name: str = "Semana"


def _weekday_label(i: object) -> str:
    """Convierte índice 0-6 (lunes-domingo) a etiqueta de 3 letras."""
    try:
        if i is None or (isinstance(i, float) and pd.isna(i)):
            return ""
        if isinstance(i, int | float):
            idx = int(i)
            return _DIA_SEMANA[idx] if 0 <= idx < 7 else ""
        return ""
    except (ValueError, TypeError):
        return ""


def _prepare_week(week_df: pd.DataFrame) -> pd.DataFrame:
    """Añade Día, deja la fecha sin hora y quita la etiqueta de pantalla."""
    export_df = week_df.copy()
    if "label" in export_df.columns:
        export_df = export_df.drop(columns=["label"])
    if "date" not in export_df.columns:
        return export_df
    dates = pd.to_datetime(export_df["date"], errors="coerce")
    export_df["date"] = dates.dt.date
    export_df["weekday"] = dates.dt.weekday.map(_weekday_label)
    cols = ["weekday"] + [c for c in export_df.columns if c != "weekday"]
    return export_df[cols]


def write_week_xlsx(week_df: pd.DataFrame, out_path: Path, layout: ExcelLayout) -> None:
    """Write the 7-day view as a formatted Excel file.

    Args:
        week_df: Frame from :func:`pasos_tool.report.week_frame`.
        out_path: Output path for the XLSX file.
        layout: Excel layout parameters.
    """
    out_path.parent.mkdir(parents=True, exist_ok=True)

    export_df = _prepare_week(week_df).rename(columns=_HEADER_MAP)

    with pd.ExcelWriter(out_path, engine="openpyxl") as writer:
        export_df.to_excel(writer, index=False, sheet_name=layout.sheet_name)
        ws = writer.book[layout.sheet_name]
        _format_sheet(ws)


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
    """Aplica alineación y borde a las filas de datos."""
    thin = Side(style="thin")
    border = Border(left=thin, right=thin, top=thin, bottom=thin)
    center = Alignment(horizontal="center", vertical="center")
    for row in ws.iter_rows(min_row=2):
        for cell in row:
            cell.alignment = center
            cell.border = border


def _apply_column_widths(ws: Any, col_index: dict[str, int]) -> None:
    """Establece anchos de columna para evitar ###."""
    widths = {
        "Día": 6,
        "Fecha": 12,
        "Pasos": 10,
        "Distancia (km)": 14,
        "Calorías\n(kcal)": 10,
    }
    for header, width in widths.items():
        idx = col_index.get(header)
        if idx is not None:
            letter = ws.cell(row=1, column=idx).column_letter
            ws.column_dimensions[letter].width = width


def _apply_number_formats(ws: Any, col_index: dict[str, int]) -> None:
    """Aplica formatos numéricos por cabecera."""
    fmt_map: dict[str, str] = {
        "Fecha": "dd/mm/yyyy",
        "Pasos": "#,##0",
        "Distancia (km)": "0.00",
        "Calorías\n(kcal)": "0.0",
    }
    for row in ws.iter_rows(min_row=2):
        for header, fmt in fmt_map.items():
            idx = col_index.get(header)
            if idx is not None:
                row[idx - 1].number_format = fmt


def _format_sheet(ws: Any) -> None:
    """Apply borders, widths and number formats to a worksheet.

    Args:
        ws: openpyxl worksheet.
    """
    _style_header_row(ws)
    _style_body_rows(ws)
    col_index = {str(cell.value): idx + 1 for idx, cell in enumerate(ws[1])}
    _apply_column_widths(ws, col_index)
    _apply_number_formats(ws, col_index)
