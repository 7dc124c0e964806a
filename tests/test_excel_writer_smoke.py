from __future__ import annotations

from datetime import date
from pathlib import Path
from typing import cast

import pandas as pd
from openpyxl import Workbook, load_workbook
from openpyxl.utils import get_column_letter
from openpyxl.worksheet.worksheet import Worksheet

from pasos_tool.excel_writer import ExcelLayout, _format_sheet, write_week_xlsx
from pasos_tool.history import day_stats
from pasos_tool.report import week_frame

TODAY = date(2024, 6, 10)


def test_write_week_xlsx_happy_path_and_formatting(tmp_path: Path) -> None:
    """Una fila por día: Día, Fecha, Pasos, Distancia y Calorías."""
    days = [
        day_stats("2024-06-09", 1200, TODAY),
        day_stats("2024-06-10", 300, TODAY),
    ]
    out = tmp_path / "nested" / "out.xlsx"
    write_week_xlsx(week_frame(days), out, ExcelLayout())

    wb = load_workbook(out)
    ws = cast(Worksheet, wb[ExcelLayout().sheet_name])

    headers = [cell.value for cell in ws[1]]
    assert headers == ["Día", "Fecha", "Pasos", "Distancia (km)", "Calorías\n(kcal)"]
    assert "label" not in headers

    assert ws.cell(row=2, column=1).value == "dom"
    assert ws.cell(row=3, column=1).value == "lun"
    pasos_col = headers.index("Pasos") + 1
    assert ws.cell(row=2, column=pasos_col).value == 1200

    assert ws.column_dimensions["A"].width == 6
    pasos_letter = get_column_letter(pasos_col)
    assert ws.column_dimensions[pasos_letter].width == 10

    assert ws.cell(row=2, column=pasos_col).number_format == "#,##0"
    dist_cell = ws.cell(row=2, column=headers.index("Distancia (km)") + 1)
    assert dist_cell.number_format == "0.00"
    assert ws.cell(row=2, column=2).number_format == "dd/mm/yyyy"


def test_write_week_xlsx_with_bad_date_fills_weekday_empty(tmp_path: Path) -> None:
    """Si la fecha no es válida, el día se escribe vacío (no se lanza excepción)."""
    df = pd.DataFrame({"date": ["2024-06-10", None], "steps": [100, 200]})
    out = tmp_path / "out.xlsx"
    write_week_xlsx(df, out, ExcelLayout())
    wb = load_workbook(out)
    ws = wb[ExcelLayout().sheet_name]
    assert ws.cell(row=2, column=1).value == "lun"
    # Excel guarda celdas vacías como None
    assert ws.cell(row=3, column=1).value in ("", None)


def test_format_sheet_handles_missing_headers() -> None:
    wb = Workbook()
    ws = cast(Worksheet, wb.active)
    ws.append(["Solo"])
    ws.append([1])

    _format_sheet(ws)

    assert ws.cell(row=1, column=1).font.bold is True
    assert ws.cell(row=2, column=1).alignment.horizontal == "center"
