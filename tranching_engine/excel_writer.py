from __future__ import annotations

import os
from typing import Dict

import pandas as pd
from openpyxl import Workbook, load_workbook
from openpyxl.styles import Alignment, Font
from openpyxl.utils import get_column_letter

PACK_SHEETS = [
    "Tranche Results",
    "Period Waterfall",
    "Tranche Payments",
    "Credit Enhancement",
    "Deal Summary",
    "Warnings",
]

_MONEY = "#,##0.00"
_PCT = "0.00%"

# pack columns that get a number format; anything else (periods, seniority,
# labels, the mixed metric/value tables) is written as-is
COLUMN_FORMATS = {
    "Original Balance": _MONEY,
    "Ending Balance": _MONEY,
    "Interest Received": _MONEY,
    "Principal Received": _MONEY,
    "Loss Allocated": _MONEY,
    "Yield to Maturity": _PCT,
    "WAL (years)": "0.00",
    "Credit Enhancement": _PCT,
    "Interest Collected": _MONEY,
    "Principal Collected": _MONEY,
    "Losses": _MONEY,
    "Reserve Draw": _MONEY,
    "Diverted Interest": _MONEY,
    "Reserve Replenish": _MONEY,
    "Reserve Closing": _MONEY,
    "Collateral Closing": _MONEY,
    "Interest Paid": _MONEY,
    "Principal Paid": _MONEY,
    "Interest Shortfall": _MONEY,
}


def _safe_sheet_name(name: str) -> str:
    return str(name)[:31]


def _write_df(ws, df: pd.DataFrame, start_row: int, start_col: int, header: bool = True):
    bold = Font(bold=True)
    align = Alignment(vertical="top")

    r = start_row
    c = start_col

    if header:
        for j, col_name in enumerate(df.columns, start=c):
            cell = ws.cell(row=r, column=j, value=str(col_name))
            cell.font = bold
            cell.alignment = align
        r += 1

    for i, row in enumerate(df.itertuples(index=False)):
        for j, (col_name, val) in enumerate(zip(df.columns, row), start=c):
            cell = ws.cell(row=r + i, column=j, value=val)
            cell.alignment = align
            fmt = COLUMN_FORMATS.get(col_name)
            if fmt and isinstance(val, float):
                cell.number_format = fmt

    # autosize columns (lightweight)
    for j in range(c, c + len(df.columns)):
        col_letter = get_column_letter(j)
        max_len = 10
        for rr in range(start_row, start_row + 1 + len(df)):
            v = ws.cell(row=rr, column=j).value
            if v is None:
                continue
            max_len = max(max_len, min(len(str(v)), 60))
        ws.column_dimensions[col_letter].width = max_len + 2


def ensure_template(path: str) -> None:
    """
    Creates a blank pack template if one isn't there already.
    One sheet per entry in PACK_SHEETS.
    """
    if os.path.exists(path):
        return

    wb = Workbook()
    wb.remove(wb.active)
    for name in PACK_SHEETS:
        wb.create_sheet(_safe_sheet_name(name))
    wb.save(path)


def write_tranching_pack(
    template_path: str,
    output_path: str,
    dfs: Dict[str, pd.DataFrame],
) -> None:
    wb = load_workbook(template_path)

    for sheet_name, df in dfs.items():
        safe = _safe_sheet_name(sheet_name)
        if safe not in wb.sheetnames:
            wb.create_sheet(safe)
        ws = wb[safe]
        ws.delete_rows(1, ws.max_row)  # clear
        _write_df(ws, df, start_row=1, start_col=1, header=True)

    wb.save(output_path)
