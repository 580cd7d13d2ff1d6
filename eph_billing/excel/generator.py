"""EPH Excel export.

Writes a fresh workbook with two sheets:
  EPH Summary  - one row per asset/operator, actual hours per bucket, totals,
                 rate and estimated cost
  Daily Detail - one row per resolved date, with the applied billing rule
All values are pre-computed in Python; no Excel formulas.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from pathlib import Path
from typing import Iterable

import openpyxl
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter

from eph_billing.audit import BUCKET_KEYS
from eph_billing.models import DayType, EPHRecord

SUMMARY_SHEET = "EPH Summary"
DETAIL_SHEET = "Daily Detail"

TITLE_ROW = 1
PERIOD_ROW = 2
HEADER_ROW = 4
DATA_START_ROW = 5

BUCKET_LABELS: dict[DayType, str] = {
    DayType.WEEKDAY: "Normal",
    DayType.SATURDAY: "Saturday",
    DayType.SUNDAY: "Sunday",
    DayType.PUBLIC_HOLIDAY: "Public Holiday",
    DayType.BREAKDOWN: "Breakdown",
    DayType.RAIN_DAY: "Rain Day",
    DayType.STRIKE_DAY: "Strike Day",
}

SUMMARY_HEADERS = (
    ["Asset / Operator"]
    + [BUCKET_LABELS[d] for d in BUCKET_KEYS]
    + ["Total Actual", "Total Billable", "Rate", "Rate Type", "Estimated Cost"]
)

DETAIL_HEADERS = [
    "Asset / Operator", "Date", "Operator", "Open", "Close", "Actual Hours",
    "Billable Hours", "Day Type", "Applied Rule", "Adjusted By", "Original Hours", "Notes",
]

THIN_BORDER = Border(
    left=Side(style='thin'),
    right=Side(style='thin'),
    top=Side(style='thin'),
    bottom=Side(style='thin'),
)

HEADER_FONT = Font(name='Calibri', size=11, bold=True)
DATA_FONT = Font(name='Calibri', size=11)
TITLE_FONT = Font(name='Calibri', size=12, bold=True)
HEADER_FILL = PatternFill(start_color='D9E1F2', end_color='D9E1F2', fill_type='solid')
CENTER_ALIGN = Alignment(horizontal='center', vertical='center')
NUMBER_FORMAT = '#,##0.00'
DATE_FORMAT = 'dd mmm yyyy'


def _write_header(ws, row: int, headers: list[str]) -> None:
    for col, label in enumerate(headers, start=1):
        cell = ws.cell(row=row, column=col)
        cell.value = label
        cell.font = HEADER_FONT
        cell.fill = HEADER_FILL
        cell.border = THIN_BORDER
        cell.alignment = CENTER_ALIGN


def _write_value(ws, row: int, col: int, value, number_format: str | None = None) -> None:
    cell = ws.cell(row=row, column=col)
    cell.value = float(value) if isinstance(value, Decimal) else value
    cell.font = DATA_FONT
    cell.border = THIN_BORDER
    if number_format:
        cell.number_format = number_format
        cell.alignment = CENTER_ALIGN


def _period_label(records: list[EPHRecord]) -> str:
    if not records:
        return "No records"
    start = min(r.date_range.start for r in records)
    end = max(r.date_range.end for r in records)
    return f"Period: {start.isoformat()} to {end.isoformat()}"


def _write_summary(ws, records: list[EPHRecord]) -> None:
    last_col = len(SUMMARY_HEADERS)
    ws.merge_cells(start_row=TITLE_ROW, start_column=1, end_row=TITLE_ROW, end_column=last_col)
    title = ws.cell(row=TITLE_ROW, column=1)
    title.value = 'Equipment Plant Hours (EPH) Summary'
    title.font = TITLE_FONT
    title.alignment = CENTER_ALIGN
    ws.cell(row=PERIOD_ROW, column=1).value = _period_label(records)
    ws.cell(row=PERIOD_ROW, column=1).font = HEADER_FONT

    _write_header(ws, HEADER_ROW, SUMMARY_HEADERS)

    row = DATA_START_ROW
    for eph in records:
        _write_value(ws, row, 1, eph.entity_id)
        col = 2
        for day_type in BUCKET_KEYS:
            _write_value(ws, row, col, eph.actual_hours_for(day_type), NUMBER_FORMAT)
            col += 1
        _write_value(ws, row, col, eph.total_actual_hours, NUMBER_FORMAT)
        _write_value(ws, row, col + 1, eph.total_billable_hours, NUMBER_FORMAT)
        _write_value(ws, row, col + 2, eph.rate, NUMBER_FORMAT)
        _write_value(ws, row, col + 3, eph.rate_type or "none")
        _write_value(ws, row, col + 4, eph.estimated_cost, NUMBER_FORMAT)
        row += 1

    # Totals row
    ws.cell(row=row, column=1).value = 'Total'
    ws.cell(row=row, column=1).font = HEADER_FONT
    col = 2
    for day_type in BUCKET_KEYS:
        total = sum((r.actual_hours_for(day_type) for r in records), Decimal("0"))
        _write_value(ws, row, col, total, NUMBER_FORMAT)
        ws.cell(row=row, column=col).font = HEADER_FONT
        col += 1
    for offset, total in (
        (0, sum((r.total_actual_hours for r in records), Decimal("0"))),
        (1, sum((r.total_billable_hours for r in records), Decimal("0"))),
        (4, sum((r.estimated_cost for r in records), Decimal("0"))),
    ):
        _write_value(ws, row, col + offset, total, NUMBER_FORMAT)
        ws.cell(row=row, column=col + offset).font = HEADER_FONT

    ws.column_dimensions['A'].width = 24
    for c in range(2, last_col + 1):
        ws.column_dimensions[get_column_letter(c)].width = 14


def _write_detail(ws, records: list[EPHRecord]) -> None:
    _write_header(ws, 1, DETAIL_HEADERS)
    row = 2
    for eph in records:
        for entry in eph.resolved_entries:
            record, result = entry.record, entry.result
            original = record.original_record
            values = [
                eph.entity_id,
                datetime(record.date.year, record.date.month, record.date.day) if record.date else None,
                record.operator_name,
                record.open_label,
                record.close_label,
                result.actual_hours,
                result.billable_hours,
                BUCKET_LABELS[result.day_type],
                result.applied_rule,
                record.overridden_by.value if record.is_override else "",
                original.total_hours if original is not None else None,
                record.notes,
            ]
            for col, value in enumerate(values, start=1):
                fmt = None
                if col == 2:
                    fmt = DATE_FORMAT
                elif isinstance(value, Decimal):
                    fmt = NUMBER_FORMAT
                _write_value(ws, row, col, value, fmt)
            row += 1

    widths = [22, 14, 20, 10, 10, 14, 14, 16, 28, 14, 14, 40]
    for c, width in enumerate(widths, start=1):
        ws.column_dimensions[get_column_letter(c)].width = width


def generate_excel_report(records: Iterable[EPHRecord], output_path: str | Path) -> Path:
    """Write the EPH workbook for the given records."""
    output_path = Path(output_path)
    records = list(records)

    wb = openpyxl.Workbook()
    summary = wb.active
    summary.title = SUMMARY_SHEET
    _write_summary(summary, records)
    _write_detail(wb.create_sheet(DETAIL_SHEET), records)

    wb.save(str(output_path))
    return output_path
