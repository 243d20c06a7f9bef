"""
Spreadsheet output — revision export and import templates.

Workbooks are built in memory and returned as bytes; nothing is written to
disk, so concurrent owners never share a path.
"""

import csv
import io
import logging
from datetime import datetime, timezone

from openpyxl import Workbook
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter

from revtrack.core.query_pipeline import NameResolver
from revtrack.core.records import EntityKind, RevisionRecord

logger = logging.getLogger(__name__)

STATUS_FILLS = {
    "on-time": PatternFill(start_color="27AE60", end_color="27AE60", fill_type="solid"),
    "pending": PatternFill(start_color="F39C12", end_color="F39C12", fill_type="solid"),
    "late": PatternFill(start_color="E74C3C", end_color="E74C3C", fill_type="solid"),
}
WHITE_FONT = Font(color="FFFFFF", bold=True)
HEADER_FILL = PatternFill(start_color="354A5F", end_color="354A5F", fill_type="solid")
HEADER_FONT = Font(color="FFFFFF", bold=True, size=11)
THIN_BORDER = Border(
    left=Side(style="thin"),
    right=Side(style="thin"),
    top=Side(style="thin"),
    bottom=Side(style="thin"),
)

EXPORT_HEADERS = [
    "Venture",
    "Work",
    "Discipline",
    "Designer",
    "Revision Number",
    "Expected Delivery Date",
    "Actual Delivery Date",
    "Expected Analysis Date",
    "Actual Analysis Date",
    "Delivery Status",
    "Analysis Status",
    "Justification",
    "Revision Justification",
]

_STATUS_COLUMNS = {EXPORT_HEADERS.index("Delivery Status") + 1, EXPORT_HEADERS.index("Analysis Status") + 1}


def _apply_header_style(ws, row: int, col_count: int) -> None:
    """Apply dark-header styling to an Excel row (1-indexed)."""
    for col in range(1, col_count + 1):
        cell = ws.cell(row=row, column=col)
        cell.fill = HEADER_FILL
        cell.font = HEADER_FONT
        cell.border = THIN_BORDER
        cell.alignment = Alignment(horizontal="center", vertical="center", wrap_text=True)


def _auto_width(ws) -> None:
    """Auto-size column widths based on content (capped at 60 chars)."""
    for col in ws.columns:
        max_len = 0
        col_letter = get_column_letter(col[0].column)
        for cell in col:
            if cell.value:
                max_len = max(max_len, min(len(str(cell.value)), 60))
        ws.column_dimensions[col_letter].width = max(max_len + 4, 12)


def _to_bytes(wb: Workbook) -> bytes:
    buf = io.BytesIO()
    wb.save(buf)
    return buf.getvalue()


def _export_row(record: RevisionRecord, resolver: NameResolver) -> list:
    def _iso(value):
        return value.isoformat() if value else ""

    return [
        resolver.resolve(record.venture_id, EntityKind.VENTURE),
        resolver.resolve(record.work_id, EntityKind.WORK),
        resolver.resolve(record.discipline_id, EntityKind.DISCIPLINE),
        resolver.resolve(record.designer_id, EntityKind.DESIGNER),
        record.revision_number,
        _iso(record.expected_delivery_date),
        _iso(record.actual_delivery_date),
        _iso(record.expected_analysis_date),
        _iso(record.actual_analysis_date),
        record.delivery_status,
        record.analysis_status,
        record.justification,
        record.revision_justification or "",
    ]


def export_revisions_xlsx(records, resolver: NameResolver) -> bytes:
    """Styled workbook of ``records`` in the order given (the caller's query order)."""
    wb = Workbook()
    ws = wb.active
    ws.title = "Revisions"

    for col, header in enumerate(EXPORT_HEADERS, 1):
        ws.cell(row=1, column=col, value=header)
    _apply_header_style(ws, 1, len(EXPORT_HEADERS))

    row = 1
    for record in records:
        row += 1
        for col, value in enumerate(_export_row(record, resolver), 1):
            cell = ws.cell(row=row, column=col, value=value)
            cell.border = THIN_BORDER
            if col in _STATUS_COLUMNS and value in STATUS_FILLS:
                cell.fill = STATUS_FILLS[value]
                cell.font = WHITE_FONT
                cell.alignment = Alignment(horizontal="center")

    ws.freeze_panes = "A2"
    _auto_width(ws)

    meta = wb.create_sheet("Info")
    meta["A1"] = "Revision export"
    meta["A1"].font = Font(size=14, bold=True, color="354A5F")
    meta["A2"] = f"Generated: {datetime.now(timezone.utc).strftime('%Y-%m-%d %H:%M UTC')}"
    meta["A2"].font = Font(size=10, italic=True, color="666666")
    meta["A3"] = f"Rows: {row - 1}"

    logger.info("Revision export built rows=%d", row - 1)
    return _to_bytes(wb)


def export_revisions_csv(records, resolver: NameResolver) -> str:
    output = io.StringIO()
    writer = csv.writer(output)
    writer.writerow(EXPORT_HEADERS)
    for record in records:
        writer.writerow(_export_row(record, resolver))
    return output.getvalue()


def build_template(headers: list[str], examples: list[list], sheet_title: str) -> bytes:
    """Import template: styled header row plus example rows."""
    wb = Workbook()
    ws = wb.active
    ws.title = sheet_title
    for col, header in enumerate(headers, 1):
        ws.cell(row=1, column=col, value=header)
    _apply_header_style(ws, 1, len(headers))
    for r, example in enumerate(examples, 2):
        for col, value in enumerate(example, 1):
            ws.cell(row=r, column=col, value=value)
    _auto_width(ws)
    return _to_bytes(wb)
