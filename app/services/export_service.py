"""
Export service — CSV and Excel downloads of the license inventory and
the department leaderboard.

Each export takes the same row dicts the JSON endpoints return and
produces a BytesIO buffer ready to hand to ``send_file``.  CSV is
written as UTF-8 with a BOM so Excel opens it with the right encoding.
"""

import csv
import io
import logging

from openpyxl import Workbook
from openpyxl.styles import Alignment, Font, PatternFill
from openpyxl.utils import get_column_letter

logger = logging.getLogger(__name__)

# Excel header styling constants.
_HEADER_FONT = Font(bold=True, color="FFFFFF")
_HEADER_FILL = PatternFill(start_color="1F6F4A", end_color="1F6F4A", fill_type="solid")
_HEADER_ALIGN = Alignment(horizontal="center", wrap_text=True)
_CURRENCY_FORMAT = "#,##0.00"
_PERCENT_FORMAT = '0"%"'

# (header, row key, Excel number format or None)
LICENSE_COLUMNS: list[tuple[str, str, str | None]] = [
    ("License", "name", None),
    ("Vendor", "vendor", None),
    ("Category", "category", None),
    ("Type", "license_type", None),
    ("Total Seats", "total_seats", None),
    ("Used Seats", "used_seats", None),
    ("Utilization", "utilization_rate", _PERCENT_FORMAT),
    ("Cost per Seat", "cost_per_seat", _CURRENCY_FORMAT),
    ("Total Cost", "total_cost", _CURRENCY_FORMAT),
    ("Billing Cycle", "billing_cycle", None),
    ("Renewal Date", "renewal_date", None),
    ("Days to Renewal", "days_until_renewal", None),
    ("Status", "status", None),
]

LEADERBOARD_COLUMNS: list[tuple[str, str, str | None]] = [
    ("Rank", "rank", None),
    ("Department", "department", None),
    ("Efficiency Score", "efficiency_score", None),
    ("Utilization", "utilization_rate", _PERCENT_FORMAT),
    ("Budget Adherence", "budget_adherence", _PERCENT_FORMAT),
    ("Total Spend", "total_spend", _CURRENCY_FORMAT),
    ("Budget", "budget_allocated", _CURRENCY_FORMAT),
    ("Potential Savings", "potential_savings", _CURRENCY_FORMAT),
    ("Rank Change", "rank_change", None),
    ("Medal", "medal", None),
    ("Badges", "badges", None),
]


# =========================================================================
# Public exports
# =========================================================================


def export_licenses_csv(licenses: list[dict]) -> io.BytesIO:
    """Export the license inventory to CSV."""
    return _to_csv(LICENSE_COLUMNS, licenses)


def export_licenses_excel(licenses: list[dict]) -> io.BytesIO:
    """Export the license inventory to an Excel workbook."""
    return _to_excel("Licenses", LICENSE_COLUMNS, licenses)


def export_leaderboard_csv(leaderboard: list[dict]) -> io.BytesIO:
    """Export a leaderboard (see ``gamification_service.get_leaderboard``)."""
    return _to_csv(LEADERBOARD_COLUMNS, leaderboard)


def export_leaderboard_excel(leaderboard: list[dict], period: str) -> io.BytesIO:
    """Export a leaderboard to an Excel workbook titled with its period."""
    return _to_excel(f"Leaderboard {period}", LEADERBOARD_COLUMNS, leaderboard)


# =========================================================================
# Internal helpers
# =========================================================================


def _to_csv(columns, rows: list[dict]) -> io.BytesIO:
    output = io.StringIO()
    writer = csv.writer(output)
    writer.writerow([header for header, _, _ in columns])
    for row in rows:
        writer.writerow([_csv_value(row.get(key), fmt) for _, key, fmt in columns])

    # Convert to bytes for Flask response.
    buffer = io.BytesIO()
    buffer.write(output.getvalue().encode("utf-8-sig"))
    buffer.seek(0)
    return buffer


def _to_excel(title: str, columns, rows: list[dict]) -> io.BytesIO:
    wb = Workbook()
    ws = wb.active
    # Sheet titles are capped at 31 characters.
    ws.title = title[:31]

    _write_header_row(ws, [header for header, _, _ in columns])
    for row_idx, row in enumerate(rows, start=2):
        for col_idx, (_, key, fmt) in enumerate(columns, start=1):
            cell = ws.cell(row=row_idx, column=col_idx, value=_cell_value(row.get(key)))
            if fmt:
                cell.number_format = fmt

    _auto_fit_columns(ws)

    buffer = io.BytesIO()
    wb.save(buffer)
    buffer.seek(0)
    return buffer


def _cell_value(value):
    if isinstance(value, list):
        return ", ".join(str(v) for v in value)
    return value


def _csv_value(value, fmt: str | None) -> str:
    if value is None:
        return ""
    if fmt == _CURRENCY_FORMAT:
        return f"{float(value):.2f}"
    return str(_cell_value(value))


def _write_header_row(ws, headers: list[str]) -> None:
    """Write a styled header row to an Excel worksheet."""
    for col_idx, header in enumerate(headers, start=1):
        cell = ws.cell(row=1, column=col_idx, value=header)
        cell.font = _HEADER_FONT
        cell.fill = _HEADER_FILL
        cell.alignment = _HEADER_ALIGN


def _auto_fit_columns(ws) -> None:
    """Auto-fit column widths based on content (approximate)."""
    for col in ws.columns:
        max_length = 0
        col_letter = get_column_letter(col[0].column)
        for cell in col:
            if cell.value is not None:
                max_length = max(max_length, len(str(cell.value)))
        ws.column_dimensions[col_letter].width = min(max_length + 4, 40)
