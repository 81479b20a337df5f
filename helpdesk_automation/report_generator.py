"""
Excel report generator for the Helpdesk Automation System.

Writes a workbook with:
- A "Tickets" sheet listing every ticket with styled headers
- A "Dashboard" sheet with the aggregate counts
"""

import logging
from pathlib import Path
from typing import Any

from openpyxl import Workbook
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter
from openpyxl.worksheet.worksheet import Worksheet

from .config import OutputConfig
from .models import DashboardSummary, Priority, Ticket


logger = logging.getLogger(__name__)


class ReportGeneratorError(Exception):
    """Error during report generation."""
    pass


TICKET_COLUMNS = [
    {"key": "ticket_id", "header": "Ticket ID", "width": 14},
    {"key": "title", "header": "Title", "width": 35},
    {"key": "category", "header": "Category", "width": 22},
    {"key": "priority", "header": "Priority", "width": 12},
    {"key": "status", "header": "Status", "width": 14},
    {"key": "requester", "header": "Requester Email", "width": 30},
    {"key": "automated", "header": "Automated", "width": 12},
    {"key": "tags", "header": "Tags", "width": 40},
    {"key": "created_at", "header": "Created", "width": 22},
]

# Most urgent first within a category
PRIORITY_RANK = {
    Priority.CRITICAL: 0,
    Priority.HIGH: 1,
    Priority.MEDIUM: 2,
    Priority.LOW: 3,
}


def sort_tickets(tickets: list[Ticket]) -> list[Ticket]:
    """
    Sort tickets by category, then priority (most urgent first), then ID.
    """
    return sorted(
        tickets,
        key=lambda t: (
            t.category.value,
            PRIORITY_RANK[t.priority],
            t.ticket_id,
        )
    )


def ticket_to_row(ticket: Ticket) -> list[Any]:
    """
    Convert a Ticket to a row of values matching TICKET_COLUMNS order.
    """
    return [
        ticket.ticket_id,
        ticket.title,
        ticket.category.value,
        ticket.priority.value,
        ticket.status.value,
        ticket.requester.email or "",
        "yes" if ticket.automated else "no",
        ", ".join(ticket.tags),
        ticket.created_at.strftime("%Y-%m-%d %H:%M:%S"),
    ]


def dashboard_rows(summary: DashboardSummary) -> list[tuple[str, str, Any]]:
    """Flatten a dashboard summary into (section, label, value) rows."""
    rows: list[tuple[str, str, Any]] = [
        ("Overview", "Total tickets", summary.total_tickets),
        ("Overview", "Automation rate (%)", summary.automation_rate),
        ("Overview", "Avg resolution time (hours)", summary.avg_resolution_time_hours),
    ]
    for section, counts in (
        ("Status", summary.tickets_by_status),
        ("Category", summary.tickets_by_category),
        ("Priority", summary.tickets_by_priority),
    ):
        rows.extend((section, label, count) for label, count in sorted(counts.items()))
    rows.extend(("Daily trend", day.date, day.count) for day in summary.daily_trend)
    return rows


class ExcelReportGenerator:
    """
    Generator for formatted Excel reports.

    Styled headers, fixed column widths, alternating row colors and a
    frozen header row.
    """

    HEADER_FONT = Font(bold=True, color="FFFFFF", size=11)
    HEADER_FILL = PatternFill(start_color="2F5496", end_color="2F5496", fill_type="solid")
    HEADER_ALIGNMENT = Alignment(horizontal="center", vertical="center", wrap_text=True)

    CELL_ALIGNMENT = Alignment(vertical="top", wrap_text=True)
    CELL_BORDER = Border(
        left=Side(style="thin", color="D0D0D0"),
        right=Side(style="thin", color="D0D0D0"),
        top=Side(style="thin", color="D0D0D0"),
        bottom=Side(style="thin", color="D0D0D0"),
    )

    ROW_FILL_ODD = PatternFill(start_color="F2F2F2", end_color="F2F2F2", fill_type="solid")
    ROW_FILL_EVEN = PatternFill(start_color="FFFFFF", end_color="FFFFFF", fill_type="solid")

    def __init__(self, config: OutputConfig):
        self._config = config

    def generate(self, tickets: list[Ticket], summary: DashboardSummary) -> Path:
        """
        Generate the workbook.

        Args:
            tickets: Tickets to list.
            summary: Dashboard aggregates for the second sheet.

        Returns:
            Path to the generated Excel file.

        Raises:
            ReportGeneratorError: If report generation fails.
        """
        try:
            wb = Workbook()

            ws = wb.active
            ws.title = "Tickets"
            self._write_headers(ws, [c["header"] for c in TICKET_COLUMNS])
            self._write_rows(ws, [ticket_to_row(t) for t in sort_tickets(tickets)])
            self._apply_column_widths(ws, [c["width"] for c in TICKET_COLUMNS])
            ws.freeze_panes = "A2"

            dashboard = wb.create_sheet("Dashboard")
            self._write_headers(dashboard, ["Section", "Metric", "Value"])
            self._write_rows(dashboard, [list(row) for row in dashboard_rows(summary)])
            self._apply_column_widths(dashboard, [16, 32, 12])
            dashboard.freeze_panes = "A2"

            self._config.output_dir.mkdir(parents=True, exist_ok=True)

            output_path = self._config.report_path
            wb.save(output_path)

            logger.info(f"Excel report with {len(tickets)} tickets saved to: {output_path}")
            return output_path

        except Exception as e:
            logger.error(f"Failed to generate Excel report: {e}")
            raise ReportGeneratorError(f"Report generation failed: {e}") from e

    def _write_headers(self, ws: Worksheet, headers: list[str]) -> None:
        for col_idx, header in enumerate(headers, 1):
            cell = ws.cell(row=1, column=col_idx, value=header)
            cell.font = self.HEADER_FONT
            cell.fill = self.HEADER_FILL
            cell.alignment = self.HEADER_ALIGNMENT
            cell.border = self.CELL_BORDER

        ws.row_dimensions[1].height = 30

    def _write_rows(self, ws: Worksheet, rows: list[list[Any]]) -> None:
        for row_idx, row_data in enumerate(rows, 2):
            fill = self.ROW_FILL_ODD if row_idx % 2 == 0 else self.ROW_FILL_EVEN

            for col_idx, value in enumerate(row_data, 1):
                cell = ws.cell(row=row_idx, column=col_idx, value=value)
                cell.alignment = self.CELL_ALIGNMENT
                cell.border = self.CELL_BORDER
                cell.fill = fill

    def _apply_column_widths(self, ws: Worksheet, widths: list[int]) -> None:
        for col_idx, width in enumerate(widths, 1):
            ws.column_dimensions[get_column_letter(col_idx)].width = width


def generate_report(
    tickets: list[Ticket],
    summary: DashboardSummary,
    config: OutputConfig,
) -> Path:
    """
    Convenience function to generate an Excel report.

    Returns:
        Path to generated report.
    """
    return ExcelReportGenerator(config).generate(tickets, summary)
