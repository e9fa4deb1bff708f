"""Excel export of dashboard data.

Builds a workbook with a "Feedback" sheet (one row per feedback entry plus a
column per campaign question) and a "Daily Summaries" sheet.
"""

import io
from datetime import date
from typing import Any, Optional

from openpyxl import Workbook
from openpyxl.styles import Alignment, Font

from models.dashboard import DailySummary, DashboardData, FeedbackEntry
from utils.logging_utils import get_logger

logger = get_logger(__name__, level="INFO")

FEEDBACK_SHEET = "Feedback"
SUMMARY_SHEET = "Daily Summaries"
FEEDBACK_COLUMNS = [
    "Date",
    "Campaign",
    "Order ID",
    "NPS Score",
    "Has Voice Recording",
    "Feedback",
]
SUMMARY_COLUMNS = [
    "Date",
    "NPS Score",
    "Positive Themes",
    "Negative Themes",
    "Summary",
]
XLSX_MIMETYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def _day(value: str) -> str:
    # Summary dates may carry a time part
    return value.split("T")[0]


def _cell(value: Any) -> Any:
    if value is None:
        return ""
    if isinstance(value, (list, dict)):
        return str(value)
    return value


def feedback_row(entry: FeedbackEntry) -> dict[str, Any]:
    """Return one entry as an ordered column -> value mapping."""
    row: dict[str, Any] = {
        "Date": entry.created_at.date().isoformat(),
        "Campaign": entry.feedback_campaigns.name,
        "Order ID": entry.order_id,
        "NPS Score": entry.nps_score,
        "Has Voice Recording": "Yes" if entry.voice_file_url else "No",
        "Feedback": entry.transcription or "",
    }
    responses = entry.response_map()
    for question in entry.feedback_campaigns.questions:
        answer = responses.get(question.id)
        row[f"Q: {question.text}"] = "" if answer in (None, "") else answer
    return row


def summary_row(summary: DailySummary) -> dict[str, Any]:
    """Return one daily summary as an ordered column -> value mapping."""
    return {
        "Date": _day(summary.date),
        "NPS Score": summary.nps_average,
        "Positive Themes": ", ".join(summary.positive_themes),
        "Negative Themes": ", ".join(summary.negative_themes),
        "Summary": summary.summary,
    }


def _columns(rows: list[dict[str, Any]], base: list[str]) -> list[str]:
    columns = list(base)
    for row in rows:
        columns.extend(key for key in row if key not in columns)
    return columns


def _write_sheet(ws, rows: list[dict[str, Any]], base: list[str]) -> None:
    headers = _columns(rows, base)
    ws.append(headers)
    for col in range(1, len(headers) + 1):
        ws.cell(row=1, column=col).font = Font(bold=True)
        ws.cell(row=1, column=col).alignment = Alignment(horizontal="center")
    for row in rows:
        ws.append([_cell(row.get(header)) for header in headers])


def build_workbook(data: DashboardData) -> Workbook:
    """Build the export workbook for ``data``."""
    wb = Workbook()
    feedback_ws = wb.active
    feedback_ws.title = FEEDBACK_SHEET
    _write_sheet(
        feedback_ws, [feedback_row(f) for f in data.recent_feedback], FEEDBACK_COLUMNS
    )

    summary_ws = wb.create_sheet(SUMMARY_SHEET)
    _write_sheet(
        summary_ws, [summary_row(s) for s in data.daily_summaries], SUMMARY_COLUMNS
    )
    return wb


def export_filename(today: Optional[date] = None) -> str:
    """Return the download name, ``feedback-export-YYYY-MM-DD.xlsx``."""
    today = today or date.today()
    return f"feedback-export-{today.isoformat()}.xlsx"


def export_dashboard(data: DashboardData) -> bytes:
    """Render the export workbook to xlsx bytes."""
    buffer = io.BytesIO()
    build_workbook(data).save(buffer)
    logger.info(
        f"exported {len(data.recent_feedback)} feedback rows and {len(data.daily_summaries)} summaries"  # pylint: disable=line-too-long
    )
    return buffer.getvalue()
