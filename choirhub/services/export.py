"""Excel export of filtered attendance records."""
from __future__ import annotations

import io
import logging
from datetime import datetime

import pandas as pd

from choirhub.config import settings
from choirhub.errors import ExportError, StoreError
from choirhub.rbac import PRIVILEGED_ROLES, Caller, authorize
from choirhub.services.directory import get_activities, get_members_by_ids
from choirhub.services.queries import find_records

logger = logging.getLogger(__name__)

EXPORT_COLUMNS = [
    "Member Name",
    "Student ID",
    "Activity",
    "Activity Type",
    "Activity Date",
    "Status",
    "Comments",
    "Marked By",
    "Marked At",
]

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def export_filename(today: datetime | None = None) -> str:
    today = today or datetime.utcnow()
    return f"attendance-export-{today.date().isoformat()}.xlsx"


async def export_rows(query: dict) -> list[dict]:
    records = await find_records(query)
    members = await get_members_by_ids(
        [r.member_id for r in records] + [r.marked_by for r in records]
    )
    activities = await get_activities(r.activity for r in records)

    rows = []
    for r in records:
        member = members.get(r.member_id)
        marker = members.get(r.marked_by)
        info = activities.get((r.activity.kind, r.activity.id))
        rows.append(
            {
                "Member Name": member.full_name if member else "Unknown",
                "Student ID": member.student_id if member else "",
                "Activity": info.title if info else "Unknown",
                "Activity Type": r.activity.kind.title(),
                "Activity Date": info.date if info else r.activity_date,
                "Status": r.status.value.title(),
                "Comments": r.comments or "",
                "Marked By": marker.full_name if marker else "",
                "Marked At": r.marked_at.strftime("%Y-%m-%d %H:%M:%S"),
            }
        )
    return rows


def rows_to_workbook(rows: list[dict]) -> bytes:
    df = pd.DataFrame(rows, columns=EXPORT_COLUMNS)
    output = io.BytesIO()
    with pd.ExcelWriter(output, engine="openpyxl") as writer:
        df.to_excel(writer, index=False, sheet_name=settings.export_sheet_name)
    return output.getvalue()


async def export_to_spreadsheet(caller: Caller, query: dict) -> tuple[str, bytes]:
    """Render the records matching `query` as an .xlsx workbook.

    Returns (filename, workbook bytes). An empty selection still yields a
    workbook with the header row.
    """
    authorize(caller, PRIVILEGED_ROLES)
    try:
        rows = await export_rows(query)
    except StoreError as e:
        raise ExportError() from e
    try:
        content = rows_to_workbook(rows)
    except Exception as e:
        logger.exception("Failed to build attendance workbook (%d rows)", len(rows))
        raise ExportError() from e
    logger.info("Exported %d attendance rows for %s", len(rows), caller.id)
    return export_filename(), content
