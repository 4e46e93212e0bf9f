import io
from typing import Optional

from fastapi import APIRouter, Query
from fastapi.responses import StreamingResponse

from choirhub.api.deps import CurrentCaller, DateRangeQuery, PrivilegedCaller
from choirhub.models.attendance import (
    AttendanceOut,
    AttendanceUpdate,
    MarkAttendanceRequest,
    activity_ref_from,
)
from choirhub.services.analytics import compute_analytics
from choirhub.services.export import XLSX_MEDIA_TYPE, export_to_spreadsheet
from choirhub.services.marking import delete_attendance, mark_attendance, update_attendance
from choirhub.services.queries import (
    build_filter_query,
    get_by_event,
    get_by_member,
    get_by_schedule,
    list_attendance,
)

router = APIRouter()


@router.post("/mark")
async def mark(data: MarkAttendanceRequest, caller: PrivilegedCaller):
    """Mark (or re-mark) one member for one event or practice schedule."""
    activity = activity_ref_from(data.event_id, data.schedule_id)
    record = await mark_attendance(caller, data.member_id, activity, data.status, data.comments)
    return {
        "success": True,
        "message": "Attendance marked",
        "data": AttendanceOut.from_document(record).to_wire(),
    }


@router.get("/list")
async def list_records(
    caller: PrivilegedCaller,
    date_range: DateRangeQuery,
    status: Optional[str] = None,
    member_id: Optional[str] = Query(None, alias="memberId"),
    event_id: Optional[str] = Query(None, alias="eventId"),
    schedule_id: Optional[str] = Query(None, alias="scheduleId"),
    page: int = 1,
    limit: Optional[int] = None,
):
    """Filtered, paginated listing of all attendance records."""
    query = build_filter_query(
        date_range, status=status, member_id=member_id, event_id=event_id, schedule_id=schedule_id
    )
    result = await list_attendance(caller, query, page=page, limit=limit)
    return {"success": True, "data": result.to_wire()}


@router.get("/event/{event_id}")
async def event_attendance(event_id: str, caller: PrivilegedCaller):
    entries = await get_by_event(caller, event_id)
    return {"success": True, "data": [e.to_wire() for e in entries]}


@router.get("/schedule/{schedule_id}")
async def schedule_attendance(schedule_id: str, caller: PrivilegedCaller):
    entries = await get_by_schedule(caller, schedule_id)
    return {"success": True, "data": [e.to_wire() for e in entries]}


@router.get("/member/{member_id}")
async def member_attendance(
    member_id: str,
    caller: CurrentCaller,
    date_range: DateRangeQuery,
    page: int = 1,
    limit: Optional[int] = None,
):
    """A member's own history; moderators and admins may read anyone's."""
    history = await get_by_member(caller, member_id, date_range, page=page, limit=limit)
    return {"success": True, "data": history.to_wire()}


@router.get("/analytics")
async def analytics(caller: PrivilegedCaller, date_range: DateRangeQuery):
    snapshot = await compute_analytics(caller, date_range)
    return {"success": True, "data": snapshot.to_wire()}


@router.get("/export/excel")
async def export_excel(
    caller: PrivilegedCaller,
    date_range: DateRangeQuery,
    status: Optional[str] = None,
    activity_kind: Optional[str] = Query(None, alias="activityKind"),
):
    """Download the filtered attendance set as an .xlsx workbook."""
    query = build_filter_query(date_range, status=status, activity_kind=activity_kind)
    filename, content = await export_to_spreadsheet(caller, query)
    return StreamingResponse(
        io.BytesIO(content),
        media_type=XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.put("/{record_id}")
async def update(record_id: str, data: AttendanceUpdate, caller: PrivilegedCaller):
    record = await update_attendance(caller, record_id, data.model_dump(exclude_unset=True))
    return {
        "success": True,
        "message": "Attendance updated",
        "data": AttendanceOut.from_document(record).to_wire(),
    }


@router.delete("/{record_id}")
async def delete(record_id: str, caller: PrivilegedCaller):
    await delete_attendance(caller, record_id)
    return {"success": True, "message": "Attendance record deleted"}
