"""Read-only attendance queries: per activity, per member, filtered listings."""
from __future__ import annotations

import logging
from typing import Optional

from pymongo.errors import PyMongoError

from choirhub.config import settings
from choirhub.errors import StoreError, ValidationError
from choirhub.models.activity import ActivityInfo, ActivityKind, ActivityRef, EventRef, ScheduleRef
from choirhub.models.attendance import (
    ActivitySummary,
    AttendanceOut,
    AttendancePage,
    AttendanceRecord,
    AttendanceStatus,
    HistoryItem,
    MarkedBy,
    MemberHistory,
    MemberStats,
    RosterEntry,
    StatusCounts,
    parse_status,
)
from choirhub.models.common import DateRange, Pagination
from choirhub.models.member import Member, MemberOut
from choirhub.rbac import PRIVILEGED_ROLES, Caller, authorize, authorize_member_access
from choirhub.services.directory import get_activities, get_member, get_members_by_ids, resolve_activity

logger = logging.getLogger(__name__)


def page_params(page: int, limit: Optional[int]) -> tuple[int, int]:
    if page < 1:
        raise ValidationError("page must be 1 or greater", field="page")
    limit = settings.default_page_size if limit is None else limit
    if limit < 1:
        raise ValidationError("limit must be 1 or greater", field="limit")
    return page, min(limit, settings.max_page_size)


async def _fetch(query: dict, *sort: tuple[str, int], skip: int = 0, limit: int = 0) -> list[AttendanceRecord]:
    try:
        cursor = AttendanceRecord.find(query).sort(*sort) if sort else AttendanceRecord.find(query)
        if skip:
            cursor = cursor.skip(skip)
        if limit:
            cursor = cursor.limit(limit)
        return await cursor.to_list()
    except PyMongoError as e:
        logger.error("Attendance query failed (%s): %s", query, e)
        raise StoreError() from e


async def _count(query: dict) -> int:
    try:
        return await AttendanceRecord.find(query).count()
    except PyMongoError as e:
        logger.error("Attendance count failed (%s): %s", query, e)
        raise StoreError() from e


def activity_query(ref: ActivityRef) -> dict:
    return {"activity.kind": ref.kind, "activity.id": ref.id}


async def _roster(info: ActivityInfo) -> list[RosterEntry]:
    records = await _fetch(activity_query(info.ref))
    members = await get_members_by_ids(r.member_id for r in records)
    entries = [
        RosterEntry(member=MemberOut.from_document(members[r.member_id]), attendance=AttendanceOut.from_document(r))
        for r in records
        if r.member_id in members
    ]
    entries.sort(key=lambda e: (e.member.name.lower(), e.member.id))
    return entries


async def get_by_event(caller: Caller, event_id: str) -> list[RosterEntry]:
    """Every member with a record for the event; unmarked members are omitted."""
    authorize(caller, PRIVILEGED_ROLES)
    return await _roster(await resolve_activity(EventRef(id=event_id)))


async def get_by_schedule(caller: Caller, schedule_id: str) -> list[RosterEntry]:
    authorize(caller, PRIVILEGED_ROLES)
    return await _roster(await resolve_activity(ScheduleRef(id=schedule_id)))


async def to_history_items(records: list[AttendanceRecord]) -> list[HistoryItem]:
    """Join records with their activity title/date and the marking member's name."""
    activities = await get_activities(r.activity for r in records)
    markers = await get_members_by_ids(r.marked_by for r in records)
    items = []
    for r in records:
        info = activities.get((r.activity.kind, r.activity.id))
        marker: Optional[Member] = markers.get(r.marked_by)
        items.append(
            HistoryItem(
                id=str(r.id),
                member_id=r.member_id,
                activity=ActivitySummary(
                    kind=r.activity.kind,
                    id=r.activity.id,
                    title=info.title if info else "Unknown",
                    date=info.date if info else r.activity_date,
                ),
                status=r.status,
                comments=r.comments,
                marked_by=MarkedBy(id=str(marker.id), name=marker.full_name) if marker else None,
                marked_at=r.marked_at,
            )
        )
    return items


async def _status_counts(query: dict) -> StatusCounts:
    pipeline = [{"$group": {"_id": "$status", "n": {"$sum": 1}}}]
    try:
        rows = await AttendanceRecord.find(query).aggregate(pipeline).to_list()
    except PyMongoError as e:
        logger.error("Attendance status count failed (%s): %s", query, e)
        raise StoreError() from e
    counts = StatusCounts()
    for row in rows:
        setattr(counts, AttendanceStatus(row["_id"]).value, row["n"])
    return counts


def member_stats(counts: StatusCounts) -> MemberStats:
    return MemberStats(
        total=counts.total,
        present=counts.present,
        absent=counts.absent,
        excused=counts.excused,
        late=counts.late,
        attendance_rate=counts.attendance_rate(),
    )


async def get_by_member(
    caller: Caller,
    member_id: str,
    date_range: Optional[DateRange] = None,
    page: int = 1,
    limit: Optional[int] = None,
) -> MemberHistory:
    """Paginated history of one member, newest mark first.

    The date filter applies to the activity's date, not the time of marking.
    Stats cover the whole filtered history, not only the returned page.
    """
    authorize_member_access(caller, member_id)
    page, limit = page_params(page, limit)
    member = await get_member(member_id)

    query = {"member_id": member_id, **(date_range or DateRange()).to_query()}
    counts = await _status_counts(query)
    records = await _fetch(
        query, ("marked_at", -1), ("_id", -1), skip=(page - 1) * limit, limit=limit
    )

    return MemberHistory(
        member=MemberOut.from_document(member),
        attendance=await to_history_items(records),
        stats=member_stats(counts),
        pagination=Pagination.build(page, limit, counts.total),
    )


def build_filter_query(
    date_range: Optional[DateRange] = None,
    status: Optional[str] = None,
    member_id: Optional[str] = None,
    event_id: Optional[str] = None,
    schedule_id: Optional[str] = None,
    activity_kind: Optional[str] = None,
) -> dict:
    query: dict = dict((date_range or DateRange()).to_query())
    if status:
        query["status"] = parse_status(status).value
    if member_id:
        query["member_id"] = member_id
    if event_id and schedule_id:
        raise ValidationError("Filter by eventId or scheduleId, not both", field="eventId")
    if event_id:
        query.update(activity_query(EventRef(id=event_id)))
    elif schedule_id:
        query.update(activity_query(ScheduleRef(id=schedule_id)))
    elif activity_kind:
        try:
            query["activity.kind"] = ActivityKind(activity_kind).value
        except ValueError:
            raise ValidationError(
                f"Invalid activity type '{activity_kind}'. Expected 'event' or 'schedule'",
                field="activityKind",
            )
    return query


async def list_attendance(
    caller: Caller,
    query: dict,
    page: int = 1,
    limit: Optional[int] = None,
) -> AttendancePage:
    """All records matching a filter built by build_filter_query, newest first."""
    authorize(caller, PRIVILEGED_ROLES)
    page, limit = page_params(page, limit)
    total = await _count(query)
    records = await _fetch(query, ("marked_at", -1), ("_id", -1), skip=(page - 1) * limit, limit=limit)
    return AttendancePage(attendance=await to_history_items(records), pagination=Pagination.build(page, limit, total))


async def find_records(query: dict) -> list[AttendanceRecord]:
    """Unpaginated selection for analytics and export, in a stable order."""
    return await _fetch(query, ("activity_date", 1), ("member_id", 1), ("_id", 1))
