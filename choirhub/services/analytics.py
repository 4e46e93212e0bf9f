"""Attendance analytics: summary, per-member and per-day aggregation.

`build_snapshot` is the single place attendance percentages are computed.
It is a pure function of the records and member names it is given, so the
same inputs always produce the same snapshot.
"""
from __future__ import annotations

from collections import defaultdict
from typing import Iterable, Mapping, Optional

from choirhub.models.analytics import AnalyticsSnapshot, AnalyticsSummary, DailyAnalytics, MemberAnalytics
from choirhub.models.attendance import AttendanceRecord, StatusCounts
from choirhub.models.common import DateRange
from choirhub.rbac import PRIVILEGED_ROLES, Caller, authorize
from choirhub.services.directory import get_members_by_ids
from choirhub.services.queries import find_records

UNKNOWN_MEMBER = "Unknown member"


def build_snapshot(records: Iterable[AttendanceRecord], member_names: Mapping[str, str]) -> AnalyticsSnapshot:
    overall = StatusCounts()
    by_member: dict[str, StatusCounts] = defaultdict(StatusCounts)
    by_day: dict[str, StatusCounts] = defaultdict(StatusCounts)

    for record in records:
        overall.add(record.status)
        by_member[record.member_id].add(record.status)
        by_day[record.activity_date].add(record.status)

    member_rows = [
        MemberAnalytics(
            member_id=member_id,
            name=member_names.get(member_id, UNKNOWN_MEMBER),
            total=counts.total,
            present=counts.present,
            absent=counts.absent,
            excused=counts.excused,
            late=counts.late,
            attendance_percentage=counts.attendance_rate(),
        )
        for member_id, counts in by_member.items()
    ]
    member_rows.sort(key=lambda row: (row.name.lower(), row.member_id))

    daily_rows = [
        DailyAnalytics(
            date=day,
            total=counts.total,
            present=counts.present,
            absent=counts.absent,
            excused=counts.excused,
            late=counts.late,
        )
        for day, counts in sorted(by_day.items())
    ]

    return AnalyticsSnapshot(
        summary=AnalyticsSummary(
            total_records=overall.total,
            by_status=overall,
            attendance_rate=overall.attendance_rate(),
        ),
        member_analytics=member_rows,
        daily_analytics=daily_rows,
    )


async def compute_analytics(caller: Caller, date_range: Optional[DateRange] = None) -> AnalyticsSnapshot:
    authorize(caller, PRIVILEGED_ROLES)
    records = await find_records((date_range or DateRange()).to_query())
    members = await get_members_by_ids(r.member_id for r in records)
    return build_snapshot(records, {member_id: m.full_name for member_id, m in members.items()})
