"""Attendance records: one status per member per event or schedule."""
from datetime import datetime
from enum import Enum
from typing import Optional

from beanie import Document
from pydantic import Field
from pymongo import ASCENDING, DESCENDING, IndexModel

from choirhub.errors import ValidationError
from choirhub.models.activity import ActivityKind, ActivityRef, EventRef, ScheduleRef
from choirhub.models.common import CamelModel, Pagination
from choirhub.models.member import MemberOut


class AttendanceStatus(str, Enum):
    PRESENT = "present"
    ABSENT = "absent"
    EXCUSED = "excused"
    LATE = "late"


STATUSES: tuple[str, ...] = tuple(s.value for s in AttendanceStatus)


def parse_status(value) -> AttendanceStatus:
    try:
        return AttendanceStatus(value)
    except ValueError:
        raise ValidationError(
            f"Invalid status '{value}'. Expected one of: {', '.join(STATUSES)}", field="status"
        )


def activity_ref_from(event_id: Optional[str], schedule_id: Optional[str]) -> ActivityRef:
    """Build the activity reference from the wire's two optional ids."""
    if event_id and schedule_id:
        raise ValidationError("Provide either eventId or scheduleId, not both", field="eventId")
    if event_id:
        return EventRef(id=event_id)
    if schedule_id:
        return ScheduleRef(id=schedule_id)
    raise ValidationError("Either eventId or scheduleId is required", field="eventId")


class AttendanceRecord(Document):
    """Attendance of one member for one activity."""

    member_id: str
    activity: ActivityRef
    activity_date: str  # YYYY-MM-DD, copied from the activity for range filters
    status: AttendanceStatus
    comments: Optional[str] = None
    marked_by: str  # member_id
    marked_at: datetime = Field(default_factory=datetime.utcnow)

    class Settings:
        name = "attendance_records"
        use_state_management = True
        indexes = [
            IndexModel(
                [("member_id", ASCENDING), ("activity.kind", ASCENDING), ("activity.id", ASCENDING)],
                name="member_activity_unique",
                unique=True,
            ),
            IndexModel([("activity.kind", ASCENDING), ("activity.id", ASCENDING)], name="activity"),
            IndexModel([("member_id", ASCENDING), ("marked_at", DESCENDING)], name="member_marked_at"),
            IndexModel([("activity_date", ASCENDING)], name="activity_date"),
        ]


# Request bodies

class MarkAttendanceRequest(CamelModel):
    member_id: str
    event_id: Optional[str] = None
    schedule_id: Optional[str] = None
    status: str
    comments: Optional[str] = None


class AttendanceUpdate(CamelModel):
    status: Optional[str] = None
    comments: Optional[str] = None


# Responses

class AttendanceOut(CamelModel):
    id: str
    member_id: str
    event_id: Optional[str] = None
    schedule_id: Optional[str] = None
    activity_date: str
    status: AttendanceStatus
    comments: Optional[str] = None
    marked_by: str
    marked_at: datetime

    @classmethod
    def from_document(cls, record: AttendanceRecord) -> "AttendanceOut":
        is_event = record.activity.kind == ActivityKind.EVENT.value
        return cls(
            id=str(record.id),
            member_id=record.member_id,
            event_id=record.activity.id if is_event else None,
            schedule_id=None if is_event else record.activity.id,
            activity_date=record.activity_date,
            status=record.status,
            comments=record.comments,
            marked_by=record.marked_by,
            marked_at=record.marked_at,
        )


class RosterEntry(CamelModel):
    """A member joined with their record for a single activity."""

    member: MemberOut
    attendance: AttendanceOut


class ActivitySummary(CamelModel):
    kind: ActivityKind
    id: str
    title: str
    date: str


class MarkedBy(CamelModel):
    id: str
    name: str


class HistoryItem(CamelModel):
    """A record joined with its activity title/date and who marked it."""

    id: str
    member_id: str
    activity: ActivitySummary
    status: AttendanceStatus
    comments: Optional[str] = None
    marked_by: Optional[MarkedBy] = None
    marked_at: datetime


class StatusCounts(CamelModel):
    present: int = 0
    absent: int = 0
    excused: int = 0
    late: int = 0

    @property
    def total(self) -> int:
        return self.present + self.absent + self.excused + self.late

    def add(self, status: AttendanceStatus) -> None:
        setattr(self, status.value, getattr(self, status.value) + 1)

    def attendance_rate(self) -> float:
        """Share of present marks as a percentage with two decimals; 0 when empty."""
        total = self.total
        if not total:
            return 0
        return round(self.present / total * 100, 2)


class MemberStats(CamelModel):
    total: int
    present: int
    absent: int
    excused: int
    late: int
    attendance_rate: float


class MemberHistory(CamelModel):
    member: MemberOut
    attendance: list[HistoryItem]
    stats: MemberStats
    pagination: Pagination


class AttendancePage(CamelModel):
    attendance: list[HistoryItem]
    pagination: Pagination
