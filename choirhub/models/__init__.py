"""Beanie document models and Pydantic schemas."""
from choirhub.models.member import Member, MemberCreate, MemberOut
from choirhub.models.activity import (
    ActivityInfo,
    ActivityKind,
    ActivityRef,
    Event,
    EventCreate,
    EventOut,
    EventRef,
    PracticeSchedule,
    ScheduleCreate,
    ScheduleOut,
    ScheduleRef,
)
from choirhub.models.attendance import (
    AttendanceOut,
    AttendancePage,
    AttendanceRecord,
    AttendanceStatus,
    AttendanceUpdate,
    HistoryItem,
    MarkAttendanceRequest,
    MemberHistory,
    MemberStats,
    RosterEntry,
    StatusCounts,
)
from choirhub.models.analytics import AnalyticsSnapshot, AnalyticsSummary, DailyAnalytics, MemberAnalytics
from choirhub.models.common import CamelModel, DateRange, Pagination

__all__ = [
    "Member",
    "MemberCreate",
    "MemberOut",
    "ActivityInfo",
    "ActivityKind",
    "ActivityRef",
    "Event",
    "EventCreate",
    "EventOut",
    "EventRef",
    "PracticeSchedule",
    "ScheduleCreate",
    "ScheduleOut",
    "ScheduleRef",
    "AttendanceOut",
    "AttendancePage",
    "AttendanceRecord",
    "AttendanceStatus",
    "AttendanceUpdate",
    "HistoryItem",
    "MarkAttendanceRequest",
    "MemberHistory",
    "MemberStats",
    "RosterEntry",
    "StatusCounts",
    "AnalyticsSnapshot",
    "AnalyticsSummary",
    "DailyAnalytics",
    "MemberAnalytics",
    "CamelModel",
    "DateRange",
    "Pagination",
]
