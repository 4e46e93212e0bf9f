"""Derived analytics snapshot (never persisted)."""
from choirhub.models.attendance import StatusCounts
from choirhub.models.common import CamelModel


class AnalyticsSummary(CamelModel):
    total_records: int
    by_status: StatusCounts
    attendance_rate: float


class MemberAnalytics(CamelModel):
    member_id: str
    name: str
    total: int
    present: int
    absent: int
    excused: int
    late: int
    attendance_percentage: float


class DailyAnalytics(CamelModel):
    date: str
    total: int
    present: int
    absent: int
    excused: int
    late: int


class AnalyticsSnapshot(CamelModel):
    summary: AnalyticsSummary
    member_analytics: list[MemberAnalytics]
    daily_analytics: list[DailyAnalytics]
