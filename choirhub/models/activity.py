"""Events and practice schedules: the activities attendance is taken for."""
import datetime
from enum import Enum
from typing import Annotated, Literal, Optional, Union

from beanie import Document, Indexed
from pydantic import BaseModel, Field, model_validator

from choirhub.models.common import CamelModel


class ActivityKind(str, Enum):
    EVENT = "event"
    SCHEDULE = "schedule"


class EventRef(BaseModel):
    kind: Literal["event"] = "event"
    id: str


class ScheduleRef(BaseModel):
    kind: Literal["schedule"] = "schedule"
    id: str


# A record belongs to exactly one event or exactly one schedule.
ActivityRef = Annotated[Union[EventRef, ScheduleRef], Field(discriminator="kind")]


class Event(Document):
    """One-off choir event (concert, carol service, ...)."""

    title: str
    date: Indexed(str)  # YYYY-MM-DD
    time: Optional[str] = None  # HH:MM
    location: Optional[str] = None
    description: Optional[str] = None
    created_by: Optional[str] = None  # member_id
    created_at: datetime.datetime = Field(default_factory=datetime.datetime.utcnow)

    class Settings:
        name = "events"
        use_state_management = True


class PracticeSchedule(Document):
    """Practice session on a given day within a time period."""

    title: str
    date: Indexed(str)  # YYYY-MM-DD
    start_time: str  # HH:MM
    end_time: str  # HH:MM
    lecture_hall_id: Optional[str] = None
    description: Optional[str] = None
    created_by: Optional[str] = None  # member_id
    created_at: datetime.datetime = Field(default_factory=datetime.datetime.utcnow)

    class Settings:
        name = "practice_schedules"
        use_state_management = True


class ActivityInfo(BaseModel):
    """Resolved activity anchor: the reference plus its title and day."""

    ref: ActivityRef
    title: str
    date: str

    @classmethod
    def from_event(cls, event: Event) -> "ActivityInfo":
        return cls(ref=EventRef(id=str(event.id)), title=event.title, date=event.date)

    @classmethod
    def from_schedule(cls, schedule: PracticeSchedule) -> "ActivityInfo":
        return cls(ref=ScheduleRef(id=str(schedule.id)), title=schedule.title, date=schedule.date)


class EventCreate(CamelModel):
    title: str = Field(min_length=1)
    date: datetime.date
    time: Optional[str] = Field(default=None, pattern=r"^\d{2}:\d{2}$")
    location: Optional[str] = None
    description: Optional[str] = None


class ScheduleCreate(CamelModel):
    title: str = Field(min_length=1)
    date: datetime.date
    start_time: str = Field(pattern=r"^\d{2}:\d{2}$")
    end_time: str = Field(pattern=r"^\d{2}:\d{2}$")
    lecture_hall_id: Optional[str] = None
    description: Optional[str] = None

    @model_validator(mode="after")
    def _check_period(self):
        if self.start_time >= self.end_time:
            raise ValueError("endTime must be after startTime")
        if self.lecture_hall_id:
            self.lecture_hall_id = self.lecture_hall_id.strip().upper()
        return self


class EventOut(CamelModel):
    id: str
    title: str
    date: str
    time: Optional[str] = None
    location: Optional[str] = None
    description: Optional[str] = None


class ScheduleOut(CamelModel):
    id: str
    title: str
    date: str
    start_time: str
    end_time: str
    lecture_hall_id: Optional[str] = None
    description: Optional[str] = None
