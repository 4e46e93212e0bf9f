"""Event and practice-schedule directories (the anchors attendance is taken for)."""
from typing import Optional

from fastapi import APIRouter, Query

from choirhub.api.deps import CurrentCaller, DateRangeQuery, PrivilegedCaller
from choirhub.models.activity import (
    Event,
    EventCreate,
    EventOut,
    PracticeSchedule,
    ScheduleCreate,
    ScheduleOut,
)
from choirhub.services.directory import get_event, get_schedule

events_router = APIRouter()
schedules_router = APIRouter()


def _event_out(event: Event) -> dict:
    return EventOut(id=str(event.id), **event.model_dump(exclude={"id", "created_by", "created_at"})).to_wire()


def _schedule_out(schedule: PracticeSchedule) -> dict:
    return ScheduleOut(
        id=str(schedule.id), **schedule.model_dump(exclude={"id", "created_by", "created_at"})
    ).to_wire()


@events_router.get("/")
async def list_events(caller: CurrentCaller, date_range: DateRangeQuery):
    events = await Event.find(date_range.to_query("date")).sort("date").to_list()
    return {"success": True, "data": [_event_out(e) for e in events]}


@events_router.post("/", status_code=201)
async def create_event(data: EventCreate, caller: PrivilegedCaller):
    event = Event(
        title=data.title.strip(),
        date=data.date.isoformat(),
        time=data.time,
        location=data.location,
        description=data.description,
        created_by=caller.id,
    )
    await event.insert()
    return {"success": True, "data": _event_out(event)}


@events_router.get("/{event_id}")
async def get_event_detail(event_id: str, caller: CurrentCaller):
    return {"success": True, "data": _event_out(await get_event(event_id))}


@schedules_router.get("/")
async def list_schedules(
    caller: CurrentCaller,
    date_range: DateRangeQuery,
    lecture_hall_id: Optional[str] = Query(None, alias="lectureHallId"),
):
    query = date_range.to_query("date")
    if lecture_hall_id:
        query["lecture_hall_id"] = lecture_hall_id.strip().upper()
    schedules = await PracticeSchedule.find(query).sort("date", "start_time").to_list()
    return {"success": True, "data": [_schedule_out(s) for s in schedules]}


@schedules_router.post("/", status_code=201)
async def create_schedule(data: ScheduleCreate, caller: PrivilegedCaller):
    schedule = PracticeSchedule(
        title=data.title.strip(),
        date=data.date.isoformat(),
        start_time=data.start_time,
        end_time=data.end_time,
        lecture_hall_id=data.lecture_hall_id,
        description=data.description,
        created_by=caller.id,
    )
    await schedule.insert()
    return {"success": True, "data": _schedule_out(schedule)}


@schedules_router.get("/{schedule_id}")
async def get_schedule_detail(schedule_id: str, caller: CurrentCaller):
    return {"success": True, "data": _schedule_out(await get_schedule(schedule_id))}
