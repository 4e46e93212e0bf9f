"""Read-only lookups into the member, event and schedule collections."""
from __future__ import annotations

from typing import Iterable

from beanie import PydanticObjectId
from bson.errors import InvalidId

from choirhub.errors import NotFoundError
from choirhub.models.activity import ActivityInfo, ActivityKind, ActivityRef, Event, PracticeSchedule
from choirhub.models.member import Member


def _object_id(value: str) -> PydanticObjectId | None:
    try:
        return PydanticObjectId(value)
    except (InvalidId, TypeError):
        return None


async def get_member(member_id: str) -> Member:
    oid = _object_id(member_id)
    member = await Member.get(oid) if oid else None
    if not member:
        raise NotFoundError(f"Member {member_id} not found")
    return member


async def get_all_members(active_only: bool = True) -> list[Member]:
    query = {"is_active": True} if active_only else {}
    return await Member.find(query).sort("last_name", "first_name").to_list()


async def get_members_by_ids(member_ids: Iterable[str]) -> dict[str, Member]:
    oids = [oid for oid in (_object_id(m) for m in set(member_ids)) if oid]
    if not oids:
        return {}
    members = await Member.find({"_id": {"$in": oids}}).to_list()
    return {str(m.id): m for m in members}


async def get_event(event_id: str) -> Event:
    oid = _object_id(event_id)
    event = await Event.get(oid) if oid else None
    if not event:
        raise NotFoundError(f"Event {event_id} not found")
    return event


async def get_schedule(schedule_id: str) -> PracticeSchedule:
    oid = _object_id(schedule_id)
    schedule = await PracticeSchedule.get(oid) if oid else None
    if not schedule:
        raise NotFoundError(f"Practice schedule {schedule_id} not found")
    return schedule


async def resolve_activity(ref: ActivityRef) -> ActivityInfo:
    if ref.kind == ActivityKind.EVENT.value:
        return ActivityInfo.from_event(await get_event(ref.id))
    return ActivityInfo.from_schedule(await get_schedule(ref.id))


async def get_activities(refs: Iterable[ActivityRef]) -> dict[tuple[str, str], ActivityInfo]:
    """Batch-resolve activities keyed by (kind, id); unknown ids are skipped."""
    event_ids, schedule_ids = set(), set()
    for ref in refs:
        (event_ids if ref.kind == ActivityKind.EVENT.value else schedule_ids).add(ref.id)

    resolved: dict[tuple[str, str], ActivityInfo] = {}
    event_oids = [oid for oid in map(_object_id, event_ids) if oid]
    if event_oids:
        for event in await Event.find({"_id": {"$in": event_oids}}).to_list():
            resolved[(ActivityKind.EVENT.value, str(event.id))] = ActivityInfo.from_event(event)
    schedule_oids = [oid for oid in map(_object_id, schedule_ids) if oid]
    if schedule_oids:
        for schedule in await PracticeSchedule.find({"_id": {"$in": schedule_oids}}).to_list():
            resolved[(ActivityKind.SCHEDULE.value, str(schedule.id))] = ActivityInfo.from_schedule(schedule)
    return resolved
