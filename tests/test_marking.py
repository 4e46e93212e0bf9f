from datetime import timedelta

import pytest
from pymongo.errors import DuplicateKeyError

from choirhub.errors import AuthorizationError, NotFoundError, ValidationError
from choirhub.models.activity import EventRef, ScheduleRef
from choirhub.models.attendance import AttendanceRecord, AttendanceStatus, activity_ref_from
from choirhub.services import marking
from choirhub.services.marking import delete_attendance, mark_attendance, update_attendance

from conftest import caller_for


async def test_mark_creates_record(moderator, alto, event):
    record = await mark_attendance(caller_for(moderator), str(alto.id), EventRef(id=str(event.id)), "present")

    assert record.member_id == str(alto.id)
    assert record.activity.kind == "event"
    assert record.activity.id == str(event.id)
    assert record.activity_date == "2024-12-15"
    assert record.status == AttendanceStatus.PRESENT
    assert record.marked_by == str(moderator.id)
    assert await AttendanceRecord.count() == 1


async def test_marking_twice_updates_single_record(moderator, admin, alto, event):
    ref = EventRef(id=str(event.id))
    first = await mark_attendance(caller_for(moderator), str(alto.id), ref, "absent")
    second = await mark_attendance(caller_for(admin), str(alto.id), ref, "late", comments="  bus delay ")

    assert await AttendanceRecord.count() == 1
    assert second.id == first.id
    assert second.status == AttendanceStatus.LATE
    assert second.comments == "bus delay"
    assert second.marked_by == str(admin.id)
    assert second.marked_at >= first.marked_at


async def test_event_and_schedule_records_are_distinct(moderator, alto, event, schedule):
    await mark_attendance(caller_for(moderator), str(alto.id), EventRef(id=str(event.id)), "present")
    await mark_attendance(caller_for(moderator), str(alto.id), ScheduleRef(id=str(schedule.id)), "excused")

    assert await AttendanceRecord.count() == 2


async def test_mark_rejects_unknown_status(moderator, alto, event):
    with pytest.raises(ValidationError) as exc:
        await mark_attendance(caller_for(moderator), str(alto.id), EventRef(id=str(event.id)), "sick")
    assert exc.value.field == "status"
    assert await AttendanceRecord.count() == 0


@pytest.mark.parametrize("event_id,schedule_id", [("e1", "s1"), (None, None), ("", "")])
def test_activity_ref_requires_exactly_one_id(event_id, schedule_id):
    with pytest.raises(ValidationError):
        activity_ref_from(event_id, schedule_id)


def test_activity_ref_from_schedule():
    ref = activity_ref_from(None, "s1")
    assert isinstance(ref, ScheduleRef)
    assert ref.id == "s1"


async def test_mark_unknown_member_or_activity(moderator, alto, event):
    with pytest.raises(NotFoundError):
        await mark_attendance(caller_for(moderator), "000000000000000000000000", EventRef(id=str(event.id)), "present")
    with pytest.raises(NotFoundError):
        await mark_attendance(caller_for(moderator), str(alto.id), EventRef(id="not-an-id"), "present")
    with pytest.raises(NotFoundError):
        await mark_attendance(caller_for(moderator), str(alto.id), ScheduleRef(id=str(event.id)), "present")


async def test_regular_member_cannot_mark(alto, tenor, event):
    with pytest.raises(AuthorizationError):
        await mark_attendance(caller_for(alto), str(tenor.id), EventRef(id=str(event.id)), "present")
    assert await AttendanceRecord.count() == 0


async def test_update_changes_status_and_comments(moderator, admin, alto, event):
    record = await mark_attendance(caller_for(moderator), str(alto.id), EventRef(id=str(event.id)), "absent")

    updated = await update_attendance(caller_for(admin), str(record.id), {"status": "excused", "comments": "exam"})

    assert updated.status == AttendanceStatus.EXCUSED
    assert updated.comments == "exam"
    assert updated.marked_by == str(admin.id)
    stored = await AttendanceRecord.get(record.id)
    assert stored.status == AttendanceStatus.EXCUSED


async def test_update_comments_only_keeps_status(moderator, alto, event):
    record = await mark_attendance(caller_for(moderator), str(alto.id), EventRef(id=str(event.id)), "late")

    updated = await update_attendance(caller_for(moderator), str(record.id), {"comments": "10 minutes"})

    assert updated.status == AttendanceStatus.LATE
    assert updated.comments == "10 minutes"


async def test_update_validation(moderator, alto, event):
    record = await mark_attendance(caller_for(moderator), str(alto.id), EventRef(id=str(event.id)), "late")

    with pytest.raises(ValidationError):
        await update_attendance(caller_for(moderator), str(record.id), {})
    with pytest.raises(ValidationError):
        await update_attendance(caller_for(moderator), str(record.id), {"status": "maybe"})
    with pytest.raises(NotFoundError):
        await update_attendance(caller_for(moderator), "000000000000000000000000", {"status": "present"})


async def test_delete_removes_record(admin, alto, event):
    record = await mark_attendance(caller_for(admin), str(alto.id), EventRef(id=str(event.id)), "present")

    await delete_attendance(caller_for(admin), str(record.id))

    assert await AttendanceRecord.count() == 0
    with pytest.raises(NotFoundError):
        await delete_attendance(caller_for(admin), str(record.id))


async def test_regular_member_cannot_delete(admin, alto, event):
    record = await mark_attendance(caller_for(admin), str(alto.id), EventRef(id=str(event.id)), "present")

    with pytest.raises(AuthorizationError):
        await delete_attendance(caller_for(alto), str(record.id))
    assert await AttendanceRecord.count() == 1


class RacingCollection:
    """Collection wrapper whose first upsert loses the race to a concurrent insert."""

    def __init__(self, inner):
        self.inner = inner
        self.lost_race = False

    async def find_one_and_update(self, filter, update, **kwargs):
        if kwargs.get("upsert") and not self.lost_race:
            self.lost_race = True
            raise DuplicateKeyError("E11000 duplicate key error collection: attendance_records")
        return await self.inner.find_one_and_update(filter, update, **kwargs)

    def __getattr__(self, name):
        return getattr(self.inner, name)


async def test_unique_member_activity_index_exists():
    indexes = await AttendanceRecord.get_motor_collection().index_information()

    assert "member_activity_unique" in indexes
    assert indexes["member_activity_unique"]["unique"] is True
    assert [k for k, _ in indexes["member_activity_unique"]["key"]] == ["member_id", "activity.kind", "activity.id"]


async def test_mark_retries_as_update_after_losing_insert_race(monkeypatch, moderator, admin, alto, event):
    ref = EventRef(id=str(event.id))
    first = await mark_attendance(caller_for(moderator), str(alto.id), ref, "absent")
    racing = RacingCollection(AttendanceRecord.get_motor_collection())
    monkeypatch.setattr(AttendanceRecord, "get_motor_collection", staticmethod(lambda: racing))

    second = await mark_attendance(caller_for(admin), str(alto.id), ref, "present")

    assert racing.lost_race
    assert second.id == first.id
    assert await AttendanceRecord.count() == 1
    stored = await AttendanceRecord.get(first.id)
    assert stored.status == AttendanceStatus.PRESENT
    assert stored.marked_by == str(admin.id)


async def test_remark_never_moves_marked_at_backwards(monkeypatch, moderator, alto, event):
    ref = EventRef(id=str(event.id))
    first = await mark_attendance(caller_for(moderator), str(alto.id), ref, "absent")
    monkeypatch.setattr(marking, "_utcnow", lambda: first.marked_at - timedelta(minutes=5))

    second = await mark_attendance(caller_for(moderator), str(alto.id), ref, "present")

    assert second.status == AttendanceStatus.PRESENT
    assert second.marked_at == first.marked_at


async def test_update_never_moves_marked_at_backwards(monkeypatch, moderator, alto, event):
    record = await mark_attendance(caller_for(moderator), str(alto.id), EventRef(id=str(event.id)), "late")
    monkeypatch.setattr(marking, "_utcnow", lambda: record.marked_at - timedelta(hours=1))

    updated = await update_attendance(caller_for(moderator), str(record.id), {"comments": "clock skew"})

    assert updated.marked_at == record.marked_at


async def test_comments_update_keeps_concurrent_remark(monkeypatch, moderator, admin, alto, event):
    ref = EventRef(id=str(event.id))
    record = await mark_attendance(caller_for(moderator), str(alto.id), ref, "absent")
    write = marking._update_one

    async def remark_then_write(record_id, update):
        # Another moderator re-marks the member while the comment edit is in flight.
        await mark_attendance(caller_for(admin), str(alto.id), ref, "present")
        return await write(record_id, update)

    monkeypatch.setattr(marking, "_update_one", remark_then_write)

    updated = await update_attendance(caller_for(moderator), str(record.id), {"comments": "arrived with note"})

    assert updated.status == AttendanceStatus.PRESENT
    assert updated.comments == "arrived with note"
    stored = await AttendanceRecord.get(record.id)
    assert stored.status == AttendanceStatus.PRESENT
