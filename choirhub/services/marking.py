"""Marking attendance: validated, atomic upsert of a single record."""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Optional

from beanie import PydanticObjectId
from bson.errors import InvalidId
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError, PyMongoError

from choirhub.errors import NotFoundError, StoreError, ValidationError
from choirhub.models.activity import ActivityRef
from choirhub.models.attendance import AttendanceRecord, AttendanceStatus, parse_status
from choirhub.rbac import PRIVILEGED_ROLES, Caller, authorize
from choirhub.services.directory import get_member, resolve_activity

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = {"status", "comments"}


def _clean_comments(comments: Optional[str]) -> Optional[str]:
    if comments is None:
        return None
    comments = comments.strip()
    return comments or None


def _utcnow() -> datetime:
    return datetime.utcnow()


def _object_id(record_id: str) -> PydanticObjectId:
    try:
        return PydanticObjectId(record_id)
    except (InvalidId, TypeError):
        raise NotFoundError(f"Attendance record {record_id} not found")


async def get_record(record_id: str) -> AttendanceRecord:
    record = await AttendanceRecord.get(_object_id(record_id))
    if not record:
        raise NotFoundError(f"Attendance record {record_id} not found")
    return record


async def _upsert(key: dict, update: dict) -> dict:
    collection = AttendanceRecord.get_motor_collection()
    try:
        return await collection.find_one_and_update(
            key, update, upsert=True, return_document=ReturnDocument.AFTER
        )
    except DuplicateKeyError:
        # A concurrent mark inserted the record first; this attempt becomes an update.
        return await collection.find_one_and_update(key, update, return_document=ReturnDocument.AFTER)


async def _update_one(record_id: PydanticObjectId, update: dict) -> dict | None:
    return await AttendanceRecord.get_motor_collection().find_one_and_update(
        {"_id": record_id}, update, return_document=ReturnDocument.AFTER
    )


async def mark_attendance(
    caller: Caller,
    member_id: str,
    activity: ActivityRef,
    status: AttendanceStatus | str,
    comments: Optional[str] = None,
) -> AttendanceRecord:
    """Create or overwrite the record for (member, activity).

    Repeated marks for the same pair update the existing record in place;
    the unique (member, activity) index makes the upsert safe under
    concurrent requests. ``marked_at`` only ever moves forward.
    """
    authorize(caller, PRIVILEGED_ROLES)
    status = parse_status(status)
    member = await get_member(member_id)
    info = await resolve_activity(activity)

    key = {
        "member_id": str(member.id),
        "activity": {"kind": info.ref.kind, "id": info.ref.id},
    }
    update = {
        "$set": {
            "status": status.value,
            "comments": _clean_comments(comments),
            "marked_by": caller.id,
            "activity_date": info.date,
        },
        "$max": {"marked_at": _utcnow()},
    }
    try:
        raw = await _upsert(key, update)
        record = await AttendanceRecord.get(raw["_id"]) if raw else None
    except PyMongoError as e:
        logger.error("Failed to mark attendance for member %s on %s %s: %s",
                     member_id, info.ref.kind, info.ref.id, e)
        raise StoreError() from e
    if record is None:
        raise StoreError()

    logger.info("Marked member %s %s for %s %s (by %s)",
                member_id, status.value, info.ref.kind, info.ref.id, caller.id)
    return record


async def update_attendance(caller: Caller, record_id: str, changes: dict[str, Any]) -> AttendanceRecord:
    """Apply a partial status/comments update to an existing record.

    Only the fields present in ``changes`` are written, in a single atomic
    update, so a concurrent mark of the other field is never overwritten.
    """
    authorize(caller, PRIVILEGED_ROLES)
    changes = {k: v for k, v in changes.items() if k in UPDATABLE_FIELDS}
    if not changes:
        raise ValidationError("Nothing to update: provide status and/or comments")

    fields: dict[str, Any] = {"marked_by": caller.id}
    if "status" in changes:
        if changes["status"] is None:
            raise ValidationError("status cannot be cleared", field="status")
        fields["status"] = parse_status(changes["status"]).value
    if "comments" in changes:
        fields["comments"] = _clean_comments(changes["comments"])

    oid = _object_id(record_id)
    try:
        raw = await _update_one(oid, {"$set": fields, "$max": {"marked_at": _utcnow()}})
        record = await AttendanceRecord.get(oid) if raw else None
    except PyMongoError as e:
        logger.error("Failed to update attendance record %s: %s", record_id, e)
        raise StoreError() from e
    if record is None:
        raise NotFoundError(f"Attendance record {record_id} not found")

    logger.info("Updated attendance record %s (by %s)", record_id, caller.id)
    return record


async def delete_attendance(caller: Caller, record_id: str) -> None:
    authorize(caller, PRIVILEGED_ROLES)
    record = await get_record(record_id)
    try:
        await record.delete()
    except PyMongoError as e:
        logger.error("Failed to delete attendance record %s: %s", record_id, e)
        raise StoreError() from e
    logger.info("Deleted attendance record %s (by %s)", record_id, caller.id)
