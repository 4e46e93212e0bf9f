"""Typed failures raised by the attendance services.

Each error carries the HTTP status it maps to and a message that is safe to
show to the caller. Store and export failures keep their cause for the log
but only expose a generic message.
"""
from __future__ import annotations


class AttendanceError(Exception):
    status_code: int = 500
    default_message: str = "Request failed"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(AttendanceError):
    status_code = 400
    default_message = "Invalid request"

    def __init__(self, message: str | None = None, *, field: str | None = None):
        super().__init__(message)
        self.field = field


class NotFoundError(AttendanceError):
    status_code = 404
    default_message = "Not found"


class AuthorizationError(AttendanceError):
    status_code = 403
    default_message = "Insufficient permissions"


class StoreError(AttendanceError):
    status_code = 500
    default_message = "Could not complete the request, please try again"


class ExportError(AttendanceError):
    status_code = 500
    default_message = "Failed to export attendance"
