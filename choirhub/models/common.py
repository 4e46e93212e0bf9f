"""Shared schema helpers: camelCase wire format and pagination."""
from __future__ import annotations

import math
from datetime import date
from typing import Optional

from pydantic import BaseModel, ConfigDict, model_validator
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base for API schemas: snake_case in Python, camelCase on the wire."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


class DateRange(BaseModel):
    """Inclusive calendar window; a missing bound is unbounded on that side."""

    start_date: Optional[date] = None
    end_date: Optional[date] = None

    @model_validator(mode="after")
    def _check_order(self):
        if self.start_date and self.end_date and self.start_date > self.end_date:
            raise ValueError("startDate must not be after endDate")
        return self

    def to_query(self, field: str = "activity_date") -> dict:
        bounds: dict[str, str] = {}
        if self.start_date:
            bounds["$gte"] = self.start_date.isoformat()
        if self.end_date:
            bounds["$lte"] = self.end_date.isoformat()
        return {field: bounds} if bounds else {}


class Pagination(CamelModel):
    page: int
    limit: int
    total: int
    pages: int

    @classmethod
    def build(cls, page: int, limit: int, total: int) -> "Pagination":
        return cls(page=page, limit=limit, total=total, pages=math.ceil(total / limit) if total else 0)
