from __future__ import annotations

import datetime
from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field


class HolidayEvent(BaseModel):
    type: Literal["holiday"] = "holiday"
    id: str
    name: str
    date: datetime.date
    description: str | None = None


class LeaveEvent(BaseModel):
    type: Literal["leave"] = "leave"
    id: str
    worker_name: str
    worker_department: str | None = None
    leave_type: str
    start_date: datetime.date
    end_date: datetime.date
    days: int


class VisaExpiryEvent(BaseModel):
    type: Literal["visa_expiry"] = "visa_expiry"
    id: str
    worker_name: str
    worker_department: str | None = None
    date: datetime.date
    days_left: int


class BgVerificationEvent(BaseModel):
    type: Literal["bg_verification"] = "bg_verification"
    id: str
    worker_id: str
    worker_name: str
    worker_department: str | None = None
    referee_name: str
    date: datetime.date
    reference_status: str | None = None
    verification_status: str | None = None


CalendarEvent = Annotated[
    Union[HolidayEvent, LeaveEvent, VisaExpiryEvent, BgVerificationEvent],
    Field(discriminator="type"),
]


class CalendarEvents(BaseModel):
    """Payload of ``GET /calendar/events?year&month``."""

    holidays: list[HolidayEvent] = Field(default_factory=list)
    leaves: list[LeaveEvent] = Field(default_factory=list)
    visa_expiries: list[VisaExpiryEvent] = Field(default_factory=list)
    bg_verifications: list[BgVerificationEvent] = Field(default_factory=list)

    def all_events(self) -> list[CalendarEvent]:
        return [*self.holidays, *self.leaves, *self.visa_expiries, *self.bg_verifications]


class HolidayCreate(BaseModel):
    name: str = Field(..., min_length=1)
    date: datetime.date
    description: str | None = None
