import enum
from datetime import datetime, time
from typing import Literal, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from coachbook.scheduling.civil_time import as_utc
from coachbook.scheduling.session_types import SessionType


class ExceptionReason(str, enum.Enum):
    blocked = "blocked"
    holiday = "holiday"
    booked = "booked"


# ---------- slot computation inputs ----------

class RecurringRule(BaseModel):
    """A standing weekly window; civil times in the booking timezone."""

    model_config = ConfigDict(frozen=True, from_attributes=True)

    day_of_week: int = Field(ge=0, le=6)  # 0=Sun ... 6=Sat
    start_time: time
    end_time: time
    session_type: SessionType
    slot_duration: int = Field(default=60, gt=0)
    is_active: bool = True

    @model_validator(mode="after")
    def _check_window(self):
        if self.end_time <= self.start_time:
            raise ValueError("end_time must be after start_time")
        return self


class ExceptionInterval(BaseModel):
    """An absolute blackout [start, end)."""

    model_config = ConfigDict(frozen=True)

    start: datetime
    end: datetime
    reason: ExceptionReason = ExceptionReason.blocked

    @field_validator("start", "end")
    @classmethod
    def _to_utc(cls, v: datetime) -> datetime:
        return as_utc(v)

    @model_validator(mode="after")
    def _check_order(self):
        if self.end <= self.start:
            raise ValueError("end must be after start")
        return self


# ---------- admin: recurring availability ----------

class AvailabilitySlotCreate(BaseModel):
    day_of_week: int = Field(ge=0, le=6)
    start_time: time
    end_time: time
    session_type: SessionType
    slot_duration: int = Field(default=60, gt=0)
    is_active: bool = True


class AvailabilitySlotUpdate(BaseModel):
    day_of_week: Optional[int] = Field(default=None, ge=0, le=6)
    start_time: Optional[time] = None
    end_time: Optional[time] = None
    session_type: Optional[SessionType] = None
    slot_duration: Optional[int] = Field(default=None, gt=0)
    is_active: Optional[bool] = None


class AvailabilitySlotOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    slot_id: UUID
    day_of_week: int
    start_time: time
    end_time: time
    session_type: SessionType
    slot_duration: int
    is_active: bool


# ---------- admin: exceptions ----------

class ExceptionCreate(BaseModel):
    starts_at: datetime
    ends_at: datetime
    # 'booked' rows are only written by the booking flow
    reason: Literal["blocked", "holiday"]
    notes: Optional[str] = None
    slot_id: Optional[UUID] = None


class ExceptionOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    exception_id: UUID
    starts_at: datetime
    ends_at: datetime
    reason: ExceptionReason
    notes: Optional[str] = None
    slot_id: Optional[UUID] = None
    booking_ref: Optional[str] = None

    @field_validator("starts_at", "ends_at")
    @classmethod
    def _to_utc(cls, v: datetime) -> datetime:
        return as_utc(v)


# ---------- public booking ----------

class AvailableSlotOut(BaseModel):
    datetime: str  # ISO-8601, UTC
    time: str  # e.g. "9:00 AM" in the booking timezone
    date: str  # civil date in the booking timezone


class AvailableSlotsResponse(BaseModel):
    date: str  # YYYY-MM-DD as requested
    session_type: SessionType
    timezone: str
    available_slots: list[AvailableSlotOut] = Field(default_factory=list)
    message: Optional[str] = None


class ReserveRequest(BaseModel):
    starts_at: datetime
    session_type: SessionType
    booking_ref: str = Field(min_length=1, max_length=64)
