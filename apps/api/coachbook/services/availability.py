from __future__ import annotations

import logging
from datetime import date, datetime, timedelta, timezone
from typing import List, Optional

from pydantic import ValidationError
from sqlalchemy import and_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from coachbook.core.config import settings
from coachbook.models.availability import AvailabilitySlot
from coachbook.models.exception import AvailabilityException
from coachbook.scheduling.civil_time import (
    as_utc,
    civil_weekday,
    day_bounds,
    minutes,
    parse_civil_date,
    resolve_zone,
    zoned_instant,
)
from coachbook.scheduling.session_types import SessionType, parse_session_type, session_length_for
from coachbook.scheduling.slots import compute_available_slots
from coachbook.schemas.availability import ExceptionInterval, ExceptionReason, RecurringRule

logger = logging.getLogger(__name__)


class SlotUnavailable(Exception):
    """The requested start is not (or no longer) bookable."""


# ---------- loading ----------
def load_rules(db: Session, day_of_week: int, session_type: SessionType) -> List[RecurringRule]:
    rows = (
        db.execute(
            select(AvailabilitySlot).where(
                and_(
                    AvailabilitySlot.day_of_week == day_of_week,
                    AvailabilitySlot.session_type == session_type,
                    AvailabilitySlot.is_active == True,  # noqa: E712
                )
            )
        )
        .scalars()
        .all()
    )

    rules: List[RecurringRule] = []
    for r in rows:
        try:
            rules.append(RecurringRule.model_validate(r))
        except ValidationError as e:
            logger.warning("Skipping malformed availability slot %s: %s", r.slot_id, e.errors()[0]["msg"])
    return rules


def load_exceptions(db: Session, window_start: datetime, window_end: datetime) -> List[ExceptionInterval]:
    """Exceptions overlapping [window_start, window_end]."""
    rows = (
        db.execute(
            select(AvailabilityException)
            .where(
                and_(
                    AvailabilityException.starts_at <= window_end,
                    AvailabilityException.ends_at > window_start,
                )
            )
            .order_by(AvailabilityException.starts_at)
        )
        .scalars()
        .all()
    )

    out: List[ExceptionInterval] = []
    for r in rows:
        try:
            out.append(ExceptionInterval(start=r.starts_at, end=r.ends_at, reason=r.reason))
        except ValidationError as e:
            logger.warning("Skipping malformed availability exception %s: %s", r.exception_id, e.errors()[0]["msg"])
    return out


# ---------- queries ----------
def find_available_slots(
    db: Session,
    day,
    session_type,
    now: Optional[datetime] = None,
) -> List[datetime]:
    d = parse_civil_date(day)
    st = parse_session_type(session_type)
    tz = resolve_zone(settings.booking_timezone)

    rules = load_rules(db, civil_weekday(d), st)
    if not rules:
        return []

    window_start, window_end = day_bounds(d, tz)
    exceptions = load_exceptions(db, window_start, window_end)

    return compute_available_slots(
        d,
        st,
        rules,
        exceptions,
        now=now or datetime.now(timezone.utc),
        reference_timezone=tz,
        session_length_minutes=session_length_for(st, settings.session_length_minutes),
        past_buffer_minutes=settings.past_buffer_minutes,
    )


def overlapping_exceptions(
    db: Session,
    starts_at: datetime,
    ends_at: datetime,
    reason: Optional[ExceptionReason] = None,
) -> List[AvailabilityException]:
    """Exceptions overlapping [starts_at, ends_at), any reason unless one is given."""
    stmt = select(AvailabilityException).where(
        and_(
            AvailabilityException.starts_at < ends_at,
            AvailabilityException.ends_at > starts_at,
        )
    )
    if reason is not None:
        stmt = stmt.where(AvailabilityException.reason == reason)
    return db.execute(stmt.order_by(AvailabilityException.starts_at)).scalars().all()


def booked_conflicts(db: Session, starts_at: datetime, ends_at: datetime) -> List[AvailabilityException]:
    return overlapping_exceptions(db, starts_at, ends_at, reason=ExceptionReason.booked)


def _source_slot_id(db: Session, local_day: date, session_type: SessionType, start: datetime, tz):
    """The rule row whose spacing produces `start` on `local_day`, if any."""
    rows = (
        db.execute(
            select(AvailabilitySlot)
            .where(
                and_(
                    AvailabilitySlot.day_of_week == civil_weekday(local_day),
                    AvailabilitySlot.session_type == session_type,
                    AvailabilitySlot.is_active == True,  # noqa: E712
                )
            )
            .order_by(AvailabilitySlot.start_time)
        )
        .scalars()
        .all()
    )
    for r in rows:
        try:
            rule = RecurringRule.model_validate(r)
        except ValidationError:
            continue
        first = zoned_instant(local_day, rule.start_time, tz)
        last = zoned_instant(local_day, rule.end_time, tz)
        step = minutes(rule.slot_duration)
        if first <= start and start + step <= last and (start - first) % step == timedelta(0):
            return r.slot_id
    return None


# ---------- booking writes ----------
def book_slot(
    db: Session,
    starts_at: datetime,
    session_type,
    booking_ref: str,
    now: Optional[datetime] = None,
) -> AvailabilityException:
    """
    Record a confirmed booking as a 'booked' exception.

    Check-then-insert in one transaction: the start must be one of the slots
    currently offered for its civil day, and nothing (of any reason) may overlap
    [start, start + session length), including exceptions past midnight. The
    unique booking_ref keeps a single booking from being recorded twice.
    """
    st = parse_session_type(session_type)
    tz = resolve_zone(settings.booking_timezone)
    start = as_utc(starts_at)
    end = start + minutes(session_length_for(st, settings.session_length_minutes))

    local_day: date = start.astimezone(tz).date()

    # Serialise concurrent bookings on the rule rows of every civil day the
    # session touches (no-op on SQLite)
    touched_days = {civil_weekday(local_day), civil_weekday(end.astimezone(tz).date())}
    db.execute(
        select(AvailabilitySlot.slot_id)
        .where(AvailabilitySlot.day_of_week.in_(sorted(touched_days)))
        .with_for_update()
    )

    offered = find_available_slots(db, local_day, st, now=now)
    if start not in offered:
        raise SlotUnavailable(f"{start.isoformat()} is not an available {st.value} slot")

    clashes = overlapping_exceptions(db, start, end)
    if clashes:
        raise SlotUnavailable(
            f"{start.isoformat()} overlaps {clashes[0].reason.value} time starting {as_utc(clashes[0].starts_at).isoformat()}"
        )

    exc = AvailabilityException(
        starts_at=start,
        ends_at=end,
        reason=ExceptionReason.booked,
        booking_ref=booking_ref,
        slot_id=_source_slot_id(db, local_day, st, start, tz),
    )
    db.add(exc)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise SlotUnavailable(f"Booking {booking_ref} is already recorded")
    db.refresh(exc)

    logger.info("Booked %s slot %s (ref=%s)", st.value, start.isoformat(), booking_ref)
    return exc


def release_booking(db: Session, booking_ref: str) -> bool:
    exc = db.execute(
        select(AvailabilityException).where(
            and_(
                AvailabilityException.booking_ref == booking_ref,
                AvailabilityException.reason == ExceptionReason.booked,
            )
        )
    ).scalar_one_or_none()
    if exc is None:
        return False

    db.delete(exc)
    db.commit()
    logger.info("Released booking %s", booking_ref)
    return True
