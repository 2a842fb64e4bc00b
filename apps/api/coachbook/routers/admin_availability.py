import logging
from datetime import datetime, timezone
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import and_, delete, select
from sqlalchemy.orm import Session

from coachbook.core.database import get_db
from coachbook.models.availability import AvailabilitySlot
from coachbook.models.exception import AvailabilityException
from coachbook.routers.auth import get_current_admin
from coachbook.scheduling.civil_time import as_utc
from coachbook.scheduling.session_types import SessionType
from coachbook.schemas.availability import (
    AvailabilitySlotCreate,
    AvailabilitySlotOut,
    AvailabilitySlotUpdate,
    ExceptionCreate,
    ExceptionOut,
    ExceptionReason,
)
from coachbook.services.availability import booked_conflicts
from coachbook.services.validators import validate_time_range

logger = logging.getLogger(__name__)

router = APIRouter(dependencies=[Depends(get_current_admin)])


def _require_slot(db: Session, slot_id: UUID) -> AvailabilitySlot:
    slot = db.get(AvailabilitySlot, slot_id)
    if not slot:
        raise HTTPException(status_code=404, detail="Availability slot not found")
    return slot


def _check_time_range(start, end) -> None:
    try:
        validate_time_range(start, end)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


def _overlapping_rule(db: Session, day_of_week: int, session_type: SessionType, start, end, exclude_id=None):
    stmt = select(AvailabilitySlot).where(
        and_(
            AvailabilitySlot.day_of_week == day_of_week,
            AvailabilitySlot.session_type == session_type,
            AvailabilitySlot.is_active == True,  # noqa: E712
            AvailabilitySlot.start_time < end,
            AvailabilitySlot.end_time > start,
        )
    )
    if exclude_id is not None:
        stmt = stmt.where(AvailabilitySlot.slot_id != exclude_id)
    return db.execute(stmt).scalars().first()


# --- Recurring availability ---
@router.get("", response_model=list[AvailabilitySlotOut])
def list_slots(
    session_type: Optional[SessionType] = Query(None),
    is_active: Optional[bool] = Query(None),
    db: Session = Depends(get_db),
):
    stmt = select(AvailabilitySlot)
    if session_type is not None:
        stmt = stmt.where(AvailabilitySlot.session_type == session_type)
    if is_active is not None:
        stmt = stmt.where(AvailabilitySlot.is_active == is_active)
    stmt = stmt.order_by(AvailabilitySlot.day_of_week, AvailabilitySlot.start_time)
    return db.execute(stmt).scalars().all()


@router.post("", response_model=AvailabilitySlotOut, status_code=201)
def create_slot(payload: AvailabilitySlotCreate, db: Session = Depends(get_db)):
    _check_time_range(payload.start_time, payload.end_time)

    if payload.is_active and _overlapping_rule(
        db, payload.day_of_week, payload.session_type, payload.start_time, payload.end_time
    ):
        raise HTTPException(status_code=409, detail="This time slot overlaps with an existing slot")

    slot = AvailabilitySlot(**payload.model_dump())
    db.add(slot)
    db.commit()
    db.refresh(slot)
    logger.info("Created availability slot %s (dow=%s %s-%s)", slot.slot_id, slot.day_of_week, slot.start_time, slot.end_time)
    return slot


@router.patch("/{slot_id}", response_model=AvailabilitySlotOut)
def update_slot(slot_id: UUID, payload: AvailabilitySlotUpdate, db: Session = Depends(get_db)):
    slot = _require_slot(db, slot_id)
    changes = payload.model_dump(exclude_unset=True)

    # every column is NOT NULL; an explicit null is not "leave unchanged"
    nulls = sorted(k for k, v in changes.items() if v is None)
    if nulls:
        raise HTTPException(status_code=400, detail=f"Fields cannot be null: {', '.join(nulls)}")

    start = changes.get("start_time", slot.start_time)
    end = changes.get("end_time", slot.end_time)
    _check_time_range(start, end)

    is_active = changes.get("is_active", slot.is_active)
    if is_active and _overlapping_rule(
        db,
        changes.get("day_of_week", slot.day_of_week),
        changes.get("session_type", slot.session_type),
        start,
        end,
        exclude_id=slot.slot_id,
    ):
        raise HTTPException(status_code=409, detail="This time slot overlaps with an existing slot")

    for k, v in changes.items():
        setattr(slot, k, v)
    db.commit()
    db.refresh(slot)
    logger.info("Updated availability slot %s: %s", slot.slot_id, sorted(changes))
    return slot


@router.delete("/{slot_id}")
def delete_slot(slot_id: UUID, db: Session = Depends(get_db)):
    slot = _require_slot(db, slot_id)

    future_bookings = (
        db.execute(
            select(AvailabilityException).where(
                and_(
                    AvailabilityException.slot_id == slot_id,
                    AvailabilityException.reason == ExceptionReason.booked,
                    AvailabilityException.starts_at >= datetime.now(timezone.utc),
                )
            )
        )
        .scalars()
        .all()
    )
    if future_bookings:
        raise HTTPException(
            status_code=409,
            detail={"message": "Cannot delete slot with future bookings", "future_bookings": len(future_bookings)},
        )

    db.execute(delete(AvailabilityException).where(AvailabilityException.slot_id == slot_id))
    db.delete(slot)
    db.commit()
    logger.info("Deleted availability slot %s", slot_id)
    return {"ok": True}


# --- Exceptions ---
@router.get("/exceptions", response_model=list[ExceptionOut])
def list_exceptions(
    reason: Optional[ExceptionReason] = Query(None),
    start: Optional[datetime] = Query(None, description="Only exceptions starting at/after this instant"),
    end: Optional[datetime] = Query(None, description="Only exceptions ending at/before this instant"),
    db: Session = Depends(get_db),
):
    stmt = select(AvailabilityException)
    if reason is not None:
        stmt = stmt.where(AvailabilityException.reason == reason)
    if start is not None:
        stmt = stmt.where(AvailabilityException.starts_at >= as_utc(start))
    if end is not None:
        stmt = stmt.where(AvailabilityException.ends_at <= as_utc(end))
    stmt = stmt.order_by(AvailabilityException.starts_at)
    return db.execute(stmt).scalars().all()


@router.post("/exceptions", response_model=ExceptionOut, status_code=201)
def create_exception(payload: ExceptionCreate, db: Session = Depends(get_db)):
    starts_at = as_utc(payload.starts_at)
    ends_at = as_utc(payload.ends_at)
    if ends_at <= starts_at:
        raise HTTPException(status_code=400, detail="ends_at must be after starts_at")

    if payload.slot_id is not None:
        _require_slot(db, payload.slot_id)

    conflicts = booked_conflicts(db, starts_at, ends_at)
    if conflicts:
        raise HTTPException(
            status_code=409,
            detail={
                "message": "Cannot block time with existing bookings",
                "conflicting_bookings": [
                    {"starts_at": as_utc(c.starts_at).isoformat(), "booking_ref": c.booking_ref} for c in conflicts
                ],
            },
        )

    exc = AvailabilityException(
        starts_at=starts_at,
        ends_at=ends_at,
        reason=ExceptionReason(payload.reason),
        notes=payload.notes,
        slot_id=payload.slot_id,
    )
    db.add(exc)
    db.commit()
    db.refresh(exc)
    logger.info("Created %s exception %s (%s - %s)", exc.reason.value, exc.exception_id, starts_at, ends_at)
    return exc


@router.delete("/exceptions/{exception_id}")
def delete_exception(exception_id: UUID, db: Session = Depends(get_db)):
    exc = db.get(AvailabilityException, exception_id)
    if not exc:
        raise HTTPException(status_code=404, detail="Availability exception not found")

    if exc.reason == ExceptionReason.booked and exc.booking_ref:
        raise HTTPException(
            status_code=409,
            detail={
                "message": "Cannot delete booked exception. Cancel the booking instead.",
                "booking_ref": exc.booking_ref,
            },
        )

    db.delete(exc)
    db.commit()
    logger.info("Deleted availability exception %s", exception_id)
    return {"ok": True}
