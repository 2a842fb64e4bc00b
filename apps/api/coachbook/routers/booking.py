import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from coachbook.core.config import settings
from coachbook.core.database import get_db
from coachbook.routers.auth import get_current_admin
from coachbook.scheduling.civil_time import local_parts, parse_civil_date
from coachbook.scheduling.session_types import parse_session_type
from coachbook.schemas.availability import (
    AvailableSlotOut,
    AvailableSlotsResponse,
    ExceptionOut,
    ReserveRequest,
)
from coachbook.services.availability import SlotUnavailable, book_slot, find_available_slots, release_booking
from coachbook.services.validators import InvalidArgument

logger = logging.getLogger(__name__)

router = APIRouter()


# GET /booking/available-slots?date=YYYY-MM-DD&sessionType=vod-review
@router.get("/available-slots", response_model=AvailableSlotsResponse)
def get_available_slots(
    date: Optional[str] = Query(None, description="YYYY-MM-DD in the booking timezone"),
    session_type: Optional[str] = Query(None, alias="sessionType"),
    db: Session = Depends(get_db),
):
    if not date:
        raise HTTPException(status_code=400, detail="Date parameter is required")
    if not session_type:
        raise HTTPException(status_code=400, detail="sessionType parameter is required")

    try:
        d = parse_civil_date(date)
        st = parse_session_type(session_type)
        slots = find_available_slots(db, d, st)
    except InvalidArgument as e:
        raise HTTPException(status_code=400, detail=str(e))

    tz = settings.booking_timezone
    return AvailableSlotsResponse(
        date=d.isoformat(),
        session_type=st,
        timezone=tz,
        available_slots=[AvailableSlotOut(**local_parts(s, tz)) for s in slots],
        message=None if slots else "No availability for this day and session type",
    )


@router.post("/reserve", response_model=ExceptionOut, status_code=201)
def reserve_slot(
    payload: ReserveRequest,
    db: Session = Depends(get_db),
    admin_email: str = Depends(get_current_admin),
):
    """Record a confirmed booking so its time stops being offered."""
    try:
        return book_slot(db, payload.starts_at, payload.session_type, payload.booking_ref)
    except InvalidArgument as e:
        raise HTTPException(status_code=400, detail=str(e))
    except SlotUnavailable as e:
        raise HTTPException(status_code=409, detail=str(e))


@router.delete("/reserve/{booking_ref}")
def cancel_reservation(
    booking_ref: str,
    db: Session = Depends(get_db),
    admin_email: str = Depends(get_current_admin),
):
    if not release_booking(db, booking_ref):
        raise HTTPException(status_code=404, detail="Booking not found")
    return {"ok": True}
