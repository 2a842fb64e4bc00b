import uuid
from sqlalchemy import Column, String, DateTime, Enum, ForeignKey, Uuid
from sqlalchemy.sql import func

from coachbook.core.database import Base
from coachbook.schemas.availability import ExceptionReason

class AvailabilityException(Base):
    """Absolute blackout interval [starts_at, ends_at), stored in UTC."""

    __tablename__ = "availability_exceptions"

    exception_id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)

    starts_at = Column(DateTime(timezone=True), nullable=False, index=True)
    ends_at = Column(DateTime(timezone=True), nullable=False)

    reason = Column(Enum(ExceptionReason, name="exception_reason"), nullable=False)
    notes = Column(String, nullable=True)

    slot_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("availability_slots.slot_id", ondelete="CASCADE"),
        nullable=True,
        index=True,
    )

    # Set for reason='booked'; one exception per booking
    booking_ref = Column(String(64), nullable=True, unique=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
