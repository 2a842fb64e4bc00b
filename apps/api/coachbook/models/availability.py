import uuid
from sqlalchemy import Column, Time, SmallInteger, Integer, Boolean, DateTime, Enum, Uuid
from sqlalchemy.sql import func

from coachbook.core.database import Base
from coachbook.scheduling.session_types import SessionType

class AvailabilitySlot(Base):
    """Recurring weekly availability window for one session type."""

    __tablename__ = "availability_slots"

    slot_id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)

    day_of_week = Column(SmallInteger, nullable=False, index=True)  # 0=Sun ... 6=Sat
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)

    session_type = Column(
        Enum(SessionType, name="session_type", values_callable=lambda e: [m.value for m in e]),
        nullable=False,
    )
    slot_duration = Column(Integer, nullable=False, default=60)  # minutes between offered starts
    is_active = Column(Boolean, nullable=False, default=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)
