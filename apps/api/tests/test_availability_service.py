from datetime import datetime, time, timezone

import pytest

from coachbook.models.availability import AvailabilitySlot
from coachbook.models.exception import AvailabilityException
from coachbook.scheduling.session_types import SessionType
from coachbook.schemas.availability import ExceptionReason
from coachbook.services import availability as svc
from coachbook.services.validators import InvalidArgument

UTC = timezone.utc
LONG_AGO = datetime(2000, 1, 1, tzinfo=UTC)


def utc(*args):
    return datetime(*args, tzinfo=UTC)


def test_load_rules_filters_and_skips_malformed(db, wednesday_rule, caplog):
    db.add_all(
        [
            AvailabilitySlot(
                day_of_week=3,
                start_time=time(15, 0),
                end_time=time(14, 0),  # backwards
                session_type=SessionType.vod_review,
            ),
            AvailabilitySlot(
                day_of_week=3,
                start_time=time(13, 0),
                end_time=time(14, 0),
                session_type=SessionType.vod_review,
                is_active=False,
            ),
            AvailabilitySlot(
                day_of_week=3,
                start_time=time(13, 0),
                end_time=time(14, 0),
                session_type=SessionType.live_coaching,
            ),
        ]
    )
    db.commit()

    with caplog.at_level("WARNING"):
        rules = svc.load_rules(db, 3, SessionType.vod_review)

    assert len(rules) == 1
    assert rules[0].start_time == time(9, 0)
    assert "Skipping malformed availability slot" in caplog.text


def test_load_exceptions_uses_overlap_window(db):
    db.add_all(
        [
            AvailabilityException(starts_at=utc(2025, 11, 19, 3), ends_at=utc(2025, 11, 19, 6), reason=ExceptionReason.holiday),
            AvailabilityException(starts_at=utc(2025, 11, 19, 15), ends_at=utc(2025, 11, 19, 16), reason=ExceptionReason.blocked),
            AvailabilityException(starts_at=utc(2025, 11, 21, 15), ends_at=utc(2025, 11, 21, 16), reason=ExceptionReason.blocked),
        ]
    )
    db.commit()

    got = svc.load_exceptions(db, utc(2025, 11, 19, 5), utc(2025, 11, 20, 4, 59, 59))

    assert [x.start for x in got] == [utc(2025, 11, 19, 3), utc(2025, 11, 19, 15)]
    assert all(x.start.tzinfo is not None for x in got)


def test_find_available_slots_applies_exceptions(db, wednesday_rule):
    db.add(
        AvailabilityException(
            starts_at=utc(2025, 11, 19, 15),
            ends_at=utc(2025, 11, 19, 16),
            reason=ExceptionReason.booked,
            booking_ref="bk-1",
        )
    )
    db.commit()

    got = svc.find_available_slots(db, "2025-11-19", "vod-review", now=LONG_AGO)

    assert got == [utc(2025, 11, 19, 14), utc(2025, 11, 19, 16)]


def test_find_available_slots_empty_day(db, wednesday_rule):
    assert svc.find_available_slots(db, "2025-11-20", "vod-review", now=LONG_AGO) == []


def test_find_available_slots_rejects_bad_input(db):
    with pytest.raises(InvalidArgument):
        svc.find_available_slots(db, "2025-02-30", "vod-review")
    with pytest.raises(InvalidArgument):
        svc.find_available_slots(db, "2025-11-19", "coaching")


def test_book_slot_then_slot_disappears(db, wednesday_rule):
    exc = svc.book_slot(db, utc(2025, 11, 19, 15), "vod-review", "bk-1", now=LONG_AGO)

    assert exc.reason == ExceptionReason.booked
    assert exc.booking_ref == "bk-1"
    assert svc.find_available_slots(db, "2025-11-19", "vod-review", now=LONG_AGO) == [
        utc(2025, 11, 19, 14),
        utc(2025, 11, 19, 16),
    ]


def test_book_slot_refuses_taken_or_unoffered_start(db, wednesday_rule):
    svc.book_slot(db, utc(2025, 11, 19, 15), "vod-review", "bk-1", now=LONG_AGO)

    with pytest.raises(svc.SlotUnavailable):
        svc.book_slot(db, utc(2025, 11, 19, 15), "vod-review", "bk-2", now=LONG_AGO)
    with pytest.raises(svc.SlotUnavailable):
        svc.book_slot(db, utc(2025, 11, 19, 15, 30), "vod-review", "bk-3", now=LONG_AGO)
    with pytest.raises(svc.SlotUnavailable):
        svc.book_slot(db, utc(2025, 11, 19, 14), "live-coaching", "bk-4", now=LONG_AGO)


def test_book_slot_same_reference_twice(db, wednesday_rule):
    svc.book_slot(db, utc(2025, 11, 19, 14), "vod-review", "bk-1", now=LONG_AGO)

    with pytest.raises(svc.SlotUnavailable):
        svc.book_slot(db, utc(2025, 11, 19, 16), "vod-review", "bk-1", now=LONG_AGO)


def test_release_booking(db, wednesday_rule):
    svc.book_slot(db, utc(2025, 11, 19, 15), "vod-review", "bk-1", now=LONG_AGO)

    assert svc.release_booking(db, "bk-1") is True
    assert svc.release_booking(db, "bk-1") is False
    assert utc(2025, 11, 19, 15) in svc.find_available_slots(db, "2025-11-19", "vod-review", now=LONG_AGO)


def _late_wednesday_and_early_thursday(db):
    db.add_all(
        [
            AvailabilitySlot(
                day_of_week=3,
                start_time=time(23, 0),
                end_time=time(23, 59),
                session_type=SessionType.vod_review,
                slot_duration=15,
            ),
            AvailabilitySlot(
                day_of_week=4,
                start_time=time(0, 0),
                end_time=time(2, 0),
                session_type=SessionType.vod_review,
                slot_duration=60,
            ),
        ]
    )
    db.commit()


def test_book_slot_refuses_overlap_with_next_day_booking(db):
    _late_wednesday_and_early_thursday(db)

    # Thursday 00:00 New York
    svc.book_slot(db, utc(2025, 11, 20, 5), "vod-review", "bk-thu", now=LONG_AGO)

    # Wednesday 23:30 is still offered for its own day, but its hour runs into Thursday's booking
    assert utc(2025, 11, 20, 4, 30) in svc.find_available_slots(db, "2025-11-19", "vod-review", now=LONG_AGO)
    with pytest.raises(svc.SlotUnavailable):
        svc.book_slot(db, utc(2025, 11, 20, 4, 30), "vod-review", "bk-wed", now=LONG_AGO)

    booked = db.query(AvailabilityException).filter(AvailabilityException.reason == ExceptionReason.booked).all()
    assert [b.booking_ref for b in booked] == ["bk-thu"]


def test_book_slot_refuses_overlap_with_next_day_holiday(db):
    _late_wednesday_and_early_thursday(db)
    db.add(
        AvailabilityException(
            starts_at=utc(2025, 11, 20, 5, 15),  # Thursday 00:15 New York
            ends_at=utc(2025, 11, 20, 6),
            reason=ExceptionReason.holiday,
        )
    )
    db.commit()

    assert utc(2025, 11, 20, 4, 30) in svc.find_available_slots(db, "2025-11-19", "vod-review", now=LONG_AGO)
    with pytest.raises(svc.SlotUnavailable):
        svc.book_slot(db, utc(2025, 11, 20, 4, 30), "vod-review", "bk-wed", now=LONG_AGO)

    # 23:00-24:00 stops short of the holiday
    exc = svc.book_slot(db, utc(2025, 11, 20, 4), "vod-review", "bk-ok", now=LONG_AGO)
    assert exc.booking_ref == "bk-ok"


def test_book_slot_links_generating_rule(db, wednesday_rule):
    _late_wednesday_and_early_thursday(db)

    morning = svc.book_slot(db, utc(2025, 11, 19, 15), "vod-review", "bk-1", now=LONG_AGO)
    late = svc.book_slot(db, utc(2025, 11, 20, 4, 15), "vod-review", "bk-2", now=LONG_AGO)

    assert morning.slot_id == wednesday_rule.slot_id
    assert late.slot_id is not None
    assert late.slot_id != wednesday_rule.slot_id
