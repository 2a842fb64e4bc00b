from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Iterable, List

from pydantic import ValidationError

from coachbook.scheduling.civil_time import (
    as_utc,
    civil_weekday,
    day_bounds,
    minutes,
    parse_civil_date,
    resolve_zone,
    zoned_instant,
)
from coachbook.scheduling.session_types import parse_session_type
from coachbook.schemas.availability import ExceptionInterval, RecurringRule
from coachbook.services.validators import InvalidArgument, validate_positive_minutes

logger = logging.getLogger(__name__)

DEFAULT_PAST_BUFFER_MINUTES = 15


# ---------- helpers ----------
def _coerce(model, rows: Iterable, what: str) -> list:
    out = []
    for r in rows:
        if isinstance(r, model):
            out.append(r)
            continue
        try:
            out.append(model.model_validate(r))
        except ValidationError as e:
            raise InvalidArgument(f"Malformed {what}: {e.errors()[0]['msg']}") from e
    return out


def _overlaps(a_start: datetime, a_end: datetime, b_start: datetime, b_end: datetime) -> bool:
    # half-open: touching endpoints do not overlap
    return a_start < b_end and b_start < a_end


def _rule_candidates(day: date, rule: RecurringRule, tz) -> List[datetime]:
    start = zoned_instant(day, rule.start_time, tz)
    end = zoned_instant(day, rule.end_time, tz)
    step = minutes(rule.slot_duration)

    out: List[datetime] = []
    cur = start
    # a trailing partial slot is dropped
    while cur + step <= end:
        out.append(cur)
        cur += step
    return out


# ---------- core ----------
def compute_available_slots(
    day,
    session_type,
    rules: Iterable,
    exceptions: Iterable,
    now: datetime,
    reference_timezone,
    session_length_minutes: int,
    past_buffer_minutes: int = DEFAULT_PAST_BUFFER_MINUTES,
) -> List[datetime]:
    """
    Bookable start instants (UTC, ascending) for one civil day.

    `day` is a civil date (or "YYYY-MM-DD") read in `reference_timezone`.
    Candidates come from the active rules for that weekday and session type,
    spaced by each rule's slot_duration. A candidate is dropped when it starts
    less than `past_buffer_minutes` after `now`, or when
    [start, start + session_length_minutes) overlaps an exception.

    An empty list means "no availability"; bad inputs raise InvalidArgument.
    """
    d = parse_civil_date(day)
    st = parse_session_type(session_type)
    tz = resolve_zone(reference_timezone)
    validate_positive_minutes("session_length_minutes", session_length_minutes)
    if isinstance(past_buffer_minutes, bool) or not isinstance(past_buffer_minutes, int) or past_buffer_minutes < 0:
        raise InvalidArgument(f"past_buffer_minutes must be >= 0, got {past_buffer_minutes!r}")
    if not isinstance(now, datetime):
        raise InvalidArgument("now must be a datetime")

    all_rules = _coerce(RecurringRule, rules, "availability rule")
    all_exceptions = _coerce(ExceptionInterval, exceptions, "availability exception")

    dow = civil_weekday(d)
    matching = [r for r in all_rules if r.is_active and r.session_type == st and r.day_of_week == dow]
    if not matching:
        logger.debug("No rules for %s (dow=%s, type=%s)", d, dow, st.value)
        return []

    candidates = set()
    for rule in matching:
        candidates.update(_rule_candidates(d, rule, tz))

    # Only exceptions touching this civil day count
    day_start, day_end = day_bounds(d, tz)
    blocking = [x for x in all_exceptions if x.start <= day_end and x.end > day_start]

    now_utc = as_utc(now)
    buffer = minutes(past_buffer_minutes)
    length = minutes(session_length_minutes)

    available: List[datetime] = []
    for slot in sorted(candidates):
        if slot - buffer < now_utc:
            continue
        slot_end = slot + length
        if any(_overlaps(slot, slot_end, x.start, x.end) for x in blocking):
            continue
        available.append(slot)

    logger.debug(
        "Slots for %s/%s: rules=%d candidates=%d exceptions=%d available=%d",
        d,
        st.value,
        len(matching),
        len(candidates),
        len(blocking),
        len(available),
    )
    return available
