import enum

from coachbook.services.validators import InvalidArgument


class SessionType(str, enum.Enum):
    vod_review = "vod-review"
    live_coaching = "live-coaching"


SESSION_TYPES = {
    SessionType.vod_review: {"label": "VOD Review", "session_length_minutes": 60},
    SessionType.live_coaching: {"label": "Live Coaching", "session_length_minutes": 60},
}


def parse_session_type(tag) -> SessionType:
    if isinstance(tag, SessionType):
        return tag
    try:
        return SessionType(str(tag).strip())
    except ValueError:
        known = ", ".join(t.value for t in SessionType)
        raise InvalidArgument(f"Unknown session type {tag!r} (expected one of: {known})") from None


def session_length_for(session_type: SessionType, default: int) -> int:
    return int(SESSION_TYPES.get(session_type, {}).get("session_length_minutes", default))
