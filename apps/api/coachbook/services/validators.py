from datetime import time


class InvalidArgument(ValueError):
    """Bad input to slot computation (date, session type, zone, durations)."""


def validate_time_range(start: time, end: time) -> None:
    # No overnight windows: a rule lives inside one civil day
    if end <= start:
        raise ValueError("end_time must be after start_time")


def validate_positive_minutes(name: str, value: int) -> None:
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise InvalidArgument(f"{name} must be a positive number of minutes, got {value!r}")
