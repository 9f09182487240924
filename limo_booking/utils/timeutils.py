from datetime import datetime, time, timezone


def utcnow() -> datetime:
    """Naive UTC timestamp, the form the DateTime columns store."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def parse_wall_clock(value) -> time | None:
    """Accept a ``time`` or an ``"HH:MM"`` / ``"HH:MM:SS"`` string."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.time()
    if isinstance(value, time):
        return value

    parts = str(value).strip().split(":")
    if len(parts) not in (2, 3):
        raise ValueError(f"Invalid time {value!r}, expected HH:MM")
    try:
        numbers = [int(p) for p in parts]
    except ValueError:
        raise ValueError(f"Invalid time {value!r}, expected HH:MM") from None
    return time(*numbers)
