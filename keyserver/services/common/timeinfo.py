from datetime import datetime, timezone
from keyserver.schemas.access_key import TimeRemaining

_MS_PER_HOUR = 60 * 60 * 1000
_MS_PER_MINUTE = 60 * 1000

def get_remaining_time(expires_at: datetime, now: datetime) -> TimeRemaining:
    """
    Time left until `expires_at`, clamped at zero.

    Whole hours and the leftover whole minutes, e.g. "5h 59m".
    """
    diff_ms = int((expires_at - now).total_seconds() * 1000)

    if diff_ms <= 0:
        return TimeRemaining(expired=True, remaining=0, hours=0, minutes=0, formatted="Expired")

    hours = diff_ms // _MS_PER_HOUR
    minutes = (diff_ms % _MS_PER_HOUR) // _MS_PER_MINUTE
    return TimeRemaining(
        expired=False,
        remaining=diff_ms,
        hours=hours,
        minutes=minutes,
        formatted=f"{hours}h {minutes}m",
    )

def parse_timestamp(value) -> datetime:
    """
    Parse an ISO-8601 timestamp into naive UTC.
    Raises ValueError when the value is not a timestamp.
    """
    if isinstance(value, datetime):
        parsed = value
    else:
        if not isinstance(value, str) or not value.strip():
            raise ValueError(f"not a timestamp: {value!r}")
        text = value.strip()
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is not None:
        try:
            parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
        except OverflowError as e:
            raise ValueError(f"timestamp out of range: {value!r}") from e
    return parsed
