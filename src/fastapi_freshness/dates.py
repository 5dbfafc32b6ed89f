"""HTTP-date helpers."""

from datetime import date, datetime, time, timezone
from typing import Optional

from fastapi_freshness.consts import HTTP_DATE_FORMAT
from fastapi_freshness.typing import TimeLike

_HTTP_DATE_FORMATS = (
    HTTP_DATE_FORMAT,  # RFC 1123
    "%A, %d-%b-%y %H:%M:%S GMT",  # RFC 850
    "%a %b %d %H:%M:%S %Y",  # ANSI C asctime()
)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def http_date(value: TimeLike) -> str:
    """Render `value` as an RFC 1123 HTTP-date, e.g. `Mon, 08 Jun 2009 08:50:17 GMT`."""
    return time_for(value).strftime(HTTP_DATE_FORMAT)


def parse_http_date(value: str) -> Optional[datetime]:
    """Parse an HTTP-date in any of the three formats RFC 2616 allows.

    Returns `None` when `value` is not a recognisable date.
    """
    value = value.strip()
    for fmt in _HTTP_DATE_FORMATS:
        try:
            return datetime.strptime(value, fmt).replace(tzinfo=timezone.utc)
        except ValueError:
            continue
    return None


def time_for(value: TimeLike) -> datetime:
    """Normalise a time-like value to an aware UTC `datetime`.

    Accepts `datetime` (naive values are taken as UTC), `date` (midnight
    UTC), seconds since the epoch, and HTTP-date or ISO 8601 strings.
    """
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)
    if isinstance(value, date):
        return datetime.combine(value, time(), tzinfo=timezone.utc)
    if isinstance(value, bool):
        raise TypeError(f"Expected a time-like value, got {value!r}")
    if isinstance(value, (int, float)):
        return datetime.fromtimestamp(value, tz=timezone.utc)
    if isinstance(value, str):
        parsed = parse_http_date(value)
        if parsed is not None:
            return parsed
        try:
            return time_for(datetime.fromisoformat(value))
        except ValueError:
            raise ValueError(f"Unrecognised date string: {value!r}") from None
    raise TypeError(f"Expected a time-like value, got {type(value).__name__}")


def epoch_seconds(value: datetime) -> int:
    """Seconds since the epoch, dropping any sub-second part."""
    return int(value.timestamp())
