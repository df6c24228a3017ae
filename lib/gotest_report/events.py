import json
import math
import re
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Iterable

from gotest_report.errors import DecodeError


# go test -json writes RFC 3339 timestamps with nanosecond precision.
RFC3339_RE = re.compile(
    r"^(?P<date>\d{4}-\d{2}-\d{2})[Tt ](?P<time>\d{2}:\d{2}:\d{2})"
    r"(?:\.(?P<fraction>\d+))?(?P<zone>[Zz]|[+-]\d{2}:\d{2})$"
)
ZERO_TIME = datetime(1, 1, 1, tzinfo=timezone.utc)


@dataclass(frozen=True)
class Event:
    timestamp: datetime = ZERO_TIME
    action: str = ""
    package: str = ""
    test: str = ""
    output: str = ""
    elapsed: float = 0.0


def parse_timestamp(value: str) -> datetime:
    """Parse an RFC 3339 timestamp, truncating sub-microsecond digits."""
    match = RFC3339_RE.match(value.strip())
    if not match:
        raise ValueError(f"not an RFC 3339 timestamp: {value!r}")

    fraction = (match.group("fraction") or "")[:6].ljust(6, "0")
    zone = match.group("zone")
    if zone in ("Z", "z"):
        tzinfo = timezone.utc
    else:
        sign = -1 if zone[0] == "-" else 1
        hours, minutes = zone[1:].split(":")
        tzinfo = timezone(sign * timedelta(hours=int(hours), minutes=int(minutes)))

    parsed = datetime.fromisoformat(f"{match.group('date')}T{match.group('time')}")
    return parsed.replace(microsecond=int(fraction), tzinfo=tzinfo)


def _string_field(fields: dict[str, Any], name: str) -> str:
    value = fields.get(name)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise DecodeError(f"field {name!r} must be a string, got {type(value).__name__}")
    return value


def decode_event(line: str) -> Event:
    """
    Decode one line of go test -json output.

    Absent or null fields (or a bare null line) fall back to their zero values; only values of the
    wrong type (or a line that is not a JSON object at all) are rejected.

    Args:
        line (str): raw log line
    Returns:
        Event: decoded event
    """
    try:
        raw = json.loads(line)
    except ValueError as exc:
        raise DecodeError(f"invalid JSON: {exc}") from exc
    if raw is None:
        return Event()
    if not isinstance(raw, dict):
        raise DecodeError(f"expected a JSON object, got {type(raw).__name__}")

    # Field names are matched case-insensitively ("Time", "time", ...).
    fields = {str(key).lower(): value for key, value in raw.items()}

    timestamp = ZERO_TIME
    raw_time = fields.get("time")
    if raw_time is not None:
        if not isinstance(raw_time, str):
            raise DecodeError(f"field 'time' must be a string, got {type(raw_time).__name__}")
        try:
            timestamp = parse_timestamp(raw_time)
        except ValueError as exc:
            raise DecodeError(str(exc)) from exc

    elapsed = fields.get("elapsed")
    if elapsed is None:
        elapsed = 0.0
    elif isinstance(elapsed, bool) or not isinstance(elapsed, (int, float)):
        raise DecodeError(f"field 'elapsed' must be a number, got {type(elapsed).__name__}")
    try:
        elapsed = float(elapsed)
    except OverflowError as exc:
        raise DecodeError(f"field 'elapsed' is out of range: {exc}") from exc
    if not math.isfinite(elapsed):
        raise DecodeError("field 'elapsed' must be finite")

    return Event(
        timestamp=timestamp,
        action=_string_field(fields, "action"),
        package=_string_field(fields, "package"),
        test=_string_field(fields, "test"),
        output=_string_field(fields, "output"),
        elapsed=elapsed,
    )


def read_events(lines: Iterable[str]) -> list[Event]:
    events: list[Event] = []
    for line_number, line in enumerate(lines, start=1):
        try:
            events.append(decode_event(line.rstrip("\r\n")))
        except DecodeError as exc:
            raise DecodeError(str(exc), line_number=line_number) from exc
    return events
