"""Local/UTC time-of-day and weekday mask conversions.

Programs store their start as a UTC ``"HH:MM"`` and their days as a 7-bit
mask (bit 0 = Sunday). Operators edit both in local time and by day name;
every conversion between the two representations lives here.

The time-of-day conversions anchor the value on a reference day and assume
the UTC offset is the same at both ends. Across a daylight-saving transition
the result is whatever that day's offset produces; no correction is applied.
"""

from __future__ import annotations

import re
from datetime import date, datetime, time, timezone, tzinfo
from typing import Iterable, List, Optional, Union

DAY_NAMES = ("Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat")
MAX_DAY_MASK = (1 << len(DAY_NAMES)) - 1

_LOG_TIMESTAMP_RE = re.compile(r"^\[(\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2})\]")
_LOG_TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"
_LOCAL_RENDER_FORMAT = "%Y-%m-%d %H:%M:%S %Z"


def _local_zone(tz: Optional[tzinfo]) -> tzinfo:
    if tz is not None:
        return tz
    return datetime.now().astimezone().tzinfo or timezone.utc


def parse_time_of_day(value: str) -> time:
    """Parse ``"HH:MM"`` into a :class:`datetime.time`."""

    parts = value.strip().split(":")
    if len(parts) != 2 or not all(part.isdigit() for part in parts):
        raise ValueError(f"Invalid time value: {value!r}")
    hour, minute = int(parts[0]), int(parts[1])
    if not (0 <= hour <= 23 and 0 <= minute <= 59):
        raise ValueError(f"Time out of range: {value!r}")
    return time(hour=hour, minute=minute)


def local_time_of_day_to_utc(hhmm: str, *, tz: Optional[tzinfo] = None, today: Optional[date] = None) -> str:
    """Convert a local wall-clock ``"HH:MM"`` on ``today`` to its UTC time of day."""

    zone = _local_zone(tz)
    day = today or datetime.now(zone).date()
    local = datetime.combine(day, parse_time_of_day(hhmm), tzinfo=zone)
    return local.astimezone(timezone.utc).strftime("%H:%M")


def utc_time_of_day_to_local(hhmm: str, *, tz: Optional[tzinfo] = None, today: Optional[date] = None) -> str:
    """Convert a UTC ``"HH:MM"`` to local wall-clock time, for populating edit forms."""

    zone = _local_zone(tz)
    day = today or datetime.now(zone).date()
    instant = datetime.combine(day, parse_time_of_day(hhmm), tzinfo=timezone.utc)
    return instant.astimezone(zone).strftime("%H:%M")


def day_mask_to_names(mask: int) -> List[str]:
    """Return the names of the days set in ``mask``, Sunday first."""

    if not 0 <= mask <= MAX_DAY_MASK:
        raise ValueError(f"Day mask out of range: {mask}")
    return [name for index, name in enumerate(DAY_NAMES) if mask & (1 << index)]


def names_to_day_mask(days: Iterable[Union[int, str]]) -> int:
    """Build a day mask from day indices (0 = Sunday) or day names."""

    mask = 0
    for day in days:
        if isinstance(day, str) and not day.strip().isdigit():
            try:
                index = DAY_NAMES.index(day.strip()[:3].title())
            except ValueError as exc:
                raise ValueError(f"Unknown day name: {day!r}") from exc
        else:
            index = int(day)
            if not 0 <= index < len(DAY_NAMES):
                raise ValueError(f"Day index out of range: {day}")
        mask |= 1 << index
    return mask


def utc_to_local_string(utc_string: str, *, tz: Optional[tzinfo] = None) -> str:
    """Render a ``"YYYY-MM-DD HH:MM:SS"`` UTC timestamp in local time with its zone name."""

    stamp = datetime.strptime(utc_string.strip(), _LOG_TIMESTAMP_FORMAT).replace(tzinfo=timezone.utc)
    return stamp.astimezone(_local_zone(tz)).strftime(_LOCAL_RENDER_FORMAT)


def localize_log_timestamp(line: str, *, tz: Optional[tzinfo] = None) -> str:
    """Replace a leading ``[YYYY-MM-DD HH:MM:SS]`` UTC stamp with its local rendering.

    Lines without that exact prefix, or with an impossible date, come back
    unchanged.
    """

    match = _LOG_TIMESTAMP_RE.match(line)
    if not match:
        return line
    try:
        rendered = utc_to_local_string(match.group(1), tz=tz)
    except ValueError:
        return line
    return f"[{rendered}]{line[match.end():]}"


def iso_utc_to_local_time(iso_string: str, *, tz: Optional[tzinfo] = None) -> str:
    """Render an ISO-8601 UTC instant as local ``"HH:MM"``."""

    value = iso_string.strip()
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    instant = datetime.fromisoformat(value.replace(" ", "T", 1))
    if instant.tzinfo is None:
        instant = instant.replace(tzinfo=timezone.utc)
    return instant.astimezone(_local_zone(tz)).strftime("%H:%M")
