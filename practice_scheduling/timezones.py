"""Timezone helpers built on pytz."""

import logging
from datetime import date, datetime, time

import pytz

logger = logging.getLogger(__name__)


def get_timezone(name: str):
    """Look up a pytz timezone, falling back to UTC for unknown names."""
    try:
        return pytz.timezone(name)
    except pytz.UnknownTimeZoneError:
        logger.warning(f"Invalid timezone '{name}', using UTC")
        return pytz.UTC


def to_local(instant: datetime, tz) -> datetime:
    """
    Express ``instant`` in ``tz``.

    Naive datetimes are read as wall-clock time in ``tz``; aware ones are
    converted.
    """
    if instant.tzinfo is None:
        return tz.localize(instant)
    return instant.astimezone(tz)


def wall_clock(day: date, time_of_day: time, tz) -> datetime:
    """Aware datetime for ``time_of_day`` on ``day`` in ``tz``."""
    return tz.localize(datetime.combine(day, time_of_day))


def minutes_of_day(value: time) -> int:
    return value.hour * 60 + value.minute
