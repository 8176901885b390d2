"""Expansion of recurrence rules into concrete occurrence instants."""

import logging
from datetime import datetime, timedelta
from typing import Optional, Union

import pytz
from dateutil.relativedelta import relativedelta

from practice_scheduling.config import SchedulingSettings, get_settings
from practice_scheduling.models.entities import (
    RecurrenceEndType,
    RecurrenceFrequency,
    RecurrencePattern,
)

logger = logging.getLogger(__name__)


def _shift(instant: datetime, delta: Union[timedelta, relativedelta]) -> datetime:
    """Move ``instant`` by ``delta`` in wall-clock time, keeping its timezone."""
    tzinfo = instant.tzinfo
    naive = instant.replace(tzinfo=None) + delta
    if tzinfo is None:
        return naive
    zone = getattr(tzinfo, "zone", None)
    if zone:
        return pytz.timezone(zone).localize(naive)
    return naive.replace(tzinfo=tzinfo)


class RecurrenceExpander:
    """Turns a ``RecurrencePattern`` into the dates of its occurrences."""

    def __init__(self, settings: Optional[SchedulingSettings] = None):
        self.settings = settings or get_settings()

    def _week_step(self, pattern: RecurrencePattern) -> int:
        if pattern.frequency == RecurrenceFrequency.BI_WEEKLY:
            return 2 * pattern.interval
        return pattern.interval

    def _next_listed_weekday(self, after: datetime, days_of_week: frozenset, weeks: int) -> datetime:
        current = after.weekday()
        later = sorted(d for d in days_of_week if d > current)
        if later:
            return _shift(after, timedelta(days=later[0] - current))
        # Jump to the listed day of the next active week
        return _shift(after, timedelta(days=weeks * 7 - current + min(days_of_week)))

    def next_occurrence(self, pattern: RecurrencePattern, after: datetime) -> Optional[datetime]:
        """
        Occurrence following ``after``.

        Returns:
            The next instant, or None for a custom pattern without a rule
        """
        frequency = pattern.frequency

        if frequency == RecurrenceFrequency.DAILY:
            return _shift(after, timedelta(days=pattern.interval))

        if frequency in (RecurrenceFrequency.WEEKLY, RecurrenceFrequency.BI_WEEKLY):
            weeks = self._week_step(pattern)
            if pattern.days_of_week:
                return self._next_listed_weekday(after, pattern.days_of_week, weeks)
            return _shift(after, timedelta(weeks=weeks))

        if frequency == RecurrenceFrequency.MONTHLY:
            return _shift(after, relativedelta(months=pattern.interval))

        if pattern.custom_rule is None:
            return None
        return pattern.custom_rule(after)

    def _past_end(self, pattern: RecurrencePattern, occurrence: datetime) -> bool:
        if pattern.end_type != RecurrenceEndType.ON_DATE:
            return False

        end = pattern.end_date
        if not isinstance(end, datetime):
            return occurrence.date() > end
        if (occurrence.tzinfo is None) != (end.tzinfo is None):
            return occurrence.replace(tzinfo=None) > end.replace(tzinfo=None)
        return occurrence > end

    def expand(self, pattern: RecurrencePattern, start: datetime, max_count: Optional[int] = None) -> list[datetime]:
        """
        Expand a series beginning at ``start``.

        ``start`` is the first occurrence. Expansion stops at the pattern's end
        condition; ``max_count`` (default from settings) bounds series that
        never end and caps every other series as well.

        Returns:
            Occurrence instants in ascending order
        """
        if pattern.end_type == RecurrenceEndType.AFTER_OCCURRENCES:
            limit = pattern.occurrence_count
            if max_count is not None:
                limit = min(limit, max_count)
        else:
            limit = max_count if max_count is not None else self.settings.recurrence_max_count

        if limit <= 0 or self._past_end(pattern, start):
            return []

        occurrences = [start]
        current = start

        while len(occurrences) < limit:
            if pattern.frequency == RecurrenceFrequency.MONTHLY:
                # Anchored on the series start so month-end days do not drift
                next_date = _shift(start, relativedelta(months=pattern.interval * len(occurrences)))
            else:
                next_date = self.next_occurrence(pattern, current)

            if next_date is None:
                break
            if next_date <= current:
                logger.warning(f"Recurrence rule did not advance past {current.isoformat()}, stopping expansion")
                break
            if self._past_end(pattern, next_date):
                break

            occurrences.append(next_date)
            current = next_date

        logger.debug(f"Expanded {pattern.frequency.value} recurrence into {len(occurrences)} occurrence(s)")
        return occurrences
