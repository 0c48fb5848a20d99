"""Resolves which services run on a given date."""

import logging
from datetime import date
from typing import Iterable, Set

from .models import CalendarEntry, CalendarException, ExceptionType

logger = logging.getLogger(__name__)


class ServiceCalendar:
    """
    Combines calendar.txt weekly patterns with calendar_dates.txt exceptions.

    Exceptions always override the weekly pattern. When a service is both added
    and removed on the same date, the removal wins regardless of row order.
    """

    def __init__(self, entries: Iterable[CalendarEntry], exceptions: Iterable[CalendarException]):
        self.entries = tuple(entries)
        self.exceptions = tuple(exceptions)

    @classmethod
    def from_index(cls, index) -> "ServiceCalendar":
        """Create a calendar from a ScheduleIndex."""
        return cls(index.calendar, index.calendar_dates)

    def active_services(self, day: date) -> Set[str]:
        """
        Get the service IDs running on a date.

        Args:
            day: Local calendar date.

        Returns:
            Set of service IDs.
        """
        active = {entry.service_id for entry in self.entries if entry.runs_on(day)}

        added = set()
        removed = set()
        for exception in self.exceptions:
            if exception.date != day:
                continue
            if exception.exception_type is ExceptionType.ADDED:
                added.add(exception.service_id)
            else:
                removed.add(exception.service_id)

        active = (active | added) - removed
        logger.debug(f"{len(active)} services active on {day.isoformat()}")
        return active

    def known_services(self) -> Set[str]:
        """All service IDs mentioned by either the weekly patterns or the exceptions."""
        return {entry.service_id for entry in self.entries} | {e.service_id for e in self.exceptions}
