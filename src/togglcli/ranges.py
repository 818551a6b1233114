"""Date range specifiers used by listing and report commands."""

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from enum import Enum
from typing import List, Optional, Tuple

DATE_FORMAT = "%Y-%m-%d"


class RangeError(ValueError):
    """Raised for range specifiers that cannot be parsed or resolved."""


class RangeKind(str, Enum):
    TODAY = "today"
    YESTERDAY = "yesterday"
    THIS_WEEK = "this-week"
    LAST_WEEK = "last-week"
    THIS_MONTH = "this-month"
    LAST_MONTH = "last-month"
    FROM_TO = "from-to"
    DATE = "date"


NAMED_KINDS = {
    kind.value: kind
    for kind in RangeKind
    if kind not in (RangeKind.FROM_TO, RangeKind.DATE)
}


def _parse_date(value: str) -> date:
    try:
        return datetime.strptime(value.strip(), DATE_FORMAT).date()
    except ValueError:
        raise RangeError(
            f"Invalid date '{value}', expected ISO 8601 date like 2021-11-01"
        ) from None


def local_midnight(day: date) -> datetime:
    """Return 00:00 local time on ``day`` as an aware datetime.

    Wall-clock times skipped by a DST transition raise RangeError instead of
    being silently moved.
    """
    naive = datetime.combine(day, time.min)
    aware = naive.astimezone()
    if aware.replace(tzinfo=None) != naive:
        raise RangeError(f"Local time {naive.isoformat()} does not exist")
    return aware


def _first_of_next_month(day: date) -> date:
    if day.month == 12:
        return date(day.year + 1, 1, 1)
    return date(day.year, day.month + 1, 1)


def _first_of_previous_month(day: date) -> date:
    if day.month == 1:
        return date(day.year - 1, 12, 1)
    return date(day.year, day.month - 1, 1)


@dataclass(frozen=True)
class Range:
    """A symbolic date range such as ``today`` or ``2021-11-01|2021-11-07``."""

    kind: RangeKind
    start_date: Optional[date] = None
    end_date: Optional[date] = None

    @classmethod
    def parse(cls, text: str) -> "Range":
        value = text.strip().lower()
        if value in NAMED_KINDS:
            return cls(NAMED_KINDS[value])

        if "|" in value:
            start_text, end_text = value.split("|", 1)
            start = _parse_date(start_text)
            end = _parse_date(end_text)
            if start > end:
                raise RangeError(
                    f"Start date {start.isoformat()} is after end date {end.isoformat()}"
                )
            return cls(RangeKind.FROM_TO, start, end)

        day = _parse_date(value)
        return cls(RangeKind.DATE, day, day)

    def __str__(self) -> str:
        if self.kind == RangeKind.FROM_TO:
            return f"{self.start_date.isoformat()}|{self.end_date.isoformat()}"
        if self.kind == RangeKind.DATE:
            return self.start_date.isoformat()
        return self.kind.value

    def _date_bounds(self, today: date) -> Tuple[date, date]:
        """Return the first day and the exclusive end day of the range."""
        if self.kind == RangeKind.TODAY:
            return today, today + timedelta(days=1)
        if self.kind == RangeKind.YESTERDAY:
            yesterday = today - timedelta(days=1)
            return yesterday, today
        if self.kind == RangeKind.THIS_WEEK:
            monday = today - timedelta(days=today.weekday())
            return monday, monday + timedelta(weeks=1)
        if self.kind == RangeKind.LAST_WEEK:
            monday = today - timedelta(days=today.weekday(), weeks=1)
            return monday, monday + timedelta(weeks=1)
        if self.kind == RangeKind.THIS_MONTH:
            first = today.replace(day=1)
            return first, _first_of_next_month(first)
        if self.kind == RangeKind.LAST_MONTH:
            first = _first_of_previous_month(today)
            return first, _first_of_next_month(first)
        return self.start_date, self.end_date + timedelta(days=1)

    def as_range(self, now: Optional[datetime] = None) -> Tuple[datetime, datetime]:
        """Resolve to a half-open ``(start, end)`` pair in local time."""
        now = now or datetime.now()
        today = now.astimezone().date() if now.tzinfo else now.date()
        first, end = self._date_bounds(today)
        return local_midnight(first), local_midnight(end)

    def get_datetimes(self, now: Optional[datetime] = None) -> List[datetime]:
        """Return the business days (Monday to Friday) covered by the range.

        A range covering a single day always yields that day, weekend or not.
        """
        start, end = self.as_range(now)
        first = start.date()
        last = end.date()

        if last - first == timedelta(days=1):
            return [start]

        days = []
        day = first
        while day < last:
            if day.weekday() < 5:
                days.append(local_midnight(day))
            day += timedelta(days=1)
        return days
