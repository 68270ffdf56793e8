# File: utils/dt_utils.py
"""Date and time utilities for habitchain.

Pure Python calendar arithmetic. Every engine receives a `CalendarContext`
instead of reading ambient global state, so the answers for "what day is it"
and "which week does this day belong to" are explicit and testable.

Uses standard library: datetime, zoneinfo; dateutil for month arithmetic.

Functions:
    - set_default_timezone / get_default_timezone: module default timezone
    - default_calendar: CalendarContext bound to the default timezone
    - dt_now_local: current datetime in a timezone
    - as_local: convert aware datetimes to a timezone
    - dt_parse_date: parse stored date strings
    - to_calendar_day: normalize date/datetime input to a calendar day

Classes:
    - CalendarContext: start-of-day, day/week/month stepping, weekday numbers,
      components between two days, period bounds
"""

from __future__ import annotations

from calendar import monthrange
from dataclasses import dataclass, field
from datetime import UTC, date, datetime, timedelta
import logging
from zoneinfo import ZoneInfo

# Third-party date utilities
from dateutil.relativedelta import relativedelta

# Module-level logger
_LOGGER = logging.getLogger(__name__)

# ==============================================================================
# Constants (local copies to avoid circular imports)
# ==============================================================================

# Default timezone - can be overridden by caller
DEFAULT_TIME_ZONE: ZoneInfo = ZoneInfo("UTC")

# 1=Sunday ... 7=Saturday
WEEKDAY_SUNDAY = 1
WEEKDAY_SATURDAY = 7
DAYS_PER_WEEK = 7
MONTHS_PER_YEAR = 12


# ==============================================================================
# Timezone Configuration
# ==============================================================================


def set_default_timezone(tz: ZoneInfo | str) -> None:
    """Set the default timezone for calendars created without one.

    Args:
        tz: ZoneInfo object or IANA name (e.g. "Europe/Berlin")
    """
    global DEFAULT_TIME_ZONE  # noqa: PLW0603
    DEFAULT_TIME_ZONE = ZoneInfo(tz) if isinstance(tz, str) else tz


def get_default_timezone() -> ZoneInfo:
    """Get the current default timezone."""
    return DEFAULT_TIME_ZONE


def default_calendar() -> CalendarContext:
    """Return a CalendarContext bound to the current default timezone."""
    return CalendarContext(time_zone=DEFAULT_TIME_ZONE)


# ==============================================================================
# Current Date/Time Functions
# ==============================================================================


def dt_now_local(tz: ZoneInfo | None = None) -> datetime:
    """Return the current datetime in local timezone (timezone-aware).

    Args:
        tz: Optional timezone override. Uses DEFAULT_TIME_ZONE if not provided.
    """
    return datetime.now(tz or DEFAULT_TIME_ZONE)


def as_local(dt_obj: datetime, tz: ZoneInfo | None = None) -> datetime:
    """Convert a datetime to local timezone.

    Args:
        dt_obj: Datetime object. Naive values are assumed to be UTC.
        tz: Optional timezone override. Uses DEFAULT_TIME_ZONE if not provided.

    Returns:
        Datetime in local timezone
    """
    tz_info = tz or DEFAULT_TIME_ZONE
    if dt_obj.tzinfo is None:
        dt_obj = dt_obj.replace(tzinfo=UTC)
    return dt_obj.astimezone(tz_info)


# ==============================================================================
# Parsing / Normalization
# ==============================================================================


def dt_parse_date(value: str | date | datetime | None) -> date | None:
    """Safely parse a stored date value into a `datetime.date`.

    Accepts:
    - date objects (returned unchanged)
    - datetime objects (date portion)
    - "2025-04-07" or "2025-04-07T09:30:00+00:00" (ISO format)

    Returns:
        datetime.date or None if parsing fails.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not value:
        return None

    try:
        return date.fromisoformat(value)
    except ValueError:
        pass

    try:
        return datetime.fromisoformat(value).date()
    except ValueError:
        _LOGGER.debug("dt_parse_date: could not parse %r", value)
        return None


def to_calendar_day(value: date | datetime, tz: ZoneInfo | None = None) -> date:
    """Normalize a date or datetime to the calendar day it falls on.

    Aware datetimes are converted to `tz` first. Naive datetimes are taken
    as wall-clock time already in `tz`.

    Args:
        value: date or datetime
        tz: Timezone for aware conversions. Uses DEFAULT_TIME_ZONE if not provided.
    """
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.date()
        return as_local(value, tz).date()
    return value


# ==============================================================================
# Calendar Context
# ==============================================================================


@dataclass(frozen=True)
class CalendarContext:
    """Calendar rules used by every date computation in the engines.

    Attributes:
        time_zone: Zone that decides where one day ends and the next begins.
        first_weekday: Weekday number (1=Sunday ... 7=Saturday) that starts
            a week for week bounds and week-of-year statistics.
    """

    time_zone: ZoneInfo = field(default_factory=get_default_timezone)
    first_weekday: int = WEEKDAY_SUNDAY

    def __post_init__(self) -> None:
        if not WEEKDAY_SUNDAY <= self.first_weekday <= WEEKDAY_SATURDAY:
            raise ValueError(
                f"first_weekday must be between {WEEKDAY_SUNDAY} and "
                f"{WEEKDAY_SATURDAY}, got {self.first_weekday}"
            )

    # ------------------------------------------------------------------
    # Today / normalization
    # ------------------------------------------------------------------

    def now(self) -> datetime:
        """Return the current datetime in this calendar's timezone."""
        return dt_now_local(self.time_zone)

    def today(self) -> date:
        """Return today's calendar day in this calendar's timezone."""
        return self.now().date()

    def start_of_day(self, value: date | datetime) -> date:
        """Normalize a date or datetime to its calendar day."""
        return to_calendar_day(value, self.time_zone)

    def start_of_day_datetime(self, value: date | datetime) -> datetime:
        """Return 00:00 of the value's calendar day as an aware datetime."""
        day = self.start_of_day(value)
        return datetime(day.year, day.month, day.day, tzinfo=self.time_zone)

    # ------------------------------------------------------------------
    # Stepping
    # ------------------------------------------------------------------

    def add_days(self, day: date, count: int) -> date:
        """Return `day` moved by `count` calendar days."""
        return day + timedelta(days=count)

    def add_weeks(self, day: date, count: int) -> date:
        """Return `day` moved by `count` weeks (same weekday)."""
        return day + timedelta(weeks=count)

    def add_months(self, day: date, count: int) -> date:
        """Return `day` moved by `count` months, clamped to the month's end.

        Example:
            add_months(date(2026, 1, 31), 1) → date(2026, 2, 28)
        """
        return day + relativedelta(months=count)

    # ------------------------------------------------------------------
    # Components
    # ------------------------------------------------------------------

    def weekday(self, day: date) -> int:
        """Return the weekday number of `day` (1=Sunday ... 7=Saturday)."""
        # date.weekday(): Monday=0 ... Sunday=6
        return (day.weekday() + 1) % DAYS_PER_WEEK + 1

    def days_between(self, start: date, end: date) -> int:
        """Return whole calendar days from `start` to `end` (negative if earlier)."""
        return (end - start).days

    def weeks_between(self, start: date, end: date) -> int:
        """Return whole weeks between the weeks containing `start` and `end`."""
        return (
            self.days_between(self.start_of_week(start), self.start_of_week(end))
            // DAYS_PER_WEEK
        )

    def months_between(self, start: date, end: date) -> int:
        """Return calendar months between the months containing `start` and `end`."""
        return (end.year - start.year) * MONTHS_PER_YEAR + (end.month - start.month)

    def days_in_month(self, year: int, month: int) -> int:
        """Return the number of days in the given month."""
        return monthrange(year, month)[1]

    # ------------------------------------------------------------------
    # Period bounds (inclusive)
    # ------------------------------------------------------------------

    def start_of_week(self, day: date) -> date:
        """Return the first day of the week containing `day`."""
        offset = (self.weekday(day) - self.first_weekday) % DAYS_PER_WEEK
        return day - timedelta(days=offset)

    def week_bounds(self, day: date) -> tuple[date, date]:
        """Return (first, last) day of the week containing `day`."""
        start = self.start_of_week(day)
        return start, start + timedelta(days=DAYS_PER_WEEK - 1)

    def month_bounds(self, day: date) -> tuple[date, date]:
        """Return (first, last) day of the month containing `day`."""
        last = self.days_in_month(day.year, day.month)
        return day.replace(day=1), day.replace(day=last)

    def year_bounds(self, day: date) -> tuple[date, date]:
        """Return (Jan 1, Dec 31) of the year containing `day`."""
        return date(day.year, 1, 1), date(day.year, 12, 31)

    def iter_days(self, start: date, end: date):
        """Yield every calendar day from `start` to `end` inclusive."""
        current = start
        while current <= end:
            yield current
            current += timedelta(days=1)
