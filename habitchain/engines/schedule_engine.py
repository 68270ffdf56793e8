"""Schedule Engine for habitchain.

Recurrence evaluation using a hybrid approach:
- `dateutil.rrule` for stepped patterns (daily, weekly, weekday sets), with
  exceptions fed in as `exdate` entries of an `rruleset`
- `dateutil.relativedelta` for month arithmetic so day 31 clamps to the last
  day of short months (Jan 31 + 1 month = Feb 28, never Mar 3)

All results are calendar days (`datetime.date`). Every occurrence returned by
`get_next_occurrence` is strictly after the reference day.

IMPORTANT: This module only imports from const.py, models.py and utils.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import TYPE_CHECKING, ClassVar

from dateutil.rrule import DAILY, FR, MO, SA, SU, TH, TU, WE, WEEKLY, rrule, rruleset

from .. import const
from ..models import (
    CustomSchedule,
    DailySchedule,
    MonthlySchedule,
    RecurrenceRule,
    WeeklySchedule,
)
from ..utils.dt_utils import CalendarContext, default_calendar

if TYPE_CHECKING:
    from collections.abc import Iterable


def _midnight(day: date) -> datetime:
    """Naive midnight datetime for rrule arithmetic on calendar days."""
    return datetime(day.year, day.month, day.day)


class RecurrenceEngine:
    """Evaluate one RecurrenceRule against calendar days.

    Handles all schedule variants:
    - DailySchedule / CustomSchedule: every N days from the anchor day
    - WeeklySchedule without weekdays: every N weeks from the anchor day
    - WeeklySchedule with weekdays: listed weekdays of interval-aligned weeks,
      week 0 being the week that contains the rule's anchor day
    - MonthlySchedule: day-of-month every N months from the anchor month,
      clamped to the month's last day

    Without an anchor the reference day takes its place, so the phase
    restarts at every query. With an anchor, every returned occurrence also
    passes is_valid_occurrence().

    Example:
        engine = RecurrenceEngine(rule, calendar)
        engine.get_next_occurrence(date(2026, 1, 31))  # → date(2026, 2, 28)
    """

    # Weekday number (1=Sunday ... 7=Saturday) to rrule weekday
    WEEKDAY_TO_RRULE: ClassVar[dict[int, object]] = {
        const.WEEKDAY_SUNDAY: SU,
        const.WEEKDAY_MONDAY: MO,
        const.WEEKDAY_TUESDAY: TU,
        const.WEEKDAY_WEDNESDAY: WE,
        const.WEEKDAY_THURSDAY: TH,
        const.WEEKDAY_FRIDAY: FR,
        const.WEEKDAY_SATURDAY: SA,
    }

    def __init__(
        self, rule: RecurrenceRule, calendar: CalendarContext | None = None
    ) -> None:
        """Initialize the recurrence engine.

        Args:
            rule: The rule to evaluate. It is read on every call, so exception
                changes made through add_exception() are seen immediately.
            calendar: Calendar context. Uses the module default when omitted.
        """
        self._rule = rule
        self._calendar = calendar or default_calendar()

    @property
    def rule(self) -> RecurrenceRule:
        """The rule being evaluated."""
        return self._rule

    # =========================================================================
    # Public: occurrence queries
    # =========================================================================

    def get_next_occurrence(self, after: date | datetime) -> date | None:
        """Calculate the next occurrence strictly after a reference day.

        Args:
            after: Reference day (datetimes are normalized to their day).

        Returns:
            Next occurrence, or None when the rule has no schedule or no
            occurrence exists on or before the rule's end date.
        """
        if not self._rule.has_schedule:
            const.LOGGER.debug("RecurrenceEngine: Rule has no schedule")
            return None

        after_day = self._calendar.start_of_day(after)
        schedule = self._rule.schedule

        if isinstance(schedule, WeeklySchedule) and schedule.days_of_week:
            return self._calculate_weekday_occurrence(after_day, schedule)
        if isinstance(schedule, MonthlySchedule):
            return self._calculate_monthly_occurrence(after_day, schedule)
        return self._calculate_stepped_occurrence(after_day)

    def is_valid_occurrence(self, day: date | datetime) -> bool:
        """Check whether a single day is an occurrence of the rule.

        True iff the day matches the pattern, is on or before the end date,
        and is not listed in the exceptions.
        """
        if not self._rule.has_schedule:
            return False

        target = self._calendar.start_of_day(day)
        end_date = self._rule.end_date
        if end_date is not None and target > end_date:
            return False
        if target in self._rule.exceptions:
            return False
        return self._matches_pattern(target)

    def get_occurrences(
        self, start: date | datetime, end: date | datetime, limit: int = 100
    ) -> list[date]:
        """Generate occurrences within an inclusive range.

        Stepping starts from the day before `start`, so `start` itself is the
        first candidate.

        Args:
            start: Range start.
            end: Range end.
            limit: Maximum occurrences to return (safety limit).
        """
        start_day = self._calendar.start_of_day(start)
        end_day = self._calendar.start_of_day(end)

        occurrences: list[date] = []
        current = self.get_next_occurrence(self._calendar.add_days(start_day, -1))
        while current is not None and current <= end_day and len(occurrences) < limit:
            occurrences.append(current)
            current = self.get_next_occurrence(current)
        return occurrences

    def has_missed_occurrences(
        self, last_completion: date | datetime, current_completion: date | datetime
    ) -> bool:
        """Check if any scheduled occurrence fell strictly between two completions.

        Examples:
            Daily: last=Jan 1, current=Jan 2 → False (on-time)
            Daily: last=Jan 1, current=Jan 3 → True (missed Jan 2)
            Every 3 days: last=Jan 1, current=Jan 3 → False (Jan 2 not scheduled)
        """
        last_day = self._calendar.start_of_day(last_completion)
        current_day = self._calendar.start_of_day(current_completion)
        upcoming = self.get_next_occurrence(last_day)
        return upcoming is not None and upcoming < current_day

    def to_rrule_string(self) -> str:
        """Generate RFC 5545 RRULE string for calendar export.

        Returns:
            RRULE string (e.g. "FREQ=WEEKLY;INTERVAL=1;BYDAY=MO,WE") or an
            empty string for a custom rule without schedule. Exceptions are
            not part of an RRULE; export them as EXDATE lines.
        """
        schedule = self._rule.schedule
        if not self._rule.has_schedule:
            return ""

        if isinstance(schedule, WeeklySchedule):
            parts = [f"FREQ=WEEKLY;INTERVAL={schedule.interval}"]
            if schedule.days_of_week:
                days = ",".join(
                    const.WEEKDAY_RRULE_CODES[d] for d in sorted(schedule.days_of_week)
                )
                parts.append(f"BYDAY={days}")
                parts.append(
                    f"WKST={const.WEEKDAY_RRULE_CODES[self._calendar.first_weekday]}"
                )
        elif isinstance(schedule, MonthlySchedule):
            parts = [f"FREQ=MONTHLY;INTERVAL={schedule.interval}"]
            if schedule.day_of_month is not None:
                parts.append(self._rrule_month_day(schedule.day_of_month))
        else:
            parts = [f"FREQ=DAILY;INTERVAL={schedule.interval}"]

        if self._rule.end_date is not None:
            parts.append(f"UNTIL={self._rule.end_date.strftime('%Y%m%d')}")
        return ";".join(parts)

    # =========================================================================
    # Private: rrule-based calculation (daily, custom, plain weekly)
    # =========================================================================

    def _calculate_stepped_occurrence(self, after_day: date) -> date | None:
        """Step `interval` days (or weeks) from the anchor day.

        Without an anchor the reference day starts the stepping. Excepted
        candidates are skipped by stepping again; rrule stops at the end date
        (UNTIL is inclusive).
        """
        schedule = self._rule.schedule
        freq = WEEKLY if isinstance(schedule, WeeklySchedule) else DAILY
        start = self._rule.anchor_date or after_day

        rule = rrule(
            freq,  # type: ignore[arg-type]
            interval=schedule.interval,
            dtstart=_midnight(start),
            until=self._until(),
        )
        next_occurrence = self._build_ruleset(rule).after(
            _midnight(after_day), inc=False
        )
        return next_occurrence.date() if next_occurrence else None

    def _calculate_weekday_occurrence(
        self, after_day: date, schedule: WeeklySchedule
    ) -> date | None:
        """Next listed weekday in an interval-aligned week.

        Week 0 is the week containing the anchor day (the reference day when
        the rule has no anchor). rrule aligns weeks by wkst from dtstart and
        never yields days before it, so listed weekdays earlier in the anchor
        week are not occurrences.
        """
        start = self._rule.anchor_date or after_day

        rule = rrule(
            WEEKLY,
            interval=schedule.interval,
            dtstart=_midnight(start),
            byweekday=[self.WEEKDAY_TO_RRULE[d] for d in sorted(schedule.days_of_week)],
            wkst=self.WEEKDAY_TO_RRULE[self._calendar.first_weekday],
            until=self._until(),
        )
        next_occurrence = self._build_ruleset(rule).after(
            _midnight(after_day), inc=False
        )
        return next_occurrence.date() if next_occurrence else None

    def _build_ruleset(self, rule: rrule) -> rruleset:
        """Wrap an rrule together with the rule's exceptions."""
        rules = rruleset()
        rules.rrule(rule)
        for excluded in self._rule.exceptions:
            rules.exdate(_midnight(excluded))
        return rules

    def _until(self) -> datetime | None:
        end_date = self._rule.end_date
        return _midnight(end_date) if end_date is not None else None

    # =========================================================================
    # Private: relativedelta-based calculation (monthly clamping)
    # =========================================================================

    def _calculate_monthly_occurrence(
        self, after_day: date, schedule: MonthlySchedule
    ) -> date | None:
        """Target day in the month `interval` months after the reference month.

        With an anchor, candidate months are the anchor month plus multiples
        of `interval` and the default day is the anchor's day; the first
        candidate after the reference day (and not before the anchor) wins.

        The clamp is always computed from the configured day, so a day-31 rule
        lands on Feb 28 and then on Mar 31 (not Mar 28).
        """
        anchor = self._rule.anchor_date
        end_date = self._rule.end_date
        if anchor is None:
            base = after_day
            target_day = schedule.day_of_month or after_day.day
            months = schedule.interval
        else:
            base = anchor
            target_day = schedule.day_of_month or anchor.day
            elapsed = self._calendar.months_between(anchor, after_day)
            months = max(0, elapsed // schedule.interval * schedule.interval)

        iteration = 0
        while iteration < const.MAX_DATE_CALCULATION_ITERATIONS:
            iteration += 1
            candidate = self._clamped_month_day(base, months, target_day)
            if end_date is not None and candidate > end_date:
                return None
            if (
                candidate > after_day
                and (anchor is None or candidate >= anchor)
                and candidate not in self._rule.exceptions
            ):
                return candidate
            months += schedule.interval

        const.LOGGER.warning(
            "RecurrenceEngine: Max iterations reached for monthly rule after %s",
            after_day,
        )
        return None

    def _clamped_month_day(self, base: date, months: int, target_day: int) -> date:
        first_of_month = self._calendar.add_months(base.replace(day=1), months)
        last_day = self._calendar.days_in_month(
            first_of_month.year, first_of_month.month
        )
        return first_of_month.replace(day=min(target_day, last_day))

    # =========================================================================
    # Private: single-day pattern checks
    # =========================================================================

    def _matches_pattern(self, day: date) -> bool:
        """Check the day against the schedule, phased by the anchor day.

        Without an anchor there is no phase to check, so every day that fits
        the weekday / day-of-month constraint matches.
        """
        schedule = self._rule.schedule
        anchor = self._rule.anchor_date
        cal = self._calendar

        if anchor is not None and day < anchor:
            return False

        if isinstance(schedule, (DailySchedule, CustomSchedule)):
            if anchor is None:
                return True
            return cal.days_between(anchor, day) % schedule.interval == 0

        if isinstance(schedule, WeeklySchedule):
            if schedule.days_of_week:
                if cal.weekday(day) not in schedule.days_of_week:
                    return False
            elif anchor is None:
                return True
            elif cal.weekday(day) != cal.weekday(anchor):
                return False
            if anchor is None:
                return True
            return cal.weeks_between(anchor, day) % schedule.interval == 0

        # MonthlySchedule
        target_day = schedule.day_of_month or (anchor.day if anchor else None)
        if target_day is not None:
            last_day = cal.days_in_month(day.year, day.month)
            if day.day != min(target_day, last_day):
                return False
        if anchor is None:
            return True
        return cal.months_between(anchor, day) % schedule.interval == 0

    @staticmethod
    def _rrule_month_day(day_of_month: int) -> str:
        """BYMONTHDAY clause that keeps the clamp-to-month-end behavior."""
        if day_of_month <= 28:
            return f"BYMONTHDAY={day_of_month}"
        # Highest existing day among 28..N, i.e. min(N, last day of month)
        candidates = ",".join(str(d) for d in range(28, day_of_month + 1))
        return f"BYMONTHDAY={candidates};BYSETPOS=-1"


# =============================================================================
# Module-level convenience functions
# =============================================================================


def add_exception(
    rule: RecurrenceRule,
    day: date | datetime,
    calendar: CalendarContext | None = None,
) -> bool:
    """Exclude a day from the rule. Adding an existing exception is a no-op.

    Returns:
        True if the exception set changed.
    """
    target = (calendar or default_calendar()).start_of_day(day)
    if target in rule.exceptions:
        const.LOGGER.debug("add_exception: %s already excluded", target)
        return False
    rule.exceptions.add(target)
    return True


def remove_exception(
    rule: RecurrenceRule,
    day: date | datetime,
    calendar: CalendarContext | None = None,
) -> bool:
    """Re-include a day. Removing a day that is not excluded is a no-op.

    Returns:
        True if the exception set changed.
    """
    target = (calendar or default_calendar()).start_of_day(day)
    if target not in rule.exceptions:
        const.LOGGER.debug("remove_exception: %s was not excluded", target)
        return False
    rule.exceptions.discard(target)
    return True


def add_exceptions(
    rule: RecurrenceRule,
    days: Iterable[date | datetime],
    calendar: CalendarContext | None = None,
) -> int:
    """Exclude several days; returns how many were newly excluded."""
    return sum(1 for day in days if add_exception(rule, day, calendar))


def calculate_next_occurrence(
    rule: RecurrenceRule,
    after: date | datetime,
    calendar: CalendarContext | None = None,
) -> date | None:
    """Calculate the next occurrence of a rule using RecurrenceEngine.

    Convenience function for one-off scheduling calculations.
    """
    return RecurrenceEngine(rule, calendar).get_next_occurrence(after)


def next_occurrences(
    rule: RecurrenceRule,
    after: date | datetime,
    count: int,
    calendar: CalendarContext | None = None,
) -> list[date]:
    """Return up to `count` successive occurrences after a reference day."""
    engine = RecurrenceEngine(rule, calendar)
    results: list[date] = []
    current: date | datetime | None = after
    while current is not None and len(results) < count:
        current = engine.get_next_occurrence(current)
        if current is not None:
            results.append(current)
    return results

