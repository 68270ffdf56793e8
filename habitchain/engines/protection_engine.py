"""Protection Day Policy - monthly quota of streak-saving days.

A protection day marks one missed calendar day as non-breaking: when the
streak engine sees a single-day gap between two completions and that exact
day is registered here, the run continues across it.

Quota accounting:
    - `max_per_month` uses (default 2) per calendar month
    - the counter belongs to the month of `last_protection_date` and reads as
      0 for any other month
    - reads never mutate; only a successful use writes the reset

A rejected use (quota exhausted, or the day is already completed) returns
False and leaves the habit untouched. Registering a day that is already a
protection day succeeds without charging the quota again.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import TYPE_CHECKING

from .. import const
from ..utils.dt_utils import CalendarContext, default_calendar
from .streak_engine import StreakEngine

if TYPE_CHECKING:
    from ..models import Habit


class ProtectionDayPolicy:
    """Monthly protection-day quota for habits."""

    def __init__(
        self,
        calendar: CalendarContext | None = None,
        max_per_month: int = const.DEFAULT_PROTECTION_DAYS_PER_MONTH,
        streak_engine: StreakEngine | None = None,
    ) -> None:
        """Initialize the policy.

        Args:
            calendar: Calendar context. Uses the module default when omitted.
            max_per_month: Uses allowed per calendar month.
            streak_engine: Engine used to recompute streaks after a use.
        """
        if max_per_month < 0:
            raise ValueError(f"max_per_month must be >= 0, got {max_per_month}")
        self._calendar = calendar or default_calendar()
        self._max_per_month = max_per_month
        self._streaks = streak_engine or StreakEngine(self._calendar)

    @property
    def max_per_month(self) -> int:
        return self._max_per_month

    def _used_in_month(self, habit: Habit, reference: date) -> int:
        """Uses counted against the month of `reference` (no mutation)."""
        last = habit.last_protection_date
        if last is None or (last.year, last.month) != (reference.year, reference.month):
            return 0
        return habit.protection_days_used

    def available_protection_days(
        self, habit: Habit, today: date | None = None
    ) -> int:
        """Remaining uses this month, after the month-rollover check."""
        reference = today or self._calendar.today()
        return max(0, self._max_per_month - self._used_in_month(habit, reference))

    def use_protection_day(
        self,
        habit: Habit,
        on: date | datetime | None = None,
        today: date | None = None,
    ) -> bool:
        """Register `on` (default today) as a protection day.

        The quota month is the month of `on`, or of the last use when that
        is newer. On success the counter is
        incremented (restarting at 1 after a month rollover), the day is
        recorded, and streaks are recomputed.

        Returns:
            True if the protection day was granted or was already registered,
            False if the day is completed or the quota for that month is
            exhausted (nothing is changed).
        """
        today = today or self._calendar.today()
        day = self._calendar.start_of_day(on) if on is not None else today

        if day in habit.protection_dates:
            const.LOGGER.debug(
                "ProtectionDayPolicy: %s already protected for %s", day, habit.habit_id
            )
            return True
        if day in habit.completion_dates:
            const.LOGGER.debug(
                "ProtectionDayPolicy: %s already completed for %s", day, habit.habit_id
            )
            return False

        # A late registration for an earlier day counts against the newer month
        last = habit.last_protection_date
        quota_day = max(day, last) if last is not None else day

        used = self._used_in_month(habit, quota_day)
        if used >= self._max_per_month:
            const.LOGGER.debug(
                "ProtectionDayPolicy: quota exhausted for %s in %s-%02d",
                habit.habit_id,
                quota_day.year,
                quota_day.month,
            )
            return False

        habit.protection_days_used = used + 1
        habit.last_protection_date = quota_day
        habit.protection_dates.add(day)
        self._streaks.recompute_streaks(habit, today=today)
        return True

    def is_protection_day(self, habit: Habit, day: date | datetime) -> bool:
        """Whether `day` was registered as a protection day."""
        return self._calendar.start_of_day(day) in habit.protection_dates
