"""Streak Engine - Completion ledger mutations and streak derivation.

This engine owns every write to a habit's completion ledger and keeps the
cached counters (`current_streak`, `best_streak`, `total_completions`) in
sync with it. Each mutation recomputes the caches synchronously, so after any
call the following always hold:

    total_completions == len(completion_dates)
    current_streak <= best_streak
    current_streak <= total_completions

Design Principles:
    - Stateless: holds only the calendar; operates on the Habit passed in
    - Idempotent: completing a day twice never double-counts
    - Deterministic: "today" is read once per call and passed down

Protection days:
    A single missed day between two completions is bridged only when that
    exact day was registered as a protection day (see protection_engine).
    Bridged days keep the run alive but do not add to its length.
"""

from __future__ import annotations

from datetime import date, datetime, timedelta
from typing import TYPE_CHECKING

from .. import const
from ..utils.dt_utils import CalendarContext, default_calendar

if TYPE_CHECKING:
    from collections.abc import Collection, Iterable

    from ..models import Habit

ONE_DAY = timedelta(days=1)


def find_runs(
    days: Iterable[date], bridge_days: Collection[date] = ()
) -> list[list[date]]:
    """Group calendar days into maximal runs of consecutive days.

    Args:
        days: Completion days in any order; duplicates are ignored.
        bridge_days: Days that may fill a single-day gap without breaking a
            run. Only a gap of exactly one missing day can be bridged.

    Returns:
        Runs in ascending order, each run a list of ascending days.

    Example:
        find_runs([d1, d2, d4]) → [[d1, d2], [d4]]
        find_runs([d1, d2, d4], bridge_days={d3}) → [[d1, d2, d4]]
    """
    runs: list[list[date]] = []
    for day in sorted(set(days)):
        if runs:
            previous = runs[-1][-1]
            gap = (day - previous).days
            if gap == 1 or (gap == 2 and previous + ONE_DAY in bridge_days):
                runs[-1].append(day)
                continue
        runs.append([day])
    return runs


class StreakEngine:
    """Completion Ledger and Streak Calculator.

    Example:
        streaks = StreakEngine(calendar)
        streaks.mark_completed(habit, date(2026, 3, 14))
        streaks.mark_completed(habit, date(2026, 3, 15))
        habit.current_streak  # 2 (when today is Mar 15 or 16)
    """

    def __init__(self, calendar: CalendarContext | None = None) -> None:
        self._calendar = calendar or default_calendar()

    @property
    def calendar(self) -> CalendarContext:
        return self._calendar

    # ────────────────────────────────────────────────────────────────
    # Ledger Mutations
    # ────────────────────────────────────────────────────────────────

    def mark_completed(
        self,
        habit: Habit,
        on: date | datetime | None = None,
        today: date | None = None,
    ) -> bool:
        """Record a completion for the calendar day of `on` (default today).

        Duplicate completions for the same day are ignored.

        Args:
            habit: Habit to mutate in place.
            on: Day (or moment) of completion.
            today: Reference "today" for the streak recompute.

        Returns:
            True if a new completion was recorded.
        """
        today = today or self._calendar.today()
        day = self._calendar.start_of_day(on) if on is not None else today

        if day in habit.completion_dates:
            const.LOGGER.debug(
                "StreakEngine: %s already completed on %s", habit.habit_id, day
            )
            return False

        habit.completion_dates.add(day)
        habit.total_completions += 1
        self.recompute_streaks(habit, today=today)
        habit.task.mark_completed()
        return True

    def mark_incomplete(
        self,
        habit: Habit,
        on: date | datetime | None = None,
        today: date | None = None,
    ) -> bool:
        """Remove the completion for the calendar day of `on` (default today).

        Removing a day that was never completed is a no-op.

        Returns:
            True if a completion was removed.
        """
        today = today or self._calendar.today()
        day = self._calendar.start_of_day(on) if on is not None else today

        if day not in habit.completion_dates:
            const.LOGGER.debug(
                "StreakEngine: %s has no completion on %s", habit.habit_id, day
            )
            return False

        habit.completion_dates.discard(day)
        self.recompute_streaks(habit, today=today)
        habit.task.mark_incomplete()
        return True

    # ────────────────────────────────────────────────────────────────
    # Streak Derivation
    # ────────────────────────────────────────────────────────────────

    def recompute_streaks(self, habit: Habit, today: date | None = None) -> None:
        """Recompute streak caches and the completion total from the ledger.

        - best_streak: longest run, protection days bridging single gaps
        - current_streak: the run containing today; if today is not completed
          yet, the run ending yesterday still counts (also when yesterday is
          itself a registered protection day). Otherwise 0.
        """
        today = today or self._calendar.today()
        habit.total_completions = len(habit.completion_dates)

        if not habit.completion_dates:
            habit.current_streak = 0
            habit.best_streak = 0
            return

        runs = find_runs(habit.completion_dates, habit.protection_dates)
        habit.best_streak = max(len(run) for run in runs)
        habit.current_streak = len(self._select_current_run(habit, runs, today))

    def streak_on_date(self, habit: Habit, day: date | datetime) -> int:
        """Length of the run of completed days ending at `day`.

        Protection days are not applied here; a missing day always breaks.
        Returns 0 when `day` itself is not completed.
        """
        current = self._calendar.start_of_day(day)
        streak = 0
        while current in habit.completion_dates:
            streak += 1
            current -= ONE_DAY
        return streak

    def current_run(self, habit: Habit, today: date | None = None) -> list[date]:
        """Completed days that make up the current streak, ascending."""
        today = today or self._calendar.today()
        runs = find_runs(habit.completion_dates, habit.protection_dates)
        return self._select_current_run(habit, runs, today)

    def _select_current_run(
        self, habit: Habit, runs: list[list[date]], today: date
    ) -> list[date]:
        yesterday = today - ONE_DAY
        run_by_day = {day: run for run in runs for day in run}

        run = run_by_day.get(today) or run_by_day.get(yesterday)
        if run is None and yesterday in habit.protection_dates:
            run = run_by_day.get(yesterday - ONE_DAY)
        if run is None:
            return []
        # Future-dated completions never count toward the current streak
        return [day for day in run if day <= today]

    # ────────────────────────────────────────────────────────────────
    # Ledger Queries
    # ────────────────────────────────────────────────────────────────

    def completion_dates_in_range(
        self, habit: Habit, start: date | datetime, end: date | datetime
    ) -> list[date]:
        """Completion days within [start, end] inclusive, ascending."""
        start_day = self._calendar.start_of_day(start)
        end_day = self._calendar.start_of_day(end)
        return sorted(d for d in habit.completion_dates if start_day <= d <= end_day)

    def is_completed(self, habit: Habit, day: date | datetime) -> bool:
        """Membership test against the ledger (normalized)."""
        return self._calendar.start_of_day(day) in habit.completion_dates

    def is_completed_today(self, habit: Habit, today: date | None = None) -> bool:
        return (today or self._calendar.today()) in habit.completion_dates

    @staticmethod
    def last_completion_date(habit: Habit) -> date | None:
        return max(habit.completion_dates, default=None)

    @staticmethod
    def find_runs(
        days: Iterable[date], bridge_days: Collection[date] = ()
    ) -> list[list[date]]:
        """See module-level find_runs()."""
        return find_runs(days, bridge_days)
