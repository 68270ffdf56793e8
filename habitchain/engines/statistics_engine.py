"""Statistics Engine - Completion rates, streak averages and period buckets.

This engine derives read-only analytics from a habit's completion ledger:
- Completion rate since creation
- Weekly / monthly / yearly completion rates (elapsed days only)
- Average run length across the ledger
- Period keys and per-period completion counts for charts
- Progress against the habit's per-period target
- A HabitStatistics summary with a letter-style grade

Design Principles:
    - Stateless: No habit state kept, operates on passed data structures
    - Consistent: Single source of truth for period key generation
    - Safe: every ratio guards a zero denominator and returns 0.0
"""

from __future__ import annotations

from collections import Counter
from datetime import date, datetime
from typing import TYPE_CHECKING

from .. import const
from ..utils.dt_utils import CalendarContext, default_calendar
from ..utils.math_utils import calculate_percentage, clamp, mean, round_rate, safe_ratio
from .protection_engine import ProtectionDayPolicy
from .streak_engine import StreakEngine, find_runs

if TYPE_CHECKING:
    from collections.abc import Iterable

    from ..models import Habit
    from ..type_defs import HabitStatistics, TargetProgress


class StatisticsEngine:
    """Analytics Aggregator for habits.

    Example:
        stats = StatisticsEngine(calendar)

        stats.completion_rate(habit)                       # 0.5
        stats.monthly_completion_rate(habit, date(2026, 3, 1))
        stats.completions_by_period(habit, const.PERIOD_WEEKLY)
        # {"2026-W09": 4, "2026-W10": 6}
    """

    def __init__(
        self,
        calendar: CalendarContext | None = None,
        protection_policy: ProtectionDayPolicy | None = None,
    ) -> None:
        self._calendar = calendar or default_calendar()
        self._streaks = StreakEngine(self._calendar)
        self._protection = protection_policy or ProtectionDayPolicy(
            self._calendar, streak_engine=self._streaks
        )

    def _resolve_day(self, value: date | datetime | None) -> date:
        if value is None:
            return self._calendar.today()
        return self._calendar.start_of_day(value)

    # ────────────────────────────────────────────────────────────────
    # Period Key Generation
    # ────────────────────────────────────────────────────────────────

    def get_period_keys(
        self, reference_date: date | datetime | None = None
    ) -> dict[str, str]:
        """Generate period keys for all time granularities.

        Args:
            reference_date: Day to generate keys for. Defaults to today.

        Returns:
            Dictionary with keys: "daily", "weekly", "monthly", "yearly"

        Example:
            >>> stats.get_period_keys(date(2026, 1, 19))
            {
                "daily": "2026-01-19",
                "weekly": "2026-W04",
                "monthly": "2026-01",
                "yearly": "2026"
            }
        """
        ref = self._resolve_day(reference_date)
        return {
            const.PERIOD_DAILY: ref.strftime(const.PERIOD_FORMAT_DAILY),
            const.PERIOD_WEEKLY: ref.strftime(const.PERIOD_FORMAT_WEEKLY),
            const.PERIOD_MONTHLY: ref.strftime(const.PERIOD_FORMAT_MONTHLY),
            const.PERIOD_YEARLY: ref.strftime(const.PERIOD_FORMAT_YEARLY),
        }

    def completions_by_period(self, habit: Habit, period: str) -> dict[str, int]:
        """Count completions per period bucket, keys in ascending order.

        Args:
            habit: Habit to summarize.
            period: One of PERIOD_DAILY / WEEKLY / MONTHLY / YEARLY.

        Raises:
            ValueError: For an unknown period.
        """
        if period not in const.PERIOD_OPTIONS:
            raise ValueError(f"Unknown period: {period}")
        counts = Counter(
            self.get_period_keys(day)[period] for day in habit.completion_dates
        )
        return dict(sorted(counts.items()))

    def _period_bounds(self, period: str, day: date) -> tuple[date, date]:
        if period == const.PERIOD_DAILY:
            return day, day
        if period == const.PERIOD_WEEKLY:
            return self._calendar.week_bounds(day)
        if period == const.PERIOD_MONTHLY:
            return self._calendar.month_bounds(day)
        if period == const.PERIOD_YEARLY:
            return self._calendar.year_bounds(day)
        raise ValueError(f"Unknown period: {period}")

    # ────────────────────────────────────────────────────────────────
    # Completion Rates
    # ────────────────────────────────────────────────────────────────

    def completion_rate(self, habit: Habit, today: date | None = None) -> float:
        """Completions per day since the habit started, clamped to [0, 1].

        The start is the creation day, or the first completion when that is
        earlier (back-filled history).
        """
        today = today or self._calendar.today()
        start = min(habit.created_date, min(habit.completion_dates, default=today))
        total_days = self._calendar.days_between(start, today) + 1
        return clamp(safe_ratio(habit.total_completions, total_days), 0.0, 1.0)

    def completion_rate_in_range(
        self, habit: Habit, start: date | datetime, end: date | datetime
    ) -> float:
        """Completed days over all days of the inclusive range."""
        start_day = self._calendar.start_of_day(start)
        end_day = self._calendar.start_of_day(end)
        total_days = self._calendar.days_between(start_day, end_day) + 1
        completed = len(self._streaks.completion_dates_in_range(habit, start_day, end_day))
        return safe_ratio(completed, total_days)

    def _elapsed_period_rate(
        self, habit: Habit, period: str, for_date: date | datetime | None, today: date | None
    ) -> float:
        """Rate over the elapsed part of the period containing `for_date`.

        Past periods use their full length; periods starting after today
        have no elapsed days and rate 0.0.
        """
        today = today or self._calendar.today()
        day = self._resolve_day(for_date) if for_date is not None else today
        start, end = self._period_bounds(period, day)
        if start > today:
            return 0.0
        elapsed_end = min(end, today)
        return self.completion_rate_in_range(habit, start, elapsed_end)

    def weekly_completion_rate(
        self,
        habit: Habit,
        for_date: date | datetime | None = None,
        today: date | None = None,
    ) -> float:
        """Completion rate over the elapsed days of the week containing `for_date`."""
        return self._elapsed_period_rate(habit, const.PERIOD_WEEKLY, for_date, today)

    def monthly_completion_rate(
        self,
        habit: Habit,
        for_date: date | datetime | None = None,
        today: date | None = None,
    ) -> float:
        """Completion rate over the elapsed days of the month containing `for_date`.

        Dividing by elapsed days (not the month length) keeps a partial month
        from being penalized.
        """
        return self._elapsed_period_rate(habit, const.PERIOD_MONTHLY, for_date, today)

    def yearly_completion_rate(
        self,
        habit: Habit,
        for_date: date | datetime | None = None,
        today: date | None = None,
    ) -> float:
        """Completion rate over the elapsed days of the year containing `for_date`."""
        return self._elapsed_period_rate(habit, const.PERIOD_YEARLY, for_date, today)

    # ────────────────────────────────────────────────────────────────
    # Streak Analytics
    # ────────────────────────────────────────────────────────────────

    def average_streak(self, habit: Habit) -> float:
        """Mean length of all consecutive-day runs in the ledger.

        Protection days are not applied. With fewer than two completions the
        habit's current streak is returned.
        """
        if len(habit.completion_dates) < 2:
            return float(habit.current_streak)
        return mean(len(run) for run in find_runs(habit.completion_dates))

    # ────────────────────────────────────────────────────────────────
    # Targets
    # ────────────────────────────────────────────────────────────────

    def target_progress(
        self,
        habit: Habit,
        period: str = const.PERIOD_WEEKLY,
        for_date: date | datetime | None = None,
    ) -> TargetProgress:
        """Completions in one period against `target_completions_per_period`.

        Without a target, `percentage` is 0.0 and `is_met` is False.
        """
        day = self._resolve_day(for_date)
        start, end = self._period_bounds(period, day)
        completions = len(self._streaks.completion_dates_in_range(habit, start, end))
        target = habit.target_completions_per_period
        return {
            "period": period,
            "period_key": self.get_period_keys(day)[period],
            "completions": completions,
            "target": target,
            "percentage": calculate_percentage(completions, target or 0),
            "is_met": target is not None and completions >= target,
        }

    # ────────────────────────────────────────────────────────────────
    # Summaries
    # ────────────────────────────────────────────────────────────────

    @staticmethod
    def grade_for_rate(rate: float) -> str:
        """Map an all-time completion rate to a GRADE_* constant."""
        for threshold, grade in const.GRADE_THRESHOLDS:
            if rate >= threshold:
                return grade
        return const.GRADE_STRUGGLING

    def build_statistics(
        self, habit: Habit, today: date | None = None
    ) -> HabitStatistics:
        """Build the full statistics summary for one habit.

        "Today" is read once and shared by every figure in the summary.
        """
        today = today or self._calendar.today()
        weekly_rate = self.weekly_completion_rate(habit, today=today)
        completion_rate = self.completion_rate(habit, today=today)

        return {
            "habit_id": habit.habit_id,
            "total_completions": habit.total_completions,
            "current_streak": habit.current_streak,
            "longest_streak": habit.best_streak,
            "average_completions_per_week": round_rate(
                weekly_rate * const.DAYS_PER_WEEK
            ),
            "completion_rate": round_rate(completion_rate),
            "last_completion_date": StreakEngine.last_completion_date(habit),
            "weekly_completion_rate": round_rate(weekly_rate),
            "monthly_completion_rate": round_rate(
                self.monthly_completion_rate(habit, today=today)
            ),
            "yearly_completion_rate": round_rate(
                self.yearly_completion_rate(habit, today=today)
            ),
            "average_streak": round_rate(self.average_streak(habit)),
            "protection_days_used": habit.protection_days_used,
            "protection_days_available": self._protection.available_protection_days(
                habit, today=today
            ),
            "grade": self.grade_for_rate(completion_rate),
        }

    def build_all_statistics(
        self, habits: Iterable[Habit], today: date | None = None
    ) -> list[HabitStatistics]:
        """Statistics for several habits, longest current streak first."""
        today = today or self._calendar.today()
        statistics = [self.build_statistics(habit, today=today) for habit in habits]
        return sorted(statistics, key=lambda s: s["current_streak"], reverse=True)
