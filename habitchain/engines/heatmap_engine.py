"""Heatmap Engine - per-day cells for completion heatmaps and streak chains.

Read-only. Intensity rises with the length of the run ending on a day and
saturates at `saturation` days:

    intensity = min(streak_on_date, saturation) / saturation

A day that is not completed always has intensity 0.0.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import TYPE_CHECKING

from .. import const
from ..utils.dt_utils import CalendarContext, default_calendar
from ..utils.math_utils import round_rate, safe_ratio
from .streak_engine import StreakEngine

if TYPE_CHECKING:
    from ..models import Habit
    from ..type_defs import ChainDay, HeatmapDay


class HeatmapEngine:
    """Heatmap / chain data provider for one habit at a time."""

    def __init__(
        self,
        calendar: CalendarContext | None = None,
        saturation: int = const.DEFAULT_INTENSITY_SATURATION,
    ) -> None:
        if saturation < 1:
            raise ValueError(f"saturation must be >= 1, got {saturation}")
        self._calendar = calendar or default_calendar()
        self._saturation = saturation
        self._streaks = StreakEngine(self._calendar)

    def is_completed(self, habit: Habit, day: date | datetime) -> bool:
        return self._streaks.is_completed(habit, day)

    def completion_intensity(self, habit: Habit, day: date | datetime) -> float:
        """Heat value in [0, 1] for `day`."""
        if not self.is_completed(habit, day):
            return 0.0
        streak = self._streaks.streak_on_date(habit, day)
        return round_rate(safe_ratio(min(streak, self._saturation), self._saturation))

    def build_heatmap(
        self, habit: Habit, start: date | datetime, end: date | datetime
    ) -> list[HeatmapDay]:
        """One cell per day from `start` to `end` inclusive.

        Returns an empty list when `start` is after `end`.
        """
        start_day = self._calendar.start_of_day(start)
        end_day = self._calendar.start_of_day(end)
        return [
            {
                "date": day,
                "is_completed": day in habit.completion_dates,
                "streak_count": self._streaks.streak_on_date(habit, day),
                "intensity": self.completion_intensity(habit, day),
            }
            for day in self._calendar.iter_days(start_day, end_day)
        ]

    def build_streak_chain(
        self,
        habit: Habit,
        days: int = const.DEFAULT_CHAIN_DAYS,
        today: date | None = None,
    ) -> list[ChainDay]:
        """Links for the last `days` days, oldest first, ending today.

        `in_current_streak` covers the span of the current run, including a
        protection day bridged inside it.
        """
        if days < 1:
            return []
        today = today or self._calendar.today()
        start = self._calendar.add_days(today, -(days - 1))

        current = self._streaks.current_run(habit, today=today)
        run_start, run_end = (current[0], current[-1]) if current else (None, None)

        chain: list[ChainDay] = []
        for day in self._calendar.iter_days(start, today):
            chain.append(
                {
                    "date": day,
                    "is_completed": day in habit.completion_dates,
                    "is_today": day == today,
                    "is_protection_day": day in habit.protection_dates,
                    "streak_count": self._streaks.streak_on_date(habit, day),
                    "in_current_streak": run_start is not None
                    and run_start <= day <= run_end,
                }
            )
        return chain
