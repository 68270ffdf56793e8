"""Shared fixtures for habitchain tests."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import date, timedelta
from zoneinfo import ZoneInfo

import pytest

from habitchain.engines.streak_engine import StreakEngine
from habitchain.models import Habit
from habitchain.utils.dt_utils import CalendarContext

# 2026-03-15 is a Sunday
TODAY = date(2026, 3, 15)


def days_ago(count: int, today: date = TODAY) -> date:
    """Return the day `count` days before `today`."""
    return today - timedelta(days=count)


@pytest.fixture
def calendar() -> CalendarContext:
    """Return a UTC calendar with Sunday-start weeks."""
    return CalendarContext(time_zone=ZoneInfo("UTC"))


@pytest.fixture
def streaks(calendar: CalendarContext) -> StreakEngine:
    """Return a StreakEngine bound to the test calendar."""
    return StreakEngine(calendar)


@pytest.fixture
def habit() -> Habit:
    """Return a fresh habit created two weeks before TODAY."""
    return Habit.create("Read 20 pages", created_date=date(2026, 3, 1))


@pytest.fixture
def make_habit(streaks: StreakEngine):
    """Return a factory building a habit with completions already recorded."""

    def _make(
        completions: Iterable[date] = (),
        *,
        created_date: date = date(2026, 3, 1),
        protection_dates: Iterable[date] = (),
        today: date = TODAY,
        target: int | None = None,
    ) -> Habit:
        habit = Habit.create(
            "Meditate",
            created_date=created_date,
            target_completions_per_period=target,
        )
        habit.protection_dates.update(protection_dates)
        for day in completions:
            streaks.mark_completed(habit, day, today=today)
        streaks.recompute_streaks(habit, today=today)
        return habit

    return _make
