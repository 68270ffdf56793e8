"""Tests for StreakEngine.

Tests cover:
- Ledger mutations (mark_completed / mark_incomplete, idempotence, task mirror)
- Streak derivation (current with yesterday grace, best, broken runs)
- Protection-day bridging of single-day gaps
- Cache invariants after every mutation
- Read-only queries (streak_on_date, ranges, find_runs)
"""

from __future__ import annotations

from datetime import date, datetime
from zoneinfo import ZoneInfo

from freezegun import freeze_time

from habitchain.engines.streak_engine import StreakEngine, find_runs
from habitchain.models import Habit
from tests.conftest import TODAY, days_ago


def assert_invariants(habit: Habit) -> None:
    """Cached counters agree with the ledger."""
    assert habit.total_completions == len(habit.completion_dates)
    assert habit.current_streak <= habit.total_completions
    assert habit.current_streak <= habit.best_streak


class TestMarkCompleted:
    """Tests for mark_completed."""

    def test_first_completion(self, streaks: StreakEngine, habit: Habit) -> None:
        """First completion starts a streak of 1 and mirrors the task."""
        assert streaks.mark_completed(habit, TODAY, today=TODAY) is True

        assert habit.completion_dates == {TODAY}
        assert habit.total_completions == 1
        assert habit.current_streak == 1
        assert habit.best_streak == 1
        assert habit.task.is_completed is True

    def test_duplicate_is_idempotent(self, streaks: StreakEngine, habit: Habit) -> None:
        """Completing the same day twice never double-counts."""
        streaks.mark_completed(habit, TODAY, today=TODAY)
        snapshot = (
            set(habit.completion_dates),
            habit.total_completions,
            habit.current_streak,
            habit.best_streak,
        )

        assert streaks.mark_completed(habit, TODAY, today=TODAY) is False
        assert snapshot == (
            habit.completion_dates,
            habit.total_completions,
            habit.current_streak,
            habit.best_streak,
        )

    def test_datetime_is_normalized(self, streaks: StreakEngine, habit: Habit) -> None:
        """Two moments on the same calendar day are one completion."""
        streaks.mark_completed(
            habit, datetime(2026, 3, 15, 7, 0, tzinfo=ZoneInfo("UTC")), today=TODAY
        )
        streaks.mark_completed(
            habit, datetime(2026, 3, 15, 21, 0, tzinfo=ZoneInfo("UTC")), today=TODAY
        )

        assert habit.completion_dates == {TODAY}
        assert habit.total_completions == 1

    @freeze_time("2026-03-15 12:00:00", tz_offset=0)
    def test_defaults_to_today(self, streaks: StreakEngine, habit: Habit) -> None:
        """Without a day the calendar's today is used."""
        streaks.mark_completed(habit)

        assert habit.completion_dates == {date(2026, 3, 15)}
        assert habit.current_streak == 1


class TestMarkIncomplete:
    """Tests for mark_incomplete."""

    def test_removes_and_recomputes(self, streaks: StreakEngine, make_habit) -> None:
        """Removing the middle day splits the run."""
        habit = make_habit([TODAY, days_ago(1), days_ago(2)])

        assert streaks.mark_incomplete(habit, days_ago(1), today=TODAY) is True

        assert habit.total_completions == 2
        assert habit.current_streak == 1
        assert habit.best_streak == 1
        assert habit.task.is_completed is False

    def test_missing_day_is_noop(self, streaks: StreakEngine, make_habit) -> None:
        """Removing a day that was never completed changes nothing."""
        habit = make_habit([TODAY])

        assert streaks.mark_incomplete(habit, days_ago(3), today=TODAY) is False
        assert habit.completion_dates == {TODAY}
        assert habit.total_completions == 1

    def test_last_completion_removed(self, streaks: StreakEngine, make_habit) -> None:
        """An empty ledger has zero streaks."""
        habit = make_habit([TODAY])

        streaks.mark_incomplete(habit, TODAY, today=TODAY)

        assert habit.current_streak == 0
        assert habit.best_streak == 0
        assert habit.total_completions == 0


class TestRecomputeStreaks:
    """Tests for current / best streak derivation."""

    def test_three_consecutive_days_then_older_run(
        self, streaks: StreakEngine, make_habit
    ) -> None:
        """D, D-1, D-2 then D-4, D-5: two runs, best and current 3, total 5."""
        habit = make_habit([TODAY, days_ago(1), days_ago(2)])
        assert habit.current_streak == 3

        streaks.mark_completed(habit, days_ago(4), today=TODAY)
        streaks.mark_completed(habit, days_ago(5), today=TODAY)

        assert habit.current_streak == 3
        assert habit.best_streak == 3
        assert habit.total_completions == 5

    def test_run_ending_yesterday_still_counts(self, make_habit) -> None:
        """Today not done yet: yesterday's run is the current streak."""
        habit = make_habit([days_ago(1), days_ago(2)])

        assert habit.current_streak == 2

    def test_run_ending_two_days_ago_is_broken(self, make_habit) -> None:
        """A full missed day resets the current streak."""
        habit = make_habit([days_ago(2), days_ago(3)])

        assert habit.current_streak == 0
        assert habit.best_streak == 2

    def test_best_streak_is_longest_run(self, make_habit) -> None:
        """An older, longer run stays the best streak."""
        habit = make_habit(
            [days_ago(10), days_ago(9), days_ago(8), days_ago(7), TODAY]
        )

        assert habit.best_streak == 4
        assert habit.current_streak == 1

    def test_future_completion_not_in_current_streak(self, make_habit) -> None:
        """A completion dated tomorrow does not extend today's streak."""
        habit = make_habit([TODAY, date(2026, 3, 16)])

        assert habit.current_streak == 1
        assert habit.best_streak == 2

    def test_invariants_hold_after_every_mutation(
        self, streaks: StreakEngine, habit: Habit
    ) -> None:
        """Caches stay consistent through a mixed sequence of mutations."""
        operations = [
            (streaks.mark_completed, days_ago(3)),
            (streaks.mark_completed, days_ago(2)),
            (streaks.mark_completed, days_ago(2)),
            (streaks.mark_completed, TODAY),
            (streaks.mark_incomplete, days_ago(9)),
            (streaks.mark_completed, days_ago(1)),
            (streaks.mark_incomplete, days_ago(2)),
            (streaks.mark_completed, days_ago(8)),
        ]
        for operation, day in operations:
            operation(habit, day, today=TODAY)
            assert_invariants(habit)


class TestProtectionBridging:
    """Tests for gaps bridged by registered protection days."""

    def test_registered_day_bridges_single_gap(self, make_habit) -> None:
        """The protected day keeps the run alive without adding to it."""
        habit = make_habit(
            [TODAY, days_ago(2), days_ago(3)], protection_dates=[days_ago(1)]
        )

        assert habit.current_streak == 3
        assert habit.best_streak == 3

    def test_unregistered_gap_breaks(self, make_habit) -> None:
        """Without a registered day the same gap breaks the run."""
        habit = make_habit([TODAY, days_ago(2), days_ago(3)])

        assert habit.current_streak == 1
        assert habit.best_streak == 2

    def test_two_day_gap_is_never_bridged(self, make_habit) -> None:
        """Only a single missing day can be bridged."""
        habit = make_habit(
            [TODAY, days_ago(3)], protection_dates=[days_ago(1), days_ago(2)]
        )

        assert habit.current_streak == 1

    def test_protected_yesterday_keeps_current_streak(self, make_habit) -> None:
        """Today not done, yesterday protected: the older run is still current."""
        habit = make_habit([days_ago(2), days_ago(3)], protection_dates=[days_ago(1)])

        assert habit.current_streak == 2


class TestLedgerQueries:
    """Tests for read-only ledger queries."""

    def test_streak_on_date(self, streaks: StreakEngine, make_habit) -> None:
        """Counts backward, protection days ignored."""
        habit = make_habit(
            [date(2026, 3, 10), date(2026, 3, 11), date(2026, 3, 12), date(2026, 3, 14)],
            protection_dates=[date(2026, 3, 13)],
        )

        assert streaks.streak_on_date(habit, date(2026, 3, 12)) == 3
        assert streaks.streak_on_date(habit, date(2026, 3, 13)) == 0
        assert streaks.streak_on_date(habit, date(2026, 3, 14)) == 1

    def test_completion_dates_in_range(self, streaks: StreakEngine, make_habit) -> None:
        """Inclusive bounds, ascending order."""
        habit = make_habit([days_ago(0), days_ago(5), days_ago(3), days_ago(10)])

        assert streaks.completion_dates_in_range(habit, days_ago(5), days_ago(0)) == [
            days_ago(5),
            days_ago(3),
            days_ago(0),
        ]

    def test_completed_today_and_last_completion(
        self, streaks: StreakEngine, make_habit
    ) -> None:
        habit = make_habit([days_ago(4), days_ago(1)])

        assert streaks.is_completed_today(habit, today=TODAY) is False
        assert streaks.is_completed(habit, days_ago(1)) is True
        assert StreakEngine.last_completion_date(habit) == days_ago(1)

    def test_current_run(self, streaks: StreakEngine, make_habit) -> None:
        """The days making up the current streak, ascending."""
        habit = make_habit([days_ago(6), days_ago(1), TODAY])

        assert streaks.current_run(habit, today=TODAY) == [days_ago(1), TODAY]


class TestFindRuns:
    """Tests for the shared run detector."""

    def test_groups_consecutive_days(self) -> None:
        days = [date(2026, 3, 4), date(2026, 3, 1), date(2026, 3, 2), date(2026, 3, 2)]

        assert find_runs(days) == [
            [date(2026, 3, 1), date(2026, 3, 2)],
            [date(2026, 3, 4)],
        ]

    def test_bridge_day_joins_runs(self) -> None:
        days = [date(2026, 3, 1), date(2026, 3, 2), date(2026, 3, 4)]

        assert find_runs(days, bridge_days={date(2026, 3, 3)}) == [
            [date(2026, 3, 1), date(2026, 3, 2), date(2026, 3, 4)]
        ]

    def test_empty(self) -> None:
        assert find_runs([]) == []
