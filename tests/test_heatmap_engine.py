"""Tests for HeatmapEngine (heatmap cells and streak chain)."""

from __future__ import annotations

from datetime import date, datetime
from zoneinfo import ZoneInfo

import pytest

from habitchain.engines.heatmap_engine import HeatmapEngine
from habitchain.utils.dt_utils import CalendarContext
from tests.conftest import TODAY, days_ago


@pytest.fixture
def heatmap(calendar: CalendarContext) -> HeatmapEngine:
    """Return a HeatmapEngine with the default saturation of 7."""
    return HeatmapEngine(calendar)


class TestIntensity:
    """Tests for completion_intensity."""

    def test_not_completed_is_zero(self, heatmap: HeatmapEngine, make_habit) -> None:
        habit = make_habit([days_ago(1)])

        assert heatmap.completion_intensity(habit, TODAY) == 0.0

    def test_completed_is_positive(self, heatmap: HeatmapEngine, make_habit) -> None:
        habit = make_habit([TODAY])

        assert heatmap.completion_intensity(habit, TODAY) > 0.0

    def test_scales_with_streak(self, heatmap: HeatmapEngine, make_habit) -> None:
        """Three-day run ending today is 3/7."""
        habit = make_habit([TODAY, days_ago(1), days_ago(2)])

        assert heatmap.completion_intensity(habit, TODAY) == pytest.approx(3 / 7, abs=1e-4)

    def test_monotonic_until_saturation(self, heatmap: HeatmapEngine, make_habit) -> None:
        """Intensity increases along a run and stays at 1.0 past saturation."""
        run = [days_ago(n) for n in range(10)]
        habit = make_habit(run)

        values = [heatmap.completion_intensity(habit, day) for day in reversed(run)]

        assert values[:7] == sorted(values[:7])
        assert len(set(values[:7])) == 7
        assert values[6:] == [1.0, 1.0, 1.0, 1.0]

    def test_custom_saturation(self, calendar: CalendarContext, make_habit) -> None:
        heatmap = HeatmapEngine(calendar, saturation=5)
        habit = make_habit([days_ago(n) for n in range(5)])

        assert heatmap.completion_intensity(habit, TODAY) == 1.0

    def test_invalid_saturation(self, calendar: CalendarContext) -> None:
        with pytest.raises(ValueError, match="saturation"):
            HeatmapEngine(calendar, saturation=0)

    def test_is_completed_normalizes(self, heatmap: HeatmapEngine, make_habit) -> None:
        habit = make_habit([TODAY])

        assert heatmap.is_completed(
            habit, datetime(2026, 3, 15, 18, 45, tzinfo=ZoneInfo("UTC"))
        )


class TestBuildHeatmap:
    """Tests for build_heatmap."""

    def test_one_cell_per_day(self, heatmap: HeatmapEngine, make_habit) -> None:
        habit = make_habit([date(2026, 3, 11), date(2026, 3, 12), date(2026, 3, 14)])

        cells = heatmap.build_heatmap(habit, date(2026, 3, 10), date(2026, 3, 14))

        assert [cell["date"] for cell in cells] == [
            date(2026, 3, d) for d in range(10, 15)
        ]
        assert [cell["is_completed"] for cell in cells] == [
            False,
            True,
            True,
            False,
            True,
        ]
        assert [cell["streak_count"] for cell in cells] == [0, 1, 2, 0, 1]
        assert cells[0]["intensity"] == 0.0

    def test_inverted_range_is_empty(self, heatmap: HeatmapEngine, make_habit) -> None:
        habit = make_habit([TODAY])

        assert heatmap.build_heatmap(habit, TODAY, days_ago(1)) == []


class TestBuildStreakChain:
    """Tests for build_streak_chain."""

    def test_chain_flags(self, heatmap: HeatmapEngine, make_habit) -> None:
        """A protected Mar 14 sits inside the current streak."""
        habit = make_habit(
            [date(2026, 3, 12), date(2026, 3, 13), TODAY],
            protection_dates=[date(2026, 3, 14)],
        )

        chain = heatmap.build_streak_chain(habit, days=5, today=TODAY)

        assert [link["date"] for link in chain] == [
            date(2026, 3, d) for d in range(11, 16)
        ]
        assert [link["in_current_streak"] for link in chain] == [
            False,
            True,
            True,
            True,
            True,
        ]
        assert [link["is_protection_day"] for link in chain] == [
            False,
            False,
            False,
            True,
            False,
        ]
        assert [link["is_today"] for link in chain] == [False] * 4 + [True]
        assert chain[-1]["streak_count"] == 1

    def test_no_current_streak(self, heatmap: HeatmapEngine, make_habit) -> None:
        habit = make_habit([days_ago(5)])

        chain = heatmap.build_streak_chain(habit, days=7, today=TODAY)

        assert not any(link["in_current_streak"] for link in chain)
        assert sum(link["is_completed"] for link in chain) == 1

    def test_default_length(self, heatmap: HeatmapEngine, habit) -> None:
        assert len(heatmap.build_streak_chain(habit, today=TODAY)) == 30

    def test_non_positive_length(self, heatmap: HeatmapEngine, habit) -> None:
        assert heatmap.build_streak_chain(habit, days=0, today=TODAY) == []
