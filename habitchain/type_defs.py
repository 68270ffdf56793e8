"""Type definitions for habitchain data structures.

TypedDicts describe the STATIC dict shapes that cross the engine boundary:
- Stored representations: RecurrenceRuleData, TaskData, HabitData
- Engine results: HabitStatistics, HeatmapDay, ChainDay, TargetProgress

Live engine state (rules, habits) is held in the dataclasses of models.py;
these dicts are what the surrounding persistence and UI layers exchange.

NOTE: TypedDict is STATIC ANALYSIS ONLY. Runtime validation of stored data
happens in data_builders.py (voluptuous schemas).
"""

from datetime import date
from typing import Any, NotRequired, TypedDict

# =============================================================================
# Type Aliases (for readability)
# =============================================================================

HabitId = str  # UUID string
ISODate = str  # ISO 8601 date string (no time) "2026-01-18"


# =============================================================================
# Stored representations
# =============================================================================


class RecurrenceRuleData(TypedDict):
    """Stored form of a RecurrenceRule (the five rule fields plus anchor)."""

    frequency: str  # FREQUENCY_* constant
    interval: int | None  # None only for a custom rule without schedule
    days_of_week: NotRequired[list[int]]  # 1=Sunday ... 7=Saturday (weekly only)
    day_of_month: NotRequired[int | None]  # 1-31 (monthly only)
    end_date: NotRequired[ISODate | None]
    exceptions: NotRequired[list[ISODate]]
    anchor_date: NotRequired[ISODate | None]


class TaskData(TypedDict):
    """Stored form of the Task a habit owns."""

    title: str
    is_completed: bool
    category: NotRequired[str | None]
    metadata: NotRequired[dict[str, Any]]


class HabitData(TypedDict):
    """Stored form of a Habit.

    Streak caches are written for consumers but recomputed on load.
    """

    habit_id: HabitId
    task: TaskData
    completion_dates: list[ISODate]
    current_streak: int
    best_streak: int
    total_completions: int
    protection_days_used: int
    last_protection_date: ISODate | None
    protection_dates: list[ISODate]
    target_completions_per_period: int | None
    created_date: ISODate


# =============================================================================
# Engine results
# =============================================================================


class HabitStatistics(TypedDict):
    """Summary produced by StatisticsEngine.build_statistics()."""

    habit_id: HabitId
    total_completions: int
    current_streak: int
    longest_streak: int
    average_completions_per_week: float
    completion_rate: float
    last_completion_date: date | None
    weekly_completion_rate: float
    monthly_completion_rate: float
    yearly_completion_rate: float
    average_streak: float
    protection_days_used: int
    protection_days_available: int
    grade: str  # GRADE_* constant


class TargetProgress(TypedDict):
    """Completions in one period against the habit's target."""

    period: str  # PERIOD_* constant
    period_key: str
    completions: int
    target: int | None
    percentage: float
    is_met: bool


class HeatmapDay(TypedDict):
    """One cell of a completion heatmap."""

    date: date
    is_completed: bool
    streak_count: int
    intensity: float


class ChainDay(TypedDict):
    """One link of a streak chain."""

    date: date
    is_completed: bool
    is_today: bool
    is_protection_day: bool
    streak_count: int
    in_current_streak: bool
