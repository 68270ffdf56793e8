"""habitchain - recurrence rules, habit streaks and completion analytics.

Key Features:
- Recurrence rules (daily, weekly, monthly, custom) with exceptions and end dates.
- Completion ledger with consecutive-day streaks and protection days.
- Completion rates, period buckets, grades and heatmap data.
- Voluptuous-validated stored representations (data_builders).
"""

from __future__ import annotations

from .data_builders import (
    EntityValidationError,
    build_calendar_context,
    build_habit,
    build_recurrence_rule,
    habit_to_dict,
    recurrence_rule_to_dict,
)
from .engines import (
    HeatmapEngine,
    ProtectionDayPolicy,
    RecurrenceEngine,
    StatisticsEngine,
    StreakEngine,
)
from .models import (
    CustomSchedule,
    DailySchedule,
    Habit,
    InvalidHabitError,
    InvalidRuleError,
    MonthlySchedule,
    RecurrenceRule,
    Task,
    WeeklySchedule,
)
from .utils.dt_utils import CalendarContext

__all__ = [
    "CalendarContext",
    "CustomSchedule",
    "DailySchedule",
    "EntityValidationError",
    "Habit",
    "HeatmapEngine",
    "InvalidHabitError",
    "InvalidRuleError",
    "MonthlySchedule",
    "ProtectionDayPolicy",
    "RecurrenceEngine",
    "RecurrenceRule",
    "StatisticsEngine",
    "StreakEngine",
    "Task",
    "WeeklySchedule",
    "build_calendar_context",
    "build_habit",
    "build_recurrence_rule",
    "habit_to_dict",
    "recurrence_rule_to_dict",
]
