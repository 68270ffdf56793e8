"""Engine modules for habitchain.

Contains specialized computation engines:
- schedule_engine: Recurrence calculation and RRULE generation
- streak_engine: Completion ledger and streak derivation
- protection_engine: Monthly protection-day quota
- statistics_engine: Completion rates, period buckets and grades
- heatmap_engine: Heatmap cells and streak chain links
"""

# Use relative imports within package to avoid mypy module resolution issues
from .heatmap_engine import HeatmapEngine
from .protection_engine import ProtectionDayPolicy
from .schedule_engine import (
    RecurrenceEngine,
    add_exception,
    add_exceptions,
    calculate_next_occurrence,
    next_occurrences,
    remove_exception,
)
from .statistics_engine import StatisticsEngine
from .streak_engine import StreakEngine, find_runs

__all__ = [
    "HeatmapEngine",
    "ProtectionDayPolicy",
    "RecurrenceEngine",
    "StatisticsEngine",
    "StreakEngine",
    "add_exception",
    "add_exceptions",
    "calculate_next_occurrence",
    "find_runs",
    "next_occurrences",
    "remove_exception",
]
